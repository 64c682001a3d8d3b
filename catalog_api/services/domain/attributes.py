"""
Attribute Schema Validator.

Organization-defined variant attributes are typed (TEXT, NUMBER, SELECT,
MULTI_SELECT). Raw request values are converted once, in
``coerce_attribute_value``, into a closed set of tagged values; everything
downstream (required checks, attribute rows, stored JSON) works on those.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_api.models import AttributeDefinition
from catalog_shared.config.constants import AttributeType
from catalog_shared.utils.exceptions import ValidationError


@dataclass(frozen=True)
class TextValue:
    value: str

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class NumberValue:
    value: float

    def to_json(self) -> Any:
        if self.value.is_integer():
            return int(self.value)
        return self.value


@dataclass(frozen=True)
class SelectValue:
    value: str

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class MultiSelectValue:
    values: tuple[str, ...]

    def to_json(self) -> Any:
        return list(self.values)


AttributeValue = Union[TextValue, NumberValue, SelectValue, MultiSelectValue]


@dataclass(frozen=True)
class AttributeSpec:
    """Immutable view of an active AttributeDefinition."""

    key: str
    type: AttributeType
    required: bool
    options: frozenset[str]

    @classmethod
    def from_definition(cls, definition: AttributeDefinition) -> "AttributeSpec":
        options = set(definition.options_ru or []) | set(definition.options_kg or [])
        return cls(
            key=definition.key,
            type=AttributeType(definition.type),
            required=definition.required,
            options=frozenset(str(option) for option in options),
        )


def _invalid(spec: AttributeSpec, raw: Any) -> ValidationError:
    return ValidationError(
        "attributeValueInvalid",
        f"Attribute '{spec.key}' has an invalid value",
        key=spec.key,
        value=repr(raw),
    )


def _check_option(spec: AttributeSpec, value: str) -> None:
    if spec.options and value not in spec.options:
        raise ValidationError(
            "attributeOptionInvalid",
            f"'{value}' is not an option of attribute '{spec.key}'",
            key=spec.key,
        )


def coerce_attribute_value(spec: AttributeSpec, raw: Any) -> Optional[AttributeValue]:
    """
    Convert a raw value into its tagged form. Returns None for empty values
    (None, blank strings, empty lists).

    Raises:
        ValidationError(attributeNumberInvalid): NUMBER value not a finite number
        ValidationError(attributeOptionInvalid): SELECT value outside the options
        ValidationError(attributeValueInvalid): value of the wrong shape
    """
    if raw is None:
        return None
    if isinstance(raw, str) and not raw.strip():
        return None
    if isinstance(raw, (list, tuple)) and not raw:
        return None

    if spec.type == AttributeType.TEXT:
        if isinstance(raw, (dict, list, tuple)):
            raise _invalid(spec, raw)
        return TextValue(str(raw).strip())

    if spec.type == AttributeType.NUMBER:
        if isinstance(raw, bool):
            raise ValidationError(
                "attributeNumberInvalid", f"Attribute '{spec.key}' must be a number", key=spec.key
            )
        try:
            number = float(raw.strip() if isinstance(raw, str) else raw)
        except (TypeError, ValueError):
            number = math.nan
        if not math.isfinite(number):
            raise ValidationError(
                "attributeNumberInvalid", f"Attribute '{spec.key}' must be a number", key=spec.key
            )
        return NumberValue(number)

    if spec.type == AttributeType.SELECT:
        if isinstance(raw, (dict, list, tuple)):
            raise _invalid(spec, raw)
        value = str(raw).strip()
        _check_option(spec, value)
        return SelectValue(value)

    # MULTI_SELECT: a single string is accepted as a one-item selection
    items = [raw] if isinstance(raw, str) else raw
    if not isinstance(items, (list, tuple)):
        raise _invalid(spec, raw)
    values: list[str] = []
    for item in items:
        if isinstance(item, (dict, list, tuple)):
            raise _invalid(spec, raw)
        value = str(item).strip()
        if not value or value in values:
            continue
        _check_option(spec, value)
        values.append(value)
    if not values:
        return None
    return MultiSelectValue(tuple(values))


@dataclass(frozen=True)
class ValidatedAttributes:
    """Result of validating one variant's attribute map."""

    # Keys with a definition and a non-empty value, in input order
    typed: dict[str, AttributeValue]
    # Stored ProductVariant.attributes: canonical values for defined keys, others as given
    stored: dict[str, Any]

    def rows(self) -> list[tuple[str, Any]]:
        """(key, JSON value) pairs mirrored into VariantAttributeValue rows."""
        return [(key, value.to_json()) for key, value in self.typed.items()]


class AttributeSchema:
    """Active attribute definitions of one organization, keyed by attribute key."""

    def __init__(self, specs: Iterable[AttributeSpec]):
        self._specs = {spec.key: spec for spec in specs}

    @classmethod
    def load(cls, db: Session, organization_id: str) -> "AttributeSchema":
        definitions = db.scalars(
            select(AttributeDefinition).where(
                AttributeDefinition.organization_id == organization_id,
                AttributeDefinition.is_active.is_(True),
            )
        ).all()
        return cls(AttributeSpec.from_definition(definition) for definition in definitions)

    def __contains__(self, key: str) -> bool:
        return key in self._specs

    @property
    def required_keys(self) -> list[str]:
        return [key for key, spec in self._specs.items() if spec.required]

    def validate(self, attributes: Optional[Mapping[str, Any]]) -> ValidatedAttributes:
        """
        Coerce every defined key and enforce required definitions.

        Raises:
            ValidationError(attributeRequired): a required attribute is missing or empty
        """
        attributes = attributes or {}
        typed: dict[str, AttributeValue] = {}
        stored: dict[str, Any] = {}

        for key, raw in attributes.items():
            spec = self._specs.get(key)
            if spec is None:
                stored[key] = raw
                continue
            value = coerce_attribute_value(spec, raw)
            if value is None:
                continue
            typed[key] = value
            stored[key] = value.to_json()

        for key in self.required_keys:
            if key not in typed:
                raise ValidationError(
                    "attributeRequired", f"Attribute '{key}' is required", key=key
                )

        return ValidatedAttributes(typed=typed, stored=stored)

    def validate_all(
        self,
        attribute_maps: Iterable[Optional[Mapping[str, Any]]],
    ) -> list[ValidatedAttributes]:
        """Validate every variant up front so no row is written before a failure."""
        return [self.validate(attributes) for attributes in attribute_maps]
