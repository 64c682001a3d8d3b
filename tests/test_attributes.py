"""
Tests for the attribute schema validator.
"""

import pytest

from catalog_api.services.domain.attributes import (
    AttributeSchema,
    AttributeSpec,
    MultiSelectValue,
    NumberValue,
    SelectValue,
    TextValue,
    coerce_attribute_value,
)
from catalog_shared.config.constants import AttributeType
from catalog_shared.utils.exceptions import ValidationError


def _spec(key, type, required=False, options=()):
    return AttributeSpec(key=key, type=type, required=required, options=frozenset(options))


SIZE = _spec("size", AttributeType.SELECT, required=True, options=["S", "M", "L"])
WEIGHT = _spec("weight", AttributeType.NUMBER)
TAGS = _spec("tags", AttributeType.MULTI_SELECT, options=["eco", "sale"])
COLOR = _spec("color", AttributeType.TEXT)


class TestCoerceAttributeValue:
    @pytest.mark.parametrize("raw", [None, "", "  ", []])
    def test_empty_values_are_none(self, raw):
        assert coerce_attribute_value(COLOR, raw) is None

    def test_text_trimmed(self):
        assert coerce_attribute_value(COLOR, "  red ") == TextValue("red")

    def test_number_from_string(self):
        value = coerce_attribute_value(WEIGHT, " 12 ")
        assert value == NumberValue(12.0)
        assert value.to_json() == 12

    def test_fractional_number_kept(self):
        assert coerce_attribute_value(WEIGHT, 0.25).to_json() == 0.25

    @pytest.mark.parametrize("raw", ["abc", "nan", "inf", True, float("nan")])
    def test_invalid_number_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            coerce_attribute_value(WEIGHT, raw)
        assert exc_info.value.code == "attributeNumberInvalid"

    def test_select_option_checked(self):
        assert coerce_attribute_value(SIZE, "M") == SelectValue("M")
        with pytest.raises(ValidationError) as exc_info:
            coerce_attribute_value(SIZE, "XXL")
        assert exc_info.value.code == "attributeOptionInvalid"

    def test_select_rejects_lists(self):
        with pytest.raises(ValidationError) as exc_info:
            coerce_attribute_value(SIZE, ["M"])
        assert exc_info.value.code == "attributeValueInvalid"

    def test_multi_select_deduplicates(self):
        value = coerce_attribute_value(TAGS, ["eco", " eco", "sale", ""])
        assert value == MultiSelectValue(("eco", "sale"))
        assert value.to_json() == ["eco", "sale"]

    def test_multi_select_accepts_single_string(self):
        assert coerce_attribute_value(TAGS, "sale") == MultiSelectValue(("sale",))

    def test_multi_select_option_checked(self):
        with pytest.raises(ValidationError) as exc_info:
            coerce_attribute_value(TAGS, ["eco", "vintage"])
        assert exc_info.value.code == "attributeOptionInvalid"

    def test_select_without_options_accepts_anything(self):
        free = _spec("brand", AttributeType.SELECT)
        assert coerce_attribute_value(free, "Acme") == SelectValue("Acme")


class TestAttributeSchema:
    @pytest.fixture
    def schema(self):
        return AttributeSchema([SIZE, WEIGHT, TAGS, COLOR])

    def test_required_attribute_enforced(self, schema):
        with pytest.raises(ValidationError) as exc_info:
            schema.validate({"weight": 3})
        assert exc_info.value.code == "attributeRequired"

    def test_blank_required_value_counts_as_missing(self, schema):
        with pytest.raises(ValidationError) as exc_info:
            schema.validate({"size": "  "})
        assert exc_info.value.code == "attributeRequired"

    def test_rows_only_for_defined_keys(self, schema):
        validated = schema.validate({"size": "L", "weight": "1.5", "note": "free text"})
        assert validated.rows() == [("size", "L"), ("weight", 1.5)]
        assert validated.stored == {"size": "L", "weight": 1.5, "note": "free text"}

    def test_validate_all_fails_before_anything_is_returned(self, schema):
        with pytest.raises(ValidationError):
            schema.validate_all([{"size": "S"}, {"size": "S", "weight": "heavy"}])

    def test_load_ignores_inactive_definitions(self, db_session, seed_org, seed_attributes):
        schema = AttributeSchema.load(db_session, seed_org.id)
        assert "legacy" not in schema
        assert schema.required_keys == ["size"]

    def test_load_merges_localized_options(self, db_session, seed_org, seed_attributes):
        schema = AttributeSchema.load(db_session, seed_org.id)
        validated = schema.validate({"size": "XL"})
        assert validated.rows() == [("size", "XL")]

    def test_load_is_tenant_scoped(self, db_session, seed_other_org, seed_attributes):
        schema = AttributeSchema.load(db_session, seed_other_org.id)
        assert schema.required_keys == []
