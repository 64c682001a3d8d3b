"""
Centralized HTTP exceptions for consistent error handling.

Every exception carries a machine-readable ``code`` in addition to the
human-readable ``detail``. Callers branch on ``code``; the API renders both.

Usage:
    from catalog_shared.utils.exceptions import NotFoundError, ConflictError

    raise NotFoundError("Product", product_id, code="productNotFound")
    raise ConflictError("barcodeExists", "Barcode already assigned", values=["4800000000000"])
"""

from typing import Any

from fastapi import HTTPException, status

from catalog_shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        self.code = code

        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, code=code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": self.detail}


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Product", 123, code="productNotFound")
        raise NotFoundError("Unit", unit_id, code="unitNotFound", organization_id=org_id)
    """

    def __init__(
        self,
        entity: str,
        entity_id: int | str | None = None,
        *,
        code: str | None = None,
        **log_context: Any,
    ):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=code or f"{entity[0].lower()}{entity[1:]}NotFound",
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class ProductNotFoundError(NotFoundError):
    """Product missing, archived where that matters, or owned by another tenant."""

    def __init__(self, product_id: str | None = None, **log_context: Any):
        super().__init__("Product", product_id, code="productNotFound", **log_context)


# =============================================================================
# 403 Forbidden Errors
# =============================================================================


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("storeAccessDenied", "access this store", store_id=store_id)
    """

    def __init__(self, code: str, action: str | None = None, **log_context: Any):
        if action:
            detail = f"Not allowed to {action}"
        else:
            detail = "Access denied"

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code=code,
            detail=detail,
            log_level="warning",
            action=action,
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("skuRequired", "SKU is required")
        raise ValidationError("packMultiplierInvalid", "Invalid multiplier", value=-1)
    """

    def __init__(self, code: str, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=code,
            detail=detail,
            log_level="warning",
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("variantInUse", "Variant has stock history")
    """

    def __init__(self, code: str, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code=code,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class DuplicateEntityError(ConflictError):
    """Entity already exists under a tenant-unique key."""

    def __init__(self, entity: str, identifier: str | None = None, **log_context: Any):
        if identifier:
            detail = f"{entity} with identifier '{identifier}' already exists"
        else:
            detail = f"{entity} already exists"

        super().__init__(
            "uniqueConstraintViolation",
            detail,
            entity=entity,
            identifier=identifier,
            **log_context,
        )


# =============================================================================
# 500 / 504 Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).

    Usage:
        raise InternalError("barcodeGenerationFailed", "Could not allocate a barcode")
    """

    def __init__(
        self,
        code: str = "unexpectedError",
        detail: str = "Internal server error",
        **log_context: Any,
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=code,
            detail=detail,
            log_level="error",
            **log_context,
        )


class ImportTimeoutError(AppException):
    """The import transaction ran past its wall-clock budget (504)."""

    def __init__(self, timeout_ms: int, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            code="importTimeout",
            detail=f"Import exceeded its {timeout_ms} ms transaction budget",
            log_level="error",
            timeout_ms=timeout_ms,
            **log_context,
        )
