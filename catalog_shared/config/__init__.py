"""
Configuration module: Settings, logging, constants.
"""

from catalog_shared.config.settings import settings, DATABASE_URL
from catalog_shared.config.logging import get_logger, setup_logging
from catalog_shared.config.constants import (
    AuditAction,
    BarcodeMode,
    ImportMode,
    Limits,
    VariantKey,
)

__all__ = [
    # settings
    "settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "AuditAction",
    "BarcodeMode",
    "ImportMode",
    "Limits",
    "VariantKey",
]
