"""
Shared module for the catalog backend.

STRUCTURE:
- catalog_shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Audit actions, import modes, plan tiers

- catalog_shared.infrastructure: Database and request context
  - db.py: SQLAlchemy sessions, atomic()
  - correlation.py: Request correlation IDs

- catalog_shared.utils: Utilities
  - exceptions.py: Typed HTTP exceptions with machine-readable codes
  - validators.py: Image URL normalization

IMPORT EXAMPLES:
    from catalog_shared.infrastructure.db import get_db, atomic
    from catalog_shared.config.settings import settings
    from catalog_shared.config.constants import AuditAction, VariantKey
    from catalog_shared.utils.exceptions import NotFoundError, ConflictError
"""
