"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns with synchronous sessions.
"""

import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from catalog_shared.config.logging import get_logger
from catalog_shared.config.settings import DATABASE_URL, settings
from catalog_shared.utils.exceptions import ConflictError

logger = get_logger(__name__)


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def _build_engine(url: str):
    # SQLite needs different config than PostgreSQL
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.database_echo,
        )
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=_calculate_pool_size(),
        max_overflow=15,
        pool_timeout=30,  # Wait max 30s for connection from pool
        pool_recycle=1800,  # Recycle connections after 30 minutes
        connect_args={"connect_timeout": 10},
        echo=settings.database_echo,
    )


engine = _build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.post("/products")
        def create(db: Session = Depends(get_db)):
            ...

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Run a block as one all-or-nothing transaction.

    Commits when the block finishes, rolls back on any exception. A unique
    constraint lost to a concurrent writer surfaces as a 409 with code
    ``uniqueConstraintViolation``.

    Usage:
        with atomic(db):
            db.add(product)
            db.flush()
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "uniqueConstraintViolation",
            "A concurrent change already used one of these unique values",
            error=str(exc.orig),
        ) from exc
    except Exception:
        db.rollback()
        raise


def set_local_statement_timeout(db: Session, timeout_ms: int) -> None:
    """Bound every statement of the current transaction (PostgreSQL only)."""
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
