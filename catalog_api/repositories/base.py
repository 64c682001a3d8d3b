"""
Base Repository implementation.
Provides common data access patterns with tenant isolation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar

from sqlalchemy import ColumnElement, Select
from sqlalchemy.orm import Session

from catalog_shared.config.constants import Limits


ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    """Base filters for repository queries."""

    max_limit: ClassVar[int] = Limits.MAX_PAGE_SIZE

    limit: int = Limits.DEFAULT_PAGE_SIZE

    # Tombstones
    include_deleted: bool = False

    # Search
    search: str | None = None

    def __post_init__(self):
        """Validate and normalize filters."""
        self.limit = min(max(1, self.limit), self.max_limit)
        if self.search:
            self.search = self.search.strip()[:Limits.MAX_SEARCH_TERM_LENGTH] or None


class BaseRepository(ABC, Generic[ModelT]):
    """
    Abstract base repository with common operations.

    Subclasses must implement:
    - model: the SQLAlchemy model class
    - _base_query(): base query with eager loading
    - _apply_filters(): entity-specific filters
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        """Return the SQLAlchemy model class."""
        ...

    @abstractmethod
    def _base_query(self, organization_id: str) -> Select:
        """
        Return base query with proper eager loading.
        Subclasses must implement this with selectinload/joinedload.
        """
        ...

    @abstractmethod
    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        """Apply entity-specific filters to query."""
        ...

    def _live_clause(self) -> ColumnElement[bool] | None:
        """Clause excluding tombstoned rows, or None when the model has no tombstone."""
        if hasattr(self.model, "is_deleted"):
            return self.model.is_deleted.is_(False)
        if hasattr(self.model, "is_active"):
            return self.model.is_active.is_(True)
        return None

    def _exclude_deleted(self, query: Select, include_deleted: bool) -> Select:
        clause = self._live_clause()
        if include_deleted or clause is None:
            return query
        return query.where(clause)

    def find_by_id(
        self,
        entity_id: str,
        organization_id: str,
        include_deleted: bool = False,
    ) -> ModelT | None:
        """Find entity by ID within the organization."""
        query = self._base_query(organization_id).where(self.model.id == entity_id)
        query = self._exclude_deleted(query, include_deleted)
        return self._db.scalar(query)
