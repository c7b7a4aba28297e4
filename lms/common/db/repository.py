"""
Repository Base Module

This module provides the base repository interface and its SQLAlchemy
implementation used by the LMS services for simple per-model data access.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.common.error_handling import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class BaseRepository(Generic[T], ABC):
    """
    Abstract base repository for all entity types.

    This class provides a common interface for basic CRUD operations.
    """

    def __init__(self, entity_type: str):
        """
        Initialize the base repository.

        Args:
            entity_type: Human readable name of the managed entity
        """
        self.entity_type = entity_type

    @abstractmethod
    async def get(self, entity_id: Any) -> T:
        """
        Get an entity by ID.

        Raises:
            NotFoundError: If the entity doesn't exist
        """

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> T:
        """Create a new entity from a snake_case dictionary."""

    @abstractmethod
    async def update(self, entity_id: Any, data: Dict[str, Any]) -> T:
        """
        Update an existing entity.

        Raises:
            NotFoundError: If the entity doesn't exist
        """

    @abstractmethod
    async def delete(self, entity_id: Any) -> bool:
        """Delete an entity by ID. Returns False if it did not exist."""

    @abstractmethod
    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[T]:
        """List entities matching equality filters."""

    @abstractmethod
    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count entities matching equality filters."""


class SQLAlchemyRepository(BaseRepository[T]):
    """
    Repository over a single mapped model bound to one AsyncSession.

    Writes are flushed, not committed; the service owning the session
    decides when to commit.
    """

    def __init__(self, session: AsyncSession, model: Type[T], entity_type: Optional[str] = None):
        super().__init__(entity_type or model.__name__)
        self.session = session
        self.model = model

    async def get_or_none(self, entity_id: Any) -> Optional[T]:
        if entity_id is None:
            return None
        return await self.session.get(self.model, entity_id)

    async def get(self, entity_id: Any) -> T:
        entity = await self.get_or_none(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.entity_type} not found")
        return entity

    async def create(self, data: Dict[str, Any]) -> T:
        entity = self.model.from_dict(data)
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def update(self, entity_id: Any, data: Dict[str, Any]) -> T:
        entity = await self.get(entity_id)
        entity.update(data)
        await self.session.flush()
        return entity

    async def delete(self, entity_id: Any) -> bool:
        entity = await self.get_or_none(entity_id)
        if entity is None:
            return False
        await self.session.delete(entity)
        await self.session.flush()
        return True

    def _filtered(self, stmt, filters: Optional[Dict[str, Any]]):
        for key, value in (filters or {}).items():
            stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: Sequence[Any] = ()
    ) -> List[T]:
        stmt = self._filtered(select(self.model), filters)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(self.model), filters)
        return int((await self.session.execute(stmt)).scalar_one())

    async def find_one(self, **filters: Any) -> Optional[T]:
        """First entity matching the equality filters, or None."""
        stmt = self._filtered(select(self.model), filters).limit(1)
        return (await self.session.execute(stmt)).scalars().first()
