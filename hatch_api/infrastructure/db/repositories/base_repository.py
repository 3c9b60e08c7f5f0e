"""
Base Repository for Hatch

Generic async repository with the CRUD operations shared by every table,
plus the insert-or-ignore primitive used wherever a unique constraint is
the arbiter of concurrent writes.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from hatch_api.domain.timeutils import utcnow


ModelType = TypeVar("ModelType", bound=SQLModel)


class IReadRepository(ABC, Generic[ModelType]):
    """Read side of a repository."""

    @abstractmethod
    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        pass


class BaseRepository(IReadRepository[ModelType], Generic[ModelType]):
    """
    Generic async repository bound to one table model.

    Repositories only flush; committing is owned by whoever opened the
    session (the request dependency or a script context).

    Args:
        model: The SQLModel table class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        return await self._session.get(self._model, id)

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        stmt = select(self._model).offset(skip).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def exists(self, id: UUID) -> bool:
        return await self.get_by_id(id) is not None

    async def add(self, obj: ModelType) -> ModelType:
        """Persist a new row and return it refreshed."""
        self._session.add(obj)
        await self._session.flush()
        await self._session.refresh(obj)
        return obj

    async def add_or_ignore(self, obj: ModelType) -> bool:
        """
        Insert ``obj`` unless it violates a unique constraint.

        The insert runs in a SAVEPOINT so a conflict only discards this
        row, never the caller's transaction.

        Returns:
            True if inserted, False if an equal row already existed
        """
        try:
            async with self._session.begin_nested():
                self._session.add(obj)
                await self._session.flush()
        except IntegrityError:
            return False
        await self._session.refresh(obj)
        return True

    async def update_fields(self, obj: ModelType, values: Dict[str, Any]) -> ModelType:
        """Apply ``values`` to a loaded row and bump updated_at."""
        for field, value in values.items():
            setattr(obj, field, value)
        if hasattr(obj, "updated_at"):
            obj.updated_at = utcnow()
        self._session.add(obj)
        await self._session.flush()
        await self._session.refresh(obj)
        return obj

    async def delete(self, id: UUID) -> bool:
        """
        Delete a row by primary key.

        Returns:
            True if deleted, False if not found
        """
        db_obj = await self.get_by_id(id)
        if not db_obj:
            return False

        await self._session.delete(db_obj)
        await self._session.flush()
        return True

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self._model)
        result = await self._session.execute(stmt)
        return result.scalar_one()
