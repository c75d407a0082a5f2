"""
Document Store

Generic async repository over one SQLAlchemy model keyed by UUID with a
unique ``title`` column. Category and question stores build on it.
"""

from __future__ import annotations

import uuid
from collections import Counter
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Base

ModelT = TypeVar("ModelT", bound=Base)


class DocumentStore(Generic[ModelT]):
    """
    Async CRUD store for a title-keyed model.

    Subclasses set ``model``. All methods run on the injected session; callers
    decide when to commit.
    """

    model: Type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session

    async def commit(self) -> None:
        """
        Commit the current transaction.
        """
        await self._session.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _filtered(self, stmt, filters: Optional[Mapping[str, Any]]):
        for column, value in (filters or {}).items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, column) == value)
        return stmt

    async def count(self, filters: Optional[Mapping[str, Any]] = None) -> int:
        """
        Count rows matching equality filters. ``None`` filter values are ignored.
        """
        stmt = self._filtered(select(func.count()).select_from(self.model), filters)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def find(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        """
        Return rows matching equality filters, oldest first.
        """
        stmt = self._filtered(select(self.model), filters).order_by(
            self.model.created_at,
            self.model.id,
        )
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.scalars(stmt)
        return list(result.all())

    async def find_by_id(self, record_id: uuid.UUID) -> Optional[ModelT]:
        return await self._session.get(self.model, record_id)

    async def find_by_title(self, title: str) -> Optional[ModelT]:
        result = await self._session.scalars(
            select(self.model).where(self.model.title == title)
        )
        return result.one_or_none()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_many(
        self,
        records: Sequence[Dict[str, Any]],
    ) -> Tuple[List[ModelT], List[str]]:
        """
        Insert records, skipping any whose title already exists.

        A title collision (with stored rows or with an earlier record of the
        same batch) does not abort the others.

        Parameters
        ----------
        records : Sequence[Dict[str, Any]]
            Column mappings; every record must carry the same keys.

        Returns
        -------
        Tuple[List[ModelT], List[str]]
            Inserted rows, and the titles of the records that were skipped
            (one entry per skipped record, in input order).
        """
        if not records:
            return [], []

        stmt = (
            pg_insert(self.model)
            .on_conflict_do_nothing(index_elements=[self.model.title])
            .returning(self.model)
        )
        result = await self._session.scalars(stmt, list(records))
        inserted = list(result.all())

        remaining = Counter(row.title for row in inserted)
        duplicates = []
        for record in records:
            if remaining[record["title"]] > 0:
                remaining[record["title"]] -= 1
            else:
                duplicates.append(record["title"])

        return inserted, duplicates

    async def update_by_id(
        self,
        record_id: uuid.UUID,
        values: Mapping[str, Any],
    ) -> Optional[ModelT]:
        """
        Apply ``values`` to one row and return it, or None if it does not exist.
        """
        if not values:
            return await self.find_by_id(record_id)

        stmt = (
            update(self.model)
            .where(self.model.id == record_id)
            .values(**values)
            .returning(self.model)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.scalars(stmt)
        return result.one_or_none()

    async def delete_by_id(self, record_id: uuid.UUID) -> bool:
        """
        Hard-delete one row. Returns True if a row was removed.
        """
        stmt = delete(self.model).where(self.model.id == record_id).returning(self.model.id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None
