"""
Generic repository base for ledger tables.

Repositories never open sessions or commit. Every method takes the caller's
`AsyncSession` so all writes of one operation share the single transaction
opened by `DatabaseService.get_transaction()`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, delete, func, select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """CRUD helpers over one mapped model; `T` is the model class."""

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    def _trace(self, action: str, **fields: Any) -> None:
        name = self.model_class.__name__
        self.log.debug(f"{name}.{action}", extra={"model": name, **fields})

    def _select(
        self, conditions: tuple[ColumnElement[bool], ...], for_update: bool
    ) -> Select[tuple[T]]:
        stmt = select(self.model_class).where(*conditions)
        return stmt.with_for_update() if for_update else stmt

    # ========================================================================
    # Reads
    # ========================================================================

    async def get(
        self,
        session: AsyncSession,
        primary_key: Any,
        for_update: bool = False,
    ) -> Optional[T]:
        """Primary-key lookup; composite keys are passed as tuples."""
        instance = await session.get(
            self.model_class, primary_key, with_for_update=for_update or None
        )
        self._trace("get", found=instance is not None, locked=for_update)
        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        result = await session.execute(self._select(conditions, for_update))
        return result.scalar_one_or_none()

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Optional[Any] = None,
        for_update: bool = False,
        limit: Optional[int] = None,
    ) -> List[T]:
        stmt = self._select(conditions, for_update)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)

        rows = list((await session.execute(stmt)).scalars())
        self._trace("find_many_where", found_count=len(rows), locked=for_update)
        return rows

    async def count_where(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> int:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        return int((await session.execute(stmt)).scalar_one())

    async def exists(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> bool:
        return await self.count_where(session, *conditions) > 0

    # ========================================================================
    # Writes
    # ========================================================================

    async def add(self, session: AsyncSession, instance: T) -> T:
        """Stage `instance`; it is flushed with the transaction."""
        session.add(instance)
        self._trace("add")
        return instance

    async def delete_where(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> int:
        """Bulk delete; returns the number of rows removed."""
        result = await session.execute(delete(self.model_class).where(*conditions))
        removed = int(result.rowcount or 0)
        self._trace("delete_where", removed=removed)
        return removed

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
