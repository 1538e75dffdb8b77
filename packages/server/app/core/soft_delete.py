"""
Soft-delete interception for the data-access layer.

``SoftDeleteStore`` wraps a ``Store`` and enforces the ``deleted_at``
convention for every model that has that column:

- find_many / find_first always filter ``deleted_at IS NULL``; any
  caller-supplied ``deleted_at`` lookup is replaced.
- find_unique returns ``None`` for a soft-deleted row.
- delete / delete_many stamp ``deleted_at`` instead of removing rows.

Models without the column pass straight through. Use ``.raw`` for the rare
read that must see deleted rows.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.core.store import Filter, ModelT, Store, split_lookup
from app.models.base import utcnow

DELETED_AT = "deleted_at"


def is_soft_deletable(model: type[SQLModel]) -> bool:
    """True when the model's table carries a ``deleted_at`` column."""
    table = getattr(model, "__table__", None)
    return table is not None and DELETED_AT in table.columns


def exclude_deleted(where: Optional[Filter]) -> Filter:
    """Return a copy of ``where`` restricted to live rows."""
    merged = {
        key: value
        for key, value in (where or {}).items()
        if split_lookup(key)[0] != DELETED_AT
    }
    merged[DELETED_AT] = None
    return merged


class SoftDeleteStore:
    """Store decorator that hides and soft-deletes ``deleted_at`` rows."""

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self.raw = store
        self._clock = clock

    @property
    def session(self) -> AsyncSession:
        return self.raw.session

    # --- Intercepted reads ---

    async def find_many(
        self,
        model: type[ModelT],
        where: Optional[Filter] = None,
        *,
        order_by: Sequence[Any] = (),
        limit: int | None = None,
        offset: int | None = None,
        options: Iterable[Any] = (),
    ) -> list[ModelT]:
        if is_soft_deletable(model):
            where = exclude_deleted(where)
        return await self.raw.find_many(
            model, where, order_by=order_by, limit=limit, offset=offset, options=options
        )

    async def find_first(
        self,
        model: type[ModelT],
        where: Optional[Filter] = None,
        *,
        order_by: Sequence[Any] = (),
        options: Iterable[Any] = (),
    ) -> ModelT | None:
        if is_soft_deletable(model):
            where = exclude_deleted(where)
        return await self.raw.find_first(model, where, order_by=order_by, options=options)

    async def find_unique(
        self,
        model: type[ModelT],
        where: Filter,
        *,
        options: Iterable[Any] = (),
    ) -> ModelT | None:
        result = await self.raw.find_unique(model, where, options=options)
        if result is not None and is_soft_deletable(model) and result.deleted_at is not None:
            return None
        return result

    # --- Intercepted deletes ---

    async def delete(self, model: type[ModelT], where: Filter) -> ModelT:
        if is_soft_deletable(model):
            return await self.raw.update(model, where, {DELETED_AT: self._clock()})
        return await self.raw.delete(model, where)

    async def delete_many(self, model: type[ModelT], where: Optional[Filter] = None) -> int:
        if is_soft_deletable(model):
            return await self.raw.update_many(model, where, {DELETED_AT: self._clock()})
        return await self.raw.delete_many(model, where)

    # --- Pass-through ---

    async def create(self, model: type[ModelT], data: dict[str, Any]) -> ModelT:
        return await self.raw.create(model, data)

    async def update(self, model: type[ModelT], where: Filter, data: dict[str, Any]) -> ModelT:
        return await self.raw.update(model, where, data)

    async def update_many(self, model: type[ModelT], where: Optional[Filter], data: dict[str, Any]) -> int:
        return await self.raw.update_many(model, where, data)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SoftDeleteStore"]:
        async with self.raw.transaction():
            yield self

    async def commit(self) -> None:
        await self.raw.commit()

    async def rollback(self) -> None:
        await self.raw.rollback()
