"""
Data-access layer over an async SQLAlchemy session.

Handlers and jobs never build queries for plain CRUD by hand; they call the
operations below with a filter dict. Keys are ``field`` or ``field__op``:

    {"household_id": hid, "due_date__gte": now, "status__ne": "COMPLETED"}

Supported operators: eq (default), ne, lt, lte, gt, gte, in, not_in, isnull.
A ``None`` value with eq/ne compiles to IS NULL / IS NOT NULL.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional, Sequence, TypeVar

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from app.core.errors import NotFoundError, ValidationError

ModelT = TypeVar("ModelT", bound=SQLModel)
Filter = dict[str, Any]

LOOKUP_SEPARATOR = "__"

_OPERATORS = {
    "eq": lambda col, val: col.is_(None) if val is None else col == val,
    "ne": lambda col, val: col.is_not(None) if val is None else col != val,
    "lt": lambda col, val: col < val,
    "lte": lambda col, val: col <= val,
    "gt": lambda col, val: col > val,
    "gte": lambda col, val: col >= val,
    "in": lambda col, val: col.in_(list(val)),
    "not_in": lambda col, val: col.not_in(list(val)),
    "isnull": lambda col, val: col.is_(None) if val else col.is_not(None),
}


def split_lookup(key: str) -> tuple[str, str]:
    """Split ``"due_date__gte"`` into ``("due_date", "gte")``."""
    field, _, op = key.partition(LOOKUP_SEPARATOR)
    return field, op or "eq"


def compile_filter(model: type[SQLModel], where: Optional[Filter]) -> list[sa.ColumnElement[bool]]:
    """Translate a filter dict into SQLAlchemy criteria for ``model``."""
    clauses = []
    columns = model.__table__.columns
    for key, value in (where or {}).items():
        field, op = split_lookup(key)
        if field not in columns:
            raise ValidationError(f"{model.__name__} has no field '{field}'")
        if op not in _OPERATORS:
            raise ValidationError(f"Unsupported filter operator '{op}'")
        clauses.append(_OPERATORS[op](getattr(model, field), value))
    return clauses


class Store:
    """CRUD operations per model, bound to one session (one unit of work)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- Reads ---

    def _select(
        self,
        model: type[ModelT],
        where: Optional[Filter],
        order_by: Sequence[Any],
        options: Iterable[Any],
    ):
        stmt = select(model).where(*compile_filter(model, where))
        if order_by:
            stmt = stmt.order_by(*order_by)
        if options:
            stmt = stmt.options(*options)
        return stmt

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
        stmt = self._select(model, where, order_by, options)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_first(
        self,
        model: type[ModelT],
        where: Optional[Filter] = None,
        *,
        order_by: Sequence[Any] = (),
        options: Iterable[Any] = (),
    ) -> ModelT | None:
        stmt = self._select(model, where, order_by, options).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_unique(
        self,
        model: type[ModelT],
        where: Filter,
        *,
        options: Iterable[Any] = (),
    ) -> ModelT | None:
        """Fetch the single row matching a unique selector (e.g. ``{"id": ...}``)."""
        stmt = self._select(model, where, (), options)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # --- Writes ---

    async def create(self, model: type[ModelT], data: dict[str, Any]) -> ModelT:
        instance = model(**data)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def update(self, model: type[ModelT], where: Filter, data: dict[str, Any]) -> ModelT:
        instance = await self.find_unique(model, where)
        if instance is None:
            raise NotFoundError(f"{model.__name__} not found")
        for key, value in data.items():
            setattr(instance, key, value)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def update_many(self, model: type[ModelT], where: Optional[Filter], data: dict[str, Any]) -> int:
        stmt = (
            sa.update(model)
            .where(*compile_filter(model, where))
            .values(**data)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete(self, model: type[ModelT], where: Filter) -> ModelT:
        instance = await self.find_unique(model, where)
        if instance is None:
            raise NotFoundError(f"{model.__name__} not found")
        await self.session.delete(instance)
        await self.session.flush()
        return instance

    async def delete_many(self, model: type[ModelT], where: Optional[Filter] = None) -> int:
        stmt = (
            sa.delete(model)
            .where(*compile_filter(model, where))
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    # --- Transactions ---

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Store"]:
        """Group writes; nests as a savepoint when a transaction is already open."""
        if self.session.in_transaction():
            async with self.session.begin_nested():
                yield self
        else:
            async with self.session.begin():
                yield self

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
