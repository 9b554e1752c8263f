"""
Generic record store over the declared tables.

Every dispatcher reaches the database through this class: a table name plus
a mapping of column -> value becomes a parameterized statement. Identifiers
are resolved against the model metadata and rejected when unknown; values
are always bound.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import Select, and_, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easybuy.core.exceptions import ValidationException
from easybuy.core.logging import StoreOperation, get_logger
from easybuy.db.models import Base

logger = get_logger(__name__)

ORDER_DIRECTIONS = ("ASC", "DESC")


def _model_registry() -> dict[str, type[Base]]:
    return {mapper.class_.__tablename__: mapper.class_ for mapper in Base.registry.mappers}


class RecordStore:
    """
    Table-agnostic CRUD over an async session.

    Attributes:
        db: The async database session of the current request.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._models = _model_registry()

    # =========================================================================
    # Identifier resolution
    # =========================================================================

    def model_for(self, table: str) -> type[Base]:
        """Mapped class for a table name."""
        model = self._models.get(table)
        if model is None:
            raise ValidationException(f"Unknown table: {table}", field="table")
        return model

    def _column(self, model: type[Base], name: str) -> Any:
        if name not in model.__table__.columns:
            raise ValidationException(
                f"Unknown column: {model.__tablename__}.{name}", field=name
            )
        return getattr(model, name)

    def _where(self, model: type[Base], conditions: Mapping[str, Any] | None, ranges: bool = False):
        clauses = []
        for name, value in (conditions or {}).items():
            column = self._column(model, name)
            if ranges and isinstance(value, (list, tuple)) and len(value) == 2:
                clauses.append(column.between(value[0], value[1]))
            else:
                clauses.append(column == value)
        return and_(*clauses) if clauses else None

    def _apply_order(
        self,
        stmt: Select,
        model: type[Base],
        order_by: str | None,
        order: str,
        limit: int | None,
    ) -> Select:
        if order_by:
            direction = order.upper()
            if direction not in ORDER_DIRECTIONS:
                raise ValidationException(f"Invalid sort order: {order}", field="order")
            column = self._column(model, order_by)
            stmt = stmt.order_by(column.desc() if direction == "DESC" else column.asc())
        if limit is not None:
            stmt = stmt.limit(int(limit))
        return stmt

    # =========================================================================
    # Reads
    # =========================================================================

    async def select(
        self,
        table: str,
        conditions: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        order: str = "ASC",
        limit: int | None = None,
    ) -> list[Any]:
        """
        Rows of `table` matching every equality condition.

        Args:
            table: Table name
            conditions: column -> value, combined with AND
            order_by: Optional column to sort on
            order: "ASC" or "DESC"
            limit: Optional maximum number of rows

        Returns:
            List of mapped instances, empty when nothing matches.
        """
        model = self.model_for(table)
        stmt = select(model)
        where = self._where(model, conditions)
        if where is not None:
            stmt = stmt.where(where)
        stmt = self._apply_order(stmt, model, order_by, order, limit)

        with StoreOperation("select", table) as op:
            result = await self.db.execute(stmt)
            rows = list(result.scalars().all())
            op.rows = len(rows)
        return rows

    async def select_distinct(
        self,
        table: str,
        columns: Sequence[str],
        conditions: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        order: str = "ASC",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Distinct projections of `columns`, one dict per combination."""
        if not columns:
            raise ValidationException("No columns to select", field="columns")

        model = self.model_for(table)
        projected = [self._column(model, name) for name in columns]
        stmt = select(*projected).distinct()
        where = self._where(model, conditions)
        if where is not None:
            stmt = stmt.where(where)
        stmt = self._apply_order(stmt, model, order_by, order, limit)

        with StoreOperation("select_distinct", table) as op:
            result = await self.db.execute(stmt)
            rows = [dict(row) for row in result.mappings().all()]
            op.rows = len(rows)
        return rows

    async def count(self, table: str, conditions: Mapping[str, Any] | None = None) -> int:
        """Number of rows matching every equality condition."""
        return await self._count(table, conditions, ranges=False)

    async def count_range(self, table: str, conditions: Mapping[str, Any] | None = None) -> int:
        """
        Like count, but a two-element list or tuple value becomes
        `column BETWEEN low AND high`.
        """
        return await self._count(table, conditions, ranges=True)

    async def _count(self, table: str, conditions: Mapping[str, Any] | None, ranges: bool) -> int:
        model = self.model_for(table)
        stmt = select(func.count()).select_from(model)
        where = self._where(model, conditions, ranges=ranges)
        if where is not None:
            stmt = stmt.where(where)

        with StoreOperation("count_range" if ranges else "count", table) as op:
            result = await self.db.execute(stmt)
            total = int(result.scalar_one())
            op.rows = total
        return total

    async def exists(self, table: str, conditions: Mapping[str, Any]) -> bool:
        return await self.count(table, conditions) > 0

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, table: str, data: Mapping[str, Any]) -> Any | None:
        """
        Insert one row.

        Returns:
            The generated primary key, or None when the database refused the
            row (constraint violation). A refused insert rolls back the
            request transaction.
        """
        model = self.model_for(table)
        for name in data:
            self._column(model, name)

        obj = model(**data)
        self.db.add(obj)

        with StoreOperation("insert", table) as op:
            try:
                await self.db.flush()
            except IntegrityError as e:
                await self.db.rollback()
                op.fail(str(e.orig) if e.orig is not None else str(e))
                return None
            op.rows = 1
        return obj.id

    async def update(
        self,
        table: str,
        data: Mapping[str, Any],
        conditions: Mapping[str, Any],
    ) -> bool:
        """
        Set `data` on every row matching `conditions`.

        Returns:
            True when the statement ran, whether or not a row changed. False
            when there was nothing to set.
        """
        model = self.model_for(table)
        values = dict(data)
        for name in values:
            self._column(model, name)
        if not values:
            return False
        where = self._where(model, conditions)
        if where is None:
            raise ValidationException(f"Refusing to update every row of {table}", field="conditions")

        with StoreOperation("update", table) as op:
            result = await self.db.execute(update(model).where(where).values(**values))
            op.rows = result.rowcount or 0
        return True

    async def delete(self, table: str, conditions: Mapping[str, Any]) -> bool:
        """Delete every row matching `conditions`. True when the statement ran."""
        model = self.model_for(table)
        where = self._where(model, conditions)
        if where is None:
            raise ValidationException(f"Refusing to delete every row of {table}", field="conditions")

        with StoreOperation("delete", table) as op:
            result = await self.db.execute(delete(model).where(where))
            op.rows = result.rowcount or 0
        return True
