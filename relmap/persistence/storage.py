"""Row storage over SQLAlchemy Core.

Every call runs in its own ``engine.begin()`` block: one statement, one
commit. There is no transaction spanning a cascade of calls.
"""

import logging
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.sql import ColumnElement, Select

logger = logging.getLogger(__name__)


class RowStore:
    """Primitive row operations against tables in ``metadata``.

    Engine lifecycle is managed externally (created by the caller or by
    ``relmap.config.create_repository``), as is the metadata.
    """

    def __init__(self, engine: Engine, metadata: sa.MetaData):
        self._engine = engine
        self.metadata = metadata

    def table(self, name: str) -> sa.Table:
        return self.metadata.tables[name]

    def create_all(self) -> None:
        self.metadata.create_all(self._engine)
        logger.info(f"Created tables: {', '.join(sorted(self.metadata.tables))}")

    def create_row(self, table: sa.Table, values: dict[str, Any]) -> Optional[int]:
        """Insert one row and return its identity."""
        with self._engine.begin() as conn:
            result = conn.execute(insert(table).values(**values))
            if table.primary_key.columns:
                identity = result.inserted_primary_key[0]
            else:
                identity = result.lastrowid
        logger.debug(f"INSERT {table.name} {values} -> {identity}")
        return identity

    def query_rows(
        self,
        table: sa.Table,
        predicate: Optional[ColumnElement] = None,
        limit: Optional[int] = None,
    ) -> list[RowMapping]:
        query = select(table)
        if predicate is not None:
            query = query.where(predicate)
        if limit is not None:
            query = query.limit(limit)
        return self.select(query)

    def update_rows(
        self,
        table: sa.Table,
        values: dict[str, Any],
        predicate: Optional[ColumnElement] = None,
    ) -> int:
        stmt = update(table).values(**values)
        if predicate is not None:
            stmt = stmt.where(predicate)
        with self._engine.begin() as conn:
            count = conn.execute(stmt).rowcount
        logger.debug(f"UPDATE {table.name} {values} -> {count} row(s)")
        return count

    def delete_rows(self, table: sa.Table, predicate: Optional[ColumnElement] = None) -> int:
        stmt = delete(table)
        if predicate is not None:
            stmt = stmt.where(predicate)
        with self._engine.begin() as conn:
            count = conn.execute(stmt).rowcount
        logger.debug(f"DELETE {table.name} -> {count} row(s)")
        return count

    def select(self, query: Select) -> list[RowMapping]:
        """Run a prepared SELECT and return its rows as mappings."""
        with self._engine.connect() as conn:
            result = conn.execute(query)
            return list(result.mappings().all())
