"""Record repository: insert, find, update and delete any registered record type.

Reads and writes go straight to the row store; nothing is cached and no
record is kept after a call returns. Relationship collections are
expanded recursively on insert and on read, one branch per collection
field, with a ``TraversalPath`` stopping any type from being expanded
again below itself.

Known limitations, kept on purpose:

- The identity assigned on insert is returned, never written back onto
  the record.
- ``update`` and ``delete`` touch only the record's own table: no
  cascade to children or join rows.
- A cascading insert is not atomic. Rows written before a failure stay.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, TypeVar

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.engine import RowMapping

from ..errors import ConstructionError, EncodingError, MappingError
from ..mapping.codec import decode, encode, omits
from ..mapping.relationships import Relationship, RelationshipRegistry, join_column, join_table_name
from ..mapping.schema import FieldSpec, RecordSchema
from ..mapping.traversal import TraversalPath
from .predicates import build_equality_predicate
from .storage import RowStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExpansionStatus(Enum):
    """Outcome of expanding one relationship collection on read."""

    LOADED = "loaded"  # related rows found
    EMPTY = "empty"  # relationship resolved, no related rows
    SKIPPED = "skipped"  # type already being expanded on this path
    UNRESOLVED = "unresolved"  # missing hint, through field, identity or table


@dataclass(frozen=True)
class Expansion:
    """Trace entry for one collection field of one materialized record."""

    container: type
    field: str
    related: type
    relationship: Relationship
    status: ExpansionStatus
    count: int = 0


class RecordRepository:
    """Maps registered record dataclasses onto rows of a ``RowStore``.

    Collection fields of materialized records are always lists. An empty
    list does not say why it is empty; pass a list as ``trace`` to any
    read to collect one ``Expansion`` per collection field visited.
    """

    def __init__(self, store: RowStore, registry: RelationshipRegistry):
        self._store = store
        self._registry = registry

    @property
    def identity_field(self) -> str:
        return self._registry.identity_field

    def create_tables(self) -> None:
        """Create record and join tables that do not exist yet."""
        self._store.create_all()

    # === Reads ===

    def find_all(
        self,
        record_type: type[T],
        trace: Optional[list[Expansion]] = None,
        limit: Optional[int] = None,
    ) -> list[T]:
        schema = self._registry.schema(record_type)
        rows = self._store.query_rows(self._table(schema, "find_all"), limit=limit)
        return [self.materialize(record_type, row, TraversalPath.root(record_type), trace) for row in rows]

    def find_first_where(
        self,
        record_type: type[T],
        sample: Optional[T] = None,
        trace: Optional[list[Expansion]] = None,
    ) -> Optional[T]:
        """First record matching the sample's non-default fields, or None.

        With no sample, any single record.
        """
        schema = self._registry.schema(record_type)
        table = self._table(schema, "find_first_where")
        predicate = self._predicate(schema, table, sample, "find_first_where")
        rows = self._store.query_rows(table, predicate, limit=1)
        if not rows:
            return None
        return self.materialize(record_type, rows[0], TraversalPath.root(record_type), trace)

    def find_all_where(
        self,
        record_type: type[T],
        sample: Optional[T],
        trace: Optional[list[Expansion]] = None,
    ) -> list[T]:
        schema = self._registry.schema(record_type)
        table = self._table(schema, "find_all_where")
        predicate = self._predicate(schema, table, sample, "find_all_where")
        rows = self._store.query_rows(table, predicate)
        return [self.materialize(record_type, row, TraversalPath.root(record_type), trace) for row in rows]

    # === Writes ===

    def insert(self, record: Any) -> Optional[int]:
        """Insert a record and, recursively, its relationship collections.

        Returns the identity assigned to the record's row.
        """
        return self._insert(record, TraversalPath.root(type(record)))

    def update(self, record: Any, sample: Any) -> int:
        """Write the record's scalar fields to every row matching ``sample``.

        Relationship collections are ignored. A None sample matches all rows.
        """
        schema = self._registry.schema(type(record))
        table = self._table(schema, "update")
        values = self._encode(schema, record, "update")
        predicate = self._predicate(schema, table, sample, "update")
        return self._store.update_rows(table, values, predicate)

    def delete(self, sample: Any) -> int:
        """Delete rows of the sample's table matching its non-default fields.

        Children and join rows are left in place.
        """
        schema = self._registry.schema(type(sample))
        table = self._table(schema, "delete")
        predicate = self._predicate(schema, table, sample, "delete")
        return self._store.delete_rows(table, predicate)

    def _insert(
        self,
        record: Any,
        path: TraversalPath,
        initial_values: Optional[dict[str, Any]] = None,
    ) -> Optional[int]:
        schema = self._registry.schema(type(record))
        values = self._encode(schema, record, "insert")
        if initial_values:
            values.update(initial_values)
        identity = self._store.create_row(self._table(schema, "insert"), values)
        self._insert_children(record, schema, identity, path)
        return identity

    def _insert_children(self, record: Any, schema: RecordSchema, identity: Optional[int], path: TraversalPath) -> None:
        for spec in schema.collections:
            related = spec.related
            branch = path.try_enter(related)
            if branch is None:
                logger.debug(f"Not expanding {schema.record_type.__name__}.{spec.name}: {path} already has {related.__name__}")
                continue

            children = getattr(record, spec.name, None) or []
            relationship = self._registry.classify(schema.record_type, related)
            if relationship is Relationship.HAS_MANY:
                self._insert_has_many(record, schema, identity, related, children, branch)
            elif relationship is Relationship.MANY_TO_MANY:
                self._insert_many_to_many(schema, identity, related, children, branch)

    def _insert_has_many(
        self,
        record: Any,
        schema: RecordSchema,
        identity: Optional[int],
        related: type,
        children: list,
        path: TraversalPath,
    ) -> None:
        hint = self._registry.declared_foreign_key_of(related)
        if hint is None or not schema.has_field(hint.through):
            logger.warning(
                f"Cannot link {related.__name__} rows to {schema.record_type.__name__}: "
                f"no field '{hint.through if hint else '?'}'"
            )
            return

        through = schema.field(hint.through)
        foreign_value = getattr(record, through.name, None)
        if omits(through.name, through.kind, foreign_value, self.identity_field):
            # The container's identity was only just assigned by storage
            foreign_value = identity

        initial_values = {}
        if foreign_value is not None:
            initial_values[hint.foreign_key] = self._encode_value(schema, through, foreign_value, "insert")

        for child in children:
            self._insert(child, path, initial_values)

    def _insert_many_to_many(
        self,
        schema: RecordSchema,
        identity: Optional[int],
        related: type,
        children: list,
        path: TraversalPath,
    ) -> None:
        join = self._store.metadata.tables.get(join_table_name(schema.record_type, related))
        if join is None or identity is None:
            logger.warning(f"Cannot link {related.__name__} rows to {schema.record_type.__name__}: no join table")
            return

        for child in children:
            child_identity = self._insert(child, path)
            self._store.create_row(
                join,
                {
                    join_column(schema.record_type): identity,
                    join_column(related): child_identity,
                },
            )

    # === Materialization ===

    def materialize(
        self,
        record_type: type[T],
        row: RowMapping,
        path: TraversalPath,
        trace: Optional[list[Expansion]] = None,
    ) -> T:
        """Build a record from a row, expanding collections the path admits."""
        schema = self._registry.schema(record_type)
        record = schema.new_instance()

        for spec in schema.fields:
            if spec.is_collection:
                value = self._load_children(schema, spec, row, path, trace)
            elif spec.readable and spec.column in row:
                value = decode(row[spec.column], spec.kind)
            else:
                continue
            try:
                setattr(record, spec.name, value)
            except Exception as e:
                raise ConstructionError(
                    f"An error occurred setting value to '{record_type.__name__}.{spec.name}' ({value!r}): {e}",
                    record_type=record_type,
                    operation="materialize",
                ) from e
        return record

    def _load_children(
        self,
        schema: RecordSchema,
        spec: FieldSpec,
        row: RowMapping,
        path: TraversalPath,
        trace: Optional[list[Expansion]],
    ) -> list:
        related = spec.related
        relationship = self._registry.classify(schema.record_type, related)
        branch = path.try_enter(related)

        children: list = []
        if branch is None:
            status = ExpansionStatus.SKIPPED
        else:
            if relationship is Relationship.MANY_TO_MANY:
                rows = self._many_to_many_rows(schema, related, row)
            elif relationship is Relationship.HAS_MANY:
                rows = self._has_many_rows(schema, related, row)
            else:
                rows = None

            if rows is None:
                status = ExpansionStatus.UNRESOLVED
            else:
                children = [self.materialize(related, child_row, branch, trace) for child_row in rows]
                status = ExpansionStatus.LOADED if children else ExpansionStatus.EMPTY

        logger.debug(f"{schema.record_type.__name__}.{spec.name}: {status.value} ({len(children)})")
        if trace is not None:
            trace.append(
                Expansion(
                    container=schema.record_type,
                    field=spec.name,
                    related=related,
                    relationship=relationship,
                    status=status,
                    count=len(children),
                )
            )
        return children

    def _many_to_many_rows(self, schema: RecordSchema, related: type, row: RowMapping) -> Optional[list[RowMapping]]:
        related_schema = self._registry.schema(related)
        identity = schema.identity
        related_identity = related_schema.identity
        join = self._store.metadata.tables.get(join_table_name(schema.record_type, related))
        related_table = self._store.metadata.tables.get(related_schema.table_name)
        if identity is None or related_identity is None or join is None or related_table is None:
            return None

        container_id = row.get(identity.column)
        if container_id is None:
            return None

        related_ids = select(join.c[join_column(related)]).where(join.c[join_column(schema.record_type)] == container_id)
        query = select(related_table).where(related_table.c[related_identity.column].in_(related_ids))
        return self._store.select(query)

    def _has_many_rows(self, schema: RecordSchema, related: type, row: RowMapping) -> Optional[list[RowMapping]]:
        hint = self._registry.declared_foreign_key_of(related)
        if hint is None or not schema.has_field(hint.through):
            return None
        related_table = self._store.metadata.tables.get(self._registry.schema(related).table_name)
        if related_table is None or hint.foreign_key not in related_table.c:
            return None

        foreign_value = row.get(schema.field(hint.through).column)
        if foreign_value is None:
            return None

        query = select(related_table).where(related_table.c[hint.foreign_key] == foreign_value)
        return self._store.select(query)

    # === Helpers ===

    def _table(self, schema: RecordSchema, operation: str) -> sa.Table:
        table = self._store.metadata.tables.get(schema.table_name)
        if table is None:
            raise MappingError(
                f"No table '{schema.table_name}' for {schema.record_type.__name__}; is the type registered?",
                record_type=schema.record_type,
                operation=operation,
            )
        return table

    def _encode(self, schema: RecordSchema, record: Any, operation: str) -> dict[str, Any]:
        values = {}
        for spec in schema.columns:
            try:
                value = getattr(record, spec.name)
            except AttributeError as e:
                raise ConstructionError(
                    f"Cannot read {schema.record_type.__name__}.{spec.name}: {e}",
                    record_type=schema.record_type,
                    operation=operation,
                ) from e
            if omits(spec.name, spec.kind, value, self.identity_field):
                continue
            values[spec.column] = self._encode_value(schema, spec, value, operation)
        return values

    def _encode_value(self, schema: RecordSchema, spec: FieldSpec, value: Any, operation: str) -> Any:
        try:
            return encode(value, spec.kind)
        except EncodingError as e:
            raise EncodingError(
                f"Error {operation} {schema.record_type.__name__}.{spec.name}: {e}",
                record_type=schema.record_type,
                operation=operation,
                field_name=spec.name,
                kind=spec.kind,
            ) from e

    def _predicate(self, schema: RecordSchema, table: sa.Table, sample: Any, operation: str):
        try:
            return build_equality_predicate(schema, table, sample)
        except EncodingError as e:
            raise EncodingError(
                f"Error building {operation} predicate for {schema.record_type.__name__}: {e}",
                record_type=schema.record_type,
                operation=operation,
                field_name=e.field_name,
                kind=e.kind,
            ) from e
