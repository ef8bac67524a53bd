"""SQLAlchemy Core table definitions built from registered record types.

Single source of truth for the database schema: the row store, the
predicate builder and the repository all look tables up by name in the
metadata returned by ``build_tables``.
"""

import logging
from typing import Optional

import sqlalchemy as sa

from ..mapping.codec import FieldKind
from ..mapping.relationships import RelationshipRegistry, join_column, join_table_name
from ..mapping.schema import RecordSchema

logger = logging.getLogger(__name__)

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IDENTITY_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

COLUMN_TYPES = {
    FieldKind.INTEGER: sa.Integer,
    FieldKind.BIGINT: lambda: IDENTITY_TYPE,
    FieldKind.BOOLEAN: sa.Integer,  # 0/1
    FieldKind.FLOAT: sa.Float,
    FieldKind.DOUBLE: sa.Double,
    FieldKind.TEXT: sa.Text,
    FieldKind.OTHER: sa.Text,
}


def column_type(kind: FieldKind) -> sa.types.TypeEngine:
    return COLUMN_TYPES[kind]()


def _record_table(schema: RecordSchema, metadata: sa.MetaData) -> sa.Table:
    identity = schema.identity
    columns = []
    for spec in schema.columns:
        if identity is not None and spec.name == identity.name:
            columns.append(sa.Column(spec.column, IDENTITY_TYPE, primary_key=True, autoincrement=True))
        else:
            columns.append(sa.Column(spec.column, column_type(spec.kind), nullable=True))
    return sa.Table(schema.table_name, metadata, *columns)


def build_tables(registry: RelationshipRegistry, metadata: Optional[sa.MetaData] = None) -> sa.MetaData:
    """Build record, foreign-key and join-table definitions for a registry."""
    metadata = metadata if metadata is not None else sa.MetaData()

    for record_type in registry.record_types:
        schema = registry.schema(record_type)
        if schema.table_name not in metadata.tables:
            _record_table(schema, metadata)

    # Has-many foreign keys live on the related table
    for hint in registry.foreign_keys:
        container = registry.schema(hint.container)
        related = registry.schema(hint.related)
        if not container.has_field(hint.through):
            logger.warning(
                f"{hint.container.__name__} has no field '{hint.through}'; "
                f"{related.table_name}.{hint.foreign_key} not created"
            )
            continue
        if related.has_column(hint.foreign_key):
            continue
        table = metadata.tables[related.table_name]
        if hint.foreign_key not in table.c:
            through = container.field(hint.through)
            table.append_column(sa.Column(hint.foreign_key, column_type(through.kind), nullable=True))
            sa.Index(f"idx_{related.table_name}_{hint.foreign_key}", table.c[hint.foreign_key])

    for container, related in registry.many_to_many_pairs():
        name = join_table_name(container, related)
        if name in metadata.tables:
            continue
        left, right = sorted((join_column(container), join_column(related)))
        join = sa.Table(
            name,
            metadata,
            sa.Column(left, IDENTITY_TYPE, nullable=False),
            sa.Column(right, IDENTITY_TYPE, nullable=False),
        )
        sa.Index(f"idx_{name}_{left}", join.c[left])
        sa.Index(f"idx_{name}_{right}", join.c[right])

    return metadata
