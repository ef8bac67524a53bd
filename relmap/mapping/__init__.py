"""Record mapping: naming, scalar codec, schemas, relationships, traversal."""

from .codec import FieldKind, decode, encode, kind_for, omits
from .naming import normalize
from .relationships import (
    HasMany,
    Relationship,
    RelationshipRegistry,
    join_column,
    join_table_name,
)
from .schema import FieldSpec, RecordSchema, column_name, schema_of, table_name
from .traversal import TraversalPath

__all__ = [
    # Codec
    "FieldKind",
    "decode",
    "encode",
    "kind_for",
    "omits",
    # Naming
    "normalize",
    # Schema
    "FieldSpec",
    "RecordSchema",
    "column_name",
    "schema_of",
    "table_name",
    # Relationships
    "HasMany",
    "Relationship",
    "RelationshipRegistry",
    "join_column",
    "join_table_name",
    # Traversal
    "TraversalPath",
]
