"""
relmap - relational persistence for plain dataclass records.

Records are mapped to tables by name, scalar fields to columns, and
``list[...]`` fields to has-many or many-to-many relationships that are
written and read back recursively without per-type SQL.
"""

from .errors import (
    ConstructionError,
    EncodingError,
    MappingError,
    RelationshipError,
    SchemaError,
)
from .mapping import FieldKind, Relationship, RelationshipRegistry, TraversalPath
from .persistence import Expansion, ExpansionStatus, RecordRepository, RowStore, build_tables

__version__ = "0.1.0"

__all__ = [
    "ConstructionError",
    "EncodingError",
    "Expansion",
    "ExpansionStatus",
    "FieldKind",
    "MappingError",
    "RecordRepository",
    "Relationship",
    "RelationshipError",
    "RelationshipRegistry",
    "RowStore",
    "SchemaError",
    "TraversalPath",
    "build_tables",
]
