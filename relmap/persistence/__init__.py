"""Persistence layer -- relational storage via SQLAlchemy Core."""

from .predicates import build_equality_predicate
from .repository import Expansion, ExpansionStatus, RecordRepository
from .storage import RowStore
from .tables import build_tables

__all__ = [
    "Expansion",
    "ExpansionStatus",
    "RecordRepository",
    "RowStore",
    "build_equality_predicate",
    "build_tables",
]
