"""Relationship resolver and the registry it reads declarations from.

Record types declare their links once, at import time::

    registry = RelationshipRegistry()

    @registry.record
    @dataclass
    class Author:
        id: int = 0
        name: str = ""
        books: list["Book"] = field(default_factory=list)

    @registry.belongs_to(Author, through="name", foreign_key="author_name")
    @dataclass
    class Book:
        id: int = 0
        title: str = ""

A collection field with no ``belongs_to``/``has_many`` hint for its item
type is a many-to-many relationship backed by a join table. Item types of
collection fields get tables without being registered themselves.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..errors import RelationshipError
from .naming import normalize
from .schema import RecordSchema, column_name, schema_of, table_name

logger = logging.getLogger(__name__)


class Relationship(Enum):
    """Classification of a container type against a related type."""

    NONE = "none"
    HAS_MANY = "has_many"  # related rows carry a foreign key to the container
    MANY_TO_MANY = "many_to_many"  # pairs live in a join table


@dataclass(frozen=True)
class HasMany:
    """Declared foreign key of a related type.

    Rows of ``related`` carry ``foreign_key``, whose value is copied from
    the container's ``through`` field.
    """

    container: type
    related: type
    through: str
    foreign_key: str


def join_table_name(a: type, b: type) -> str:
    """Join table of a many-to-many pair, independent of argument order."""
    first, second = sorted((table_name(a), table_name(b)))
    return f"{first}_{second}"


def join_column(record_type: type) -> str:
    """Column of a join table holding identities of ``record_type``."""
    return f"{table_name(record_type)}_id"


class RelationshipRegistry:
    """Registered record types and their declared relationships."""

    def __init__(self, identity_field: str = "id"):
        self.identity_field = identity_field
        self._types: list[type] = []
        self._foreign_keys: dict[type, HasMany] = {}

    # === Record types ===

    def register(self, *record_types: type) -> None:
        # Schemas are built on first use so forward references can resolve.
        for record_type in record_types:
            if record_type in self._types:
                continue
            self._types.append(record_type)
            logger.debug(f"Registered record type {record_type.__name__}")

    def record(self, record_type: type) -> type:
        """Class decorator form of ``register``."""
        self.register(record_type)
        return record_type

    @property
    def record_types(self) -> tuple[type, ...]:
        """Registered types plus the item types of their collection fields.

        Collection item types are followed transitively, so a many-to-many
        item type needs no registration of its own.
        """
        found = list(self._types)
        for record_type in found:
            for spec in self.schema(record_type).collections:
                if spec.related not in found:
                    found.append(spec.related)
        return tuple(found)

    def schema(self, record_type: type) -> RecordSchema:
        return schema_of(record_type, self.identity_field)

    # === Relationship declarations ===

    def has_many(
        self,
        container: type,
        related: type,
        through: str,
        foreign_key: Optional[str] = None,
    ) -> HasMany:
        """Declare that ``related`` rows point at ``container`` rows.

        ``foreign_key`` defaults to ``<container table>_<through column>``.
        """
        if foreign_key is None:
            foreign_key = f"{table_name(container)}_{column_name(through)}"
        hint = HasMany(container=container, related=related, through=through, foreign_key=normalize(foreign_key))

        existing = self._foreign_keys.get(related)
        if existing is not None and existing != hint:
            raise RelationshipError(
                f"{related.__name__} already belongs to {existing.container.__name__} "
                f"through '{existing.through}'",
                record_type=related,
                operation="has_many",
            )
        self.register(container, related)
        self._foreign_keys[related] = hint
        return hint

    def belongs_to(
        self,
        container: type,
        through: str,
        foreign_key: Optional[str] = None,
    ) -> Callable[[type], type]:
        """Class decorator declaring ``has_many(container, <decorated>, ...)``."""

        def decorator(related: type) -> type:
            self.has_many(container, related, through, foreign_key)
            return related

        return decorator

    def declared_foreign_key_of(self, related: type) -> Optional[HasMany]:
        return self._foreign_keys.get(related)

    @property
    def foreign_keys(self) -> tuple[HasMany, ...]:
        return tuple(self._foreign_keys.values())

    # === Resolution ===

    def classify(self, container: type, related: type) -> Relationship:
        """Classify how ``container`` relates to ``related``.

        A matching has-many hint wins over the many-to-many default.
        """
        hint = self._foreign_keys.get(related)
        if hint is not None and hint.container is container:
            return Relationship.HAS_MANY
        schema = self.schema(container)
        if any(spec.related is related for spec in schema.collections):
            return Relationship.MANY_TO_MANY
        return Relationship.NONE

    def many_to_many_pairs(self) -> list[tuple[type, type]]:
        """Distinct many-to-many pairs among registered types, self-relations excluded."""
        pairs: list[tuple[type, type]] = []
        seen: set[str] = set()
        for container in self.record_types:
            for spec in self.schema(container).collections:
                related = spec.related
                if related is container or self.classify(container, related) is not Relationship.MANY_TO_MANY:
                    continue
                name = join_table_name(container, related)
                if name not in seen:
                    seen.add(name)
                    pairs.append((container, related))
        return pairs
