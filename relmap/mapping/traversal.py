"""Traversal guard for recursive relationship expansion.

A ``TraversalPath`` holds the record types currently being expanded on
one branch of an insert or read. It is immutable: entering a type returns
a new path for that branch, so sibling branches never see each other's
entries and nothing has to be removed when a branch finishes.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TraversalPath:
    """Record types in progress on the current branch, root first."""

    types: tuple[type, ...] = ()

    @classmethod
    def root(cls, record_type: type) -> "TraversalPath":
        return cls((record_type,))

    def admits(self, record_type: type) -> bool:
        return record_type not in self.types

    def enter(self, record_type: type) -> "TraversalPath":
        """Return the path extended with ``record_type``.

        Raises:
            ValueError: if ``record_type`` is already on the path.
        """
        if not self.admits(record_type):
            raise ValueError(f"{record_type.__name__} is already being expanded")
        return TraversalPath(self.types + (record_type,))

    def try_enter(self, record_type: type) -> Optional["TraversalPath"]:
        """Extended path, or None when the type must not be expanded again."""
        if not self.admits(record_type):
            return None
        return TraversalPath(self.types + (record_type,))

    def __contains__(self, record_type: type) -> bool:
        return record_type in self.types

    def __len__(self) -> int:
        return len(self.types)

    def __str__(self) -> str:
        return " -> ".join(t.__name__ for t in self.types)
