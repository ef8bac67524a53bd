"""Schema mapper: record dataclasses to table and column descriptors.

A schema is built once per (type, identity field) and cached. Nothing
downstream looks at the dataclass again: encoders, predicates and the
table builder all work from the ``RecordSchema``.
"""

import dataclasses
import logging
import typing
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ConstructionError, SchemaError
from .codec import ZERO_VALUES, FieldKind, collection_item_type, kind_for
from .naming import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """One persisted or relationship field of a record type."""

    name: str
    kind: FieldKind
    column: str
    related: Optional[type] = None  # item type of COLLECTION fields
    default: Any = None

    @property
    def is_collection(self) -> bool:
        return self.kind is FieldKind.COLLECTION

    @property
    def readable(self) -> bool:
        """Whether the column value can be decoded back onto the record."""
        return self.kind not in (FieldKind.COLLECTION, FieldKind.OTHER)


@dataclass(frozen=True)
class RecordSchema:
    """Storage description of a record type."""

    record_type: type
    table_name: str
    fields: tuple[FieldSpec, ...]
    identity_field: str = "id"

    @property
    def columns(self) -> tuple[FieldSpec, ...]:
        """Scalar fields in declaration order."""
        return tuple(f for f in self.fields if not f.is_collection)

    @property
    def collections(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.is_collection)

    @property
    def identity(self) -> Optional[FieldSpec]:
        for spec in self.columns:
            if spec.name == self.identity_field and spec.kind in (FieldKind.BIGINT, FieldKind.INTEGER):
                return spec
        return None

    def has_field(self, name: str) -> bool:
        return any(f.name == name for f in self.fields)

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.record_type.__name__} has no field '{name}'")

    def has_column(self, column: str) -> bool:
        return any(f.column == column for f in self.columns)

    def new_instance(self) -> Any:
        """Build a default instance of the record type."""
        try:
            return self.record_type()
        except Exception as e:
            raise ConstructionError(
                f"Could not initialize object of type {self.record_type.__name__}: {e}",
                record_type=self.record_type,
                operation="materialize",
            ) from e


_schemas: dict[tuple[type, str], RecordSchema] = {}


def _field_default(field: dataclasses.Field, kind: FieldKind) -> Any:
    if field.default is not dataclasses.MISSING:
        return field.default
    if field.default_factory is not dataclasses.MISSING and kind is not FieldKind.COLLECTION:
        return field.default_factory()
    return ZERO_VALUES.get(kind)


def schema_of(record_type: type, identity_field: str = "id") -> RecordSchema:
    """Describe a record dataclass.

    Raises:
        SchemaError: if the type is not a dataclass, its annotations cannot
            be resolved, or a ``list`` field has no single class argument.
    """
    key = (record_type, identity_field)
    if key in _schemas:
        return _schemas[key]

    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise SchemaError(f"{record_type!r} is not a dataclass type", record_type=None, operation="schema")

    try:
        hints = typing.get_type_hints(record_type)
    except NameError as e:
        raise SchemaError(
            f"Cannot resolve annotations of {record_type.__name__}: {e}",
            record_type=record_type,
            operation="schema",
        ) from e

    specs = []
    for field in dataclasses.fields(record_type):
        annotation = hints.get(field.name, field.type)
        kind = field.metadata.get("kind") or kind_for(annotation, field.name, identity_field)
        related = None
        if kind is FieldKind.COLLECTION:
            related = collection_item_type(annotation)
            if related is None or not dataclasses.is_dataclass(related):
                raise SchemaError(
                    f"{record_type.__name__}.{field.name} must be annotated list[RecordType]",
                    record_type=record_type,
                    operation="schema",
                )
        specs.append(
            FieldSpec(
                name=field.name,
                kind=kind,
                column=normalize(field.name),
                related=related,
                default=_field_default(field, kind),
            )
        )

    schema = RecordSchema(
        record_type=record_type,
        table_name=table_name(record_type),
        fields=tuple(specs),
        identity_field=identity_field,
    )
    _schemas[key] = schema
    logger.debug(f"Built schema for {record_type.__name__}: table={schema.table_name}")
    return schema


def table_name(record_type: type) -> str:
    return normalize(record_type.__name__)


def column_name(field_name: str) -> str:
    return normalize(field_name)
