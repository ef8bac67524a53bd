"""Scalar codec: field values to storage primitives and back."""

import numbers
import types
import typing
from enum import Enum
from typing import Any, Optional

from ..errors import EncodingError


class FieldKind(Enum):
    """Storage kind of a record field."""

    INTEGER = "integer"
    BIGINT = "bigint"  # 64-bit, used for identities
    BOOLEAN = "boolean"  # stored as 0/1
    FLOAT = "float"
    DOUBLE = "double"
    TEXT = "text"
    OTHER = "other"  # unrecognized, written as str(value), never read back
    COLLECTION = "collection"  # list of one related record type, not a column


ZERO_VALUES: dict[FieldKind, Any] = {
    FieldKind.INTEGER: 0,
    FieldKind.BIGINT: 0,
    FieldKind.BOOLEAN: False,
    FieldKind.FLOAT: 0.0,
    FieldKind.DOUBLE: 0.0,
    FieldKind.TEXT: None,
    FieldKind.OTHER: None,
}


def unwrap_optional(annotation: Any) -> Any:
    """Return ``T`` for ``Optional[T]`` / ``T | None``, else the annotation itself."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def collection_item_type(annotation: Any) -> Optional[type]:
    """Return ``X`` for ``list[X]`` annotations, None for anything else."""
    annotation = unwrap_optional(annotation)
    if typing.get_origin(annotation) is not list:
        return None
    args = typing.get_args(annotation)
    if len(args) == 1 and isinstance(args[0], type):
        return args[0]
    return None


def kind_for(annotation: Any, field_name: str, identity_field: str = "id") -> FieldKind:
    """Infer the storage kind of an annotated field."""
    annotation = unwrap_optional(annotation)
    if annotation is list or typing.get_origin(annotation) is list:
        return FieldKind.COLLECTION
    # bool before int: bool is an int subclass
    if annotation is bool:
        return FieldKind.BOOLEAN
    if annotation is int:
        return FieldKind.BIGINT if field_name == identity_field else FieldKind.INTEGER
    if annotation is float:
        return FieldKind.DOUBLE
    if annotation is str:
        return FieldKind.TEXT
    return FieldKind.OTHER


def omits(field_name: str, kind: FieldKind, value: Any, identity_field: str = "id") -> bool:
    """True when an unassigned identity must be left for storage to assign."""
    return kind is FieldKind.BIGINT and field_name == identity_field and not value


def encode(value: Any, kind: FieldKind) -> Any:
    """Convert a field value to its storage primitive.

    Raises:
        EncodingError: if the value cannot be coerced to ``kind``.
    """
    if value is None:
        return None

    if kind in (FieldKind.INTEGER, FieldKind.BIGINT):
        if isinstance(value, numbers.Integral):
            return int(value)
    elif kind is FieldKind.BOOLEAN:
        if isinstance(value, bool) or value in (0, 1):
            return 1 if value else 0
    elif kind in (FieldKind.FLOAT, FieldKind.DOUBLE):
        if isinstance(value, numbers.Real) and not isinstance(value, bool):
            return float(value)
    elif kind is FieldKind.TEXT:
        if isinstance(value, str):
            return value
    elif kind is FieldKind.OTHER:
        return str(value)
    else:
        raise EncodingError(f"{kind.value} fields are not stored as columns", kind=kind)

    raise EncodingError(
        f"Cannot encode {type(value).__name__} value {value!r} as {kind.value}",
        kind=kind,
    )


def decode(primitive: Any, kind: FieldKind) -> Any:
    """Convert a storage primitive back to a field value."""
    if primitive is None:
        return None
    if kind in (FieldKind.INTEGER, FieldKind.BIGINT):
        return int(primitive)
    if kind is FieldKind.BOOLEAN:
        return int(primitive) == 1
    if kind in (FieldKind.FLOAT, FieldKind.DOUBLE):
        return float(primitive)
    if kind is FieldKind.TEXT:
        return str(primitive)
    raise EncodingError(f"{kind.value} fields cannot be decoded", kind=kind)
