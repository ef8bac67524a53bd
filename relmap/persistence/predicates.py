"""Equality predicates built from sample records."""

from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.sql import ColumnElement

from ..mapping.codec import encode
from ..mapping.schema import RecordSchema


def is_default(value: Any, default: Any) -> bool:
    return value is None or value == default


def build_equality_predicate(
    schema: RecordSchema,
    table: sa.Table,
    sample: Any,
) -> Optional[ColumnElement]:
    """AND of ``column == value`` over the sample's non-default scalar fields.

    Returns None for a None sample or a sample with only default values.

    Raises:
        EncodingError: if a non-default value cannot be encoded.
    """
    if sample is None:
        return None

    terms = []
    for spec in schema.columns:
        value = getattr(sample, spec.name, None)
        if is_default(value, spec.default):
            continue
        terms.append(table.c[spec.column] == encode(value, spec.kind))

    if not terms:
        return None
    return sa.and_(*terms)
