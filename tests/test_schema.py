"""Tests for record schemas."""

from dataclasses import dataclass, field
from typing import Optional

import pytest

from relmap.errors import ConstructionError, SchemaError
from relmap.mapping.codec import FieldKind
from relmap.mapping.schema import column_name, schema_of, table_name


@dataclass
class LineItem:
    id: int = 0
    sku: str = ""
    quantity: int = 1
    unit_price: float = 0.0


@dataclass
class PurchaseOrder:
    id: int = 0
    customerName: str = ""
    rush: bool = False
    notes: Optional[str] = None
    lines: list[LineItem] = field(default_factory=list)
    tags: dict = field(default_factory=dict)


@dataclass
class Measurement:
    value: float
    unit: str = "m"


@dataclass
class Precise:
    id: int = 0
    ratio: float = field(default=0.0, metadata={"kind": FieldKind.FLOAT})


@dataclass
class BadCollection:
    id: int = 0
    things: list = field(default_factory=list)


class NotARecord:
    id = 0


class TestSchemaOf:
    def test_table_name(self):
        assert schema_of(PurchaseOrder).table_name == "purchase_order"
        assert table_name(LineItem) == "line_item"

    def test_columns_exclude_collections(self):
        schema = schema_of(PurchaseOrder)
        names = [spec.name for spec in schema.columns]
        assert names == ["id", "customerName", "rush", "notes", "tags"]

    def test_collections(self):
        schema = schema_of(PurchaseOrder)
        assert [spec.name for spec in schema.collections] == ["lines"]
        assert schema.collections[0].related is LineItem

    def test_kinds(self):
        schema = schema_of(PurchaseOrder)
        assert schema.field("id").kind == FieldKind.BIGINT
        assert schema.field("rush").kind == FieldKind.BOOLEAN
        assert schema.field("notes").kind == FieldKind.TEXT
        assert schema.field("tags").kind == FieldKind.OTHER
        assert not schema.field("tags").readable

    def test_column_names_normalized(self):
        schema = schema_of(PurchaseOrder)
        assert schema.field("customerName").column == "customer_name"
        assert column_name("customerName") == "customer_name"
        assert schema.has_column("customer_name")

    def test_defaults(self):
        schema = schema_of(LineItem)
        assert schema.field("quantity").default == 1
        assert schema.field("sku").default == ""

    def test_identity(self):
        assert schema_of(LineItem).identity.name == "id"
        assert schema_of(Measurement).identity is None

    def test_custom_identity_field(self):
        schema = schema_of(LineItem, identity_field="sku")
        assert schema.field("id").kind == FieldKind.INTEGER
        assert schema.identity is None

    def test_explicit_kind(self):
        assert schema_of(Precise).field("ratio").kind == FieldKind.FLOAT

    def test_cached(self):
        assert schema_of(LineItem) is schema_of(LineItem)

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            schema_of(LineItem).field("missing")


class TestSchemaErrors:
    def test_not_a_dataclass(self):
        with pytest.raises(SchemaError):
            schema_of(NotARecord)

    def test_untyped_list(self):
        with pytest.raises(SchemaError, match="list\\[RecordType\\]"):
            schema_of(BadCollection)


class TestNewInstance:
    def test_default_instance(self):
        order = schema_of(PurchaseOrder).new_instance()
        assert order == PurchaseOrder()

    def test_required_field_fails(self):
        with pytest.raises(ConstructionError) as exc_info:
            schema_of(Measurement).new_instance()
        assert exc_info.value.record_type is Measurement
        assert "Measurement" in str(exc_info.value)
