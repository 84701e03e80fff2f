"""Tests for document type registration."""

import json

import pytest
from pydantic import ValidationError

from fuzzymatch.errors import InvalidFieldConfigurationError
from fuzzymatch.schema import DocumentTypeSpec, FieldSpec, SchemaRegistry

SCHEMA = {
    "document_types": [
        {
            "name": "Product",
            "table": "products",
            "fields": [
                {"name": "title", "n": 2},
                {"name": "brand", "n": 3, "fail_on_mismatch": False},
            ],
        },
        {"name": "Store", "id_type": "uuid", "fields": [{"name": "name"}]},
    ]
}


def test_field_defaults():
    spec = FieldSpec(name="title")
    assert spec.n == 2
    assert spec.fail_on_mismatch is True


def test_field_rejects_non_positive_size():
    with pytest.raises(ValidationError):
        FieldSpec(name="title", n=0)


def test_document_type_rejects_duplicate_fields():
    with pytest.raises(ValidationError):
        DocumentTypeSpec(name="Product", fields=[FieldSpec(name="title"), FieldSpec(name="title", n=3)])


def test_unknown_field_raises_with_context(schema):
    with pytest.raises(InvalidFieldConfigurationError) as exc_info:
        schema.field_spec("Product", "color")

    assert exc_info.value.document_type == "Product"
    assert exc_info.value.field == "color"
    assert "field='color'" in str(exc_info.value)


def test_unknown_document_type_raises(schema):
    with pytest.raises(InvalidFieldConfigurationError):
        schema.get("Order")
    assert "Order" not in schema
    assert "Product" in schema


def test_duplicate_registration_is_rejected(product_spec):
    registry = SchemaRegistry([product_spec])
    with pytest.raises(ValueError):
        registry.register(product_spec)


def test_registry_from_dict():
    registry = SchemaRegistry.from_dict(SCHEMA)

    assert registry.document_types() == ["Product", "Store"]
    assert len(registry) == 2
    assert registry.field_spec("Product", "brand").n == 3
    assert registry.field_spec("Product", "brand").fail_on_mismatch is False
    assert registry.get("Store").id_type == "uuid"
    assert [spec.name for spec in registry] == ["Product", "Store"]


def test_registry_load_from_file(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(SCHEMA), encoding="utf-8")

    registry = SchemaRegistry.load(path)

    assert registry.get("Product").table == "products"


def test_registry_rejects_unsupported_id_type():
    with pytest.raises(ValidationError):
        SchemaRegistry.from_dict({"document_types": [{"name": "X", "id_type": "int", "fields": []}]})
