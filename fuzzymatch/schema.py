"""Static registration of searchable document types and their n-gram fields.

Each document type lists the fields that are indexed as n-grams together
with the gram size ``n`` and the mismatch policy. The registry is built once
at startup (in code or from a JSON file) and handed to the ranker and the
indexer.

Example schema file::

    {
      "document_types": [
        {
          "name": "Product",
          "table": "products",
          "fields": [
            {"name": "title", "n": 2},
            {"name": "brand", "n": 3, "fail_on_mismatch": false}
          ]
        }
      ]
    }
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
import structlog

from .errors import InvalidFieldConfigurationError

logger = structlog.get_logger("schema")


class FieldSpec(BaseModel):
    """N-gram configuration of a single field."""

    model_config = ConfigDict(frozen=True)

    name: str
    n: int = Field(default=2, ge=1)
    fail_on_mismatch: bool = True


class DocumentTypeSpec(BaseModel):
    """A searchable document type.

    ``id_field`` names the attribute (or mapping key) holding the document
    id; ``id_type`` is the key type used by its repository; ``table`` is only
    needed by the PostgreSQL document repository.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    fields: List[FieldSpec]
    id_field: str = "id"
    id_type: Literal["str", "uuid"] = "str"
    table: Optional[str] = None

    @field_validator("fields")
    @classmethod
    def _unique_field_names(cls, fields: List[FieldSpec]) -> List[FieldSpec]:
        names = [spec.name for spec in fields]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate n-gram fields: {', '.join(duplicates)}")
        return fields

    def field(self, name: str) -> FieldSpec:
        """Return the ``FieldSpec`` named ``name`` or raise ``InvalidFieldConfigurationError``."""
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise InvalidFieldConfigurationError(
            "Field is not configured for n-gram search",
            document_type=self.name,
            field=name,
        )


class SchemaRegistry:
    """Mapping of document type name to its ``DocumentTypeSpec``."""

    def __init__(self, specs: Optional[List[DocumentTypeSpec]] = None):
        self._specs: Dict[str, DocumentTypeSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: DocumentTypeSpec) -> None:
        if spec.name in self._specs:
            raise ValueError(f"Document type already registered: {spec.name}")
        self._specs[spec.name] = spec
        logger.debug(
            "Registered document type",
            document_type=spec.name,
            fields=[f.name for f in spec.fields],
        )

    def get(self, document_type: str) -> DocumentTypeSpec:
        try:
            return self._specs[document_type]
        except KeyError:
            raise InvalidFieldConfigurationError(
                "Document type has no n-gram configuration",
                document_type=document_type,
            ) from None

    def field_spec(self, document_type: str, field_name: str) -> FieldSpec:
        return self.get(document_type).field(field_name)

    def document_types(self) -> List[str]:
        return list(self._specs)

    def __contains__(self, document_type: object) -> bool:
        return document_type in self._specs

    def __iter__(self) -> Iterator[DocumentTypeSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaRegistry":
        """Build a registry from ``{"document_types": [...]}``."""
        specs = [DocumentTypeSpec.model_validate(item) for item in data.get("document_types", [])]
        return cls(specs)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SchemaRegistry":
        """Load a registry from a JSON schema file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        registry = cls.from_dict(data)
        logger.info("Loaded n-gram schema", path=str(path), document_types=registry.document_types())
        return registry
