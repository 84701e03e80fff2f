"""Records exchanged between the indexer, the stores, and the ranker."""

import uuid
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, FrozenSet, Iterable


@dataclass(frozen=True)
class NGramRecord:
    """The n-grams generated for one field of one document.

    For a given ``(document_id, field)`` at most one ``n`` is live; records
    are replaced wholesale per collection, never patched.
    """
    document_id: str
    collection_name: str
    field: str
    n: int
    ngrams: FrozenSet[str]
    id: str = dataclass_field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def create(
        cls,
        document_id: str,
        collection_name: str,
        field_name: str,
        n: int,
        ngrams: Iterable[str],
    ) -> "NGramRecord":
        return cls(
            document_id=str(document_id),
            collection_name=collection_name,
            field=field_name,
            n=n,
            ngrams=frozenset(ngrams),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary (n-grams sorted)."""
        return {
            "id": self.id,
            "document_id": self.document_id,
            "collection_name": self.collection_name,
            "field": self.field,
            "n": self.n,
            "ngrams": sorted(self.ngrams),
        }


@dataclass(frozen=True)
class SearchHit:
    """A ranked search result: the merged score and the original document."""
    document_id: str
    score: float
    document: Any = None
