"""In-memory n-gram store and document repository.

Used by tests and local development. Every method runs to completion
without suspending, so concurrent coroutines never observe a half-applied
``replace_collection``.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

import structlog

from ..models import NGramRecord
from .base import DocumentRepository, NGramStore

logger = structlog.get_logger("store.memory")


class InMemoryNGramStore(NGramStore):
    """Keeps records per collection in process memory."""

    def __init__(self, records: Optional[Iterable[NGramRecord]] = None):
        self._collections: Dict[str, List[NGramRecord]] = {}
        for record in records or []:
            self._collections.setdefault(record.collection_name, []).append(record)

    async def find_by_collection_field_ngrams_and_n(
        self,
        collection_name: str,
        field: str,
        ngrams: Iterable[str],
        n: int,
    ) -> List[NGramRecord]:
        wanted = frozenset(ngrams)
        if not wanted:
            return []
        matches = [
            record
            for record in self._collections.get(collection_name, [])
            if record.field == field and record.n == n and not record.ngrams.isdisjoint(wanted)
        ]
        matches.sort(key=lambda record: record.document_id)
        return matches

    async def find_by_document_id_and_field(self, document_id: str, field: str) -> List[NGramRecord]:
        return [
            record
            for records in self._collections.values()
            for record in records
            if record.document_id == document_id and record.field == field
        ]

    async def delete_by_collection_name(self, collection_name: str) -> int:
        removed = self._collections.pop(collection_name, [])
        logger.debug("Deleted n-gram records", collection=collection_name, count=len(removed))
        return len(removed)

    async def save_all(self, records: Sequence[NGramRecord]) -> int:
        for record in records:
            self._collections.setdefault(record.collection_name, []).append(record)
        return len(records)

    async def replace_collection(self, collection_name: str, records: Sequence[NGramRecord]) -> int:
        self._collections[collection_name] = list(records)
        logger.debug("Replaced n-gram records", collection=collection_name, count=len(records))
        return len(records)

    async def count(self, collection_name: Optional[str] = None) -> int:
        if collection_name is not None:
            return len(self._collections.get(collection_name, []))
        return sum(len(records) for records in self._collections.values())

    async def health_check(self) -> bool:
        return True

    def all_records(self, collection_name: Optional[str] = None) -> List[NGramRecord]:
        """Snapshot of stored records, for inspection."""
        if collection_name is not None:
            return list(self._collections.get(collection_name, []))
        return [record for records in self._collections.values() for record in records]


class InMemoryDocumentRepository(DocumentRepository):
    """Documents of one type held in a dict keyed by their string id."""

    def __init__(
        self,
        document_type: str,
        documents: Optional[Iterable[Any]] = None,
        id_field: str = "id",
        id_type: Any = str,
    ):
        super().__init__(document_type, id_field=id_field, id_type=id_type)
        self._documents: Dict[str, Any] = {}
        for document in documents or []:
            self.add(document)

    def add(self, document: Any) -> None:
        self._documents[self.document_id(document)] = document

    async def find_all_by_id(self, ids: Iterable[Any]) -> List[Any]:
        return [self._documents[str(i)] for i in ids if str(i) in self._documents]

    async def find_all(self) -> List[Any]:
        return list(self._documents.values())
