"""Base n-gram store and document repository interfaces.

Defines the contracts the ranker and indexer depend on, independent of the
backing implementation (in-memory, PostgreSQL, ...).

All methods are asynchronous; they are the only suspension points of a
search. Failures surface as ``StoreError`` subclasses and are never retried
here.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Sequence

from ..errors import StoreQueryError, UnsupportedIdentifierTypeError
from ..models import NGramRecord

ID_TYPES = {"str": str, "uuid": uuid.UUID}


class NGramStore(ABC):
    """Abstract store of ``NGramRecord``s.

    Implementations must support efficient lookup on
    ``(collection_name, field, n, ngrams)`` and on ``(document_id, field)``.
    """

    @abstractmethod
    async def find_by_collection_field_ngrams_and_n(
        self,
        collection_name: str,
        field: str,
        ngrams: Iterable[str],
        n: int,
    ) -> List[NGramRecord]:
        """Records of the collection/field/size sharing at least one n-gram."""
        pass

    @abstractmethod
    async def find_by_document_id_and_field(self, document_id: str, field: str) -> List[NGramRecord]:
        pass

    @abstractmethod
    async def delete_by_collection_name(self, collection_name: str) -> int:
        """Delete all records of a collection; returns the number removed."""
        pass

    @abstractmethod
    async def save_all(self, records: Sequence[NGramRecord]) -> int:
        """Insert records; returns the number stored."""
        pass

    async def replace_collection(self, collection_name: str, records: Sequence[NGramRecord]) -> int:
        """Replace every record of ``collection_name`` with ``records``.

        The default deletes then inserts; readers may briefly see an empty
        collection. Backends that can swap atomically override this.
        """
        await self.delete_by_collection_name(collection_name)
        return await self.save_all(records)

    @abstractmethod
    async def count(self, collection_name: Optional[str] = None) -> int:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class DocumentRepository(ABC):
    """Access to the original documents of one document type.

    Documents may be mappings or plain objects; ``id_field`` names the key or
    attribute holding the id. Ids travel through the index as strings and
    are converted back to ``id_type`` (``str`` or ``uuid.UUID``) on lookup.
    """

    def __init__(self, document_type: str, id_field: str = "id", id_type: Any = str):
        self.document_type = document_type
        self.id_field = id_field
        self.id_type = ID_TYPES.get(id_type, id_type) if isinstance(id_type, str) else id_type

    @staticmethod
    def _read(document: Any, name: str) -> Any:
        if isinstance(document, Mapping):
            return document.get(name)
        return getattr(document, name, None)

    def document_id(self, document: Any) -> str:
        value = self._read(document, self.id_field)
        if value is None:
            raise StoreQueryError(
                f"Document has no '{self.id_field}' value",
                document_type=self.document_type,
            )
        return str(value)

    def field_value(self, document: Any, field: str) -> Optional[str]:
        value = self._read(document, field)
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    def convert_id(self, document_id: str) -> Any:
        """Convert an indexed string id to the repository's key type."""
        if self.id_type is str:
            return document_id
        if self.id_type is uuid.UUID:
            try:
                return uuid.UUID(document_id)
            except ValueError as e:
                raise StoreQueryError(
                    f"Malformed UUID document id: {e}",
                    document_type=self.document_type,
                    document_id=document_id,
                ) from e
        raise UnsupportedIdentifierTypeError(
            f"Unsupported ID type: {getattr(self.id_type, '__name__', self.id_type)}",
            document_type=self.document_type,
            document_id=document_id,
        )

    @abstractmethod
    async def find_all_by_id(self, ids: Iterable[Any]) -> List[Any]:
        """Documents whose id is in ``ids`` (already converted); missing ids are skipped."""
        pass

    @abstractmethod
    async def find_all(self) -> List[Any]:
        pass
