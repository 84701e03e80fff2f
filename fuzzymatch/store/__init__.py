"""N-gram store and document repository backends.

Primary components:
- ``base``: abstract ``NGramStore`` and ``DocumentRepository`` interfaces.
- ``memory``: in-process implementations for tests and local use.
- ``postgres``: asyncpg-backed implementations.
- ``factory``: helpers to construct stores from typed config or env.
"""

from .base import DocumentRepository, NGramStore
from .memory import InMemoryDocumentRepository, InMemoryNGramStore

__all__ = [
    "DocumentRepository",
    "InMemoryDocumentRepository",
    "InMemoryNGramStore",
    "NGramStore",
]
