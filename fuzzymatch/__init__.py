"""N-gram based fuzzy text search.

Subpackages:
- ``fuzzymatch.common``: configuration, logging, and metrics.
- ``fuzzymatch.ngram``: text normalization and n-gram generation.
- ``fuzzymatch.similarity``: set-similarity strategies and their registry.
- ``fuzzymatch.cache``: bounded TTL caches for query n-grams and scores.
- ``fuzzymatch.store``: n-gram store and document repository backends.
- ``fuzzymatch.search``: multi-field search and ranking.
- ``fuzzymatch.indexing``: validation and regeneration of stored n-grams.

Usage:
- Register document types in a ``SchemaRegistry``, build stores with
  ``fuzzymatch.store.factory``, then construct ``SearchRanker`` and
  ``NGramIndexer`` with them.
"""

__version__ = "0.1.0"
