"""Caches for query n-grams and pairwise similarity scores.

Two tiers sit in front of the pure computations of a search:

- ``QueryNGramCache``: ``(normalized query, n)`` -> n-gram set
- ``SimilarityCache``: ``(collection, document id, field, strategy, query
  n-grams)`` -> score

Keys are tuples, so no separator inside a document id or field name can make
two different keys collide. The query n-gram set enters the similarity key
in canonical (sorted) form: different raw queries with the same n-grams
share entries, while the same query under two strategies never does.

Cache presence never affects results; a miss recomputes from the same
inputs.
"""

from typing import AbstractSet, Any, Dict, FrozenSet, Hashable, Optional, Tuple

import structlog

from ..common.config import FuzzyMatchConfig
from ..common.metrics import MetricsCollector
from ..ngram.generator import NGramGenerator
from ..similarity.base import SimilarityStrategy
from .ttl_cache import TTLCache

logger = structlog.get_logger("cache.manager")

QUERY_CACHE_SIZE = 1_000
QUERY_CACHE_TTL = 600  # 10 minutes
SIMILARITY_CACHE_SIZE = 10_000
SIMILARITY_CACHE_TTL = 600  # 10 minutes


class QueryNGramCache:
    """Memoizes the n-gram set of a query for a given gram size."""

    def __init__(
        self,
        generator: Optional[NGramGenerator] = None,
        maxsize: int = QUERY_CACHE_SIZE,
        ttl: float = QUERY_CACHE_TTL,
        metrics: Optional[MetricsCollector] = None,
        **cache_kwargs: Any
    ):
        self.generator = generator or NGramGenerator()
        self.cache: TTLCache[FrozenSet[str]] = TTLCache(
            maxsize=maxsize, ttl=ttl, name="query_ngrams", metrics=metrics, **cache_kwargs
        )

    def cache_key(self, query: str, n: int) -> Tuple[str, int]:
        # Normalizing first lets raw variants of one query share an entry.
        return (self.generator.normalizer.normalize(query), n)

    async def get_ngrams(self, query: str, n: int) -> FrozenSet[str]:
        key = self.cache_key(query, n)
        return await self.cache.get_or_compute(key, lambda: self.generator.generate(query, n))


class SimilarityCache:
    """Memoizes similarity scores between a query and a document field."""

    def __init__(
        self,
        maxsize: int = SIMILARITY_CACHE_SIZE,
        ttl: float = SIMILARITY_CACHE_TTL,
        metrics: Optional[MetricsCollector] = None,
        **cache_kwargs: Any
    ):
        self.cache: TTLCache[float] = TTLCache(
            maxsize=maxsize, ttl=ttl, name="similarity", metrics=metrics, **cache_kwargs
        )

    @staticmethod
    def cache_key(
        collection: str,
        document_id: str,
        field: str,
        strategy: SimilarityStrategy,
        query_ngrams: AbstractSet[str],
    ) -> Hashable:
        return (collection, document_id, field, strategy.name, tuple(sorted(query_ngrams)))

    async def get_score(
        self,
        collection: str,
        document_id: str,
        field: str,
        strategy: SimilarityStrategy,
        query_ngrams: AbstractSet[str],
        doc_ngrams: AbstractSet[str],
    ) -> float:
        key = self.cache_key(collection, document_id, field, strategy, query_ngrams)
        return await self.cache.get_or_compute(key, lambda: strategy.calculate(query_ngrams, doc_ngrams))

    def invalidate_collection(self, collection: str) -> int:
        """Drop every score computed against ``collection``."""
        return self.cache.invalidate_where(lambda key: key[0] == collection)


class SearchCacheManager:
    """Owns both cache tiers used by the search ranker."""

    def __init__(self, query_cache: QueryNGramCache, similarity_cache: SimilarityCache):
        self.query_cache = query_cache
        self.similarity_cache = similarity_cache

    def invalidate_collection(self, collection: str) -> None:
        """Invalidate cached scores after a collection's n-grams were replaced."""
        removed = self.similarity_cache.invalidate_collection(collection)
        logger.info("Similarity cache invalidated for collection", collection=collection, removed=removed)

    def clear(self) -> None:
        self.query_cache.cache.clear()
        self.similarity_cache.cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "query_ngrams": self.query_cache.cache.stats(),
            "similarity": self.similarity_cache.cache.stats(),
        }


def create_search_cache_manager(
    config: Optional[FuzzyMatchConfig] = None,
    generator: Optional[NGramGenerator] = None,
    metrics: Optional[MetricsCollector] = None,
) -> SearchCacheManager:
    """Create both caches, sized from ``config`` when given."""
    if config is None:
        query_size, query_ttl = QUERY_CACHE_SIZE, QUERY_CACHE_TTL
        similarity_size, similarity_ttl = SIMILARITY_CACHE_SIZE, SIMILARITY_CACHE_TTL
    else:
        query_size, query_ttl = config.fm_query_cache_size, config.fm_query_cache_ttl
        similarity_size, similarity_ttl = config.fm_similarity_cache_size, config.fm_similarity_cache_ttl

    return SearchCacheManager(
        query_cache=QueryNGramCache(generator, maxsize=query_size, ttl=query_ttl, metrics=metrics),
        similarity_cache=SimilarityCache(maxsize=similarity_size, ttl=similarity_ttl, metrics=metrics),
    )
