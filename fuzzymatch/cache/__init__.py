"""In-process caches used on the search path.

Contents
- ``ttl_cache``: generic LRU + TTL cache with single-flight loading
- ``cache_manager``: query n-gram and similarity score caches
"""

from .cache_manager import (
    QueryNGramCache,
    SearchCacheManager,
    SimilarityCache,
    create_search_cache_manager,
)
from .ttl_cache import TTLCache

__all__ = [
    "QueryNGramCache",
    "SearchCacheManager",
    "SimilarityCache",
    "TTLCache",
    "create_search_cache_manager",
]
