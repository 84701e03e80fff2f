"""Selection of similarity strategies by name.

Strategies are looked up in a registry keyed by lowercase name. Unknown or
absent names fall back to the registry's default (cosine), so callers never
need to validate strategy names themselves. A new metric is added by
registering it; call sites keep passing names.
"""

from enum import Enum
from typing import Dict, List, Optional

import structlog

from .base import SimilarityStrategy
from .cosine import CosineSimilarity
from .jaccard import JaccardSimilarity

logger = structlog.get_logger("similarity.factory")


class SimilarityType(Enum):
    """Built-in similarity metrics."""
    JACCARD = "jaccard"
    COSINE = "cosine"


# Bean names used by earlier deployments of the search service.
_ALIASES = {
    "jaccardsimilarity": SimilarityType.JACCARD.value,
    "cosinesimilarity": SimilarityType.COSINE.value,
}


class StrategyRegistry:
    """Name to ``SimilarityStrategy`` mapping with a default fallback."""

    def __init__(self, default: str = SimilarityType.COSINE.value):
        self._strategies: Dict[str, SimilarityStrategy] = {}
        self._default_name = default.lower()

    def register(self, strategy: SimilarityStrategy) -> None:
        if not strategy.name:
            raise ValueError(f"Strategy {type(strategy).__name__} has no name")
        self._strategies[strategy.name.lower()] = strategy

    def names(self) -> List[str]:
        return sorted(self._strategies)

    @property
    def default(self) -> SimilarityStrategy:
        try:
            return self._strategies[self._default_name]
        except KeyError:
            raise ValueError(f"Default strategy is not registered: {self._default_name}") from None

    def get(self, name: Optional[str] = None) -> SimilarityStrategy:
        """Resolve ``name`` to a strategy, falling back to the default."""
        if not name:
            return self.default

        key = name.lower()
        key = _ALIASES.get(key, key)
        strategy = self._strategies.get(key)
        if strategy is None:
            logger.debug("Unknown similarity strategy, using default", requested=name, default=self._default_name)
            return self.default
        return strategy


def create_strategy_registry(default: str = SimilarityType.COSINE.value) -> StrategyRegistry:
    """Create a registry holding the built-in strategies."""
    registry = StrategyRegistry(default=default)
    registry.register(JaccardSimilarity())
    registry.register(CosineSimilarity())
    return registry


_default_registry = create_strategy_registry()


def get_strategy(name: Optional[str] = None) -> SimilarityStrategy:
    """Resolve ``name`` against the built-in registry."""
    return _default_registry.get(name)
