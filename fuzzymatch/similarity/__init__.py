"""Set-similarity strategies for scoring n-gram sets.

Contents
- ``base``: the ``SimilarityStrategy`` interface
- ``jaccard`` / ``cosine``: concrete metrics
- ``factory``: the name registry used to select a strategy per search
"""

from .base import SimilarityStrategy
from .cosine import CosineSimilarity
from .factory import SimilarityType, StrategyRegistry, create_strategy_registry, get_strategy
from .jaccard import JaccardSimilarity

__all__ = [
    "CosineSimilarity",
    "JaccardSimilarity",
    "SimilarityStrategy",
    "SimilarityType",
    "StrategyRegistry",
    "create_strategy_registry",
    "get_strategy",
]
