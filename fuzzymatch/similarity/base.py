"""Base similarity strategy interface."""

from abc import ABC, abstractmethod
from typing import AbstractSet


class SimilarityStrategy(ABC):
    """Scores two n-gram sets.

    Implementations must be pure and return a value in ``[0, 1]``, with
    ``0.0`` whenever either set is empty. ``name`` is the stable identity of
    the strategy and is part of every similarity cache key.
    """

    name: str = ""

    @abstractmethod
    def calculate(self, query_ngrams: AbstractSet[str], doc_ngrams: AbstractSet[str]) -> float:
        """Return the similarity of ``query_ngrams`` and ``doc_ngrams``."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
