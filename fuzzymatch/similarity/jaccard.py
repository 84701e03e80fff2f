"""Jaccard similarity: intersection size over union size."""

from typing import AbstractSet

from .base import SimilarityStrategy


class JaccardSimilarity(SimilarityStrategy):

    name = "jaccard"

    def calculate(self, query_ngrams: AbstractSet[str], doc_ngrams: AbstractSet[str]) -> float:
        if not query_ngrams or not doc_ngrams:
            return 0.0

        intersection = len(query_ngrams & doc_ngrams)
        union = len(query_ngrams | doc_ngrams)
        return intersection / union
