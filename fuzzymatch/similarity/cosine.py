"""Cosine similarity over binary indicator vectors.

Both sets are projected onto the union of their vocabularies; a token is 1
in a vector when the set contains it and 0 otherwise. The score is the dot
product divided by the product of the Euclidean norms.
"""

from typing import AbstractSet

import numpy as np

from .base import SimilarityStrategy


class CosineSimilarity(SimilarityStrategy):

    name = "cosine"

    def calculate(self, query_ngrams: AbstractSet[str], doc_ngrams: AbstractSet[str]) -> float:
        vocabulary = sorted(query_ngrams | doc_ngrams)
        if not vocabulary:
            return 0.0

        query_vector = np.fromiter((token in query_ngrams for token in vocabulary), dtype=np.float64, count=len(vocabulary))
        doc_vector = np.fromiter((token in doc_ngrams for token in vocabulary), dtype=np.float64, count=len(vocabulary))

        dot_product = float(np.dot(query_vector, doc_vector))
        query_magnitude_sq = float(np.dot(query_vector, query_vector))
        doc_magnitude_sq = float(np.dot(doc_vector, doc_vector))

        # Zero magnitude means an empty set.
        if query_magnitude_sq == 0.0 or doc_magnitude_sq == 0.0:
            return 0.0

        # sqrt of the product keeps identical sets at exactly 1.0
        similarity = dot_product / np.sqrt(query_magnitude_sq * doc_magnitude_sq)
        return float(min(1.0, max(0.0, similarity)))
