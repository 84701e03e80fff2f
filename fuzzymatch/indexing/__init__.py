"""Validation and regeneration of the n-gram index.

Contents
- ``indexer``: ``NGramIndexer``, ``FieldState``, and ``ValidationReport``
"""

from .indexer import FieldState, NGramIndexer, ValidationReport

__all__ = ["FieldState", "NGramIndexer", "ValidationReport"]
