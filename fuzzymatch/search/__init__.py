"""Search ranking over n-gram indexed fields.

Contents
- ``ranker``: ``SearchRanker``, its config-driven factory, and the
  deterministic ordering helper
"""

from .ranker import SearchRanker, create_search_ranker, rank_scores

__all__ = ["SearchRanker", "create_search_ranker", "rank_scores"]
