"""Command line entrypoints.

- ``reindex_all``: validate stored n-grams and regenerate stale document
  types (installed as ``fuzzymatch-reindex``).
"""
