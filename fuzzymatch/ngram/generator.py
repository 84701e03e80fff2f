"""N-gram generation.

The generator always works on normalized text, so two raw strings that
normalize identically produce identical n-gram sets.
"""

from typing import FrozenSet, Optional

from .normalizer import TextNormalizer


class NGramGenerator:
    """Produces the set of distinct character n-grams of a text."""

    def __init__(self, normalizer: Optional[TextNormalizer] = None):
        self.normalizer = normalizer or TextNormalizer()

    def generate(self, text: Optional[str], n: int) -> FrozenSet[str]:
        """Return every distinct substring of length ``n`` of the normalized text.

        Empty text, or normalized text shorter than ``n``, yields an empty
        set. Repeated substrings collapse, so the set may be smaller than
        ``len(normalized) - n + 1``.
        """
        if n < 1:
            raise ValueError(f"n-gram size must be >= 1, got {n}")

        normalized = self.normalizer.normalize(text)
        if len(normalized) < n:
            return frozenset()

        return frozenset(normalized[i:i + n] for i in range(len(normalized) - n + 1))


_default_generator = NGramGenerator()


def generate_ngrams(text: Optional[str], n: int) -> FrozenSet[str]:
    """Generate n-grams with the default generator."""
    return _default_generator.generate(text, n)
