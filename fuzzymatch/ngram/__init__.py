"""Text normalization and n-gram generation.

Contents
- ``normalizer``: the fixed normalization rule applied before extraction
- ``generator``: n-gram set generation over normalized text
"""

from .generator import NGramGenerator, generate_ngrams
from .normalizer import TextNormalizer, normalize

__all__ = ["NGramGenerator", "TextNormalizer", "generate_ngrams", "normalize"]
