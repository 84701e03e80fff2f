"""Canonicalization of raw text before n-gram extraction."""

import re
import unicodedata
from typing import Optional

# ASCII letters and digits plus precomposed Hangul syllables (U+AC00..U+D7A3).
_DISALLOWED = re.compile(r"[^0-9A-Za-z가-힣]")


class TextNormalizer:
    """Applies the fixed normalization rule.

    Steps, in order: Unicode NFC, removal of every character outside the
    closed alphabet (ASCII digits, ASCII letters, Hangul syllables), ASCII
    lowercasing, and trimming.
    """

    def normalize(self, text: Optional[str]) -> str:
        if not text:
            return ""
        text = unicodedata.normalize("NFC", text)
        text = _DISALLOWED.sub("", text)
        # str.lower() leaves Hangul untouched; only ASCII letters remain otherwise.
        text = text.lower()
        return text.strip()


_default_normalizer = TextNormalizer()


def normalize(text: Optional[str]) -> str:
    """Normalize ``text`` with the default normalizer."""
    return _default_normalizer.normalize(text)
