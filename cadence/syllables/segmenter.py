"""Word segmentation for lyric lines.

A line is split into runs of non-whitespace characters. Punctuation stays attached
to its token here; it is stripped later by :func:`clean_word` just before
hyphenation, so the raw token can still be shown to the user as typed.
"""

from __future__ import annotations

import re
from typing import List

from .types import Token

_TOKEN_RE = re.compile(r"\S+")

# Straight and typographic apostrophes survive cleaning
APOSTROPHES = frozenset("'’")


def segment_line(text: str) -> List[Token]:
    """Split a line into whitespace-delimited tokens.

    Args:
        text: One line of lyrics (may be empty).

    Returns:
        Tokens in left-to-right order, each with its starting offset.

    Example:
        >>> [(t.text, t.start) for t in segment_line("  # comment")]
        [('#', 2), ('comment', 4)]
        >>> segment_line("")
        []
    """
    return [Token(match.group(0), match.start()) for match in _TOKEN_RE.finditer(text)]


def clean_word(word: str) -> str:
    """Strip every character that is not a letter or an apostrophe.

    Example:
        >>> clean_word("(don't!)")
        "don't"
        >>> clean_word("---")
        ''
    """
    return "".join(ch for ch in word if ch.isalpha() or ch in APOSTROPHES)
