"""Syllable analysis - word segmentation, hyphenation and per-line aggregation.

Key Components:
    segment_line: Splits a line into whitespace-delimited tokens with offsets
    Hyphenator: Pluggable "word -> break positions" capability (pyphen or heuristic)
    LineAnalyzer: Pure line -> LineResult function shared by the channel and fallback
    WordResult / LineResult: Immutable results with camelCase wire conversion

Example:
    >>> from cadence.syllables import LineAnalyzer
    >>> result = LineAnalyzer().analyze(0, "beautiful")
    >>> result.total_syllables
    3
"""

from .types import (
    SYLLABLE_MARKER,
    LineResult,
    Token,
    WordResult,
)

from .segmenter import (
    clean_word,
    segment_line,
)

from .hyphenator import (
    BACKENDS,
    HeuristicHyphenator,
    Hyphenation,
    Hyphenator,
    PyphenHyphenator,
    create_hyphenator,
)

from .line_analyzer import (
    LineAnalyzer,
    format_line_analysis,
)

__all__ = [
    # Types
    "SYLLABLE_MARKER",
    "LineResult",
    "Token",
    "WordResult",
    # Segmentation
    "clean_word",
    "segment_line",
    # Hyphenation
    "BACKENDS",
    "HeuristicHyphenator",
    "Hyphenation",
    "Hyphenator",
    "PyphenHyphenator",
    "create_hyphenator",
    # Analysis
    "LineAnalyzer",
    "format_line_analysis",
]
