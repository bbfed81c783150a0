"""Line analysis: segmentation + hyphenation + aggregation.

This module provides the pure function at the heart of the engine. It runs
unchanged inside the background compute channel and on the in-process
fallback path, so it must not touch any shared state.

Pipeline for one line:
1. Segment the line into whitespace-delimited tokens
2. Clean each token down to letters and apostrophes
3. Hyphenate the cleaned word (skipped when cleaning leaves nothing)
4. Aggregate per-word counts and failures into a LineResult
"""

from __future__ import annotations

from typing import Optional

from .hyphenator import Hyphenator, PyphenHyphenator
from .segmenter import clean_word, segment_line
from .types import LineResult, Token, WordResult


class LineAnalyzer:
    """Turns a line of text into a :class:`LineResult`.

    Args:
        hyphenator: Backend used for syllable breaks. Defaults to the
            ``en_US`` pyphen dictionary.

    Example:
        >>> analyzer = LineAnalyzer()
        >>> result = analyzer.analyze(0, "beautiful day")
        >>> [w.hyphenated for w in result.words]
        ['beau·ti·ful', 'day']
    """

    def __init__(self, hyphenator: Optional[Hyphenator] = None):
        self.hyphenator = hyphenator or PyphenHyphenator()

    def analyze_word(self, token: Token) -> WordResult:
        """Analyze one token. Never raises; failures become ``success=False``."""
        cleaned = clean_word(token.text)
        if not cleaned:
            return WordResult(word=token.text, cleaned="", syllable_count=0, start=token.start)

        try:
            positions = self.hyphenator.hyphenate(cleaned).break_positions
            # Count is derived from the positions, never estimated separately
            return WordResult(
                word=token.text,
                cleaned=cleaned,
                syllable_count=len(positions) + 1,
                break_positions=tuple(positions),
                start=token.start,
            )
        except Exception as exc:
            return WordResult(
                word=token.text,
                cleaned=cleaned,
                syllable_count=0,
                success=False,
                error=str(exc) or type(exc).__name__,
                start=token.start,
            )

    def analyze(self, line_number: int, text: str) -> LineResult:
        """Analyze a full line.

        Args:
            line_number: 0-based line number the result is reported for.
            text: The line content.

        Returns:
            LineResult with one WordResult per token, in line order.
        """
        words = [self.analyze_word(token) for token in segment_line(text)]
        return LineResult.from_words(line_number, words)


def format_line_analysis(result: LineResult) -> str:
    """Format a line result for human-readable output.

    Line numbers are shown 1-based.

    Example:
        >>> print(format_line_analysis(LineAnalyzer().analyze(0, "Hello, world!")))
        [1]   3 | hel·lo world
    """
    words = " ".join(w.hyphenated for w in result.words)
    line = f"[{result.line_number + 1}] {result.total_syllables:>3} | {words}".rstrip()
    if result.errors:
        line += "  ! " + "; ".join(result.errors)
    return line
