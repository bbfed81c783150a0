"""Syllable analysis result types.

This module defines the values produced by the Line Analyzer:
- Token: A run of non-whitespace characters and its offset in the line
- WordResult: Syllable analysis for one token
- LineResult: Aggregated syllable analysis for one line

Results are immutable. A line that is re-analyzed gets a brand new LineResult;
nothing mutates a result after it has been produced. Both result types convert
to and from the camelCase JSON form used on the channel wire.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

# Middle dot used to join syllables in the display form of a word
SYLLABLE_MARKER = "·"


@dataclass(frozen=True)
class Token:
    """A whitespace-delimited token and its starting offset in the line."""

    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


@dataclass(frozen=True)
class WordResult:
    """Syllable analysis for a single token.

    Attributes:
        word: The raw token as it appeared in the line.
        cleaned: The token with everything except letters and apostrophes removed.
        syllable_count: Number of syllables (0 for empty-cleaned or failed words).
        break_positions: Offsets into ``cleaned`` where syllables split.
        success: Whether hyphenation succeeded.
        error: Failure reason when ``success`` is False.
        start: Offset of the raw token in its line.

    Example:
        >>> w = WordResult("beautiful,", "beautiful", 3, (4, 6), True)
        >>> w.hyphenated
        'beau·ti·ful'
    """

    word: str
    cleaned: str
    syllable_count: int
    break_positions: Tuple[int, ...] = ()
    success: bool = True
    error: Optional[str] = None
    start: int = 0

    def __post_init__(self) -> None:
        """Validate the count/positions invariants."""
        object.__setattr__(self, "break_positions", tuple(self.break_positions))
        if self.syllable_count < 0:
            raise ValueError(
                f"WordResult.syllable_count must be non-negative, got {self.syllable_count}"
            )
        previous = 0
        for position in self.break_positions:
            if not previous < position < len(self.cleaned):
                raise ValueError(
                    f"WordResult.break_positions must be strictly increasing inside "
                    f"(0, {len(self.cleaned)}), got {list(self.break_positions)}"
                )
            previous = position
        if not self.success:
            if self.syllable_count != 0 or self.break_positions:
                raise ValueError("A failed WordResult must have no syllables")
        elif not self.cleaned:
            if self.syllable_count != 0 or self.break_positions:
                raise ValueError("An empty WordResult must have no syllables")
        elif self.syllable_count != len(self.break_positions) + 1:
            raise ValueError(
                f"WordResult.syllable_count must be {len(self.break_positions) + 1} "
                f"for {len(self.break_positions)} break positions, got {self.syllable_count}"
            )

    @property
    def syllables(self) -> Tuple[str, ...]:
        """The cleaned word split at its break positions."""
        if not self.cleaned:
            return ()
        bounds = (0, *self.break_positions, len(self.cleaned))
        return tuple(self.cleaned[a:b] for a, b in zip(bounds, bounds[1:]))

    @property
    def hyphenated(self) -> str:
        """Display form with syllables joined by a middle dot."""
        if not self.success or not self.cleaned:
            return self.word
        return SYLLABLE_MARKER.join(self.syllables)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire form."""
        data: Dict[str, Any] = {
            "word": self.word,
            "cleaned": self.cleaned,
            "hyphenated": self.hyphenated,
            "syllableCount": self.syllable_count,
            "breakPositions": list(self.break_positions),
            "success": self.success,
            "start": self.start,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordResult":
        """Create a WordResult from its wire form (raises ValueError/KeyError if malformed)."""
        return cls(
            word=data["word"],
            cleaned=data["cleaned"],
            syllable_count=int(data["syllableCount"]),
            break_positions=tuple(int(p) for p in data.get("breakPositions", ())),
            success=bool(data["success"]),
            error=data.get("error"),
            start=int(data.get("start", 0)),
        )


@dataclass(frozen=True)
class LineResult:
    """Aggregated syllable analysis for one line of text.

    ``total_syllables`` and ``success`` are derived from ``words``; use
    :meth:`from_words` to build one rather than computing them by hand.

    Example:
        >>> LineResult.empty(3)
        LineResult(line=3, syllables=0, words=0)
    """

    line_number: int
    total_syllables: int
    words: Tuple[WordResult, ...] = ()
    success: bool = True
    errors: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        object.__setattr__(self, "words", tuple(self.words))
        object.__setattr__(self, "errors", tuple(self.errors))
        if self.line_number < 0:
            raise ValueError(f"LineResult.line_number must be non-negative, got {self.line_number}")
        expected = sum(w.syllable_count for w in self.words)
        if self.total_syllables != expected:
            raise ValueError(
                f"LineResult.total_syllables must equal the word sum {expected}, "
                f"got {self.total_syllables}"
            )
        if self.success != all(w.success for w in self.words):
            raise ValueError("LineResult.success must be True exactly when every word succeeded")

    @classmethod
    def from_words(cls, line_number: int, words: Sequence[WordResult]) -> "LineResult":
        """Aggregate per-word results into a line result."""
        errors = tuple(f"{w.word}: {w.error}" for w in words if not w.success)
        return cls(
            line_number=line_number,
            total_syllables=sum(w.syllable_count for w in words),
            words=tuple(words),
            success=all(w.success for w in words),
            errors=errors,
        )

    @classmethod
    def empty(cls, line_number: int) -> "LineResult":
        """Zero-syllable result for a blank line."""
        return cls(line_number=line_number, total_syllables=0)

    @property
    def word_count(self) -> int:
        """Number of tokens that contain at least one letter or apostrophe."""
        return sum(1 for w in self.words if w.cleaned)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire form (``errors`` omitted when empty)."""
        data: Dict[str, Any] = {
            "lineNumber": self.line_number,
            "totalSyllables": self.total_syllables,
            "words": [w.to_dict() for w in self.words],
            "success": self.success,
        }
        if self.errors:
            data["errors"] = list(self.errors)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineResult":
        """Create a LineResult from its wire form (raises ValueError/KeyError if malformed)."""
        return cls(
            line_number=int(data["lineNumber"]),
            total_syllables=int(data["totalSyllables"]),
            words=tuple(WordResult.from_dict(w) for w in data.get("words", ())),
            success=bool(data["success"]),
            errors=tuple(data.get("errors") or ()),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return (
            f"LineResult(line={self.line_number}, "
            f"syllables={self.total_syllables}, "
            f"words={len(self.words)})"
        )
