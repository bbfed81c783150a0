"""Pluggable hyphenation backends.

The Line Analyzer only relies on ``Hyphenator.hyphenate(word)``. Two backends ship:

- PyphenHyphenator: Liang pattern dictionaries (via pyphen), one per language
- HeuristicHyphenator: vowel-group rules, needs no language data

Backends may raise :class:`~cadence.errors.HyphenationError` for input they cannot
handle; the analyzer turns that into a failed word rather than a failed line.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

import pyphen

from ..errors import HyphenationError
from .syllable_counter import heuristic_break_positions

logger = logging.getLogger("cadence.syllables.hyphenator")

BACKENDS = ("pyphen", "heuristic")


@dataclass(frozen=True)
class Hyphenation:
    """Syllable break offsets for one word."""

    break_positions: Tuple[int, ...]


class Hyphenator(ABC):
    """Given a cleaned word, return its syllable break positions."""

    language: str = ""

    @abstractmethod
    def hyphenate(self, word: str) -> Hyphenation:
        """Hyphenate a non-empty cleaned word.

        Raises:
            HyphenationError: If the word cannot be hyphenated.
        """


class PyphenHyphenator(Hyphenator):
    """Hyphenation with pyphen's bundled pattern dictionaries."""

    def __init__(self, language: str = "en_US", left: int = 2, right: int = 2):
        resolved = pyphen.language_fallback(language)
        if resolved is None:
            raise ValueError(f"No hyphenation dictionary for language {language!r}")
        self.language = resolved
        self.left = left
        self.right = right
        self._dic = pyphen.Pyphen(lang=resolved, left=left, right=right)
        logger.debug("Loaded hyphenation dictionary %s (left=%d, right=%d)", resolved, left, right)

    def hyphenate(self, word: str) -> Hyphenation:
        if not word:
            raise HyphenationError("cannot hyphenate an empty word")
        try:
            positions = self._dic.positions(word)
        except Exception as exc:
            raise HyphenationError(str(exc) or type(exc).__name__) from exc
        return Hyphenation(tuple(int(p) for p in positions))

    def __repr__(self) -> str:
        return f"PyphenHyphenator({self.language!r}, left={self.left}, right={self.right})"


class HeuristicHyphenator(Hyphenator):
    """Approximate hyphenation from vowel groups (language independent)."""

    def __init__(self, language: str = "", left: int = 2, right: int = 2):
        self.language = language
        self.left = left
        self.right = right

    def hyphenate(self, word: str) -> Hyphenation:
        if not word:
            raise HyphenationError("cannot hyphenate an empty word")
        return Hyphenation(tuple(heuristic_break_positions(word, self.left, self.right)))

    def __repr__(self) -> str:
        return f"HeuristicHyphenator(left={self.left}, right={self.right})"


def create_hyphenator(
    backend: str = "pyphen",
    language: str = "en_US",
    left: int = 2,
    right: int = 2,
) -> Hyphenator:
    """Build the configured hyphenation backend.

    Raises:
        ValueError: For an unknown backend or a language pyphen does not know.
    """
    if backend == "pyphen":
        return PyphenHyphenator(language, left=left, right=right)
    if backend == "heuristic":
        return HeuristicHyphenator(language, left=left, right=right)
    raise ValueError(f"Unknown hyphenation backend {backend!r} (expected one of {BACKENDS})")
