"""Dictionary-free syllable boundaries from vowel groups.

This module provides fast, approximate syllabification for words that no
pattern dictionary covers. Used by :class:`HeuristicHyphenator` when the
``heuristic`` hyphenation backend is configured.

The algorithm uses vowel-run detection with an adjustment for silent final -e,
then places a break inside each consonant cluster between two vowel groups.
While not 100% accurate, it's fast and needs no language data.
"""

from __future__ import annotations

# Vowel characters for syllable detection (lowercase, with common accented forms)
VOWELS: frozenset[str] = frozenset("aeiouyàáâãäåæèéêëìíîïòóôõöøœùúûüýÿ")


def vowel_groups(word: str) -> list[tuple[int, int]]:
    """Find maximal runs of vowels as ``(start, end)`` spans.

    A leading ``y`` is treated as a consonant ("yes", "you").

    Example:
        >>> vowel_groups("beautiful")
        [(1, 4), (5, 6), (7, 8)]
        >>> vowel_groups("rhythm")
        [(2, 3)]
    """
    word = word.lower()
    groups: list[tuple[int, int]] = []
    start = None

    for i, char in enumerate(word):
        is_vowel = char in VOWELS and not (i == 0 and char == "y")
        if is_vowel and start is None:
            start = i
        elif not is_vowel and start is not None:
            groups.append((start, i))
            start = None

    if start is not None:
        groups.append((start, len(word)))

    return groups


def _has_silent_e(word: str, groups: list[tuple[int, int]]) -> bool:
    # "breathe" -> 1 syllable, not 2; "table" keeps its final e
    if len(groups) < 2 or not word.endswith("e"):
        return False
    if groups[-1] != (len(word) - 1, len(word)):
        return False
    return len(word) >= 2 and word[-2] not in "lrn"


def heuristic_break_positions(word: str, left: int = 2, right: int = 2) -> list[int]:
    """Estimate syllable break offsets for a single cleaned word.

    Breaks go before a single consonant between vowel groups ("ba·by") and
    after the first consonant of a longer cluster ("hap·py").

    Args:
        word: A cleaned word (letters and apostrophes only).
        left: Minimum characters before the first break.
        right: Minimum characters after the last break.

    Returns:
        Strictly increasing offsets in ``(0, len(word))``.

    Example:
        >>> heuristic_break_positions("beautiful")
        [4, 6]
        >>> heuristic_break_positions("breathe")
        []
        >>> heuristic_break_positions("")
        []
    """
    lowered = word.lower()
    groups = vowel_groups(lowered)
    if _has_silent_e(lowered, groups):
        groups = groups[:-1]

    positions: list[int] = []
    for (_, end), (next_start, _) in zip(groups, groups[1:]):
        cluster = next_start - end
        position = end if cluster <= 1 else end + 1
        if left <= position <= len(word) - right and (not positions or position > positions[-1]):
            positions.append(position)

    return [p for p in positions if 0 < p < len(word)]
