"""Line State Store - the single source of truth for rendered syllable data.

Holds the latest :class:`LineResult` per 0-based line number. Writes replace the
whole mapping (copy-on-write) under a lock, so readers always see a complete,
consistent snapshot without locking, even while a write is in progress.

Entries for lines that still exist survive content edits: a stale result stays
visible until its replacement arrives. Only :meth:`LineStateStore.prune` removes
entries, for line numbers past the end of the document.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from .syllables.types import LineResult

logger = logging.getLogger("cadence.state")

UpdateListener = Callable[[int, LineResult], None]


@dataclass(frozen=True)
class DocumentStatistics:
    """Aggregate view over the store's current entries (never persisted).

    Attributes:
        lines_with_data: Lines whose result contains at least one word.
        total_words: Tokens with letters or apostrophes across those lines.
        total_syllables: Sum of every line's syllable count.
        average_syllables_per_line: total_syllables / lines_with_data (0.0 when empty).
    """

    lines_with_data: int = 0
    total_words: int = 0
    total_syllables: int = 0
    average_syllables_per_line: float = 0.0

    @classmethod
    def from_results(cls, results: Mapping[int, LineResult]) -> "DocumentStatistics":
        lines = [r for r in results.values() if r.words]
        total_syllables = sum(r.total_syllables for r in lines)
        return cls(
            lines_with_data=len(lines),
            total_words=sum(r.word_count for r in lines),
            total_syllables=total_syllables,
            average_syllables_per_line=total_syllables / len(lines) if lines else 0.0,
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "lines_with_data": self.lines_with_data,
            "total_words": self.total_words,
            "total_syllables": self.total_syllables,
            "average_syllables_per_line": round(self.average_syllables_per_line, 2),
        }


class LineStateStore:
    """Copy-on-write mapping of line number -> latest LineResult."""

    def __init__(self):
        self._lines: Mapping[int, LineResult] = MappingProxyType({})
        self._write_lock = threading.Lock()
        self._listeners: List[UpdateListener] = []
        self.version = 0

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, line_number: object) -> bool:
        return line_number in self._lines

    def get(self, line_number: int) -> Optional[LineResult]:
        """Latest result for a line, or None."""
        return self._lines.get(line_number)

    def snapshot(self) -> Mapping[int, LineResult]:
        """Read-only view of every entry; never changes after it is returned."""
        return self._lines

    def apply(self, result: LineResult) -> None:
        """Insert or replace the entry for ``result.line_number`` and notify listeners."""
        with self._write_lock:
            lines = dict(self._lines)
            lines[result.line_number] = result
            self._publish(lines)
        self._notify(result)

    def prune(self, line_count: int) -> int:
        """Drop entries for line numbers >= ``line_count``.

        Returns:
            Number of entries removed.
        """
        with self._write_lock:
            stale = [n for n in self._lines if n >= line_count]
            if not stale:
                return 0
            self._publish({n: r for n, r in self._lines.items() if n < line_count})
        logger.debug("Pruned %d line result(s) beyond line count %d", len(stale), line_count)
        return len(stale)

    def clear(self) -> None:
        with self._write_lock:
            self._publish({})

    def statistics(self) -> DocumentStatistics:
        """Derived document statistics for the current snapshot."""
        return DocumentStatistics.from_results(self._lines)

    def subscribe(self, listener: UpdateListener) -> Callable[[], None]:
        """Call ``listener(line_number, result)`` after every apply.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, lines: Dict[int, LineResult]) -> None:
        self._lines = MappingProxyType(lines)
        self.version += 1

    def _notify(self, result: LineResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result.line_number, result)
            except Exception as exc:
                logger.error("Line state listener %r failed: %s", listener, exc, exc_info=True)
