"""Lyric document session - edits in, line results out.

The session owns the document's lines and wires the engine together:

    edit -> changed-line set -> debounce -> RequestCoordinator.submit()
         -> staleness check -> LineStateStore.apply() -> listeners

It also keeps the rolling list of recent processing errors shown to the user.
Line numbers are 0-based everywhere except in user-facing error strings.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from typing import Deque, Iterable, List, Optional, Set

from .coordinator import RequestCoordinator
from .debounce import Debouncer
from .errors import CadenceError, CoordinatorClosedError, RequestSupersededError
from .state import DocumentStatistics, LineStateStore, UpdateListener
from .syllables.types import LineResult

logger = logging.getLogger("cadence.session")

DEFAULT_DEBOUNCE_SECONDS = 0.25
DEFAULT_ERROR_LOG_SIZE = 10

_LINE_BREAK_RE = re.compile(r"\r?\n")


def split_lines(text: str) -> List[str]:
    """Split a document into lines. A trailing newline yields a final empty line.

    Example:
        >>> split_lines("one\\r\\ntwo\\n")
        ['one', 'two', '']
    """
    return _LINE_BREAK_RE.split(text)


class LyricSession:
    """One lyric document and its incremental syllable analysis.

    Args:
        coordinator: Request coordinator used for analysis.
        store: Line State Store to publish into (a new one by default).
        debounce_seconds: Quiet period before changed lines are submitted.
        error_log_size: Number of recent error strings kept.
        on_update: Optional listener called as ``on_update(line_number, result)``
            whenever a result is applied.
        owns_coordinator: Shut the coordinator down when the session closes.
    """

    def __init__(
        self,
        coordinator: RequestCoordinator,
        store: Optional[LineStateStore] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        error_log_size: int = DEFAULT_ERROR_LOG_SIZE,
        on_update: Optional[UpdateListener] = None,
        owns_coordinator: bool = True,
    ):
        self.coordinator = coordinator
        self.store = store or LineStateStore()
        self.owns_coordinator = owns_coordinator
        self._lines: List[str] = []
        self._dirty: Set[int] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._errors: Deque[str] = deque(maxlen=error_log_size)
        self._debouncer = Debouncer(self._dispatch_dirty, debounce_seconds)
        self._closed = False
        if on_update is not None:
            self.store.subscribe(on_update)

    @classmethod
    def from_settings(cls, settings, coordinator: Optional[RequestCoordinator] = None, **kwargs) -> "LyricSession":
        """Build a session (and, unless given, its coordinator) from settings."""
        if coordinator is None:
            from .syllables import LineAnalyzer, create_hyphenator

            analyzer = LineAnalyzer(
                create_hyphenator(
                    settings.hyphenation_backend,
                    settings.hyphenation_language,
                    left=settings.hyphenation_left,
                    right=settings.hyphenation_right,
                )
            )
            coordinator = RequestCoordinator.from_settings(settings, analyzer=analyzer)
            kwargs.setdefault("owns_coordinator", True)
        else:
            kwargs.setdefault("owns_coordinator", False)
        return cls(
            coordinator,
            debounce_seconds=settings.debounce_seconds,
            error_log_size=settings.error_log_size,
            **kwargs,
        )

    async def __aenter__(self) -> "LyricSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def lines(self) -> List[str]:
        """Copy of the document's current lines."""
        return list(self._lines)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    @property
    def errors(self) -> List[str]:
        """Most recent processing errors, oldest first."""
        return list(self._errors)

    @property
    def has_pending_work(self) -> bool:
        return bool(self._dirty) or bool(self._tasks) or self._debouncer.pending

    def get(self, line_number: int) -> Optional[LineResult]:
        return self.store.get(line_number)

    def statistics(self) -> DocumentStatistics:
        return self.store.statistics()

    def dismiss_errors(self) -> None:
        self._errors.clear()

    def set_text(self, text: str) -> Set[int]:
        """Replace the whole document.

        Lines whose content differs at the same index are scheduled for
        analysis; results past the new end of the document are pruned.

        Returns:
            The changed 0-based line numbers.
        """
        self._ensure_open()
        new_lines = split_lines(text)
        changed = {
            i for i, line in enumerate(new_lines)
            if i >= len(self._lines) or self._lines[i] != line
        }
        structure_changed = len(new_lines) != len(self._lines)
        self._lines = new_lines

        if structure_changed:
            self.store.prune(len(new_lines))
            self._dirty = {n for n in self._dirty if n < len(new_lines)}
        self._schedule(changed)
        return changed

    def set_line(self, line_number: int, text: str) -> bool:
        """Replace the content of one existing line.

        Returns:
            True if the content changed and the line was scheduled.

        Raises:
            IndexError: If the line does not exist.
            ValueError: If ``text`` contains a line break.
        """
        self._ensure_open()
        if not 0 <= line_number < len(self._lines):
            raise IndexError(f"Line {line_number} does not exist (document has {len(self._lines)} lines)")
        if "\n" in text or "\r" in text:
            raise ValueError("A single line cannot contain line breaks; use set_text()")
        if self._lines[line_number] == text:
            return False
        self._lines[line_number] = text
        self._schedule({line_number})
        return True

    async def flush(self) -> None:
        """Submit pending changes now and wait until all in-flight work settles."""
        self._debouncer.flush()
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Stop processing. Idempotent.

        Late replies can no longer reach the store after this returns.
        """
        if self._closed:
            return
        self._closed = True
        self._debouncer.cancel()
        self._dirty.clear()
        if self.owns_coordinator:
            self.coordinator.shutdown()
        else:
            for task in list(self._tasks):
                task.cancel()
        logger.debug("Lyric session closed")

    async def aclose(self) -> None:
        """Close and wait for in-flight tasks to wind down."""
        self.close()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _ensure_open(self) -> None:
        if self._closed:
            raise CoordinatorClosedError("Lyric session is closed")

    def _schedule(self, line_numbers: Iterable[int]) -> None:
        self._dirty.update(line_numbers)
        if self._dirty:
            self._debouncer.trigger()

    def _dispatch_dirty(self) -> None:
        dirty = sorted(self._dirty)
        self._dirty.clear()
        for line_number in dirty:
            if line_number >= len(self._lines):
                continue
            task = asyncio.create_task(self._process_line(line_number, self._lines[line_number]))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _process_line(self, line_number: int, text: str) -> None:
        try:
            result = await self.coordinator.submit(line_number, text)
        except RequestSupersededError:
            logger.debug("Line %d superseded by a newer edit", line_number)
            return
        except CoordinatorClosedError:
            return
        except CadenceError as exc:
            if self._closed:
                return
            logger.error("Error processing line %d: %s", line_number + 1, exc)
            self._record_errors([f"Line {line_number + 1}: {exc}"])
            return
        except Exception as exc:
            if self._closed:
                return
            logger.error("Unexpected error processing line %d: %s", line_number + 1, exc, exc_info=True)
            self._record_errors([f"Line {line_number + 1}: {exc}"])
            return

        if self._closed:
            return
        # The line may have been edited or removed while the request was in flight
        if line_number >= len(self._lines) or self._lines[line_number] != text:
            logger.debug("Discarding stale result for line %d", line_number)
            return

        self.store.apply(result)
        if result.errors:
            self._record_errors(result.errors)

    def _record_errors(self, messages: Iterable[str]) -> None:
        self._errors.extend(messages)
