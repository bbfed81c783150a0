"""Quiet-period debouncing on the asyncio event loop."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional


class Debouncer:
    """Run ``callback`` once, ``delay`` seconds after the last :meth:`trigger`.

    Each trigger restarts the quiet period. ``cancel()`` drops a scheduled run and
    ``flush()`` runs it immediately. Must be used from the event loop thread.

    Example:
        debouncer = Debouncer(lambda: print("quiet"), delay=0.25)
        debouncer.trigger()
        debouncer.trigger()  # restarts the 250ms window, prints once
    """

    def __init__(self, callback: Callable[[], Any], delay: float):
        if delay < 0:
            raise ValueError(f"Debounce delay must be non-negative, got {delay}")
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        """Whether a run is scheduled."""
        return self._handle is not None

    def trigger(self) -> None:
        """Schedule a run, replacing any scheduled one."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop a scheduled run, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Run a scheduled callback now.

        Returns:
            True if a run was pending and has been executed.
        """
        if self._handle is None:
            return False
        self.cancel()
        self._callback()
        return True

    def _fire(self) -> None:
        self._handle = None
        self._callback()
