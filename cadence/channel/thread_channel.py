"""Background-thread compute channel.

One daemon thread drains an inbox of JSON-encoded requests and posts
JSON-encoded replies back onto the event loop with ``call_soon_threadsafe``.
No state is shared with the loop beyond the two queues of text messages.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Any, Callable, Dict, Optional

from ..errors import ChannelError
from ..syllables.line_analyzer import LineAnalyzer
from .base import ComputeChannel
from .worker import handle_message

logger = logging.getLogger("cadence.channel.thread")

_STOP = object()


class ThreadChannel(ComputeChannel):
    """Runs the Line Analyzer on a dedicated background thread."""

    kind = "thread"

    def __init__(self, analyzer: LineAnalyzer, name: str = "cadence-syllable-worker"):
        super().__init__(analyzer)
        self.name = name
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def _start(self) -> None:
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug("Background channel %s started", self.name)

    def post(self, message: Dict[str, Any]) -> None:
        if not self.running:
            raise ChannelError("Background channel is not running")
        try:
            payload = json.dumps(message)
        except (TypeError, ValueError) as exc:
            raise ChannelError(f"Message is not JSON-serializable: {exc}") from exc
        self._inbox.put(payload)

    def _stop(self) -> None:
        self._inbox.put(_STOP)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread to exit (after terminate or a crash)."""
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        try:
            while True:
                payload = self._inbox.get()
                if payload is _STOP:
                    return
                reply = self._process(payload)
                self._call_on_loop(self._receive, reply)
        except Exception as exc:
            logger.error("Background channel %s crashed: %s", self.name, exc, exc_info=True)
            self._running = False
            self._call_on_loop(self._report_failure, exc)

    def _process(self, payload: str) -> str:
        return json.dumps(handle_message(self.analyzer, json.loads(payload)))

    def _call_on_loop(self, callback: Callable[[Any], None], arg: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, arg)
        except RuntimeError:
            logger.debug("Event loop closed; dropping output of channel %s", self.name)
