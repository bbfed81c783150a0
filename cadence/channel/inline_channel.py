"""Same-thread compute channel.

Requests are queued as event-loop callbacks and answered on a later loop
iteration, so callers still see an asynchronous round trip. Useful where a
second thread is unwanted (tests, single-threaded embedding).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from ..errors import ChannelError
from .base import ComputeChannel
from .worker import handle_message

logger = logging.getLogger("cadence.channel.inline")


class InlineChannel(ComputeChannel):
    """Answers requests from the event loop's callback queue."""

    kind = "inline"

    def _start(self) -> None:
        logger.debug("Inline channel started")

    def post(self, message: Dict[str, Any]) -> None:
        if not self.running:
            raise ChannelError("Inline channel is not running")
        try:
            payload = json.dumps(message)
        except (TypeError, ValueError) as exc:
            raise ChannelError(f"Message is not JSON-serializable: {exc}") from exc
        self._loop.call_soon(self._dispatch, payload)

    def _dispatch(self, payload: str) -> None:
        if not self.running:
            return
        try:
            reply = json.dumps(handle_message(self.analyzer, json.loads(payload)))
        except Exception as exc:
            logger.error("Inline channel crashed: %s", exc, exc_info=True)
            self._running = False
            self._report_failure(exc)
            return
        self._receive(reply)
