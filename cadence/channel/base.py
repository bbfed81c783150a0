"""Background compute channel contract.

A channel runs Line Analyzer invocations away from the interactive event loop and
exchanges JSON messages with the request coordinator (see :mod:`.protocol`).
Any execution context with ordered, asynchronous message exchange qualifies.

Both callbacks are always invoked on the coordinator's event loop thread:
- ``on_message(response_dict)`` for every reply
- ``on_failure(exc)`` once, if the channel dies from an unrecoverable error

Nothing is delivered after :meth:`ComputeChannel.terminate`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from ..syllables.line_analyzer import LineAnalyzer

logger = logging.getLogger("cadence.channel")

MessageHandler = Callable[[Dict[str, Any]], None]
FailureHandler = Callable[[BaseException], None]


class ComputeChannel(ABC):
    """One designated execution unit that answers ``process-line`` requests."""

    kind: str = "abstract"

    def __init__(self, analyzer: LineAnalyzer):
        self.analyzer = analyzer
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._on_message: Optional[MessageHandler] = None
        self._on_failure: Optional[FailureHandler] = None
        self._running = False
        self._terminated = False

    @property
    def running(self) -> bool:
        """Whether the channel accepts new messages."""
        return self._running and not self._terminated

    def start(
        self,
        loop: asyncio.AbstractEventLoop,
        on_message: MessageHandler,
        on_failure: FailureHandler,
    ) -> None:
        """Bind the callbacks and start the execution unit."""
        self._loop = loop
        self._on_message = on_message
        self._on_failure = on_failure
        self._running = True
        self._start()

    @abstractmethod
    def _start(self) -> None:
        """Start the underlying execution unit."""

    @abstractmethod
    def post(self, message: Dict[str, Any]) -> None:
        """Queue a request message.

        Raises:
            ChannelError: If the channel is not running or the message is not
                JSON-serializable.
        """

    def terminate(self) -> None:
        """Tear the channel down. Idempotent; pending replies are dropped."""
        if self._terminated:
            return
        self._terminated = True
        self._running = False
        self._stop()
        logger.debug("%s channel terminated", self.kind)

    def _stop(self) -> None:
        """Release the underlying execution unit."""

    def _receive(self, payload: str) -> None:
        # Runs on the event loop
        if self._terminated or self._on_message is None:
            return
        self._on_message(json.loads(payload))

    def _report_failure(self, exc: BaseException) -> None:
        # Runs on the event loop
        if self._terminated or self._on_failure is None:
            return
        self._on_failure(exc)
