"""Request coordinator between the interactive event loop and the background channel.

Issues ``process-line`` requests, keeps at most one outstanding request per line,
and turns channel replies back into awaited :class:`LineResult` values.

Rules:
1. Last submission for a line wins. Submitting a line again rejects the previous
   request with :class:`RequestSupersededError` and forgets its bookkeeping, so
   its reply is discarded whenever it arrives.
2. A reply is only applied if its id is still registered AND is still the
   line's current request id.
3. A channel crash, a failed channel start or a request timeout counts as a
   channel failure. A crash or timeout rejects every other in-flight request and
   restarts the channel. After ``max_channel_failures`` consecutive failures the
   channel is torn down for good and all work (outstanding and future) runs
   synchronously in-process.
4. ``shutdown()`` rejects everything still pending and refuses new work.

All methods must be called from the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from .channel import ChannelFactory, ComputeChannel, ThreadChannel, get_channel_factory
from .channel.protocol import ErrorResponse, ProcessLineRequest, parse_response
from .errors import (
    CadenceError,
    ChannelError,
    ChannelFailedError,
    CoordinatorClosedError,
    InvalidResponseError,
    LineProcessingError,
    RequestSupersededError,
    RequestTimeoutError,
)
from .metrics import (
    channel_failures_total,
    channel_restarts_total,
    fallback_active,
    pending_requests,
    record_request,
    time_analysis,
)
from .syllables.line_analyzer import LineAnalyzer
from .syllables.types import LineResult

logger = logging.getLogger("cadence.coordinator")

MAX_CHANNEL_FAILURES = 3


@dataclass
class ChannelHealth:
    """Failure bookkeeping for the background channel."""

    consecutive_failures: int = 0
    using_fallback: bool = False
    restarts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consecutive_failures": self.consecutive_failures,
            "using_fallback": self.using_fallback,
            "restarts": self.restarts,
        }


@dataclass
class PendingRequest:
    """A request sent to the channel and not yet answered."""

    request_id: int
    line_number: int
    text: str
    issued_at: float
    future: "asyncio.Future[LineResult]" = field(repr=False)
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


class RequestCoordinator:
    """Coalescing, cancelling front end for the background compute channel.

    Args:
        analyzer: Line Analyzer used by the channel and by the fallback path.
        channel_factory: Builds a fresh channel (initially and on every restart).
        max_channel_failures: Consecutive crashes before permanent fallback.
        request_timeout: Seconds to wait for a reply; ``None`` waits forever.

    Example:
        async with RequestCoordinator() as coordinator:
            result = await coordinator.submit(0, "beautiful day")
    """

    def __init__(
        self,
        analyzer: Optional[LineAnalyzer] = None,
        channel_factory: ChannelFactory = ThreadChannel,
        max_channel_failures: int = MAX_CHANNEL_FAILURES,
        request_timeout: Optional[float] = None,
    ):
        if max_channel_failures < 1:
            raise ValueError(f"max_channel_failures must be at least 1, got {max_channel_failures}")
        self.analyzer = analyzer or LineAnalyzer()
        self.max_channel_failures = max_channel_failures
        self.request_timeout = request_timeout if request_timeout and request_timeout > 0 else None
        self.health = ChannelHealth()
        self._channel_factory = channel_factory
        self._channel: Optional[ComputeChannel] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._next_id = 0
        self._pending: Dict[int, PendingRequest] = {}
        self._line_requests: Dict[int, int] = {}
        self._closed = False

    @classmethod
    def from_settings(cls, settings, analyzer: Optional[LineAnalyzer] = None) -> "RequestCoordinator":
        """Build a coordinator from :class:`~cadence.config.CadenceSettings`."""
        return cls(
            analyzer=analyzer,
            channel_factory=get_channel_factory(settings.channel_kind),
            max_channel_failures=settings.max_channel_failures,
            request_timeout=settings.request_timeout_seconds,
        )

    async def __aenter__(self) -> "RequestCoordinator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.shutdown()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def channel(self) -> Optional[ComputeChannel]:
        """The live channel, if one has been started and not torn down."""
        return self._channel

    @property
    def pending_count(self) -> int:
        """Number of requests waiting for a channel reply."""
        return len(self._pending)

    def outstanding_request(self, line_number: int) -> Optional[int]:
        """Id of the line's current in-flight request, if any."""
        return self._line_requests.get(line_number)

    async def submit(self, line_number: int, text: str) -> LineResult:
        """Analyze a line, superseding any request still in flight for it.

        Raises:
            RequestSupersededError: A newer submission for the same line won.
            ChannelFailedError: The channel failed to start, or failed while this
                request was in flight.
            RequestTimeoutError: No reply within ``request_timeout``.
            LineProcessingError: The channel reported an analysis error.
            InvalidResponseError: The channel replied with a malformed message.
            ChannelError: The request could not be sent.
            CoordinatorClosedError: The coordinator was shut down.
        """
        if self._closed:
            raise CoordinatorClosedError("Request coordinator has been shut down")
        if line_number < 0:
            raise ValueError(f"line_number must be non-negative, got {line_number}")

        if not text.strip():
            self._supersede(line_number)
            record_request("empty")
            return LineResult.empty(line_number)

        if self.health.using_fallback:
            return self._analyze_in_process(line_number, text)

        self._supersede(line_number)
        loop = asyncio.get_running_loop()
        try:
            channel = self._ensure_channel(loop)
        except ChannelFailedError:
            record_request("failed")
            raise
        if channel is None:
            # Starting the channel just exhausted the failure budget
            return self._analyze_in_process(line_number, text)

        request_id = self._next_id
        self._next_id += 1
        pending = PendingRequest(
            request_id=request_id,
            line_number=line_number,
            text=text,
            issued_at=time.monotonic(),
            future=loop.create_future(),
        )
        self._pending[request_id] = pending
        self._line_requests[line_number] = request_id
        pending_requests.set(len(self._pending))
        logger.debug("Sending request id=%d line=%d length=%d", request_id, line_number, len(text))

        try:
            channel.post(
                ProcessLineRequest(id=request_id, line_number=line_number, text=text).to_message()
            )
        except ChannelError as exc:
            logger.error("Failed to send request %d for line %d: %s", request_id, line_number, exc)
            self._pop(request_id)
            record_request("failed")
            raise

        if self.request_timeout is not None:
            pending.timer = loop.call_later(self.request_timeout, self._expire, request_id)
        pending.future.add_done_callback(partial(self._on_future_done, request_id))
        return await pending.future

    def shutdown(self) -> None:
        """Reject all pending requests, tear down the channel and refuse new work.

        Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        rejected = self._reject_all(lambda: CoordinatorClosedError("Request coordinator was shut down"))
        if self._channel is not None:
            self._channel.terminate()
            self._channel = None
        logger.info("Request coordinator shut down (%d pending request(s) rejected)", rejected)

    # -- channel lifecycle -------------------------------------------------

    def _ensure_channel(self, loop: asyncio.AbstractEventLoop) -> Optional[ComputeChannel]:
        """Return the live channel, starting one if needed.

        A start failure counts as a channel failure. Returns None once that
        failure switches the coordinator to fallback.

        Raises:
            ChannelFailedError: The channel could not be started.
        """
        if self._channel is not None:
            return self._channel

        self._loop = loop
        try:
            self._channel = self._start_channel(loop)
        except Exception as exc:
            self.health.consecutive_failures += 1
            channel_failures_total.inc()
            logger.warning(
                "Background channel failed to start (failure #%d): %s",
                self.health.consecutive_failures,
                exc,
            )
            if self.health.consecutive_failures >= self.max_channel_failures:
                self._enter_fallback()
                return None
            raise ChannelFailedError(f"Background channel failed to start: {exc}") from exc
        return self._channel

    def _start_channel(self, loop: asyncio.AbstractEventLoop) -> ComputeChannel:
        channel = self._channel_factory(self.analyzer)
        try:
            channel.start(
                loop,
                partial(self._on_message, channel),
                partial(self._on_failure, channel),
            )
        except Exception:
            channel.terminate()
            raise
        logger.debug("Started %s channel", channel.kind)
        return channel

    def _on_failure(self, channel: ComputeChannel, exc: BaseException) -> None:
        if channel is not self._channel or self._closed:
            return

        self.health.consecutive_failures += 1
        channel_failures_total.inc()
        channel.terminate()
        self._channel = None

        if self.health.consecutive_failures >= self.max_channel_failures:
            self._enter_fallback()
            return

        logger.warning(
            "Background channel failed (failure #%d): %s. Restarting.",
            self.health.consecutive_failures,
            exc,
        )
        self._reject_all(lambda: ChannelFailedError("Background channel failed and is restarting"))
        try:
            self._channel = self._start_channel(self._loop)
        except Exception as restart_exc:
            logger.error("Failed to restart background channel: %s", restart_exc, exc_info=True)
            self._enter_fallback()
            return
        self.health.restarts += 1
        channel_restarts_total.inc()

    def _enter_fallback(self) -> None:
        self.health.using_fallback = True
        fallback_active.set(1)
        logger.warning(
            "Background channel failed %d time(s); analysis now runs in-process",
            self.health.consecutive_failures,
        )

        outstanding = list(self._pending.values())
        self._pending.clear()
        self._line_requests.clear()
        pending_requests.set(0)
        for pending in outstanding:
            try:
                result = self._analyze_in_process(pending.line_number, pending.text)
            except Exception as exc:
                self._settle(pending, error=exc)
            else:
                self._settle(pending, result=result)

    def _analyze_in_process(self, line_number: int, text: str) -> LineResult:
        with time_analysis():
            result = self.analyzer.analyze(line_number, text)
        record_request("fallback")
        return result

    # -- replies -----------------------------------------------------------

    def _on_message(self, channel: ComputeChannel, message: Dict[str, Any]) -> None:
        if channel is not self._channel or self._closed:
            logger.debug("Dropping message from a retired channel")
            return

        try:
            response = parse_response(message)
        except ValidationError as exc:
            logger.warning("Discarding malformed channel response: %s", exc)
            request_id = message.get("id") if isinstance(message, dict) else None
            pending = self._pop(request_id) if isinstance(request_id, int) else None
            if pending is not None:
                record_request("failed")
                self._settle(pending, error=InvalidResponseError("Invalid response from channel"))
            return

        # Supersession removes an id from both maps, so a registered id is always current
        pending = self._pop(response.id)
        if pending is None:
            # Expected after supersession
            logger.debug("Discarding response for superseded or unknown request %d", response.id)
            return

        latency = time.monotonic() - pending.issued_at

        if isinstance(response, ErrorResponse):
            logger.debug("Request %d for line %d failed: %s", response.id, pending.line_number, response.error)
            record_request("failed")
            self._settle(pending, error=LineProcessingError(pending.line_number, response.error))
            return

        try:
            result = response.line_result()
            if result.line_number != pending.line_number or response.line_number != pending.line_number:
                raise ValueError(
                    f"reply for line {response.line_number} does not match request line {pending.line_number}"
                )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding invalid line result for request %d: %s", response.id, exc)
            record_request("failed")
            self._settle(pending, error=InvalidResponseError(f"Invalid response from channel: {exc}"))
            return

        self.health.consecutive_failures = 0
        record_request("resolved")
        logger.debug("Resolved request %d for line %d in %.1fms", response.id, pending.line_number, latency * 1000)
        self._settle(pending, result=result)

    def _expire(self, request_id: int) -> None:
        pending = self._pop(request_id)
        if pending is None:
            return
        logger.warning(
            "Request %d for line %d timed out after %.2fs",
            request_id,
            pending.line_number,
            self.request_timeout,
        )
        record_request("timeout")
        error = RequestTimeoutError(f"No response for line {pending.line_number} within {self.request_timeout}s")
        self._settle(pending, error=error)

        # An unanswered request means the single worker is stuck
        if self._channel is not None:
            self._on_failure(self._channel, error)

    # -- bookkeeping -------------------------------------------------------

    def _supersede(self, line_number: int) -> None:
        request_id = self._line_requests.get(line_number)
        if request_id is None:
            return
        pending = self._pop(request_id)
        if pending is None:
            return
        logger.debug("Superseding request %d for line %d", request_id, line_number)
        record_request("superseded")
        self._settle(pending, error=RequestSupersededError(line_number, request_id))

    def _pop(self, request_id: int) -> Optional[PendingRequest]:
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return None
        # Only clear the line mapping if a newer request has not replaced it
        if self._line_requests.get(pending.line_number) == request_id:
            del self._line_requests[pending.line_number]
        pending_requests.set(len(self._pending))
        return pending

    def _reject_all(self, make_error: Callable[[], CadenceError]) -> int:
        outstanding: List[PendingRequest] = list(self._pending.values())
        self._pending.clear()
        self._line_requests.clear()
        pending_requests.set(0)
        for pending in outstanding:
            self._settle(pending, error=make_error())
        return len(outstanding)

    def _on_future_done(self, request_id: int, future: "asyncio.Future[LineResult]") -> None:
        # The awaiting caller was cancelled: forget the request
        if future.cancelled():
            pending = self._pop(request_id)
            if pending is not None and pending.timer is not None:
                pending.timer.cancel()

    @staticmethod
    def _settle(
        pending: PendingRequest,
        result: Optional[LineResult] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        if pending.timer is not None:
            pending.timer.cancel()
        if pending.future.done():
            return
        if error is not None:
            pending.future.set_exception(error)
        else:
            pending.future.set_result(result)
