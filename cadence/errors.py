"""Exception taxonomy for the syllable analysis engine.

Word-level hyphenation failures are recovered inside the Line Analyzer and never
escape it. Everything else surfaces as the rejection of a single submitted request.
"""

from __future__ import annotations


class CadenceError(Exception):
    """Base class for all engine errors."""


class HyphenationError(CadenceError):
    """A hyphenator could not process a word."""


class ChannelError(CadenceError):
    """The background compute channel could not accept a message."""


class ChannelFailedError(CadenceError):
    """The background compute channel failed to start, or failed while a request was in flight."""


class RequestSupersededError(CadenceError):
    """A newer request for the same line replaced this one.

    This is routine cancellation, not a fault. Callers should swallow it.
    """

    def __init__(self, line_number: int, request_id: int):
        super().__init__("Request superseded")
        self.line_number = line_number
        self.request_id = request_id


class RequestTimeoutError(CadenceError):
    """No response arrived for a request within the configured timeout."""


class InvalidResponseError(CadenceError):
    """The channel produced a message that does not follow the protocol."""


class LineProcessingError(CadenceError):
    """The channel answered a request with an ``error`` response."""

    def __init__(self, line_number: int, reason: str):
        super().__init__(reason)
        self.line_number = line_number
        self.reason = reason


class CoordinatorClosedError(CadenceError):
    """The coordinator was shut down."""
