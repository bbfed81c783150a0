"""Background compute channel - off-loop line analysis over a JSON message protocol.

Key Components:
    ComputeChannel: Contract shared by every channel implementation
    ThreadChannel: Dedicated background thread (default)
    InlineChannel: Same-thread event-loop callback queue
    handle_message: The request handler every channel runs
    ProcessLineRequest / LineResultResponse / ErrorResponse: Wire messages
"""

from typing import Callable, Dict

from ..syllables.line_analyzer import LineAnalyzer
from .base import ComputeChannel, FailureHandler, MessageHandler
from .inline_channel import InlineChannel
from .protocol import (
    ERROR,
    LINE_RESULT,
    PROCESS_LINE,
    ErrorResponse,
    LineResultResponse,
    ProcessLineRequest,
    parse_request,
    parse_response,
)
from .thread_channel import ThreadChannel
from .worker import handle_message

ChannelFactory = Callable[[LineAnalyzer], ComputeChannel]

CHANNELS: Dict[str, ChannelFactory] = {
    ThreadChannel.kind: ThreadChannel,
    InlineChannel.kind: InlineChannel,
}


def get_channel_factory(kind: str) -> ChannelFactory:
    """Look up a channel implementation by kind ("thread" or "inline")."""
    try:
        return CHANNELS[kind]
    except KeyError:
        raise ValueError(f"Unknown channel kind {kind!r} (expected one of {sorted(CHANNELS)})") from None


__all__ = [
    "CHANNELS",
    "ChannelFactory",
    "ComputeChannel",
    "ERROR",
    "ErrorResponse",
    "FailureHandler",
    "InlineChannel",
    "LINE_RESULT",
    "LineResultResponse",
    "MessageHandler",
    "PROCESS_LINE",
    "ProcessLineRequest",
    "ThreadChannel",
    "get_channel_factory",
    "handle_message",
    "parse_request",
    "parse_response",
]
