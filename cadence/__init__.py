"""Cadence - real-time syllable analysis for lyric documents.

Key Components:
    LyricSession: Document edits in, debounced per-line analysis out
    RequestCoordinator: Supersession, failure recovery and fallback for line requests
    LineStateStore: Copy-on-write line results with statistics
    syllables: Word segmentation, hyphenation and line analysis
    channel: Background compute channel and its JSON message protocol
"""

__version__ = "0.1.0"

from .coordinator import ChannelHealth, RequestCoordinator
from .errors import (
    CadenceError,
    ChannelError,
    ChannelFailedError,
    CoordinatorClosedError,
    HyphenationError,
    InvalidResponseError,
    LineProcessingError,
    RequestSupersededError,
    RequestTimeoutError,
)
from .session import LyricSession, split_lines
from .state import DocumentStatistics, LineStateStore
from .syllables import LineAnalyzer, LineResult, WordResult

__all__ = [
    "__version__",
    "CadenceError",
    "ChannelError",
    "ChannelFailedError",
    "ChannelHealth",
    "CoordinatorClosedError",
    "DocumentStatistics",
    "HyphenationError",
    "InvalidResponseError",
    "LineAnalyzer",
    "LineProcessingError",
    "LineResult",
    "LineStateStore",
    "LyricSession",
    "RequestCoordinator",
    "RequestSupersededError",
    "RequestTimeoutError",
    "WordResult",
    "split_lines",
]
