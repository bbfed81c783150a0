"""Request handler executed inside the background channel.

Analysis failures are answered with an ``error`` response so a single bad line
never takes the channel down. Only a message that cannot be answered at all
(no usable ``id``/``lineNumber``) escapes as an exception, which the hosting
channel treats as fatal.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from pydantic import ValidationError

from ..metrics import time_analysis
from ..syllables.line_analyzer import LineAnalyzer
from .protocol import ErrorResponse, LineResultResponse, parse_request

logger = logging.getLogger("cadence.channel.worker")


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def handle_message(analyzer: LineAnalyzer, message: Dict[str, Any]) -> Dict[str, Any]:
    """Answer one request dict with one response dict.

    Raises:
        ValueError: If the message cannot be correlated with a request.
    """
    try:
        request = parse_request(message)
    except ValidationError as exc:
        request_id = message.get("id") if isinstance(message, dict) else None
        line_number = message.get("lineNumber") if isinstance(message, dict) else None
        if _is_index(request_id) and _is_index(line_number):
            return ErrorResponse(
                id=request_id,
                line_number=line_number,
                error=f"Unsupported request: {exc.error_count()} validation error(s)",
            ).to_message()
        raise ValueError(f"Unanswerable channel message: {message!r}") from exc

    logger.debug("Received request id=%d line=%d", request.id, request.line_number)
    try:
        with time_analysis():
            result = analyzer.analyze(request.line_number, request.text)
    except Exception as exc:
        logger.error("Failed to analyze line %d: %s", request.line_number, exc, exc_info=True)
        return ErrorResponse(
            id=request.id,
            line_number=request.line_number,
            error=str(exc) or type(exc).__name__,
        ).to_message()

    logger.debug("Processed request id=%d syllables=%d", request.id, result.total_syllables)
    return LineResultResponse.from_result(request.id, result).to_message()
