"""
Cadence - Real-time lyric syllable analysis service

FastAPI service hosting one lyric document. Edits are analyzed line by line on a
background compute channel; results, statistics and recent errors are queryable.

Endpoints:
    GET    /healthz                          Channel status
    PUT    /v1/document                      Replace the document
    PATCH  /v1/document/lines/{line_number}  Replace one line
    GET    /v1/document/lines/{line_number}  Stored line result
    GET    /v1/document/statistics           Derived statistics
    GET    /v1/document/errors               Rolling error list
    DELETE /v1/document/errors               Dismiss errors
    GET    /metrics                          Prometheus exposition
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from . import __version__
from .config import get_settings
from .metrics import api_requests_total, get_metrics_endpoint
from .session import LyricSession, split_lines

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("cadence.api")

# Global instances
session: Optional[LyricSession] = None


# API Key authentication dependency
async def verify_api_key(x_api_key: str = Header(None, alias="X-API-Key")):
    """Verify API key for service authentication."""
    api_key = get_settings().api_key
    # Skip auth if no key configured (development mode)
    if not api_key:
        return None
    if not x_api_key or x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return x_api_key


# Pydantic models
class DocumentRequest(BaseModel):
    """Request to replace the whole lyric document."""
    text: str = Field(..., description="Document text; lines separated by \\n or \\r\\n")


class LineRequest(BaseModel):
    """Request to replace a single line."""
    text: str = Field(..., description="New line content (no line breaks)")


class StatisticsResponse(BaseModel):
    """Derived document statistics."""
    lines_with_data: int
    total_words: int
    total_syllables: int
    average_syllables_per_line: float


class DocumentResponse(BaseModel):
    """Document state after an update."""
    line_count: int
    statistics: StatisticsResponse
    lines: List[Dict[str, Any]]
    errors: List[str]


class LineResponse(BaseModel):
    """A line's content and its stored analysis."""
    line_number: int
    text: str
    result: Optional[Dict[str, Any]] = None


class ErrorsResponse(BaseModel):
    """Most recent processing errors, oldest first."""
    errors: List[str]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    channel: str
    channel_running: bool
    consecutive_failures: int
    using_fallback: bool
    restarts: int
    pending_requests: int
    timestamp: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    global session

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(
        "Starting %s (backend=%s, language=%s, channel=%s)",
        settings.service_name,
        settings.hyphenation_backend,
        settings.hyphenation_language,
        settings.channel_kind,
    )

    session = LyricSession.from_settings(settings)

    logger.info("Cadence started successfully")
    yield

    # Shutdown
    logger.info("Shutting down Cadence...")
    if session:
        await session.aclose()
        session = None


# Create FastAPI app
app = FastAPI(
    title="Cadence",
    description="Real-time lyric syllable analysis",
    version=__version__,
    lifespan=lifespan
)


def _require_session() -> LyricSession:
    if session is None:
        raise HTTPException(status_code=503, detail="Service is not ready")
    return session


def _check_line_lengths(endpoint: str, lines: List[str]) -> None:
    limit = get_settings().max_line_length
    for index, line in enumerate(lines):
        if len(line) > limit:
            api_requests_total.labels(endpoint=endpoint, status="400").inc()
            raise HTTPException(
                status_code=400,
                detail=f"Line {index + 1} is longer than {limit} characters",
            )


def _line_response(current: LyricSession, line_number: int) -> LineResponse:
    result = current.get(line_number)
    return LineResponse(
        line_number=line_number,
        text=current.lines[line_number],
        result=result.to_dict() if result else None,
    )


# Health check endpoint
@app.get("/healthz", response_model=HealthResponse)
async def health_check():
    """Report background channel status."""
    current = _require_session()
    coordinator = current.coordinator
    health = coordinator.health
    channel = coordinator.channel
    settings = get_settings()
    return HealthResponse(
        status="degraded" if health.using_fallback else "healthy",
        service=settings.service_name,
        channel=settings.channel_kind,
        channel_running=bool(channel and channel.running),
        pending_requests=coordinator.pending_count,
        timestamp=datetime.now(timezone.utc).isoformat(),
        **health.to_dict(),
    )


@app.put("/v1/document", response_model=DocumentResponse, dependencies=[Depends(verify_api_key)])
async def replace_document(request: DocumentRequest):
    """
    Replace the lyric document and analyze every changed line.

    Unchanged lines keep their stored results; results for lines past the new
    end of the document are dropped.
    """
    endpoint = "/v1/document"
    current = _require_session()
    _check_line_lengths(endpoint, split_lines(request.text))

    changed = current.set_text(request.text)
    await current.flush()
    logger.debug("Document replaced: %d line(s), %d changed", current.line_count, len(changed))

    snapshot = current.store.snapshot()
    api_requests_total.labels(endpoint=endpoint, status="200").inc()
    return DocumentResponse(
        line_count=current.line_count,
        statistics=StatisticsResponse(**current.statistics().to_dict()),
        lines=[snapshot[n].to_dict() for n in sorted(snapshot)],
        errors=current.errors,
    )


@app.patch(
    "/v1/document/lines/{line_number}",
    response_model=LineResponse,
    dependencies=[Depends(verify_api_key)],
)
async def replace_line(line_number: int, request: LineRequest):
    """Replace one existing line (0-based) and return its analysis."""
    endpoint = "/v1/document/lines"
    current = _require_session()
    _check_line_lengths(endpoint, [request.text])

    try:
        current.set_line(line_number, request.text)
    except IndexError as e:
        api_requests_total.labels(endpoint=endpoint, status="404").inc()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        api_requests_total.labels(endpoint=endpoint, status="400").inc()
        raise HTTPException(status_code=400, detail=str(e))

    await current.flush()
    api_requests_total.labels(endpoint=endpoint, status="200").inc()
    return _line_response(current, line_number)


@app.get(
    "/v1/document/lines/{line_number}",
    response_model=LineResponse,
    dependencies=[Depends(verify_api_key)],
)
async def get_line(line_number: int):
    """Return a line's stored analysis."""
    endpoint = "/v1/document/lines"
    current = _require_session()
    if not 0 <= line_number < current.line_count or current.get(line_number) is None:
        api_requests_total.labels(endpoint=endpoint, status="404").inc()
        raise HTTPException(status_code=404, detail=f"No analysis for line {line_number}")

    api_requests_total.labels(endpoint=endpoint, status="200").inc()
    return _line_response(current, line_number)


@app.get("/v1/document/statistics", response_model=StatisticsResponse, dependencies=[Depends(verify_api_key)])
async def get_statistics():
    """Derived statistics over the stored line results."""
    current = _require_session()
    api_requests_total.labels(endpoint="/v1/document/statistics", status="200").inc()
    return StatisticsResponse(**current.statistics().to_dict())


@app.get("/v1/document/errors", response_model=ErrorsResponse, dependencies=[Depends(verify_api_key)])
async def get_errors():
    """Rolling list of recent processing errors."""
    current = _require_session()
    api_requests_total.labels(endpoint="/v1/document/errors", status="200").inc()
    return ErrorsResponse(errors=current.errors)


@app.delete("/v1/document/errors", response_model=ErrorsResponse, dependencies=[Depends(verify_api_key)])
async def dismiss_errors():
    """Clear the error list."""
    current = _require_session()
    current.dismiss_errors()
    api_requests_total.labels(endpoint="/v1/document/errors", status="200").inc()
    return ErrorsResponse(errors=[])


# Prometheus metrics endpoint
@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    endpoint = get_metrics_endpoint()
    return await endpoint()
