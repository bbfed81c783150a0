"""Wire protocol between the request coordinator and the background channel.

Every message is a JSON-serializable dict:

    request:  {"id": 7, "type": "process-line", "text": "...", "lineNumber": 3}
    success:  {"id": 7, "type": "line-result", "lineNumber": 3, "data": {<LineResult>}}
    failure:  {"id": 7, "type": "error", "lineNumber": 3, "error": "..."}

``id`` is assigned by the coordinator, strictly increasing, and has nothing to do
with ``lineNumber``: the same line is resubmitted under a fresh id.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..syllables.types import LineResult

PROCESS_LINE = "process-line"
LINE_RESULT = "line-result"
ERROR = "error"


class ChannelMessage(BaseModel):
    """Fields shared by every protocol message."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., ge=0, description="Coordinator-assigned request id")
    line_number: int = Field(..., ge=0, alias="lineNumber", description="0-based line number")

    def to_message(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire dict."""
        return self.model_dump(by_alias=True)


class ProcessLineRequest(ChannelMessage):
    """Ask the channel to analyze one line."""

    type: Literal["process-line"] = PROCESS_LINE
    text: str


class LineResultResponse(ChannelMessage):
    """Successful analysis of a line."""

    type: Literal["line-result"] = LINE_RESULT
    data: Dict[str, Any]

    @classmethod
    def from_result(cls, request_id: int, result: LineResult) -> "LineResultResponse":
        return cls(id=request_id, line_number=result.line_number, data=result.to_dict())

    def line_result(self) -> LineResult:
        """Decode the payload (raises ValueError/KeyError if it breaks the invariants)."""
        return LineResult.from_dict(self.data)


class ErrorResponse(ChannelMessage):
    """The channel could not analyze a line."""

    type: Literal["error"] = ERROR
    error: str = "Unknown error"


ChannelResponse = Annotated[
    Union[LineResultResponse, ErrorResponse],
    Field(discriminator="type"),
]

_response_adapter: TypeAdapter = TypeAdapter(ChannelResponse)


def parse_request(message: Dict[str, Any]) -> ProcessLineRequest:
    """Validate an incoming request dict (raises pydantic.ValidationError)."""
    return ProcessLineRequest.model_validate(message)


def parse_response(message: Dict[str, Any]) -> Union[LineResultResponse, ErrorResponse]:
    """Validate an incoming response dict (raises pydantic.ValidationError)."""
    return _response_adapter.validate_python(message)
