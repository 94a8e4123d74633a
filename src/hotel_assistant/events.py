"""Structured stream events and their Server-Sent Events encoding."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import aclosing
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .models import ToolCallResult

logger = logging.getLogger(__name__)


class ThinkingEvent(BaseModel):
    type: Literal["thinking"] = "thinking"
    content: str


class ToolStartEvent(BaseModel):
    type: Literal["tool_start"] = "tool_start"
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool: str
    data: Any = None
    success: bool
    error: str | None = None

    @classmethod
    def from_result(cls, result: ToolCallResult) -> ToolResultEvent:
        if result.success:
            return cls(tool=result.name, data=result.data, success=True)
        return cls(tool=result.name, data={"error": result.error}, success=False, error=result.error)


class TextEvent(BaseModel):
    type: Literal["text"] = "text"
    content: str


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


StreamEvent = Annotated[
    Union[ThinkingEvent, ToolStartEvent, ToolResultEvent, TextEvent, ErrorEvent],
    Field(discriminator="type"),
]

_stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)
KNOWN_EVENT_TYPES = frozenset({"thinking", "tool_start", "tool_result", "text", "error"})


def encode_event(event: BaseModel) -> str:
    """Serialize one event as an SSE ``data:`` frame."""
    return f"data: {event.model_dump_json()}\n\n"


def decode_event(payload: str | dict[str, Any]) -> StreamEvent | None:
    """Parse one event; unknown ``type`` tags are ignored (returns None)."""
    data = json.loads(payload) if isinstance(payload, str) else payload
    if not isinstance(data, dict) or data.get("type") not in KNOWN_EVENT_TYPES:
        return None
    return _stream_event_adapter.validate_python(data)


def iter_sse_events(body: str) -> Iterator[StreamEvent]:
    """Decode a complete SSE body into events, skipping comments and unknown tags."""
    for frame in body.split("\n\n"):
        lines = [line[5:].lstrip() for line in frame.splitlines() if line.startswith("data:")]
        if not lines:
            continue
        event = decode_event("\n".join(lines))
        if event is not None:
            yield event


async def sse_frames(events: AsyncIterator[BaseModel]) -> AsyncIterator[str]:
    """Encode an event stream into SSE frames.

    An event that cannot be encoded ends the stream with a single error frame.
    """
    async with aclosing(events) as stream:
        async for event in stream:
            try:
                frame = encode_event(event)
            except (TypeError, ValueError, PydanticValidationError) as e:
                logger.error("Failed to encode %s event: %s", getattr(event, "type", "?"), e)
                yield encode_event(ErrorEvent(message="Failed to encode response event"))
                return
            yield frame
