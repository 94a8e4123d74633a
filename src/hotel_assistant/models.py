"""Data models for conversation turns, tools and context snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.llm_core import Message, ToolCallRequest

from .errors import ValidationError


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ConversationTurn(BaseModel):
    """One prior turn of the conversation."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    content: str

    def to_message(self) -> Message:
        return Message(role="user" if self.role == "user" else "assistant", content=self.content)


_ROLE_MAP = {"user": "user", "assistant": "model", "model": "model"}


def parse_chat_messages(raw: Any) -> tuple[list[ConversationTurn], str]:
    """Split a request's ``messages`` array into (history, latest user message).

    Raises ValidationError for anything but a non-empty list of {role, content}
    objects ending with a user turn.
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Messages array required")
    turns: list[ConversationTurn] = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each message must be an object with role and content")
        role = _ROLE_MAP.get(str(item.get("role", "")).lower())
        content = item.get("content")
        if role is None or not isinstance(content, str):
            raise ValidationError("Each message needs a role of 'user' or 'assistant' and string content")
        turns.append(ConversationTurn(role=role, content=content))
    if turns[-1].role != "user":
        raise ValidationError("Last message must be from the user")
    return turns[:-1], turns[-1].content


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolDeclaration:
    """Tool definition presented to the model on every turn."""

    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )  # JSON Schema
    mutates: bool = False  # changes stored state

    def to_tool_schema(self) -> dict[str, Any]:
        """Standard function-calling schema (OpenAI-style) for any LLM provider."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolCallResult(BaseModel):
    """Outcome of one tool call; exactly one of ``data``/``error`` is set."""

    name: str
    success: bool
    data: Any = None
    error: str | None = None

    @model_validator(mode="after")
    def _one_of_data_or_error(self) -> ToolCallResult:
        if self.success and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.success and (not self.error or self.data is not None):
            raise ValueError("failed result needs an error and no data")
        return self

    @classmethod
    def ok(cls, name: str, data: Any) -> ToolCallResult:
        return cls(name=name, success=True, data=data)

    @classmethod
    def failure(cls, name: str, error: str) -> ToolCallResult:
        return cls(name=name, success=False, error=error or "Tool failed")

    def model_payload(self) -> dict[str, Any]:
        """What the model sees as the tool's output."""
        if not self.success:
            return {"error": self.error}
        if isinstance(self.data, dict):
            return self.data
        return {"result": self.data}


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class ContextSnapshot(BaseModel):
    """Operational counts injected into every conversation turn."""

    model_config = ConfigDict(populate_by_name=True)

    date: str
    arrivals: int = 0
    departures: int = 0
    checked_in: int = Field(0, alias="checkedIn")
    pending: int = 0
    weekly_bookings: int = Field(0, alias="weeklyBookings")
    weekly_revenue: float = Field(0.0, alias="weeklyRevenue")


__all__ = [
    "ConversationTurn",
    "ContextSnapshot",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolDeclaration",
    "parse_chat_messages",
]
