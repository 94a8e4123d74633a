from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Message(BaseModel):
    """A single message in a conversation."""

    role: str  # "system" | "user" | "assistant" | "tool"
    content: str = ""
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None
    name: str | None = None


class ToolCallRequest(BaseModel):
    """A tool invocation requested by the model."""

    id: str = ""
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    def to_message_call(self) -> dict[str, Any]:
        """Shape stored on an assistant Message's ``tool_calls``."""
        return {"id": self.id, "name": self.name, "params": self.arguments}


class ModelReply(BaseModel):
    """One model turn: plain text, or a non-empty list of tool calls."""

    text: str = ""
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


__all__ = ["Message", "ModelReply", "ToolCallRequest"]
