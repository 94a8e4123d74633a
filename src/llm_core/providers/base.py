"""Abstract LLM provider interface for the hotel assistant."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from ..models import Message, ModelReply, ToolCallRequest

logger = logging.getLogger(__name__)


def decode_tool_arguments(raw: Any) -> dict[str, Any]:
    """Backends hand back arguments as a JSON string, a dict, or nothing at all."""
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable tool arguments: %.80s", raw)
            return {}
    return dict(raw) if isinstance(raw, dict) else {}


class LLMProvider(ABC):
    """
    Abstract LLM provider. Implement this to plug in any backend (Gemini, OpenAI, Ollama).

    The orchestrator only depends on ``send_turn``; concrete providers implement ``chat``.
    """

    default_model: str = ""

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> tuple[str, list[dict[str, Any]]]:
        """
        Non-streaming chat. Returns (content, tool_calls).

        tool_calls: list of {"id", "name", "params"}.
        """
        ...

    async def send_turn(
        self,
        history: list[Message],
        new_message: Message | list[Message],
        tools: list[dict[str, Any]] | None = None,
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> ModelReply:
        """Send ``new_message`` (a user turn or a batch of tool results) after ``history``."""
        new_messages = new_message if isinstance(new_message, list) else [new_message]
        content, raw_calls = await self.chat(
            [*history, *new_messages],
            model=model,
            tools=tools or None,
            **kwargs,
        )
        calls = [
            ToolCallRequest(
                id=tc.get("id") or "",
                name=tc.get("name") or "",
                arguments=decode_tool_arguments(tc.get("params") or tc.get("arguments")),
            )
            for tc in raw_calls
        ]
        return ModelReply(text=content or "", tool_calls=calls)
