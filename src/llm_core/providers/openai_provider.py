"""OpenAI Chat Completions provider (also serves OpenAI-compatible gateways via OPENAI_BASE_URL)."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from openai import AsyncOpenAI

from ..models import Message
from .base import LLMProvider, decode_tool_arguments

load_dotenv()


def _function_call(call: dict[str, Any]) -> dict[str, Any]:
    arguments = call.get("params") or call.get("arguments") or {}
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments, default=str)
    return {
        "id": call.get("id") or "",
        "type": "function",
        "function": {"name": call["name"], "arguments": arguments},
    }


class OpenAIProvider(LLMProvider):
    """Hotel assistant turns over ``chat.completions``; tool results are answered by ``tool_call_id``."""

    def __init__(
        self,
        default_model: str = "gpt-4.1-nano",
        api_key: str | None = None,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.default_model = default_model
        self.api_key = api_key or os.getenv("OPENAI_API_KEY") or ""
        self.base_url = base_url or os.getenv("OPENAI_BASE_URL") or None
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    @staticmethod
    def _to_openai_messages(messages: list[Message]) -> list[dict[str, Any]]:
        converted: list[dict[str, Any]] = []
        for message in messages:
            entry: dict[str, Any] = {"role": message.role, "content": message.content or ""}
            if message.role == "tool":
                # Every tool result must point back at the call it answers.
                entry["tool_call_id"] = message.tool_call_id or ""
                if message.name:
                    entry["name"] = message.name
            elif message.role == "assistant":
                calls = [_function_call(c) for c in message.tool_calls or [] if c.get("name")]
                if calls:
                    entry["tool_calls"] = calls
            converted.append(entry)
        return converted

    async def chat(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> tuple[str, list[dict[str, Any]]]:
        request: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": self._to_openai_messages(messages),
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"
        request.update(kwargs)

        completion = await self.client.chat.completions.create(**request)
        if not completion.choices:
            return "", []
        reply = completion.choices[0].message
        calls = [
            {
                "id": call.id or "",
                "name": call.function.name,
                "params": decode_tool_arguments(call.function.arguments),
            }
            for call in reply.tool_calls or []
            if getattr(call, "function", None) is not None
        ]
        return reply.content or "", calls
