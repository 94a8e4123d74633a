"""Ollama provider for locally hosted models."""

from __future__ import annotations

import uuid
from typing import Any

from ollama import AsyncClient

from ..models import Message
from .base import LLMProvider, decode_tool_arguments


class OllamaProvider(LLMProvider):
    """Local models through Ollama's ``/api/chat``.

    Ollama does not issue call ids, so each requested call gets a fresh uuid and tool
    results are matched back by ``tool_name``.
    """

    def __init__(
        self,
        default_model: str = "llama3.2",
        base_url: str | None = None,
        client: AsyncClient | None = None,
    ):
        self.default_model = default_model
        self.base_url = base_url or "http://localhost:11434"
        self._client = client

    @property
    def client(self) -> AsyncClient:
        if self._client is None:
            self._client = AsyncClient(host=self.base_url)
        return self._client

    @staticmethod
    def _to_ollama_messages(messages: list[Message]) -> list[dict[str, Any]]:
        converted: list[dict[str, Any]] = []
        for message in messages:
            entry: dict[str, Any] = {"role": message.role, "content": message.content or ""}
            if message.role == "tool" and message.name:
                entry["tool_name"] = message.name
            calls = [
                {"function": {"name": c["name"], "arguments": decode_tool_arguments(c.get("params"))}}
                for c in message.tool_calls or []
                if c.get("name")
            ]
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
        response = await self.client.chat(
            model=model or self.default_model,
            messages=self._to_ollama_messages(messages),
            tools=tools or None,
            stream=False,
            **kwargs,
        )
        reply = response.message
        calls = [
            {
                "id": f"call_{uuid.uuid4().hex[:12]}",
                "name": call.function.name,
                "params": decode_tool_arguments(call.function.arguments),
            }
            for call in reply.tool_calls or []
        ]
        return reply.content or "", calls
