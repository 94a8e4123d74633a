"""Gemini provider (google-genai, ``aio.models.generate_content``)."""

from __future__ import annotations

import os
from typing import Any

from dotenv import load_dotenv
from google import genai
from google.genai import types as genai_types

from ..models import Message
from .base import LLMProvider, decode_tool_arguments

load_dotenv()


def _is_tool_result_turn(content: genai_types.Content | None) -> bool:
    return bool(
        content is not None
        and content.role == "user"
        and content.parts
        and all(p.function_response is not None for p in content.parts)
    )


def _call_part(call: dict[str, Any]) -> genai_types.Part:
    return genai_types.Part(
        function_call=genai_types.FunctionCall(
            name=call["name"],
            args=decode_tool_arguments(call.get("params") or call.get("arguments")),
        )
    )


class GeminiProvider(LLMProvider):
    """Gemini turns for the hotel assistant.

    Gemini has no ``tool`` role: results go back as ``function_response`` parts on a user
    turn, and the calls of one round share a single model turn.
    """

    def __init__(
        self,
        default_model: str = "gemini-2.5-flash",
        api_key: str | None = None,
        client: genai.Client | None = None,
    ) -> None:
        self.default_model = default_model
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY", "")
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key, http_options={"api_version": "v1beta"})
        return self._client

    @staticmethod
    def _to_gemini_contents(messages: list[Message]) -> tuple[list[genai_types.Content], str | None]:
        contents: list[genai_types.Content] = []
        system_prompt: str | None = None
        for message in messages:
            if message.role == "system":
                system_prompt = (message.content or "").strip() or system_prompt
            elif message.role == "tool":
                result = genai_types.Part.from_function_response(
                    name=message.name or "",
                    response={"output": message.content or ""},
                )
                if _is_tool_result_turn(contents[-1] if contents else None):
                    contents[-1].parts.append(result)
                else:
                    contents.append(genai_types.Content(role="user", parts=[result]))
            else:
                parts = [genai_types.Part(text=message.content)] if message.content else []
                parts.extend(_call_part(c) for c in message.tool_calls or [] if c.get("name"))
                if parts:
                    role = "model" if message.role == "assistant" else "user"
                    contents.append(genai_types.Content(role=role, parts=parts))
        return contents, system_prompt

    @staticmethod
    def _to_gemini_tools(tools: list[dict[str, Any]] | None) -> list[genai_types.Tool] | None:
        declarations = [
            genai_types.FunctionDeclaration(
                name=fn["name"],
                description=fn.get("description", ""),
                parameters=fn.get("parameters") or {},
            )
            for fn in (t.get("function", t) for t in tools or [])
            if fn.get("name")
        ]
        return [genai_types.Tool(function_declarations=declarations)] if declarations else None

    @staticmethod
    def _read_reply(response: Any) -> tuple[str, list[dict[str, Any]]]:
        """Text and calls from the first candidate; thought parts are dropped."""
        candidates = getattr(response, "candidates", None) or []
        if not candidates or candidates[0].content is None:
            return "", []
        text: list[str] = []
        calls: list[dict[str, Any]] = []
        for part in candidates[0].content.parts or []:
            call = part.function_call
            if call is not None:
                calls.append(
                    {
                        "id": call.id or f"call_{call.name}_{len(calls)}",
                        "name": call.name,
                        "params": decode_tool_arguments(call.args),
                    }
                )
            elif part.text and not part.thought:
                text.append(part.text)
        return "".join(text), calls

    async def chat(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> tuple[str, list[dict[str, Any]]]:
        contents, system_prompt = self._to_gemini_contents(messages)
        config: dict[str, Any] = dict(kwargs)
        if system_prompt:
            config["system_instruction"] = system_prompt
        declared = self._to_gemini_tools(tools)
        if declared:
            config["tools"] = declared
            # Calls are executed by the orchestrator, never by the SDK.
            config["automatic_function_calling"] = genai_types.AutomaticFunctionCallingConfig(disable=True)

        response = await self.client.aio.models.generate_content(
            model=model or self.default_model,
            contents=contents,
            config=genai_types.GenerateContentConfig(**config),
        )
        return self._read_reply(response)
