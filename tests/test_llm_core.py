"""Unit tests for llm_core: model resolution and provider message conversion."""
from __future__ import annotations

import json
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from src.llm_core import Message, build_provider, resolve_model
from src.llm_core.providers import GeminiProvider, OllamaProvider, OpenAIProvider
from src.llm_core.providers.base import decode_tool_arguments
from tests.fakes import ScriptedProvider, tool_reply


class TestResolveModel(unittest.TestCase):
    def test_provider_prefix(self) -> None:
        self.assertEqual(resolve_model("gemini:gemini-2.5-flash"), ("gemini", "gemini-2.5-flash"))
        self.assertEqual(resolve_model("OpenAI:gpt-4.1-nano"), ("openai", "gpt-4.1-nano"))

    def test_bare_name_is_ollama(self) -> None:
        self.assertEqual(resolve_model("llama3.2"), ("ollama", "llama3.2"))

    def test_missing_model_name(self) -> None:
        with self.assertRaises(ValueError):
            resolve_model("gemini:")

    def test_build_provider_types(self) -> None:
        self.assertIsInstance(build_provider("gemini:gemini-2.5-flash"), GeminiProvider)
        self.assertIsInstance(build_provider("openai:gpt-4.1-nano"), OpenAIProvider)
        self.assertIsInstance(build_provider("llama3.2"), OllamaProvider)


def _tool_turn() -> list[Message]:
    return [
        Message(role="system", content="You are helpful."),
        Message(role="user", content="Status?"),
        Message(
            role="assistant",
            content="",
            tool_calls=[
                {"id": "c1", "name": "getTodaySnapshot", "params": {}},
                {"id": "c2", "name": "getPendingPayments", "params": {"limit": 3}},
            ],
        ),
        Message(role="tool", content=json.dumps({"arrivals": 5}), tool_call_id="c1", name="getTodaySnapshot"),
        Message(role="tool", content=json.dumps({"count": 0}), tool_call_id="c2", name="getPendingPayments"),
    ]


class TestGeminiConversion(unittest.TestCase):
    def test_tool_results_merge_into_one_user_turn(self) -> None:
        contents, system = GeminiProvider._to_gemini_contents(_tool_turn())
        self.assertEqual(system, "You are helpful.")
        self.assertEqual([c.role for c in contents], ["user", "model", "user"])
        calls = [p.function_call.name for p in contents[1].parts]
        self.assertEqual(calls, ["getTodaySnapshot", "getPendingPayments"])
        responses = contents[2].parts
        self.assertEqual([p.function_response.name for p in responses], ["getTodaySnapshot", "getPendingPayments"])
        self.assertEqual(responses[0].function_response.response, {"output": '{"arrivals": 5}'})

    def test_tools_become_function_declarations(self) -> None:
        tools = GeminiProvider._to_gemini_tools(
            [{"type": "function", "function": {"name": "getTodaySnapshot", "description": "d", "parameters": {}}}]
        )
        self.assertEqual(tools[0].function_declarations[0].name, "getTodaySnapshot")
        self.assertIsNone(GeminiProvider._to_gemini_tools([]))


class TestOpenAIConversion(unittest.TestCase):
    def test_tool_call_ids_round_trip(self) -> None:
        out = OpenAIProvider._to_openai_messages(_tool_turn())
        assistant = out[2]
        self.assertEqual([tc["id"] for tc in assistant["tool_calls"]], ["c1", "c2"])
        self.assertEqual(json.loads(assistant["tool_calls"][1]["function"]["arguments"]), {"limit": 3})
        self.assertEqual(out[3]["tool_call_id"], "c1")
        self.assertEqual(out[4]["name"], "getPendingPayments")

    def test_tool_message_without_id_still_carries_key(self) -> None:
        out = OpenAIProvider._to_openai_messages([Message(role="tool", content="{}", name="getTodaySnapshot")])
        self.assertEqual(out[0]["tool_call_id"], "")


class TestOpenAIChat(unittest.IsolatedAsyncioTestCase):
    async def test_chat_decodes_string_arguments(self) -> None:
        call = SimpleNamespace(
            id="call_1",
            function=SimpleNamespace(name="getGuestProfile", arguments='{"email": "kofi@example.com"}'),
        )
        completion = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None, tool_calls=[call]))]
        )
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=completion)
        provider = OpenAIProvider(api_key="test", client=client)

        content, calls = await provider.chat([Message(role="user", content="Kofi?")], tools=[{"type": "function"}])

        self.assertEqual(content, "")
        self.assertEqual(calls, [{"id": "call_1", "name": "getGuestProfile", "params": {"email": "kofi@example.com"}}])
        request = client.chat.completions.create.await_args.kwargs
        self.assertEqual(request["tool_choice"], "auto")
        self.assertEqual(request["model"], "gpt-4.1-nano")


class TestOllamaProvider(unittest.IsolatedAsyncioTestCase):
    def test_tool_results_are_named(self) -> None:
        out = OllamaProvider._to_ollama_messages(_tool_turn())
        self.assertEqual(out[2]["tool_calls"][1]["function"], {"name": "getPendingPayments", "arguments": {"limit": 3}})
        self.assertEqual(out[3]["tool_name"], "getTodaySnapshot")
        self.assertNotIn("tool_calls", out[1])

    async def test_chat_assigns_call_ids(self) -> None:
        reply = SimpleNamespace(
            content="",
            tool_calls=[SimpleNamespace(function=SimpleNamespace(name="getTodaySnapshot", arguments={}))],
        )
        client = MagicMock()
        client.chat = AsyncMock(return_value=SimpleNamespace(message=reply))
        provider = OllamaProvider(client=client)

        _, calls = await provider.chat([Message(role="user", content="Status?")])

        self.assertTrue(calls[0]["id"].startswith("call_"))
        self.assertEqual(calls[0]["name"], "getTodaySnapshot")
        self.assertIsNone(client.chat.await_args.kwargs["tools"])


class TestDecodeToolArguments(unittest.TestCase):
    def test_shapes(self) -> None:
        self.assertEqual(decode_tool_arguments('{"limit": 2}'), {"limit": 2})
        self.assertEqual(decode_tool_arguments(""), {})
        self.assertEqual(decode_tool_arguments("not json"), {})
        self.assertEqual(decode_tool_arguments(["a"]), {})
        self.assertEqual(decode_tool_arguments(None), {})


class TestSendTurn(unittest.IsolatedAsyncioTestCase):
    async def test_send_turn_appends_new_messages_and_parses_calls(self) -> None:
        provider = ScriptedProvider([tool_reply("getTodaySnapshot", {"x": 1}, call_id="c7")])
        history = [Message(role="user", content="earlier")]
        reply = await provider.send_turn(history, Message(role="user", content="now"), tools=[])

        self.assertTrue(reply.wants_tools)
        self.assertEqual(reply.tool_calls[0].id, "c7")
        self.assertEqual(reply.tool_calls[0].arguments, {"x": 1})
        self.assertEqual([m.content for m in provider.calls[0]["messages"]], ["earlier", "now"])
        self.assertIsNone(provider.calls[0]["tools"])


if __name__ == "__main__":
    unittest.main()
