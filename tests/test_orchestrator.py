"""Unit tests for the chat orchestrator (stub provider, stub tools)."""
from __future__ import annotations

import asyncio
import json
import unittest
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.hotel_assistant import ChatOptions, ChatOrchestrator, ToolExecutor
from src.hotel_assistant.loop import EMPTY_REPLY_MESSAGE, chunk_text
from src.hotel_assistant.models import ConversationTurn, ToolDeclaration
from src.llm_core import ModelReply, ToolCallRequest
from tests.fakes import LoopingProvider, ScriptedProvider, text_reply, tool_reply

SNAPSHOT = ToolDeclaration("getTodaySnapshot", "Today's operations")


def _executor(snapshot: dict[str, Any] | None = None) -> ToolExecutor:
    async def today(args: dict) -> dict:
        return snapshot if snapshot is not None else {"arrivals": 5}

    return ToolExecutor([SNAPSHOT], {"getTodaySnapshot": today})


async def _collect(orchestrator: ChatOrchestrator, message: str, history=None) -> list:
    return [e async for e in orchestrator.stream(history or [], message)]


def _text(events: list) -> str:
    return "".join(e.content for e in events if e.type == "text")


class TestChunkText(unittest.TestCase):
    def test_chunks_rejoin_to_original(self) -> None:
        text = "There are 5 arrivals today and 3 departures, with two  spaces here."
        chunks = list(chunk_text(text, 20))
        self.assertGreater(len(chunks), 1)
        self.assertEqual("".join(chunks), text)

    def test_empty_text_yields_nothing(self) -> None:
        self.assertEqual(list(chunk_text("")), [])

    def test_single_long_word(self) -> None:
        self.assertEqual(list(chunk_text("x" * 50, 20)), ["x" * 50])


class TestChatOrchestrator(unittest.IsolatedAsyncioTestCase):
    def _orchestrator(self, provider, executor=None, context=None, **opts) -> ChatOrchestrator:
        options = ChatOptions(text_chunk_delay=0, tool_timeout=None, **opts)
        return ChatOrchestrator(provider, executor or _executor(), context, options)

    async def test_tool_round_then_text(self) -> None:
        provider = ScriptedProvider(
            [tool_reply("getTodaySnapshot"), text_reply("You have 5 arrivals today.")]
        )
        events = await _collect(self._orchestrator(provider), "How many arrivals today?")

        types = [e.type for e in events]
        self.assertEqual(types[:4], ["thinking", "tool_start", "tool_result", "thinking"])
        self.assertTrue(all(t == "text" for t in types[4:]))
        self.assertGreaterEqual(len(types), 5)
        self.assertEqual(events[0].content, "Analyzing your question...")
        self.assertEqual(events[1].tool, "getTodaySnapshot")
        self.assertTrue(events[2].success)
        self.assertEqual(events[2].data, {"arrivals": 5})
        self.assertEqual(events[3].content, "Processing results...")
        self.assertIn("5", _text(events))

    async def test_tool_results_are_sent_back_as_tool_messages(self) -> None:
        provider = ScriptedProvider([tool_reply("getTodaySnapshot", call_id="c9"), text_reply("ok")])
        await _collect(self._orchestrator(provider), "status?")

        self.assertEqual(len(provider.calls), 2)
        second = provider.calls[1]["messages"]
        assistant, tool = second[-2], second[-1]
        self.assertEqual(assistant.role, "assistant")
        self.assertEqual(assistant.tool_calls, [{"id": "c9", "name": "getTodaySnapshot", "params": {}}])
        self.assertEqual(tool.role, "tool")
        self.assertEqual(tool.tool_call_id, "c9")
        self.assertEqual(tool.name, "getTodaySnapshot")
        self.assertEqual(json.loads(tool.content), {"arrivals": 5})
        self.assertEqual(provider.calls[0]["tools"][0]["function"]["name"], "getTodaySnapshot")

    async def test_unknown_tool_is_reported_and_conversation_continues(self) -> None:
        provider = ScriptedProvider([tool_reply("getWeather"), text_reply("Sorry, I can't check the weather.")])
        events = await _collect(self._orchestrator(provider), "Weather?")

        results = [e for e in events if e.type == "tool_result"]
        self.assertEqual(len(results), 1)
        self.assertFalse(results[0].success)
        self.assertIn("Unknown tool", results[0].error)
        self.assertEqual(results[0].data, {"error": results[0].error})
        self.assertFalse(any(e.type == "error" for e in events))
        self.assertIn("weather", _text(events))

    async def test_tool_failure_is_fed_back_to_model(self) -> None:
        async def broken(args: dict) -> dict:
            raise RuntimeError("store offline")

        executor = ToolExecutor([SNAPSHOT], {"getTodaySnapshot": broken})
        provider = ScriptedProvider([tool_reply("getTodaySnapshot"), text_reply("The data is unavailable.")])
        events = await _collect(self._orchestrator(provider, executor), "status?")

        self.assertFalse(events[2].success)
        tool_msg = provider.calls[1]["messages"][-1]
        self.assertEqual(json.loads(tool_msg.content), {"error": "store offline"})
        self.assertEqual(events[-1].type, "text")

    async def test_loop_cap_ends_with_single_error(self) -> None:
        provider = LoopingProvider()
        events = await _collect(self._orchestrator(provider, max_tool_rounds=3), "loop")

        self.assertEqual(sum(1 for e in events if e.type == "tool_start"), 3)
        self.assertEqual(sum(1 for e in events if e.type == "tool_result"), 3)
        self.assertEqual(events[-1].type, "error")
        self.assertIn("tool loop exceeded", events[-1].message.lower())
        self.assertEqual(sum(1 for e in events if e.type == "error"), 1)
        self.assertEqual(provider.turns, 4)

    async def test_empty_final_reply_still_ends_with_text(self) -> None:
        provider = ScriptedProvider([tool_reply("getTodaySnapshot"), text_reply("  ")])
        events = await _collect(self._orchestrator(provider), "How many arrivals today?")

        self.assertEqual(events[-1].type, "text")
        self.assertEqual(_text(events), EMPTY_REPLY_MESSAGE)

    async def test_provider_failure_yields_one_error_event(self) -> None:
        provider = ScriptedProvider([ConnectionError("quota exhausted")])
        events = await _collect(self._orchestrator(provider), "hi")

        self.assertEqual([e.type for e in events], ["thinking", "error"])
        self.assertEqual(events[-1].message, "quota exhausted")

    async def test_tool_start_precedes_matching_result(self) -> None:
        reply = ModelReply(
            tool_calls=[
                ToolCallRequest(id="a", name="getTodaySnapshot"),
                ToolCallRequest(id="b", name="missingTool"),
            ]
        )
        provider = ScriptedProvider([reply, text_reply("done")])
        events = await _collect(self._orchestrator(provider), "two tools")

        pairs = [(e.type, e.tool) for e in events if e.type in ("tool_start", "tool_result")]
        self.assertEqual(
            pairs,
            [
                ("tool_start", "getTodaySnapshot"),
                ("tool_result", "getTodaySnapshot"),
                ("tool_start", "missingTool"),
                ("tool_result", "missingTool"),
            ],
        )

    async def test_context_is_prefixed_to_question(self) -> None:
        context = MagicMock()
        context.build_context_text = AsyncMock(return_value="## Snapshot\n- Arrivals: 2")
        provider = ScriptedProvider([text_reply("Two arrivals.")])
        await _collect(self._orchestrator(provider, context=context), "Arrivals?")

        user_msg = provider.calls[0]["messages"][-1]
        self.assertEqual(user_msg.role, "user")
        self.assertEqual(user_msg.content, "## Snapshot\n- Arrivals: 2\n\nUser Question: Arrivals?")

    async def test_history_and_system_prompt_are_sent(self) -> None:
        provider = ScriptedProvider([text_reply("Sure.")])
        history = [
            ConversationTurn(role="user", content="Hello"),
            ConversationTurn(role="model", content="Hi, how can I help?"),
        ]
        orchestrator = self._orchestrator(provider, system_prompt="You are the hotel assistant.")
        await _collect(orchestrator, "Thanks", history)

        sent = provider.calls[0]["messages"]
        self.assertEqual([m.role for m in sent], ["system", "user", "assistant", "user"])
        self.assertEqual(sent[-1].content, "Thanks")

    async def test_cancellation_propagates(self) -> None:
        class SlowProvider(ScriptedProvider):
            async def chat(self, messages, **kwargs):
                await asyncio.sleep(10)
                return "", []

        orchestrator = self._orchestrator(SlowProvider([]))

        async def consume() -> None:
            async for _ in orchestrator.stream([], "hi"):
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0.01)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task


if __name__ == "__main__":
    unittest.main()
