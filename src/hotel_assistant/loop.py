"""Conversation orchestrator: model, tool rounds, and paced text streaming."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Iterator, Sequence
from dataclasses import dataclass

from pydantic import BaseModel

from src.llm_core import LLMProvider, Message, ModelReply

from .config import (
    DEFAULT_MAX_TOOL_ROUNDS,
    DEFAULT_TEXT_CHUNK_DELAY,
    DEFAULT_TEXT_CHUNK_SIZE,
    DEFAULT_TOOL_TIMEOUT,
    AssistantSettings,
)
from .context import ContextBuilder, augment_user_message
from .errors import HotelAssistantError, LoopExceededError, ModelProviderError
from .events import ErrorEvent, TextEvent, ThinkingEvent, ToolResultEvent, ToolStartEvent
from .executor import ToolExecutor
from .models import ConversationTurn

logger = logging.getLogger(__name__)

ANALYZING_MESSAGE = "Analyzing your question..."
PROCESSING_MESSAGE = "Processing results..."
EMPTY_REPLY_MESSAGE = "I wasn't able to put an answer together. Could you rephrase the question?"


@dataclass
class ChatOptions:
    """Options for one orchestrator instance."""

    model: str | None = None
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS
    text_chunk_size: int = DEFAULT_TEXT_CHUNK_SIZE
    text_chunk_delay: float = DEFAULT_TEXT_CHUNK_DELAY
    tool_timeout: float | None = DEFAULT_TOOL_TIMEOUT
    system_prompt: str | None = None

    @classmethod
    def from_settings(cls, settings: AssistantSettings, system_prompt: str | None = None) -> ChatOptions:
        return cls(
            max_tool_rounds=settings.max_tool_rounds,
            text_chunk_delay=settings.text_chunk_delay,
            tool_timeout=settings.tool_timeout,
            system_prompt=system_prompt,
        )


def chunk_text(text: str, size: int = DEFAULT_TEXT_CHUNK_SIZE) -> Iterator[str]:
    """Split ``text`` into runs of whole words, each flushed once longer than ``size``.

    Joining the chunks gives back ``text`` exactly.
    """
    if not text:
        return
    words = text.split(" ")
    last = len(words) - 1
    buffer = ""
    for i, word in enumerate(words):
        buffer += word if i == last else word + " "
        if len(buffer) > size or i == last:
            yield buffer
            buffer = ""


class ChatOrchestrator:
    """Drives one chat request from the user's question to streamed text.

    The provider, executor and context builder are passed in so each can be
    replaced with a stub in tests.
    """

    def __init__(
        self,
        provider: LLMProvider,
        executor: ToolExecutor,
        context_builder: ContextBuilder | None = None,
        options: ChatOptions | None = None,
    ) -> None:
        self.provider = provider
        self.executor = executor
        self.context_builder = context_builder
        self.options = options or ChatOptions()

    async def _context_text(self) -> str:
        if self.context_builder is None:
            return ""
        return await self.context_builder.build_context_text()

    async def _send(self, history: list[Message], new_message: Message | list[Message]) -> ModelReply:
        try:
            return await self.provider.send_turn(
                history,
                new_message,
                self.executor.tool_schemas(),
                model=self.options.model,
            )
        except asyncio.CancelledError:
            raise
        except HotelAssistantError:
            raise
        except Exception as e:
            raise ModelProviderError(str(e) or e.__class__.__name__) from e

    def _initial_history(self, history: Sequence[ConversationTurn]) -> list[Message]:
        messages: list[Message] = []
        if self.options.system_prompt:
            messages.append(Message(role="system", content=self.options.system_prompt))
        messages.extend(turn.to_message() for turn in history)
        return messages

    async def stream(
        self,
        history: Sequence[ConversationTurn],
        user_message: str,
    ) -> AsyncIterator[BaseModel]:
        """Yield the stream events for one request; the generator ends on DONE or after one error."""
        opts = self.options
        try:
            yield ThinkingEvent(content=ANALYZING_MESSAGE)
            context = await self._context_text()
            messages = self._initial_history(history)
            pending: Message | list[Message] = Message(
                role="user", content=augment_user_message(context, user_message)
            )
            rounds = 0
            while True:
                reply = await self._send(messages, pending)
                messages.extend(pending if isinstance(pending, list) else [pending])
                if not reply.wants_tools:
                    break
                if rounds >= opts.max_tool_rounds:
                    raise LoopExceededError(f"Tool loop exceeded {opts.max_tool_rounds} rounds")
                rounds += 1

                messages.append(
                    Message(
                        role="assistant",
                        content=reply.text,
                        tool_calls=[call.to_message_call() for call in reply.tool_calls],
                    )
                )
                tool_messages: list[Message] = []
                for call in reply.tool_calls:
                    yield ToolStartEvent(tool=call.name, args=call.arguments)
                    result = await self.executor.run(call, timeout=opts.tool_timeout)
                    yield ToolResultEvent.from_result(result)
                    tool_messages.append(
                        Message(
                            role="tool",
                            content=json.dumps(result.model_payload(), default=str),
                            tool_call_id=call.id,
                            name=call.name,
                        )
                    )
                yield ThinkingEvent(content=PROCESSING_MESSAGE)
                pending = tool_messages

            text = reply.text
            if not text.strip():
                logger.warning("Model returned an empty reply after %d tool round(s)", rounds)
                text = EMPTY_REPLY_MESSAGE
            for chunk in chunk_text(text, opts.text_chunk_size):
                yield TextEvent(content=chunk)
                if opts.text_chunk_delay > 0:
                    await asyncio.sleep(opts.text_chunk_delay)
        except asyncio.CancelledError:
            logger.info("Chat stream cancelled; discarding in-flight work")
            raise
        except (ModelProviderError, LoopExceededError) as e:
            logger.error("Chat stream failed: %s", e)
            yield ErrorEvent(message=str(e))
        except Exception as e:
            logger.exception("Unexpected error in chat stream")
            yield ErrorEvent(message=str(e) or "Something went wrong")
