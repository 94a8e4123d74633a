"""Hotel admin assistant: tool-calling chat orchestrator streamed over SSE."""

from .context import ContextBuilder, build_context_string
from .errors import (
    HotelAssistantError,
    LoopExceededError,
    ModelProviderError,
    ToolConfigurationError,
    ToolExecutionError,
    ValidationError,
)
from .events import sse_frames
from .executor import ToolExecutor
from .hotel_tools import HotelToolbox
from .loop import ChatOptions, ChatOrchestrator
from .models import ContextSnapshot, ConversationTurn, ToolCallResult, ToolDeclaration, parse_chat_messages
from .tool_catalog import HOTEL_TOOLS, list_tools

__all__ = [
    "ChatOptions",
    "ChatOrchestrator",
    "ContextBuilder",
    "ContextSnapshot",
    "ConversationTurn",
    "HOTEL_TOOLS",
    "HotelAssistantError",
    "HotelToolbox",
    "LoopExceededError",
    "ModelProviderError",
    "ToolCallResult",
    "ToolConfigurationError",
    "ToolDeclaration",
    "ToolExecutionError",
    "ToolExecutor",
    "ValidationError",
    "build_context_string",
    "list_tools",
    "parse_chat_messages",
    "sse_frames",
]
