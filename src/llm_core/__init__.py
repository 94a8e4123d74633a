"""Shared LLM models and providers used across the backend."""

from .config import LLMCoreConfig, DEFAULT_LLM_CORE_CONFIG
from .core import build_provider, resolve_model
from .models import Message, ModelReply, ToolCallRequest
from .providers import LLMProvider

__all__ = [
    "Message",
    "ModelReply",
    "ToolCallRequest",
    "LLMProvider",
    "LLMCoreConfig",
    "DEFAULT_LLM_CORE_CONFIG",
    "build_provider",
    "resolve_model",
]
