"""LLM providers: pluggable backends for the hotel assistant."""

from .base import LLMProvider
from .gemini_provider import GeminiProvider
from .ollama import OllamaProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "GeminiProvider",
    "OllamaProvider",
    "OpenAIProvider",
]
