from __future__ import annotations

from .config import DEFAULT_LLM_CORE_CONFIG, LLMCoreConfig
from .providers import (
    GeminiProvider,
    LLMProvider,
    OllamaProvider,
    OpenAIProvider,
)


def resolve_model(model: str | None, config: LLMCoreConfig | None = None) -> tuple[str, str]:
    """
    Split a model string into (provider_name, model_name).

    Expected formats:
    - "provider:model_name" (e.g. "gemini:gemini-2.5-flash", "openai:gpt-4.1-nano")
    - "model_name" (no colon) → treated as an Ollama model.
    """
    cfg = config or DEFAULT_LLM_CORE_CONFIG
    effective_model = (model or cfg.model).strip()
    if ":" in effective_model:
        provider_name, raw_model = effective_model.split(":", 1)
        provider_name = provider_name.strip().lower()
        model_name = raw_model.strip()
        if not model_name:
            raise ValueError(f"Model name missing in {effective_model!r}")
        return provider_name, model_name
    return "ollama", effective_model


def build_provider(model: str | None = None, config: LLMCoreConfig | None = None) -> LLMProvider:
    """Construct a provider for ``model``; the resolved model name becomes its default."""
    cfg = config or DEFAULT_LLM_CORE_CONFIG
    provider_name, model_name = resolve_model(model, cfg)
    if provider_name == "openai":
        return OpenAIProvider(default_model=model_name)
    if provider_name in ("gemini", "google"):
        return GeminiProvider(default_model=model_name)
    return OllamaProvider(default_model=model_name, base_url=cfg.ollama_base_url)
