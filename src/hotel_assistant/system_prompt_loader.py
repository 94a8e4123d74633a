"""Utilities for loading the hotel system prompt from disk."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from .config import DEFAULT_HOTEL_NAME, DEFAULT_SYSTEM_PROMPT_PATH

logger = logging.getLogger(__name__)


def _read_file(path: Path) -> str:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("System prompt not readable at %s: %s", path, e)
        return ""
    return text.strip()


@lru_cache(maxsize=None)
def load_system_prompt(
    hotel_name: str = DEFAULT_HOTEL_NAME,
    path: Path = DEFAULT_SYSTEM_PROMPT_PATH,
) -> str:
    """Return the system prompt with ``{hotel_name}`` filled in, cached per arguments.

    If the prompt file does not exist or cannot be read, returns an empty string.
    """
    return _read_file(path).replace("{hotel_name}", hotel_name)
