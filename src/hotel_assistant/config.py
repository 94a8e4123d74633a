"""Assistant configuration: paths, defaults and environment settings."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from main_config import (
    DB_DIR as _DB_DIR,
    DEFAULT_SYSTEM_PROMPT_PATH as _DEFAULT_SYSTEM_PROMPT_PATH,
    HOTEL_DB_PATH as _HOTEL_DB_PATH,
    JOBS_DB_PATH as _JOBS_DB_PATH,
)

# Path objects for use in this package (main_config uses os.path strings)
DB_DIR = Path(_DB_DIR)
HOTEL_DB_PATH = Path(_HOTEL_DB_PATH)
JOBS_DB_PATH = Path(_JOBS_DB_PATH)
DEFAULT_SYSTEM_PROMPT_PATH = Path(_DEFAULT_SYSTEM_PROMPT_PATH)

DEFAULT_MODEL = "gemini:gemini-2.5-flash"
DEFAULT_MAX_TOOL_ROUNDS = 5
DEFAULT_TEXT_CHUNK_SIZE = 20
DEFAULT_TEXT_CHUNK_DELAY = 0.03
DEFAULT_TOOL_TIMEOUT = 30.0
DEFAULT_HOTEL_NAME = "Northern Capital Hotel"
CURRENCY_SYMBOL = "₵"


def ensure_dirs() -> None:
    """Create the db directory if it does not exist."""
    DB_DIR.mkdir(parents=True, exist_ok=True)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


class AssistantSettings(BaseModel):
    """Runtime settings for the assistant service."""

    model: str = Field(DEFAULT_MODEL, description="LLM in 'provider:model' format")
    max_tool_rounds: int = Field(DEFAULT_MAX_TOOL_ROUNDS, ge=1)
    text_chunk_delay: float = Field(DEFAULT_TEXT_CHUNK_DELAY, ge=0)
    tool_timeout: float | None = Field(DEFAULT_TOOL_TIMEOUT, description="Seconds; None disables")
    hotel_name: str = DEFAULT_HOTEL_NAME
    admin_api_token: str | None = Field(None, description="Required admin token; None disables auth")
    hotel_db_path: Path = HOTEL_DB_PATH
    jobs_db_path: Path = JOBS_DB_PATH
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> AssistantSettings:
        load_dotenv()
        timeout = _env_float("ASSISTANT_TOOL_TIMEOUT", DEFAULT_TOOL_TIMEOUT)
        return cls(
            model=os.getenv("ASSISTANT_MODEL") or DEFAULT_MODEL,
            max_tool_rounds=_env_int("ASSISTANT_MAX_TOOL_ROUNDS", DEFAULT_MAX_TOOL_ROUNDS),
            text_chunk_delay=_env_float("ASSISTANT_TEXT_CHUNK_DELAY", DEFAULT_TEXT_CHUNK_DELAY),
            tool_timeout=timeout if timeout > 0 else None,
            hotel_name=os.getenv("HOTEL_NAME") or DEFAULT_HOTEL_NAME,
            admin_api_token=os.getenv("ADMIN_API_TOKEN") or None,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
