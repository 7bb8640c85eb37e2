"""Configuration management for the code completer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

API_KEY_PLACEHOLDER = "GEMINI_API_KEY"
API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-1.5-flash-latest"


@dataclass
class Config:
    # Remote endpoint
    api_key: str = ""
    model: str = DEFAULT_MODEL
    api_url: str = ""
    connect_timeout: float = 10.0
    request_timeout: float = 30.0

    # Generation
    num_suggestions: int = 3
    max_output_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None

    # Context window around the caret
    context_before_chars: int = 500
    context_after_chars: int = 100

    # Cache and workers
    cache_max_entries: int = 256
    cache_ttl_seconds: float | None = None
    max_workers: int = 4

    def __post_init__(self):
        # A missing key is not an error: the remote call fails and the
        # fallback suggestions are served instead.
        if not self.api_key:
            self.api_key = os.environ.get("GEMINI_API_KEY") or API_KEY_PLACEHOLDER
        if not self.api_url:
            self.api_url = f"{API_BASE_URL}/{self.model}:generateContent"

    @property
    def has_api_key(self) -> bool:
        return self.api_key != API_KEY_PLACEHOLDER


def _load_dotenv() -> None:
    """Load .env file from the project root if it exists."""
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.is_file():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("\"'")
            if key and key not in os.environ:
                os.environ[key] = value


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


def load_config() -> Config:
    """Load configuration, using .env file, environment variables, and defaults."""
    _load_dotenv()
    config = Config(
        model=os.environ.get("CODECOMPLETER_MODEL", DEFAULT_MODEL),
        api_url=os.environ.get("CODECOMPLETER_API_URL", ""),
        connect_timeout=_env_float("CODECOMPLETER_CONNECT_TIMEOUT", 10.0),
        request_timeout=_env_float("CODECOMPLETER_REQUEST_TIMEOUT", 30.0),
        cache_max_entries=_env_int("CODECOMPLETER_CACHE_MAX_ENTRIES", 256),
        max_workers=_env_int("CODECOMPLETER_MAX_WORKERS", 4),
    )
    return config
