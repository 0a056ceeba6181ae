"""
Centralized application configuration.

Uses pydantic BaseSettings for automatic env-var loading and validation.
Import the singleton ``settings`` instance throughout the app.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

# Resolve project root once — all relative paths resolve from here
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


class Settings(BaseSettings):
    """Application settings — validated from environment variables."""

    # ── Environment ────────────────────────────────────────
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_DIR: str = "logs"

    # ── CORS ──────────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    # ── LLM ───────────────────────────────────────────────
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_API_KEY: str = ""
    LLM_TIMEOUT: int = 120
    LLM_MAX_TOKENS: int = 4000

    # ── Transport retries (exponential) ───────────────────
    LLM_MAX_RETRIES: int = 3
    LLM_INITIAL_RETRY_DELAY: float = 1.0  # seconds, doubled per retry

    # ── Structured output ─────────────────────────────────
    STRUCTURED_OUTPUT_TRIES: int = 3
    STRUCTURED_ATTEMPT_BACKOFF: float = 1.0  # seconds x (attempt + 1)
    STRUCTURED_JSON_REPAIR: bool = False

    # ── Question generation ───────────────────────────────
    QUESTIONS_TEMPERATURE: float = 1.0

    @field_validator("LLM_MAX_RETRIES", mode="after")
    @classmethod
    def _non_negative_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("LLM_MAX_RETRIES must be >= 0")
        return v

    @field_validator("STRUCTURED_OUTPUT_TRIES", mode="after")
    @classmethod
    def _positive_tries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("STRUCTURED_OUTPUT_TRIES must be >= 1")
        return v

    @model_validator(mode="after")
    def _resolve_paths_and_cross_validate(self):
        """Resolve the log directory & warn about a missing API key."""
        if self.LOG_DIR and not os.path.isabs(self.LOG_DIR):
            object.__setattr__(self, "LOG_DIR", os.path.join(_PROJECT_ROOT, self.LOG_DIR))

        if not self.OPENAI_API_KEY:
            logging.getLogger("config").warning("OPENAI_API_KEY is empty")

        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
