"""Application configuration — reads from environment variables and an optional .env file."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime settings for provider calls, the arena and the outer layers."""

    log_level: str = "INFO"
    port: int = 8400

    # Provider HTTP calls
    request_timeout: float = Field(default=60.0, gt=0)
    connection_test_timeout: float = Field(default=10.0, gt=0)
    anthropic_version: str = "2023-06-01"
    anthropic_max_tokens: int = Field(default=4096, gt=0)

    # Identification headers for routing marketplaces (OpenRouter)
    app_url: str = "http://localhost:8400"
    app_title: str = "PromptArena"

    # File-backed secret store root (Docker / Kubernetes secrets layout)
    secrets_dir: str = "/run/secrets"

    # Arena
    arena_max_concurrent: int = Field(default=3, ge=1, le=10)
    cost_warning_threshold: float = Field(default=0.5, ge=0)

    model_config = {
        "env_prefix": "PROMPT_ARENA_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
