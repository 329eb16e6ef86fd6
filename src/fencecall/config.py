"""Configuration management for fencecall."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fencecall.errors import ApiKeyNotConfiguredError

ScanMode = Literal["flush", "incremental"]
ResponseFormat = Literal["text", "json_agent"]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="FENCECALL_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Configuration
    api_key: str | None = Field(default=None, description="API key for the chat completion endpoint")
    api_base: str = Field(default="https://api.openai.com/v1", description="Base URL of the completion API")
    model: str = Field(default="gpt-3.5-turbo", description="Model name sent with every request")
    max_tokens: int = Field(default=1000, description="Maximum tokens for one response")
    temperature: float = Field(default=0.5, description="Sampling temperature")
    request_timeout_seconds: float | None = Field(default=None, description="Model request timeout, none by default")

    # Driver Configuration
    recursion_delay_seconds: float = Field(default=1.0, description="Pause before resubmitting action output")
    max_rounds: int | None = Field(default=10, description="Maximum model rounds per submission")
    scan_mode: ScanMode = Field(default="flush", description="Scan fences at end of stream or while streaming")
    response_format: ResponseFormat = Field(default="text", description="Plain text or JSON agent envelope")

    # Action Configuration
    workspace: Path = Field(default_factory=Path.cwd, description="Working directory of built-in actions")
    shell: str = Field(default="bash", description="Shell used by the shell action")

    # System Configuration
    system_prompt: str | None = Field(default=None, description="Override for the built-in system prompt")
    transcript_dir: Path | None = Field(default=None, description="Directory for raw model transcripts")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")

    @property
    def resolved_api_key(self) -> str:
        key = self.api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            raise ApiKeyNotConfiguredError("API key not configured. Set FENCECALL_API_KEY or OPENAI_API_KEY.")
        return key

    @property
    def completions_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/chat/completions"


def get_settings(workspace: Path | None = None) -> Settings:
    """Get application settings.

    Args:
        workspace: Optional workspace path override

    Returns:
        Settings instance
    """
    if workspace is None:
        return Settings()
    return Settings(workspace=workspace)
