"""Shared action input models and path helpers."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class EmptyInput(BaseModel):
    """Empty input payload."""


class PathInput(BaseModel):
    """Target file of a file action."""

    path: str = Field(..., min_length=1, description="Path to the file")


class ShellInput(BaseModel):
    """Optional overrides for the shell action."""

    cwd: str | None = Field(default=None, description="Working directory")


def resolve_path(workspace: Path, raw_path: str) -> Path:
    path = Path(raw_path).expanduser()
    if path.is_absolute():
        return path
    return workspace / path
