"""On-disk transcripts of raw model exchanges."""

from __future__ import annotations

import json
import time
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from fencecall.pipeline.deltas import DeltaMessage


def _timestamp() -> str:
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")


class TranscriptEntry:
    """One model call: prompt, raw deltas, then the response or an error."""

    def __init__(self, path: Path, model: str, messages: list[dict[str, str]]) -> None:
        self.path = path
        self._started = time.monotonic()
        self._broken = False
        prompt = "\n".join(f"[{message['role']}] {message['content']}" for message in messages)
        self._write(f"---PROMPT ({model})---\n{prompt}\n---DELTAS---\n")

    def record_delta(self, delta: DeltaMessage) -> None:
        self._write(json.dumps(delta.raw, ensure_ascii=False) + "\n")

    def finish(self, text: str) -> None:
        self._write(f"---RESPONSE ({self._elapsed():.1f}s)---\n{text}\n")

    def fail(self, message: str) -> None:
        self._write(f"---ERROR ({self._elapsed():.1f}s)---\n{message}\n")

    def _elapsed(self) -> float:
        return time.monotonic() - self._started

    def _write(self, text: str) -> None:
        if self._broken:
            return
        try:
            with self.path.open("a", encoding="utf-8") as file:
                file.write(text)
        except OSError as exc:
            self._broken = True
            logger.warning("transcript.write.error path={} error={}", self.path, exc)


class TranscriptLogger:
    """Writes one transcript file per model call into a per-session directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory / _timestamp()
        self.directory.mkdir(parents=True, exist_ok=True)

    def start(self, model: str, messages: list[dict[str, str]]) -> TranscriptEntry:
        return TranscriptEntry(self.directory / f"{_timestamp()}.log", model, messages)
