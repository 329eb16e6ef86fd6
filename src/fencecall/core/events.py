"""Chat event models and their SSE encoding."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

from loguru import logger

from fencecall.errors import FencecallError


class ChatRole(StrEnum):
    ASSISTANT = "assistant"
    ERROR = "error"
    SYSTEM = "system"
    USER = "user"


class EventType(StrEnum):
    ERROR = "error"
    MESSAGE_ACTION = "message/action"
    MESSAGE_APPEND = "message/append"
    MESSAGE_FINALIZE = "message/finalize"


@dataclass(frozen=True)
class MessageAppendEvent:
    index: int
    append: str
    role: ChatRole
    type: EventType = field(default=EventType.MESSAGE_APPEND, init=False)


@dataclass(frozen=True)
class MessageActionEvent:
    index: int
    tool: str
    input: str
    type: EventType = field(default=EventType.MESSAGE_ACTION, init=False)


@dataclass(frozen=True)
class MessageFinalizeEvent:
    index: int
    text: str
    actions: list[dict[str, Any]]
    role: ChatRole
    type: EventType = field(default=EventType.MESSAGE_FINALIZE, init=False)


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    type: EventType = field(default=EventType.ERROR, init=False)


ChatEvent = MessageAppendEvent | MessageActionEvent | MessageFinalizeEvent | ErrorEvent


def event_payload(event: ChatEvent) -> dict[str, Any]:
    """Wire shape of one event: `{"type": ..., "data": {...}}`."""
    data = asdict(event)
    event_type = data.pop("type")
    return {"type": str(event_type), "data": data}


def render_sse(event: ChatEvent) -> bytes:
    payload = json.dumps(event_payload(event), ensure_ascii=False)
    return f"data: {payload}\n\n".encode()


async def encode_sse(events: AsyncIterable[ChatEvent]) -> AsyncIterator[bytes]:
    """Encode chat events as SSE lines; a fatal error ends with one error event."""
    try:
        async for event in events:
            yield render_sse(event)
    except FencecallError as exc:
        logger.warning("sse.stream.error error={}", exc)
        yield render_sse(ErrorEvent(message=str(exc)))
