"""In-memory chat history with event publication."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fencecall.core.events import (
    ChatEvent,
    ChatRole,
    MessageActionEvent,
    MessageAppendEvent,
    MessageFinalizeEvent,
)

ChatListener = Callable[[ChatEvent], None]


@dataclass
class ActionRecord:
    """An action triggered by a message, with its result once finished."""

    tool: str
    input: str
    result: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tool": self.tool, "input": self.input}
        if self.result is not None:
            data["result"] = self.result
        return data


@dataclass
class ChatMessage:
    content: str
    role: ChatRole
    actions: list[ActionRecord] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finalized: bool = False

    def to_api(self) -> dict[str, str]:
        """Message in the chat completion request shape."""
        role = ChatRole.SYSTEM if self.role == ChatRole.ERROR else self.role
        return {"role": str(role), "content": self.content}


class ChatHistory:
    """Ordered message log; indices are stable and never reused."""

    def __init__(self, messages: Iterable[ChatMessage] = ()) -> None:
        self._messages: list[ChatMessage] = list(messages)
        self._listeners: list[ChatListener] = []

    @classmethod
    def with_initial_messages(cls, messages: Iterable[ChatMessage]) -> ChatHistory:
        return cls(messages)

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def get(self, index: int) -> ChatMessage:
        return self._messages[index]

    def exists(self, index: int) -> bool:
        return 0 <= index < len(self._messages)

    def messages_since(self, index: int) -> list[ChatMessage]:
        return self._messages[index:]

    def to_api(self) -> list[dict[str, str]]:
        return [message.to_api() for message in self._messages]

    def add_listener(self, listener: ChatListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChatListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def subscribe(self) -> AsyncIterator[ChatEvent]:
        """Iterate over events published from now on, until closed."""
        queue: asyncio.Queue[ChatEvent] = asyncio.Queue()
        self.add_listener(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            self.remove_listener(queue.put_nowait)

    def add_message(self, message: ChatMessage) -> int:
        index = len(self._messages)
        self._messages.append(message)
        self._publish(MessageAppendEvent(index=index, append=message.content, role=message.role))
        return index

    def add_error(self, text: str) -> int:
        return self.add_message(ChatMessage(content=text, role=ChatRole.ERROR))

    def append_to_message(self, index: int, append: str) -> None:
        message = self._messages[index]
        if message.finalized:
            raise ValueError(f"message {index} is already finalized")
        message.content += append
        self._publish(MessageAppendEvent(index=index, append=append, role=message.role))

    def add_action(self, index: int, tool: str, input: str) -> int:
        actions = self._messages[index].actions
        actions.append(ActionRecord(tool=tool, input=input))
        self._publish(MessageActionEvent(index=index, tool=tool, input=input))
        return len(actions) - 1

    def set_action_result(self, index: int, action_index: int, result: str) -> None:
        self._messages[index].actions[action_index].result = result

    def finalize_message(self, index: int, text: str | None = None) -> None:
        message = self._messages[index]
        if text is not None:
            message.content = text
        message.finalized = True
        self._publish(
            MessageFinalizeEvent(
                index=index,
                text=message.content,
                actions=[action.to_dict() for action in message.actions],
                role=message.role,
            )
        )

    def _publish(self, event: ChatEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
