"""Chat history, action execution and the conversation driver."""

from fencecall.core.driver import ConversationDriver, DriverRound
from fencecall.core.events import ChatEvent, ChatRole, ErrorEvent, encode_sse
from fencecall.core.executor import ActionExecutor
from fencecall.core.history import ActionRecord, ChatHistory, ChatMessage
from fencecall.core.transport import CompletionTransport, HttpCompletionTransport

__all__ = [
    "ActionExecutor",
    "ActionRecord",
    "ChatEvent",
    "ChatHistory",
    "ChatMessage",
    "ChatRole",
    "CompletionTransport",
    "ConversationDriver",
    "DriverRound",
    "ErrorEvent",
    "HttpCompletionTransport",
    "encode_sse",
]
