"""fencecall - let chat models run actions through fenced code blocks."""

from fencecall.app import Session, build_session
from fencecall.core import ActionExecutor, ChatHistory, ChatMessage, ChatRole, ConversationDriver

__version__ = "0.1.0"

__all__ = [
    "ActionExecutor",
    "ChatHistory",
    "ChatMessage",
    "ChatRole",
    "ConversationDriver",
    "Session",
    "build_session",
]
