"""Application-level exception types for fencecall."""

from __future__ import annotations


class FencecallError(Exception):
    """Base exception for fencecall."""


class ConfigurationError(FencecallError):
    """Base exception for configuration and startup validation errors."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""


class TransportError(FencecallError):
    """Raised when the model endpoint does not deliver a usable response body."""


class PayloadDecodeError(TransportError):
    """Raised when one SSE data payload is not valid JSON."""

    def __init__(self, payload: str, reason: str) -> None:
        super().__init__(f"malformed stream payload: {reason}")
        self.payload = payload


class ScanError(FencecallError):
    """Base exception for structural fence scanning errors."""


class UnterminatedCodeBlockError(ScanError):
    """Raised by the one-shot scanner when a fence is never closed."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"unterminated code block: ```{tag}")
        self.tag = tag


class InvocationSyntaxError(FencecallError):
    """Raised when an invocation clause cannot be matched."""

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(f"invalid invocation {raw!r}: {reason}")
        self.raw = raw


class ActionError(FencecallError):
    """Base exception for action execution failures."""


class ActionParameterError(ActionError):
    """Raised when invocation parameters do not fit the action."""


class ActionFailedError(ActionError):
    """Raised when an action ran but reported failure."""
