"""Streaming extraction of one string field from a JSON agent envelope."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from enum import Enum

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t"}


class _State(Enum):
    OUTSIDE_STRING = "outside_string"
    ENTERING_TARGET_VALUE = "entering_target_value"
    IN_STRING = "in_string"
    IN_ESCAPED_CHAR = "in_escaped_char"


class JsonFieldStreamer:
    """Emit the decoded characters of `field`'s string value as they arrive.

    Only strings are tracked; nesting is ignored. When `gate` is given, the
    field is streamed only if the `gate[0]` key was last seen with the value
    `gate[1]`, e.g. `{"action": "Final Answer", "action_input": "..."}`.
    """

    def __init__(self, field: str = "action_input", gate: tuple[str, str] | None = ("action", "Final Answer")) -> None:
        self._field = field
        self._gate = gate
        self._state = _State.OUTSIDE_STRING
        self._expect_value = False
        self._string_is_value = False
        self._streaming = False
        self._string = ""
        self._last_key = ""
        self._gate_open = gate is None

    def feed(self, chunk: str) -> str:
        output: list[str] = []
        for char in chunk:
            emitted = self._step(char)
            if emitted:
                output.append(emitted)
        return "".join(output)

    def _step(self, char: str) -> str:
        state = self._state
        if state is _State.IN_ESCAPED_CHAR:
            self._state = _State.IN_STRING
            decoded = _ESCAPES.get(char, char)
            return self._keep(decoded)

        if state is _State.IN_STRING:
            if char == "\\":
                self._state = _State.IN_ESCAPED_CHAR
                return ""
            if char == '"':
                self._close_string()
                return ""
            return self._keep(char)

        if state is _State.ENTERING_TARGET_VALUE:
            if char.isspace():
                return ""
            if char == '"':
                self._open_string(is_value=True, streaming=self._gate_open)
                return ""
            # Not a string value; nothing to stream.
            self._state = _State.OUTSIDE_STRING
            self._expect_value = False

        if char == '"':
            self._open_string(is_value=self._expect_value, streaming=False)
        elif char == ":":
            self._expect_value = True
            if self._last_key == self._field:
                self._state = _State.ENTERING_TARGET_VALUE
        elif char in ",{}[]":
            self._expect_value = False
        return ""

    def _open_string(self, *, is_value: bool, streaming: bool) -> None:
        self._state = _State.IN_STRING
        self._string_is_value = is_value
        self._streaming = streaming
        self._string = ""

    def _keep(self, char: str) -> str:
        if self._streaming:
            return char
        self._string += char
        return ""

    def _close_string(self) -> None:
        self._state = _State.OUTSIDE_STRING
        if self._string_is_value:
            if self._gate is not None and self._last_key == self._gate[0]:
                self._gate_open = self._string == self._gate[1]
            elif self._streaming and self._gate is not None:
                self._gate_open = False
            self._expect_value = False
        else:
            self._last_key = self._string
        self._streaming = False
        self._string = ""


async def stream_json_field(
    fragments: AsyncIterable[str],
    field: str = "action_input",
    gate: tuple[str, str] | None = ("action", "Final Answer"),
) -> AsyncIterator[str]:
    """Transform raw JSON text fragments into the target field's characters."""
    streamer = JsonFieldStreamer(field, gate)
    async for fragment in fragments:
        output = streamer.feed(fragment)
        if output:
            yield output
