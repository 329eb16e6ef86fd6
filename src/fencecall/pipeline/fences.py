"""Fenced code block scanning."""

from __future__ import annotations

from dataclasses import dataclass

from fencecall.errors import UnterminatedCodeBlockError

FENCE = "```"


@dataclass(frozen=True)
class ParsedCodeBlock:
    """A closed fenced block and the info-string of its opening fence."""

    tag: str
    content: str


def _find_fence(lines: list[str], start: int) -> int:
    for index in range(start, len(lines)):
        if lines[index].startswith(FENCE):
            return index
    return -1


def _block(lines: list[str], opening: int, closing: int) -> ParsedCodeBlock:
    tag = lines[opening][len(FENCE) :].strip()
    return ParsedCodeBlock(tag=tag, content="\n".join(lines[opening + 1 : closing]))


def _split_lines(text: str) -> list[str]:
    return [line.removesuffix("\r") for line in text.split("\n")]


def scan_code_blocks(text: str) -> list[ParsedCodeBlock]:
    """Scan a complete document; every opening fence must be closed."""
    lines = _split_lines(text)
    blocks: list[ParsedCodeBlock] = []
    position = 0
    while (opening := _find_fence(lines, position)) != -1:
        closing = _find_fence(lines, opening + 1)
        if closing == -1:
            raise UnterminatedCodeBlockError(lines[opening][len(FENCE) :].strip())
        blocks.append(_block(lines, opening, closing))
        position = closing + 1
    return blocks


class CodeFenceScanner:
    """Incremental scanner over a growing document.

    Each call receives the whole text seen so far. Lines up to the cursor were
    already processed and are never scanned again, so a block is emitted at
    most once. A trailing line without a newline may still grow and is only
    considered when `final` is set.
    """

    def __init__(self) -> None:
        self._processed_lines = 0
        self._processed_chars = 0

    @property
    def processed_lines(self) -> int:
        return self._processed_lines

    def scan(self, text: str, *, final: bool = False) -> list[ParsedCodeBlock]:
        pending = text[self._processed_chars :]
        lines = _split_lines(pending)
        if not final or not lines[-1]:
            # Drop the unterminated tail, or the empty string after a final newline.
            lines.pop()

        blocks: list[ParsedCodeBlock] = []
        consumed = 0
        while True:
            opening = _find_fence(lines, consumed)
            if opening == -1:
                consumed = len(lines)
                break
            closing = _find_fence(lines, opening + 1)
            if closing == -1:
                consumed = opening
                break
            blocks.append(_block(lines, opening, closing))
            consumed = closing + 1

        self._advance(pending, consumed)
        return blocks

    def _advance(self, pending: str, line_count: int) -> None:
        position = 0
        for _ in range(line_count):
            newline = pending.find("\n", position)
            if newline == -1:
                position = len(pending)
                break
            position = newline + 1
        self._processed_chars += position
        self._processed_lines += line_count

    def reset(self) -> None:
        self._processed_lines = 0
        self._processed_chars = 0
