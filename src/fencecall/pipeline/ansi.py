"""ANSI escape sequence stripping."""

from __future__ import annotations

import re

ANSI_RE = re.compile(
    r"(?:\x1b\[|\x9b)"
    r"(?:(?:\d{1,3}(?:(?:;\d{0,3}){0,3})[A-PRZcf-ntqry=><~])"
    r"|(?:\d{1,4}(?:;\d{0,4}){0,3})?[cf-ntqry=><~])"
)


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)
