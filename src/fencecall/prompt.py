"""Default system prompt for fencecall sessions."""

from __future__ import annotations

from fencecall.core.events import ChatRole
from fencecall.core.history import ChatMessage
from fencecall.tools.registry import ActionRegistry

DEFAULT_SYSTEM_PROMPT = """You can act on a sandboxed Linux workspace by writing fenced code blocks whose opening line names an action after the language, separated by a semicolon. You have full permission to read and write files and to run commands there.

Run a shell script:
```sh;shell()
ls -la
```

Write a file:
```python;write_file("./hello.py")
print("Hello, World!")
```

Read a file:
```text;read_file("./hello.py")
```

Several actions may follow one language, e.g. ```python;write_file("main.py");shell()```, and they run in order. Parameters are quoted strings, numbers, true/false, or name="value" pairs; do not put semicolons inside parameters. The output of every action is sent back to you as a new message, so you can inspect it and continue. When no further action is needed, answer in plain text without action blocks."""


def render_action_block(registry: ActionRegistry) -> str:
    rows = registry.compact_rows()
    if not rows:
        return ""
    return "<actions>\n" + "\n".join(f"- {row}" for row in rows) + "\n</actions>"


def initial_messages(registry: ActionRegistry, system_prompt: str | None = None) -> list[ChatMessage]:
    """Messages every new history starts with."""
    blocks = [(system_prompt or DEFAULT_SYSTEM_PROMPT).strip(), render_action_block(registry)]
    content = "\n\n".join(block for block in blocks if block)
    return [ChatMessage(content=content, role=ChatRole.SYSTEM, finalized=True)]
