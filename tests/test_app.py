from pathlib import Path

import pytest

from fencecall.app import build_session
from fencecall.config import Settings
from fencecall.core.events import ChatRole
from fencecall.prompt import DEFAULT_SYSTEM_PROMPT
from support import FakeTransport, collect, sse_reply


def _settings(tmp_path: Path, **kwargs) -> Settings:
    return Settings(workspace=tmp_path, recursion_delay_seconds=0, _env_file=None, **kwargs)


def test_session_history_starts_with_the_system_prompt(tmp_path: Path) -> None:
    session = build_session(_settings(tmp_path), transport=FakeTransport([]))

    (system,) = session.history.messages
    assert system.role == ChatRole.SYSTEM
    assert system.finalized
    assert system.content.startswith(DEFAULT_SYSTEM_PROMPT)
    assert "<actions>\n- read_file: " in system.content
    assert "- shell: " in system.content


def test_custom_system_prompt(tmp_path: Path) -> None:
    session = build_session(_settings(tmp_path, system_prompt="Be brief."), transport=FakeTransport([]))
    assert session.history.get(0).content.startswith("Be brief.\n\n<actions>")


@pytest.mark.asyncio
async def test_session_runs_builtin_actions_end_to_end(tmp_path: Path) -> None:
    reply = '```text;write_file("notes.txt")\nremember\n```\n'
    transport = FakeTransport([sse_reply(reply), sse_reply("Saved.")])
    session = build_session(_settings(tmp_path), transport=transport)

    await collect(session.send("save a note"))
    await session.aclose()

    assert (tmp_path / "notes.txt").read_text(encoding="utf-8") == "remember\n"
    assert [message.role for message in session.history.messages] == [
        ChatRole.SYSTEM,
        ChatRole.USER,
        ChatRole.ASSISTANT,
        ChatRole.SYSTEM,
        ChatRole.ASSISTANT,
    ]
    assert session.history.get(3).content == "Wrote 9 bytes to notes.txt\n"
