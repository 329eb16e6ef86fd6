import importlib
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fencecall.app import build_session
from fencecall.cli import app
from support import FakeTransport, sse_reply

cli_app_module = importlib.import_module("fencecall.cli.app")
runner = CliRunner()

DOCUMENT = """Intro
```python
print("not an action")
```
```sh;shell()
ls
```
"""


def test_scan_prints_tagged_blocks_as_json_lines(tmp_path: Path) -> None:
    path = tmp_path / "reply.md"
    path.write_text(DOCUMENT, encoding="utf-8")

    result = runner.invoke(app, ["scan", str(path)])

    assert result.exit_code == 0
    (line,) = result.stdout.splitlines()
    assert json.loads(line) == {
        "block": {"tag": "sh;shell()", "content": "ls"},
        "tag": {
            "language": "sh",
            "additional": [{"raw": "shell()", "invocation": {"name": "shell", "parameters": {"_": []}}}],
        },
    }


def test_scan_fails_on_unterminated_fence_unless_incremental(tmp_path: Path) -> None:
    path = tmp_path / "reply.md"
    path.write_text(DOCUMENT + "```sh;shell()\npwd\n", encoding="utf-8")

    assert runner.invoke(app, ["scan", str(path)]).exit_code == 1
    result = runner.invoke(app, ["scan", "--incremental", str(path)])
    assert result.exit_code == 0
    assert len(result.stdout.splitlines()) == 1


def test_scan_fails_on_invalid_invocation(tmp_path: Path) -> None:
    path = tmp_path / "reply.md"
    path.write_text('```sh;write_file("a;b")\nx\n```\n', encoding="utf-8")

    assert runner.invoke(app, ["scan", str(path)]).exit_code == 1


def test_run_writes_server_sent_events(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    transport = FakeTransport([sse_reply("Hello")])
    monkeypatch.setattr(cli_app_module, "configure_logging", lambda **kwargs: None)
    monkeypatch.setattr(cli_app_module, "_build", lambda settings: build_session(settings, transport=transport))

    result = runner.invoke(app, ["run", "hi", "--sse", "--workspace", str(tmp_path)])

    assert result.exit_code == 0
    frames = [json.loads(frame[len("data: ") :]) for frame in result.stdout.split("\n\n") if frame]
    assert [frame["type"] for frame in frames] == [
        "message/append",
        "message/finalize",
        "message/append",
        "message/append",
        "message/finalize",
    ]
    assert frames[0]["data"] == {"index": 1, "append": "hi", "role": "user"}
    assert frames[-1]["data"]["text"] == "Hello"
    assert transport.calls[0][0]["role"] == "system"
