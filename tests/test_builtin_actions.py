import shutil
from pathlib import Path

import pytest

from fencecall.errors import ActionFailedError, ActionParameterError
from fencecall.pipeline.invocations import ActionInvocation, parse_parameters
from fencecall.tools import build_default_registry
from fencecall.tools.registry import ActionCall

pytestmark = pytest.mark.skipif(shutil.which("bash") is None, reason="bash is required")


def _call(name: str, params: str, body: str, workspace: Path) -> ActionCall:
    return ActionCall(
        invocation=ActionInvocation(name=name, parameters=parse_parameters(params)),
        body=body,
        language="sh",
        workspace=workspace,
    )


async def _run(call: ActionCall) -> str:
    registry = build_default_registry(shell="bash")
    return "".join([fragment async for fragment in registry.run(call)])


@pytest.mark.asyncio
async def test_shell_streams_stdout_and_exit_code(tmp_path: Path) -> None:
    output = await _run(_call("shell", "", "echo hello", tmp_path))
    assert output == "---STDOUT---\nhello\n\n---EXIT---\nExit code 0\n"


@pytest.mark.asyncio
async def test_shell_marks_stderr(tmp_path: Path) -> None:
    output = await _run(_call("shell", "", "echo oops 1>&2", tmp_path))
    assert output == "---STDERR---\noops\n\n---EXIT---\nExit code 0\n"


@pytest.mark.asyncio
async def test_shell_inserts_divider_when_the_source_changes(tmp_path: Path) -> None:
    script = "echo one; sleep 0.3; echo two 1>&2; sleep 0.3; echo three"
    output = await _run(_call("shell", "", script, tmp_path))
    assert output == (
        "---STDOUT---\none\n"
        "\n---STDERR---\ntwo\n"
        "\n---STDOUT---\nthree\n"
        "\n---EXIT---\nExit code 0\n"
    )


@pytest.mark.asyncio
async def test_shell_strips_ansi_sequences(tmp_path: Path) -> None:
    output = await _run(_call("shell", "", "printf '\\033[31mred\\033[0m\\n'", tmp_path))
    assert output.startswith("---STDOUT---\nred\n")


@pytest.mark.asyncio
async def test_shell_runs_in_workspace_or_cwd(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    assert tmp_path.name in await _run(_call("shell", "", "pwd", tmp_path))
    assert "/sub\n" in await _run(_call("shell", 'cwd="sub"', "pwd", tmp_path))


@pytest.mark.asyncio
async def test_shell_failure_is_raised_after_the_exit_marker(tmp_path: Path) -> None:
    registry = build_default_registry()
    fragments: list[str] = []
    with pytest.raises(ActionFailedError, match="status 3"):
        async for fragment in registry.run(_call("shell", "", "echo bye; exit 3", tmp_path)):
            fragments.append(fragment)
    assert "".join(fragments).endswith("\n---EXIT---\nExit code 3\n")


@pytest.mark.asyncio
async def test_shell_requires_a_script(tmp_path: Path) -> None:
    with pytest.raises(ActionParameterError):
        await _run(_call("shell", "", "  \n", tmp_path))


@pytest.mark.asyncio
async def test_write_then_read_file(tmp_path: Path) -> None:
    written = await _run(_call("write_file", '"pkg/main.py"', 'print("hi")', tmp_path))
    assert written == "Wrote 12 bytes to pkg/main.py\n"
    assert (tmp_path / "pkg" / "main.py").read_text() == 'print("hi")\n'
    assert await _run(_call("read_file", 'path="pkg/main.py"', "", tmp_path)) == 'print("hi")\n'


@pytest.mark.asyncio
async def test_read_missing_file_fails(tmp_path: Path) -> None:
    with pytest.raises(ActionFailedError, match="cannot read missing.txt"):
        await _run(_call("read_file", '"missing.txt"', "", tmp_path))


@pytest.mark.asyncio
async def test_file_actions_need_a_path(tmp_path: Path) -> None:
    with pytest.raises(ActionParameterError):
        await _run(_call("write_file", "", "data", tmp_path))
