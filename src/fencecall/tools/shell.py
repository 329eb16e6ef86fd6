"""Shell action: run a block as a script and stream its output."""

from __future__ import annotations

import asyncio
import codecs
import shutil
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Literal

from fencecall.errors import ActionFailedError, ActionParameterError
from fencecall.pipeline.ansi import strip_ansi
from fencecall.tools.registry import ActionCall, ActionDescriptor
from fencecall.tools.shared import ShellInput, resolve_path

Marking = Literal["STDOUT", "STDERR"]
READ_SIZE = 4096
QUEUE_SIZE = 16


@dataclass(frozen=True)
class _StreamEnd:
    marking: Marking
    error: Exception | None = None


async def _pump(reader: asyncio.StreamReader, marking: Marking, queue: asyncio.Queue) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    error: Exception | None = None
    try:
        while chunk := await reader.read(READ_SIZE):
            text = strip_ansi(decoder.decode(chunk))
            if text:
                await queue.put((marking, text))
        tail = decoder.decode(b"", final=True)
        if tail:
            await queue.put((marking, strip_ansi(tail)))
    except Exception as exc:
        error = exc
    await queue.put(_StreamEnd(marking, error))


async def stream_process_output(process: asyncio.subprocess.Process) -> AsyncIterator[str]:
    """Merge stdout and stderr of `process` into one marked text stream.

    A `---STDOUT---`/`---STDERR---` divider precedes output whenever the
    source changes; the exit status follows as `---EXIT---` once both pipes
    are drained. The process is killed if the consumer stops early.
    """
    assert process.stdout is not None and process.stderr is not None
    queue: asyncio.Queue[tuple[Marking, str] | _StreamEnd] = asyncio.Queue(maxsize=QUEUE_SIZE)
    pumps = [
        asyncio.create_task(_pump(process.stdout, "STDOUT", queue)),
        asyncio.create_task(_pump(process.stderr, "STDERR", queue)),
    ]
    previous: Marking | None = None
    open_streams = len(pumps)
    try:
        while open_streams:
            item = await queue.get()
            if isinstance(item, _StreamEnd):
                open_streams -= 1
                if item.error is not None:
                    raise item.error
                continue
            marking, text = item
            if marking != previous:
                yield f"{'' if previous is None else chr(10)}---{marking}---\n"
                previous = marking
            yield text
        code = await process.wait()
        yield f"\n---EXIT---\nExit code {code}\n"
    finally:
        for task in pumps:
            task.cancel()
        await asyncio.gather(*pumps, return_exceptions=True)
        if process.returncode is None:
            process.kill()
            await process.wait()


def create_shell_action(shell: str = "bash") -> ActionDescriptor:
    """Create the shell action running block content as a script."""

    async def _handler(params: ShellInput, call: ActionCall) -> AsyncIterator[str]:
        if not call.body.strip():
            raise ActionParameterError("shell() needs a non-empty code block")
        working_dir = resolve_path(call.workspace, params.cwd) if params.cwd else call.workspace
        executable = shutil.which(shell) or shell
        process = await asyncio.create_subprocess_exec(
            executable,
            "-c",
            call.body,
            cwd=str(working_dir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        async for fragment in stream_process_output(process):
            yield fragment
        if process.returncode:
            raise ActionFailedError(f"shell command exited with status {process.returncode}")

    return ActionDescriptor(
        name="shell",
        description="Run the block content as a shell script in the workspace",
        handler=_handler,
        params_model=ShellInput,
    )
