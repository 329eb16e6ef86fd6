"""Filesystem actions."""

from __future__ import annotations

from fencecall.errors import ActionFailedError
from fencecall.tools.registry import ActionCall, ActionDescriptor
from fencecall.tools.shared import PathInput, resolve_path


def create_write_action() -> ActionDescriptor:
    """Create the action writing block content to a file."""

    def _handler(params: PathInput, call: ActionCall) -> str:
        file_path = resolve_path(call.workspace, params.path)
        data = call.body if call.body.endswith("\n") or not call.body else f"{call.body}\n"
        encoded = data.encode("utf-8")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(encoded)
        except OSError as exc:
            raise ActionFailedError(f"cannot write {params.path}: {exc.strerror or exc!s}") from exc
        return f"Wrote {len(encoded)} bytes to {params.path}\n"

    return ActionDescriptor(
        name="write_file",
        description="Write the block content to the given path",
        handler=_handler,
        params_model=PathInput,
    )


def create_read_action() -> ActionDescriptor:
    """Create the action returning a file's content."""

    def _handler(params: PathInput, call: ActionCall) -> str:
        file_path = resolve_path(call.workspace, params.path)
        try:
            return file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ActionFailedError(f"cannot read {params.path}: {exc.strerror or exc!s}") from exc

    return ActionDescriptor(
        name="read_file",
        description="Return the content of the given path",
        handler=_handler,
        params_model=PathInput,
    )
