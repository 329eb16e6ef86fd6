"""Built-in actions and their registry."""

from __future__ import annotations

from fencecall.tools.fs import create_read_action, create_write_action
from fencecall.tools.registry import ActionCall, ActionDescriptor, ActionRegistry
from fencecall.tools.shell import create_shell_action


def build_default_registry(*, shell: str = "bash") -> ActionRegistry:
    """Registry with the `shell`, `write_file` and `read_file` actions."""
    registry = ActionRegistry()
    registry.register(create_shell_action(shell))
    registry.register(create_write_action())
    registry.register(create_read_action())
    return registry


__all__ = [
    "ActionCall",
    "ActionDescriptor",
    "ActionRegistry",
    "build_default_registry",
    "create_read_action",
    "create_shell_action",
    "create_write_action",
]
