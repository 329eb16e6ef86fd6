"""CLI renderer for fencecall."""

from __future__ import annotations

import threading

from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console

from fencecall.core.events import (
    ChatEvent,
    ChatRole,
    ErrorEvent,
    MessageActionEvent,
    MessageAppendEvent,
    MessageFinalizeEvent,
)

_ROLE_STYLES: dict[ChatRole, str] = {
    ChatRole.ASSISTANT: "bold yellow",
    ChatRole.SYSTEM: "dim",
    ChatRole.USER: "bold cyan",
    ChatRole.ERROR: "bold red",
}


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console: Console = console or Console()
        self._prompt_session: PromptSession[str] | None = None
        self._print_lock = threading.Lock()
        self._open_index: int | None = None

    def welcome(self, message: str = "[bold blue]fencecall[/bold blue] - fenced actions for chat models") -> None:
        self._print(message)

    def usage_info(self, workspace: str | None = None, model: str = "", actions: list[str] | None = None) -> None:
        """Render usage information."""
        if workspace:
            self._print(f"[bold]Working directory:[/bold] [cyan]{workspace}[/cyan]")
        if model:
            self._print(f"[bold]Model:[/bold] [magenta]{model}[/magenta]")
        if actions:
            self._print(f"[bold]Available actions:[/bold] [green]{', '.join(actions)}[/green]")

    def error(self, message: str) -> None:
        self._close_open_message()
        self._print(f"[bold red]Error:[/bold red] {message}")

    def event(self, event: ChatEvent) -> None:
        """Render one chat event as it arrives."""
        if isinstance(event, MessageAppendEvent):
            if event.role == ChatRole.USER:
                return
            if self._open_index != event.index:
                self._close_open_message()
                self._print(f"[{_ROLE_STYLES[event.role]}]{event.role}:[/]")
                self._open_index = event.index
            if event.append:
                with self._print_lock:
                    self.console.print(event.append, end="", markup=False, highlight=False)
        elif isinstance(event, MessageActionEvent):
            self._close_open_message()
            self._print(f"[dim]-> {event.tool}[/dim]")
        elif isinstance(event, MessageFinalizeEvent):
            if self._open_index == event.index:
                self._close_open_message()
        elif isinstance(event, ErrorEvent):
            self.error(event.message)

    async def get_user_input(self) -> str:
        """Prompt user for input."""
        if self._prompt_session is None:
            self._prompt_session = PromptSession()
        with patch_stdout(raw=True):
            return await self._prompt_session.prompt_async("> ")

    def _close_open_message(self) -> None:
        if self._open_index is not None:
            self._open_index = None
            with self._print_lock:
                self.console.print()

    def _print(self, message: str) -> None:
        with self._print_lock:
            self.console.print(message)


def create_cli_renderer() -> Renderer:
    """Create and return a Renderer instance."""
    return Renderer()
