"""Typer application for fencecall."""

import asyncio
import json
import sys
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from fencecall.app import Session, build_session
from fencecall.cli.render import Renderer, create_cli_renderer
from fencecall.config import Settings, get_settings
from fencecall.core.events import encode_sse
from fencecall.errors import FencecallError, InvocationSyntaxError, ScanError
from fencecall.logging_utils import configure_logging
from fencecall.pipeline.fences import CodeFenceScanner, scan_code_blocks
from fencecall.pipeline.invocations import decode_tagged_block

QUIT_COMMANDS = frozenset({"quit", "exit", "q"})

app = typer.Typer(
    name="fencecall",
    help="Let chat models run actions through fenced code blocks.",
    add_completion=False,
    rich_markup_mode="rich",
)


class ScanModeChoice(str, Enum):
    flush = "flush"
    incremental = "incremental"


def _load_settings(workspace: Path | None, model: str | None, scan_mode: ScanModeChoice | None) -> Settings:
    settings = get_settings(workspace)
    updates: dict[str, object] = {}
    if model:
        updates["model"] = model
    if scan_mode:
        updates["scan_mode"] = scan_mode.value
    if updates:
        settings = settings.model_copy(update=updates)
    return settings


def _build(settings: Settings) -> Session:
    try:
        return build_session(settings)
    except FencecallError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


async def _render_turn(session: Session, renderer: Renderer, text: str) -> None:
    try:
        async for event in session.send(text):
            renderer.event(event)
    except FencecallError as exc:
        logger.warning("cli.turn.error error={}", exc)
        renderer.error(str(exc))


async def _chat(session: Session, renderer: Renderer) -> None:
    try:
        while True:
            try:
                text = (await renderer.get_user_input()).strip()
            except (EOFError, KeyboardInterrupt):
                return
            if not text:
                continue
            if text.lower() in QUIT_COMMANDS:
                return
            await _render_turn(session, renderer, text)
    finally:
        await session.aclose()


@app.command()
def chat(
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Working directory of actions"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
    scan_mode: Optional[ScanModeChoice] = typer.Option(None, "--scan-mode", help="flush or incremental"),
) -> None:
    """Interactive chat session."""
    configure_logging(profile="chat")
    settings = _load_settings(workspace, model, scan_mode)
    session = _build(settings)
    renderer = create_cli_renderer()
    renderer.welcome()
    renderer.usage_info(str(settings.workspace), settings.model, [d.name for d in session.registry.descriptors()])
    asyncio.run(_chat(session, renderer))


async def _run_once(session: Session, prompt: str, sse: bool) -> None:
    try:
        if sse:
            async for line in encode_sse(session.send(prompt)):
                sys.stdout.buffer.write(line)
                sys.stdout.buffer.flush()
        else:
            await _render_turn(session, create_cli_renderer(), prompt)
    finally:
        await session.aclose()


@app.command()
def run(
    prompt: str = typer.Argument(..., help="User message to submit"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Working directory of actions"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
    scan_mode: Optional[ScanModeChoice] = typer.Option(None, "--scan-mode", help="flush or incremental"),
    sse: bool = typer.Option(False, "--sse", help="Write chat events as server-sent events"),
) -> None:
    """Submit one message and follow it until no more actions run."""
    configure_logging(profile="default")
    session = _build(_load_settings(workspace, model, scan_mode))
    asyncio.run(_run_once(session, prompt, sse))


@app.command()
def scan(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown file to scan"),
    incremental: bool = typer.Option(False, "--incremental", help="Tolerate an unterminated trailing fence"),
) -> None:
    """Print the invocation blocks found in a markdown file as JSON lines."""
    text = path.read_text(encoding="utf-8")
    try:
        blocks = CodeFenceScanner().scan(text, final=True) if incremental else scan_code_blocks(text)
    except ScanError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc

    failed = False
    for block in blocks:
        try:
            tagged = decode_tagged_block(block)
        except InvocationSyntaxError as exc:
            typer.secho(str(exc), fg=typer.colors.YELLOW, err=True)
            failed = True
            continue
        if tagged is not None:
            typer.echo(json.dumps(asdict(tagged), ensure_ascii=False))
    if failed:
        raise typer.Exit(1)
