"""Execution of parsed invocations into chat history entries."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from pathlib import Path

from loguru import logger

from fencecall.core.events import ChatRole, ErrorEvent
from fencecall.core.history import ChatHistory, ChatMessage
from fencecall.pipeline.invocations import ActionInvocation, ParsedTaggedCodeBlock
from fencecall.tools.registry import ActionCall, ActionRegistry


class ActionExecutor:
    """Runs recognized invocations one at a time, streaming output into history.

    Each recognized invocation gets its own placeholder message that receives
    the action's output as it arrives. Failures never escape: they are logged
    and returned as error events, and the placeholder is finalized with the
    partial output.
    """

    def __init__(
        self,
        history: ChatHistory,
        registry: ActionRegistry,
        *,
        workspace: Path,
        role: ChatRole = ChatRole.SYSTEM,
    ) -> None:
        self._history = history
        self._registry = registry
        self._workspace = workspace
        self._role = role
        self._lock = asyncio.Lock()

    async def execute_block(self, tagged: ParsedTaggedCodeBlock, *, source_index: int) -> list[ErrorEvent]:
        errors: list[ErrorEvent] = []
        for invocation in tagged.tag.invocations:
            if not self._registry.has(invocation.name):
                logger.debug("action.unknown name={}", invocation.name)
                continue
            error = await self._run(invocation, tagged, source_index=source_index)
            if error is not None:
                errors.append(error)
        return errors

    async def execute(
        self,
        blocks: AsyncIterable[ParsedTaggedCodeBlock] | Iterable[ParsedTaggedCodeBlock],
        *,
        source_index: int,
    ) -> AsyncIterator[ErrorEvent]:
        """Execute blocks in the order given, yielding error events as they occur."""
        if isinstance(blocks, AsyncIterable):
            async for tagged in blocks:
                for error in await self.execute_block(tagged, source_index=source_index):
                    yield error
        else:
            for tagged in blocks:
                for error in await self.execute_block(tagged, source_index=source_index):
                    yield error

    async def _run(self, invocation: ActionInvocation, tagged: ParsedTaggedCodeBlock, *, source_index: int) -> ErrorEvent | None:
        async with self._lock:
            call = ActionCall(
                invocation=invocation,
                body=tagged.block.content,
                language=tagged.tag.language,
                workspace=self._workspace,
            )
            action_index = self._history.add_action(source_index, tool=invocation.name, input=tagged.block.content)
            message_index = self._history.add_message(ChatMessage(content="", role=self._role))
            error: ErrorEvent | None = None
            try:
                async for fragment in self._registry.run(call):
                    self._history.append_to_message(message_index, fragment)
            except Exception as exc:
                logger.warning("action.failed name={} error={}", invocation.name, exc)
                error = ErrorEvent(message=f"action {invocation.name} failed: {exc!s}")
            finally:
                output = self._history.get(message_index).content
                result = output if error is None else f"{output}{error.message}"
                self._history.set_action_result(source_index, action_index, result)
                self._history.finalize_message(message_index)
            return error
