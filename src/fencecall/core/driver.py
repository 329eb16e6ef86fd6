"""Conversation driver: model turns, action execution and resubmission."""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections.abc import AsyncIterator, Callable, Generator, Iterable
from contextvars import ContextVar
from dataclasses import dataclass

from loguru import logger

from fencecall.config import ResponseFormat, ScanMode
from fencecall.core.events import ChatEvent, ChatRole, ErrorEvent
from fencecall.core.executor import ActionExecutor
from fencecall.core.history import ChatHistory, ChatMessage
from fencecall.core.transport import CompletionTransport
from fencecall.errors import InvocationSyntaxError, ScanError
from fencecall.pipeline.accumulator import ContentAccumulator
from fencecall.pipeline.deltas import DeltaMessage, decode_deltas
from fencecall.pipeline.fanout import tee
from fencecall.pipeline.fences import CodeFenceScanner, ParsedCodeBlock, scan_code_blocks
from fencecall.pipeline.invocations import decode_tagged_block
from fencecall.pipeline.sse import decode_sse_frames
from fencecall.transcript import TranscriptEntry, TranscriptLogger

Emit = Callable[[ChatEvent], None]
DeltaListener = Callable[[DeltaMessage], None]

_session_context: ContextVar[str] = ContextVar("session")


def current_session() -> str:
    """Get the id of the driver session running in this context."""
    return _session_context.get("-")


@contextlib.contextmanager
def _session_scope(session: str) -> Generator[str, None, None]:
    reset_token = _session_context.set(session)
    try:
        yield session
    finally:
        _session_context.reset(reset_token)


@dataclass(frozen=True)
class DriverRound:
    """Bookkeeping of one submit, scan and execute cycle."""

    number: int
    inputs: tuple[int, ...]
    assistant_index: int
    added: tuple[int, ...]


class ConversationDriver:
    """Submits the conversation, executes requested actions and resubmits.

    A round scans its input messages for invocations, streams one assistant
    reply and executes the invocations found in it. Messages added after the
    assistant reply become the inputs of the next round; a round that adds
    nothing ends the submission.
    """

    def __init__(
        self,
        *,
        history: ChatHistory,
        transport: CompletionTransport,
        executor: ActionExecutor,
        scan_mode: ScanMode = "flush",
        response_format: ResponseFormat = "text",
        recursion_delay_seconds: float = 1.0,
        max_rounds: int | None = None,
        input_scan_roles: Iterable[ChatRole] = (ChatRole.USER,),
        transcript: TranscriptLogger | None = None,
    ) -> None:
        self._history = history
        self._transport = transport
        self._executor = executor
        self._scan_mode = scan_mode
        self._response_format = response_format
        self._recursion_delay_seconds = recursion_delay_seconds
        self._max_rounds = max_rounds
        self._input_scan_roles = frozenset(input_scan_roles)
        self._transcript = transcript
        self._delta_listeners: list[DeltaListener] = []
        self._session = uuid.uuid4().hex[:8]
        self.rounds: list[DriverRound] = []

    @property
    def history(self) -> ChatHistory:
        return self._history

    def add_delta_listener(self, listener: DeltaListener) -> None:
        """Observe every raw delta of every model reply."""
        self._delta_listeners.append(listener)

    async def run(self, messages: Iterable[ChatMessage]) -> AsyncIterator[ChatEvent]:
        """Submit `messages` and stream chat events until no round adds anything.

        Fatal transport errors are raised after the events produced so far.
        Closing the iterator cancels the in-flight model request and action.
        """
        queue: asyncio.Queue[ChatEvent | None] = asyncio.Queue()
        self._history.add_listener(queue.put_nowait)
        worker = asyncio.create_task(self._submit(list(messages), queue.put_nowait))
        worker.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while (event := await queue.get()) is not None:
                yield event
            worker.result()
        finally:
            self._history.remove_listener(queue.put_nowait)
            if not worker.done():
                worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)

    async def _submit(self, messages: list[ChatMessage], emit: Emit) -> None:
        with _session_scope(self._session):
            inputs = [self._history.add_message(message) for message in messages]
            number = 1
            while True:
                if self._max_rounds is not None and number > self._max_rounds:
                    logger.warning("driver.max_rounds max_rounds={}", self._max_rounds)
                    emit(ErrorEvent(message=f"stopped after {self._max_rounds} rounds"))
                    return
                added = await self._round(number, inputs, emit)
                if not added:
                    return
                await asyncio.sleep(self._recursion_delay_seconds)
                inputs = added
                number += 1

    async def _round(self, number: int, inputs: list[int], emit: Emit) -> list[int]:
        logger.info("driver.round.start round={} inputs={}", number, len(inputs))
        for index in inputs:
            message = self._history.get(index)
            if message.role in self._input_scan_roles:
                await self._scan_input(index, emit)
            if not message.finalized:
                self._history.finalize_message(index)

        assistant_index = await self._model_turn(emit)
        added = list(range(assistant_index + 1, len(self._history)))
        self.rounds.append(
            DriverRound(number=number, inputs=tuple(inputs), assistant_index=assistant_index, added=tuple(added))
        )
        logger.info("driver.round.finish round={} added={}", number, len(added))
        return added

    async def _scan_input(self, index: int, emit: Emit) -> None:
        try:
            blocks = scan_code_blocks(self._history.get(index).content)
        except ScanError as exc:
            logger.warning("scan.input.error index={} error={}", index, exc)
            emit(ErrorEvent(message=str(exc)))
            return
        for block in blocks:
            await self._execute_block(block, index, emit)

    async def _execute_block(self, block: ParsedCodeBlock, source_index: int, emit: Emit) -> None:
        try:
            tagged = decode_tagged_block(block)
        except InvocationSyntaxError as exc:
            logger.warning("scan.syntax_error tag={!r} error={}", block.tag, exc)
            emit(ErrorEvent(message=str(exc)))
            return
        if tagged is None:
            return
        for error in await self._executor.execute_block(tagged, source_index=source_index):
            emit(error)

    def _accumulator(self, index: int) -> ContentAccumulator:
        if self._response_format == "json_agent":
            return ContentAccumulator.for_json_agent(self._history, index)
        return ContentAccumulator(self._history, index)

    async def _model_turn(self, emit: Emit) -> int:
        payload = self._history.to_api()
        entry = self._transcript.start(self._transport.model, payload) if self._transcript else None
        try:
            async with self._transport.stream(payload) as body:
                assistant_index = self._history.add_message(ChatMessage(content="", role=ChatRole.ASSISTANT))
                try:
                    await self._consume(body, assistant_index, entry, emit)
                finally:
                    self._history.finalize_message(assistant_index)
        except Exception as exc:
            if entry is not None:
                entry.fail(str(exc))
            raise
        return assistant_index

    async def _consume(
        self,
        body: AsyncIterator[bytes],
        assistant_index: int,
        entry: TranscriptEntry | None,
        emit: Emit,
    ) -> None:
        accumulator = self._accumulator(assistant_index)
        scanner = CodeFenceScanner()
        raw, content = tee(decode_deltas(decode_sse_frames(body)))
        observer = asyncio.create_task(self._observe(raw, entry))
        try:
            async for _fragment in accumulator.accumulate(content):
                if self._scan_mode == "incremental":
                    for block in scanner.scan(accumulator.text):
                        await self._execute_block(block, assistant_index, emit)
            await observer
        finally:
            if not observer.done():
                observer.cancel()
            await asyncio.gather(observer, return_exceptions=True)

        text = accumulator.flush()
        if entry is not None:
            entry.finish(text or "")
        if text is None:
            return
        for block in scanner.scan(text, final=True):
            await self._execute_block(block, assistant_index, emit)

    async def _observe(self, deltas: AsyncIterator[DeltaMessage], entry: TranscriptEntry | None) -> None:
        async for delta in deltas:
            if entry is not None:
                entry.record_delta(delta)
            for listener in self._delta_listeners:
                listener(delta)
