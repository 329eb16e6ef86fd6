"""Session bootstrap helpers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

from fencecall.config import Settings
from fencecall.core.driver import ConversationDriver
from fencecall.core.events import ChatEvent, ChatRole
from fencecall.core.executor import ActionExecutor
from fencecall.core.history import ChatHistory, ChatMessage
from fencecall.core.transport import CompletionTransport, HttpCompletionTransport
from fencecall.prompt import initial_messages
from fencecall.tools import ActionRegistry, build_default_registry
from fencecall.transcript import TranscriptLogger


@dataclass
class Session:
    """One conversation: history, actions and the driver bound to them."""

    settings: Settings
    history: ChatHistory
    registry: ActionRegistry
    transport: CompletionTransport
    driver: ConversationDriver

    def send(self, text: str) -> AsyncIterator[ChatEvent]:
        return self.driver.run([ChatMessage(content=text, role=ChatRole.USER)])

    async def aclose(self) -> None:
        aclose = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()


def build_session(
    settings: Settings,
    *,
    transport: CompletionTransport | None = None,
    registry: ActionRegistry | None = None,
) -> Session:
    """Build a session for one workspace."""

    registry = registry or build_default_registry(shell=settings.shell)
    history = ChatHistory.with_initial_messages(initial_messages(registry, settings.system_prompt))
    transport = transport or HttpCompletionTransport.from_settings(settings)
    executor = ActionExecutor(history, registry, workspace=settings.workspace)
    transcript = TranscriptLogger(settings.transcript_dir) if settings.transcript_dir else None
    driver = ConversationDriver(
        history=history,
        transport=transport,
        executor=executor,
        scan_mode=settings.scan_mode,
        response_format=settings.response_format,
        recursion_delay_seconds=settings.recursion_delay_seconds,
        max_rounds=settings.max_rounds,
        transcript=transcript,
    )
    return Session(settings=settings, history=history, registry=registry, transport=transport, driver=driver)
