from io import StringIO

from rich.console import Console

from fencecall.cli.render import Renderer
from fencecall.core.events import ChatRole, ErrorEvent, MessageActionEvent, MessageAppendEvent, MessageFinalizeEvent


def _renderer() -> tuple[Renderer, StringIO]:
    buffer = StringIO()
    return Renderer(Console(file=buffer, width=100, color_system=None)), buffer


def test_streams_appends_under_one_header_per_message() -> None:
    renderer, buffer = _renderer()

    renderer.event(MessageAppendEvent(index=0, append="question", role=ChatRole.USER))
    renderer.event(MessageAppendEvent(index=1, append="", role=ChatRole.ASSISTANT))
    renderer.event(MessageAppendEvent(index=1, append="Hel", role=ChatRole.ASSISTANT))
    renderer.event(MessageAppendEvent(index=1, append="lo", role=ChatRole.ASSISTANT))
    renderer.event(MessageActionEvent(index=1, tool="shell", input="ls"))
    renderer.event(MessageAppendEvent(index=2, append="out", role=ChatRole.SYSTEM))
    renderer.event(MessageFinalizeEvent(index=2, text="out", actions=[], role=ChatRole.SYSTEM))

    output = buffer.getvalue()
    assert "question" not in output
    assert output.count("assistant:") == 1
    assert "Hello\n" in output
    assert "-> shell" in output
    assert "system:\nout\n" in output


def test_errors_are_printed() -> None:
    renderer, buffer = _renderer()
    renderer.event(ErrorEvent(message="action shell failed: boom"))
    assert "Error: action shell failed: boom" in buffer.getvalue()
