import asyncio
from pathlib import Path

import pytest
from pydantic import BaseModel

from fencecall.errors import ActionParameterError
from fencecall.pipeline.invocations import ActionInvocation, parse_parameters
from fencecall.tools.registry import ActionCall, ActionDescriptor, ActionRegistry, bind_parameters
from support import collect


class ConcatInput(BaseModel):
    first: str
    second: str = ""
    delimiter: str = " "


def _invocation(name: str, params: str) -> ActionInvocation:
    return ActionInvocation(name=name, parameters=parse_parameters(params))


def _call(name: str, params: str = "", body: str = "") -> ActionCall:
    return ActionCall(invocation=_invocation(name, params), body=body, language="", workspace=Path("."))


def test_bind_positional_then_named() -> None:
    bound = bind_parameters(ConcatInput, _invocation("concat", '"Hello", "World", delimiter="_"'))
    assert bound == ConcatInput(first="Hello", second="World", delimiter="_")


def test_bind_rejects_too_many_positionals() -> None:
    with pytest.raises(ActionParameterError, match="at most 3 positional"):
        bind_parameters(ConcatInput, _invocation("concat", '"a", "b", "c", "d"'))


def test_bind_rejects_duplicate_values() -> None:
    with pytest.raises(ActionParameterError, match="multiple values"):
        bind_parameters(ConcatInput, _invocation("concat", '"a", first="b"'))


def test_bind_reports_validation_errors() -> None:
    with pytest.raises(ActionParameterError, match="first"):
        bind_parameters(ConcatInput, _invocation("concat", 'delimiter="-"'))


@pytest.mark.asyncio
async def test_run_accepts_plain_awaitable_and_streaming_handlers() -> None:
    registry = ActionRegistry()

    async def _later(params, call: ActionCall) -> str:
        await asyncio.sleep(0)
        return "later"

    async def _stream(params, call: ActionCall):
        yield "a"
        yield ""
        yield "b"

    registry.register(ActionDescriptor(name="plain", description="", handler=lambda params, call: call.body.upper()))
    registry.register(ActionDescriptor(name="later", description="", handler=_later))
    registry.register(ActionDescriptor(name="stream", description="", handler=_stream))

    assert await collect(registry.run(_call("plain", body="hi"))) == ["HI"]
    assert await collect(registry.run(_call("later"))) == ["later"]
    assert await collect(registry.run(_call("stream"))) == ["a", "b"]


@pytest.mark.asyncio
async def test_run_binds_parameters_for_the_handler() -> None:
    registry = ActionRegistry()
    registry.register(
        ActionDescriptor(
            name="concat",
            description="join values",
            handler=lambda params, call: params.delimiter.join([params.first, params.second]),
            params_model=ConcatInput,
        )
    )
    assert await collect(registry.run(_call("concat", '"Hello", "World", delimiter="_"'))) == ["Hello_World"]
    with pytest.raises(ActionParameterError):
        await collect(registry.run(_call("concat", "")))


@pytest.mark.asyncio
async def test_run_unknown_action_raises_key_error() -> None:
    with pytest.raises(KeyError):
        await collect(ActionRegistry().run(_call("missing")))


@pytest.mark.asyncio
async def test_registry_logs_start_and_end_once(monkeypatch: pytest.MonkeyPatch) -> None:
    logs: list[str] = []

    def _capture(message: str, *args: object) -> None:
        logs.append(message)

    monkeypatch.setattr("fencecall.tools.registry.logger.info", _capture)
    registry = ActionRegistry()
    registry.register(ActionDescriptor(name="echo", description="", handler=lambda params, call: "ok"))

    assert await collect(registry.run(_call("echo", '"x"'))) == ["ok"]
    assert logs.count("action.call.start name={} language={} body_chars={} {{ {} }}") == 1
    assert logs.count("action.call.end name={} duration={:.3f}ms") == 1


def test_names_are_case_sensitive_and_rows_sorted() -> None:
    registry = ActionRegistry()
    registry.register(ActionDescriptor(name="b", description="second", handler=lambda params, call: ""))
    registry.register(ActionDescriptor(name="a", description="first", handler=lambda params, call: ""))
    assert registry.has("a")
    assert not registry.has("A")
    assert registry.compact_rows() == ["a: first", "b: second"]
