"""Registry of invocable actions."""

from __future__ import annotations

import builtins
import inspect
import json
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from fencecall.errors import ActionParameterError
from fencecall.pipeline.invocations import ActionInvocation

ActionOutput = str | AsyncIterator[str] | Awaitable[str]
ActionHandler = Callable[[Any, "ActionCall"], ActionOutput]


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    if len(text) <= width:
        return text
    available = width - len(placeholder)
    if available <= 0:
        return placeholder
    return text[:available] + placeholder


@dataclass(frozen=True)
class ActionCall:
    """One invocation bound to the fenced block that carried it."""

    invocation: ActionInvocation
    body: str
    language: str
    workspace: Path

    @property
    def name(self) -> str:
        return self.invocation.name


@dataclass(frozen=True)
class ActionDescriptor:
    """Action metadata and runtime handle."""

    name: str
    description: str
    handler: ActionHandler
    params_model: type[BaseModel] | None = None
    source: str = "builtin"


def bind_parameters(model: type[BaseModel], invocation: ActionInvocation) -> BaseModel:
    """Validate invocation parameters against `model`.

    Positional values fill the model's fields in declaration order, named
    values are matched by field name.
    """
    fields = list(model.model_fields)
    positional = invocation.positional
    if len(positional) > len(fields):
        raise ActionParameterError(
            f"{invocation.name}() takes at most {len(fields)} positional parameters, got {len(positional)}"
        )
    data: dict[str, Any] = dict(zip(fields, positional, strict=False))
    for key, value in invocation.named.items():
        if key in data:
            raise ActionParameterError(f"{invocation.name}() got multiple values for parameter {key!r}")
        data[key] = value
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        details = "; ".join(f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors())
        raise ActionParameterError(f"invalid parameters for {invocation.name}(): {details}") from exc


class ActionRegistry:
    """Maps invocation names to actions; lookups are exact and case-sensitive."""

    def __init__(self) -> None:
        self._actions: dict[str, ActionDescriptor] = {}

    def register(self, descriptor: ActionDescriptor) -> None:
        self._actions[descriptor.name] = descriptor

    def has(self, name: str) -> bool:
        return name in self._actions

    def get(self, name: str) -> ActionDescriptor | None:
        return self._actions.get(name)

    def descriptors(self) -> builtins.list[ActionDescriptor]:
        return sorted(self._actions.values(), key=lambda item: item.name)

    def compact_rows(self) -> builtins.list[str]:
        return [f"{descriptor.name}: {descriptor.description}" for descriptor in self.descriptors()]

    def _log_call(self, call: ActionCall) -> None:
        params: builtins.list[str] = []
        for key, value in call.invocation.parameters.items():
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            params.append(f"{key}={_shorten_text(rendered)}")
        logger.info(
            "action.call.start name={} language={} body_chars={} {{ {} }}",
            call.name,
            call.language or "-",
            len(call.body),
            ", ".join(params),
        )

    async def run(self, call: ActionCall) -> AsyncIterator[str]:
        """Run the action named by `call`, yielding its output incrementally."""
        descriptor = self.get(call.name)
        if descriptor is None:
            raise KeyError(call.name)

        params = bind_parameters(descriptor.params_model, call.invocation) if descriptor.params_model else None
        self._log_call(call)
        start = time.monotonic()
        try:
            output = descriptor.handler(params, call)
            if inspect.isawaitable(output):
                output = await output
            if isinstance(output, str):
                if output:
                    yield output
            else:
                async for fragment in output:
                    if fragment:
                        yield fragment
        except Exception:
            logger.exception("action.call.error name={}", call.name)
            raise
        finally:
            duration = time.monotonic() - start
            logger.info("action.call.end name={} duration={:.3f}ms", call.name, duration * 1000)
