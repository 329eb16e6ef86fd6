"""Invocation grammar carried by fenced block info-strings.

A block whose info-string reads ``python;write_file("./main.py");shell()``
declares the language ``python`` followed by two invocation clauses. The
language is optional: when the first ``;``-separated fragment already holds a
``(`` every fragment is a clause. Clauses without parentheses are kept as bare
strings.

Known limitation: the info-string is split on ``;`` before any parameter is
parsed, so a quoted parameter containing a semicolon, as in
``write_file("a;b")``, breaks the clause boundaries. Such a tag fails with an
`InvocationSyntaxError` for the first half and is not executed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from fencecall.errors import InvocationSyntaxError
from fencecall.pipeline.fences import ParsedCodeBlock

ParameterValue = str | int | float | bool
Parameters = dict[str, ParameterValue | list[ParameterValue]]

POSITIONAL_KEY = "_"
ACTION_BLOCK_TAG = "fencecall:action"

NAME_RE = re.compile(r"[A-Za-z_][\w.-]*")
NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
ESCAPED_QUOTE_RE = re.compile(r"\\([\"'])")
ACTION_LINE_RE = re.compile(r"\s*(?P<name>[A-Za-z_][\w.-]*)\s*\((?P<params>.*)\)\s*", re.DOTALL)

# A quoted string ends at the first quote that is not escaped; `\\.` consumes
# escaped characters so an escaped backslash before the quote still closes it.
_QUOTED = r"""(?P<{q}>["'])(?P<{s}>(?:\\.|(?!(?P={q}))[^\\])*)(?P={q})"""
_PRIMITIVE = r"-?\d+(?:\.\d+)?\b|\w+"

NAMED_PARAM_RE = re.compile(
    "(?P<skip>" + _QUOTED.format(q="skip_q", s="skip_s") + ")"
    r"|(?P<key>\w+)\s*=\s*(?:" + _QUOTED.format(q="q", s="string") + f"|(?P<primitive>{_PRIMITIVE}))",
    re.DOTALL,
)
POSITIONAL_PARAM_RE = re.compile(
    _QUOTED.format(q="q", s="string") + f"|(?P<primitive>{_PRIMITIVE})",
    re.DOTALL,
)


@dataclass(frozen=True)
class ActionInvocation:
    """Named action reference with its parsed parameters."""

    name: str
    parameters: Parameters = field(default_factory=lambda: {POSITIONAL_KEY: []})

    @property
    def positional(self) -> list[ParameterValue]:
        values = self.parameters.get(POSITIONAL_KEY, [])
        return list(values) if isinstance(values, list) else []

    @property
    def named(self) -> dict[str, ParameterValue]:
        return {
            key: value
            for key, value in self.parameters.items()
            if key != POSITIONAL_KEY and not isinstance(value, list)
        }


@dataclass(frozen=True)
class InvocationClause:
    """One `;`-separated clause of an info-string."""

    raw: str
    invocation: ActionInvocation | None = None


@dataclass(frozen=True)
class ParsedInvocationTag:
    language: str
    additional: list[InvocationClause]

    @property
    def invocations(self) -> list[ActionInvocation]:
        return [clause.invocation for clause in self.additional if clause.invocation is not None]


@dataclass(frozen=True)
class ParsedTaggedCodeBlock:
    """A closed block together with its parsed invocation tag."""

    block: ParsedCodeBlock
    tag: ParsedInvocationTag


def _coerce(primitive: str) -> ParameterValue:
    if primitive in ("true", "false"):
        return primitive == "true"
    if NUMBER_RE.fullmatch(primitive):
        return float(primitive) if "." in primitive else int(primitive)
    return primitive


def _value_of(match: re.Match[str]) -> ParameterValue:
    string = match.group("string")
    if string is not None:
        return ESCAPED_QUOTE_RE.sub(r"\1", string)
    return _coerce(match.group("primitive"))


def parse_parameters(text: str) -> Parameters:
    """Parse the text between an invocation's parentheses.

    Named parameters are extracted first and cut out of the text, so the
    positional pass over the remainder cannot capture them again.
    """
    named: dict[str, ParameterValue] = {}
    remaining = text
    position = 0
    while (match := NAMED_PARAM_RE.search(remaining, position)) is not None:
        if match.group("skip") is not None:
            position = match.end()
            continue
        named[match.group("key")] = _value_of(match)
        remaining = remaining[: match.start()] + remaining[match.end() :]
        position = match.start()

    positional = [_value_of(match) for match in POSITIONAL_PARAM_RE.finditer(remaining)]
    return {**named, POSITIONAL_KEY: positional}


def parse_clause(fragment: str) -> InvocationClause:
    raw = fragment.strip()
    paren = raw.find("(")
    if paren == -1:
        return InvocationClause(raw=raw)

    name = raw[:paren].strip()
    if NAME_RE.fullmatch(name) is None:
        raise InvocationSyntaxError(raw, "missing or invalid action name")
    if not raw.endswith(")"):
        raise InvocationSyntaxError(raw, "missing closing parenthesis")
    return InvocationClause(
        raw=raw,
        invocation=ActionInvocation(name=name, parameters=parse_parameters(raw[paren + 1 : -1])),
    )


def parse_invocation_tag(tag: str) -> ParsedInvocationTag | None:
    """Parse an info-string; None when it is an ordinary fence tag.

    Every clause is parsed before failing, and the first error is raised.
    """
    if ";" not in tag and "(" not in tag:
        return None

    fragments = tag.split(";")
    if "(" in fragments[0]:
        language = ""
    else:
        language = fragments.pop(0).strip()

    clauses: list[InvocationClause] = []
    errors: list[InvocationSyntaxError] = []
    for fragment in fragments:
        try:
            clauses.append(parse_clause(fragment))
        except InvocationSyntaxError as exc:
            errors.append(exc)
    if errors:
        raise errors[0]
    return ParsedInvocationTag(language=language, additional=clauses)


def parse_action_block(block: ParsedCodeBlock) -> ParsedTaggedCodeBlock:
    """Parse a `fencecall:action` block holding one invocation per line."""
    clauses: list[InvocationClause] = []
    errors: list[InvocationSyntaxError] = []
    for line in block.content.splitlines():
        if not line.strip():
            continue
        match = ACTION_LINE_RE.fullmatch(line)
        if match is None:
            errors.append(InvocationSyntaxError(line.strip(), "expected name(parameters)"))
            continue
        invocation = ActionInvocation(name=match.group("name"), parameters=parse_parameters(match.group("params")))
        clauses.append(InvocationClause(raw=line.strip(), invocation=invocation))
    if errors:
        raise errors[0]
    return ParsedTaggedCodeBlock(block=block, tag=ParsedInvocationTag(language="", additional=clauses))


def decode_tagged_block(block: ParsedCodeBlock) -> ParsedTaggedCodeBlock | None:
    """Turn a scanned block into a tagged block, None when it carries no invocation grammar."""
    if block.tag == ACTION_BLOCK_TAG:
        return parse_action_block(block)
    tag = parse_invocation_tag(block.tag)
    if tag is None:
        return None
    return ParsedTaggedCodeBlock(block=block, tag=tag)
