"""Statement variants produced by the script scanner."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from rpyflow.core.types import VariableKind


@dataclass(slots=True)
class Statement:
    """Base class for scanned statements."""

    line: int
    indent: int
    text: str

    def children(self) -> List["Statement"]:
        """Return nested statements scanned as part of this one."""
        return []


@dataclass(slots=True)
class LabelStatement(Statement):
    name: str = ""
    parameters: str = ""
    column: int = 1
    body: List[Statement] = field(default_factory=list)

    def children(self) -> List[Statement]:
        return self.body


@dataclass(slots=True)
class JumpStatement(Statement):
    target: str = ""
    is_call: bool = False
    is_dynamic: bool = False
    expression: str | None = None
    column_start: int = 0
    column_end: int = 0

    @property
    def verb(self) -> str:
        return "call" if self.is_call else "jump"


@dataclass(slots=True)
class ReturnStatement(Statement):
    value: str = ""


@dataclass(slots=True)
class PassStatement(Statement):
    pass


@dataclass(slots=True)
class ConditionalStatement(Statement):
    keyword: str = "if"
    condition: str | None = None
    body: List[Statement] = field(default_factory=list)

    def children(self) -> List[Statement]:
        return self.body


@dataclass(slots=True)
class MenuChoice(Statement):
    """A quoted menu choice; its body is scanned like any other block."""

    caption: str = ""
    condition: str | None = None
    body: List[Statement] = field(default_factory=list)

    def children(self) -> List[Statement]:
        return self.body


@dataclass(slots=True)
class MenuStatement(Statement):
    name: str | None = None
    choices: List[MenuChoice] = field(default_factory=list)
    body: List[Statement] = field(default_factory=list)

    def children(self) -> List[Statement]:
        return self.body


@dataclass(slots=True)
class DialogueStatement(Statement):
    tag: str = ""
    attributes: List[str] = field(default_factory=list)
    what: str = ""


@dataclass(slots=True)
class NarrationStatement(Statement):
    what: str = ""


@dataclass(slots=True)
class VariableStatement(Statement):
    kind: VariableKind = "define"
    name: str = ""
    value: str = ""


@dataclass(slots=True)
class CharacterStatement(Statement):
    tag: str = ""
    name: str = ""
    color: str | None = None
    options: Dict[str, str] = field(default_factory=dict)
    profile: str | None = None


@dataclass(slots=True)
class ScreenStatement(Statement):
    name: str = ""
    parameters: str = ""
    raw_body: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ImageStatement(Statement):
    name: str = ""
    value: str | None = None
    raw_body: List[str] = field(default_factory=list)


@dataclass(slots=True)
class MediaStatement(Statement):
    """Audio/visual statement recorded as a usage reference."""

    verb: str = ""
    channel: str | None = None
    target: str | None = None
    raw_body: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ScreenRefStatement(Statement):
    verb: str = ""
    screen: str = ""


@dataclass(slots=True)
class PythonStatement(Statement):
    raw_body: List[str] = field(default_factory=list)


@dataclass(slots=True)
class BlockStatement(Statement):
    """Compound statement without special meaning whose body is still scanned."""

    header: str = ""
    body: List[Statement] = field(default_factory=list)

    def children(self) -> List[Statement]:
        return self.body


@dataclass(slots=True)
class OpaqueStatement(Statement):
    raw_body: List[str] = field(default_factory=list)


INIT_TIME_STATEMENTS = (
    VariableStatement,
    CharacterStatement,
    ScreenStatement,
    ImageStatement,
    PythonStatement,
)


def walk(statements: List[Statement], *, into_labels: bool = False) -> Iterator[Statement]:
    """Yield statements depth-first in source order.

    Nested label bodies are skipped unless ``into_labels`` is set, since their
    statements belong to the nested label.
    """
    stack: List[Iterator[Statement]] = [iter(statements)]
    while stack:
        try:
            statement = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue
        yield statement
        if isinstance(statement, LabelStatement) and not into_labels:
            continue
        nested = statement.children()
        if nested:
            stack.append(iter(nested))
