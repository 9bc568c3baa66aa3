"""Symbol definitions collected from scanned scripts."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from rpyflow.core.types import LabelKind, VariableKind
from rpyflow.domain.statements import Statement


@dataclass(slots=True)
class Label:
    """Named entry point in the script."""

    name: str
    block_id: str
    line: int
    column: int = 1
    kind: LabelKind = "label"
    statements: List[Statement] = field(default_factory=list)
    container_name: str = ""
    parent: str | None = None
    next_label: str | None = None


@dataclass(slots=True)
class Character:
    tag: str
    name: str
    color: str
    block_id: str
    line: int
    profile: str | None = None
    options: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Variable:
    name: str
    kind: VariableKind
    initial_value: str
    block_id: str
    line: int


@dataclass(slots=True)
class Screen:
    name: str
    parameters: str
    block_id: str
    line: int


@dataclass(slots=True)
class ImageSymbol:
    """Image tag either declared with ``image`` or referenced by scene/show."""

    name: str
    block_id: str | None = None
    line: int | None = None
    usage_count: int = 0


@dataclass(slots=True)
class AudioSymbol:
    path: str
    channel: str
    block_id: str
    line: int
    usage_count: int = 0


@dataclass(slots=True)
class JumpLocation:
    """Jump or call site, kept for editor navigation."""

    block_id: str
    target: str
    type: str
    is_dynamic: bool
    line: int
    column_start: int
    column_end: int
    source_label: str | None = None


@dataclass(slots=True)
class DialogueLine:
    line: int
    tag: str


@dataclass(slots=True)
class SymbolLocation:
    block_id: str
    line: int
