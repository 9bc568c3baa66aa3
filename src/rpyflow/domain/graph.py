"""Graph, route and layout models consumed by the route canvas."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from rpyflow.core.types import LinkType, LinkVia


@dataclass(slots=True)
class Position:
    x: float
    y: float


@dataclass(slots=True)
class RouteLink:
    """Directed edge between two label nodes."""

    id: str
    source_id: str
    target_id: str
    type: LinkType
    via: LinkVia
    line: int | None = None


@dataclass(slots=True)
class LabelNode:
    """Label wrapped with presentation geometry."""

    id: str
    label: str
    block_id: str
    container_name: str
    start_line: int
    position: Position = field(default_factory=lambda: Position(0.0, 0.0))
    width: float = 180.0
    height: float = 40.0

    def right(self) -> float:
        return self.position.x + self.width

    def bottom(self) -> float:
        return self.position.y + self.height


@dataclass(slots=True)
class IdentifiedRoute:
    """One non-repeating path through the label graph."""

    id: int
    color: str
    link_ids: List[str] = field(default_factory=list)
    label_ids: List[str] = field(default_factory=list)
    truncated: bool = False

    @property
    def start_label(self) -> str | None:
        return self.label_ids[0] if self.label_ids else None

    @property
    def end_label(self) -> str | None:
        return self.label_ids[-1] if self.label_ids else None


@dataclass(slots=True)
class BlockLink:
    """Deduplicated file-to-file connection used by the story canvas."""

    source_id: str
    target_id: str
    target_label: str
