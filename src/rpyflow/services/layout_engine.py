"""Initial canvas positions for label nodes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Set

from rpyflow.data.config import LayoutConfig
from rpyflow.domain import diagnostics as codes
from rpyflow.domain.diagnostics import Diagnostic, info
from rpyflow.domain.graph import LabelNode, Position
from rpyflow.domain.symbols import Label
from rpyflow.services.graph_builder import LabelGraph

logger = logging.getLogger(__name__)

_LABEL_PADDING = 40.0


@dataclass(slots=True)
class LayoutResult:
    nodes: List[LabelNode] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass(slots=True)
class _Group:
    block_id: str
    node_ids: List[str]
    offsets: Dict[str, Position] = field(default_factory=dict)
    width: float = 0.0
    height: float = 0.0


def node_size(name: str, target_count: int, layout: LayoutConfig) -> tuple[float, float]:
    """Return (width, height) for a label card listing its distinct targets."""
    width = len(name) * layout.char_width + _LABEL_PADDING
    width = max(layout.min_node_width, min(layout.max_node_width, width))
    rows = min(target_count, layout.max_target_rows)
    return width, layout.node_height + rows * layout.target_row_height


def layout_label_nodes(
    graph: LabelGraph,
    labels: Mapping[str, Label],
    prior_positions: Mapping[str, Position] | None = None,
    layout: LayoutConfig | None = None,
    entry_labels: Sequence[str] = (),
) -> LayoutResult:
    """Position every node; nodes with a known position keep it.

    Labels are grouped by file. Each group is laid out in layers following
    its internal links, then groups are packed in rows. Groups that already
    hold positioned nodes are anchored to them.
    """
    layout = layout or LayoutConfig()
    prior_positions = prior_positions or {}
    nodes: Dict[str, LabelNode] = {}
    for node_id in graph.node_ids:
        label = labels[node_id]
        targets = {link.target_id for link in graph.outgoing.get(node_id, [])}
        width, height = node_size(label.name, len(targets), layout)
        nodes[node_id] = LabelNode(
            id=node_id,
            label=label.name,
            block_id=label.block_id,
            container_name=label.container_name,
            start_line=label.line,
            width=width,
            height=height,
        )

    known: Set[str] = set()
    for node_id, node in nodes.items():
        prior = prior_positions.get(node_id)
        if prior is not None:
            node.position = Position(prior.x, prior.y)
            known.add(node_id)

    groups = _group_nodes(graph, nodes, entry_labels)
    for group in groups:
        _layout_group(group, graph, nodes, layout)
    _place_groups(groups, nodes, known, layout)

    result = LayoutResult(nodes=[nodes[node_id] for node_id in graph.node_ids])
    remaining = _resolve_overlaps(result.nodes, known, layout)
    if remaining:
        result.diagnostics.append(
            info(
                codes.LAYOUT_OVERLAP_UNRESOLVED,
                f"{remaining} node overlaps remain after {layout.overlap_passes} passes.",
                overlaps=str(remaining),
            )
        )
        logger.warning("Layout left %d overlapping node pairs", remaining)
    logger.debug("Laid out %d nodes in %d groups (%d kept)", len(nodes), len(groups), len(known))
    return result


def _group_nodes(graph: LabelGraph, nodes: Mapping[str, LabelNode], entry_labels: Sequence[str]) -> List[_Group]:
    by_block: Dict[str, _Group] = {}
    for node_id in graph.node_ids:
        block_id = nodes[node_id].block_id
        by_block.setdefault(block_id, _Group(block_id=block_id, node_ids=[])).node_ids.append(node_id)
    groups = list(by_block.values())
    for entry in entry_labels:
        if entry in nodes:
            first_block = nodes[entry].block_id
            groups.sort(key=lambda group: group.block_id != first_block)
            break
    return groups


def _layers(group: _Group, graph: LabelGraph) -> List[List[str]]:
    members = set(group.node_ids)
    predecessors: Dict[str, Set[str]] = {node_id: set() for node_id in group.node_ids}
    for node_id in group.node_ids:
        for link in graph.outgoing.get(node_id, []):
            if link.target_id in members and link.target_id != node_id:
                predecessors[link.target_id].add(node_id)

    order = {node_id: index for index, node_id in enumerate(group.node_ids)}
    remaining = list(group.node_ids)
    layers: List[List[str]] = []
    for _ in range(len(group.node_ids)):
        if not remaining:
            break
        pending = set(remaining)
        layer = [node_id for node_id in remaining if not predecessors[node_id] & pending]
        if not layer:
            # Cycle: start from the node with the fewest pending predecessors.
            layer = [min(remaining, key=lambda node_id: (len(predecessors[node_id] & pending), order[node_id]))]
        layers.append(layer)
        placed = set(layer)
        remaining = [node_id for node_id in remaining if node_id not in placed]
    return layers


def _layout_group(group: _Group, graph: LabelGraph, nodes: Mapping[str, LabelNode], layout: LayoutConfig) -> None:
    x = 0.0
    for layer in _layers(group, graph):
        y = 0.0
        layer_width = 0.0
        for node_id in layer:
            node = nodes[node_id]
            group.offsets[node_id] = Position(x, y)
            y += node.height + layout.y_gap
            layer_width = max(layer_width, node.width)
        group.height = max(group.height, y - layout.y_gap)
        x += layer_width + layout.x_gap
    group.width = max(0.0, x - layout.x_gap)


def _place_groups(
    groups: Sequence[_Group],
    nodes: Mapping[str, LabelNode],
    known: Set[str],
    layout: LayoutConfig,
) -> None:
    cursor_x = layout.origin_x
    cursor_y = layout.origin_y
    if known:
        cursor_y = max(nodes[node_id].bottom() for node_id in known) + layout.group_gap
    row_height = 0.0
    for group in groups:
        anchor = next((node_id for node_id in group.node_ids if node_id in known), None)
        if anchor is not None:
            base = nodes[anchor].position
            offset = group.offsets[anchor]
            origin = Position(base.x - offset.x, base.y - offset.y)
        else:
            if cursor_x > layout.origin_x and cursor_x + group.width > layout.origin_x + layout.max_row_width:
                cursor_x = layout.origin_x
                cursor_y += row_height + layout.group_gap
                row_height = 0.0
            origin = Position(cursor_x, cursor_y)
            cursor_x += group.width + layout.group_gap
            row_height = max(row_height, group.height)
        for node_id in group.node_ids:
            if node_id in known:
                continue
            offset = group.offsets[node_id]
            nodes[node_id].position = Position(origin.x + offset.x, origin.y + offset.y)


def _overlaps(first: LabelNode, second: LabelNode) -> bool:
    return (
        first.position.x < second.right()
        and second.position.x < first.right()
        and first.position.y < second.bottom()
        and second.position.y < first.bottom()
    )


def _resolve_overlaps(nodes: Sequence[LabelNode], known: Set[str], layout: LayoutConfig) -> int:
    """Push new nodes down until nothing overlaps; return the pairs left over."""
    movable = [node for node in nodes if node.id not in known]
    for _ in range(layout.overlap_passes):
        moved = False
        for node in movable:
            for other in nodes:
                if other is node or not _overlaps(node, other):
                    continue
                node.position = Position(node.position.x, other.bottom() + layout.y_gap)
                moved = True
        if not moved:
            return 0
    return sum(
        1
        for index, node in enumerate(nodes)
        for other in nodes[index + 1 :]
        if (node.id not in known or other.id not in known) and _overlaps(node, other)
    )


def overlapping_pairs(nodes: Sequence[LabelNode]) -> List[tuple[str, str]]:
    """Return ids of every pair of nodes whose boxes intersect."""
    return [
        (node.id, other.id)
        for index, node in enumerate(nodes)
        for other in nodes[index + 1 :]
        if _overlaps(node, other)
    ]
