"""Control-flow graph over narrative labels."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from rpyflow.domain import diagnostics as codes
from rpyflow.domain.diagnostics import Diagnostic, info, warn
from rpyflow.domain.graph import BlockLink, RouteLink
from rpyflow.domain.statements import (
    INIT_TIME_STATEMENTS,
    BlockStatement,
    JumpStatement,
    LabelStatement,
    ReturnStatement,
    Statement,
    walk,
)
from rpyflow.services.symbol_table import SymbolTable

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LabelGraph:
    """Directed multigraph of label ids joined by route links."""

    node_ids: List[str] = field(default_factory=list)
    links: List[RouteLink] = field(default_factory=list)
    outgoing: Dict[str, List[RouteLink]] = field(default_factory=dict)
    incoming: Dict[str, List[RouteLink]] = field(default_factory=dict)
    block_links: List[BlockLink] = field(default_factory=list)
    invalid_jumps: Dict[str, List[str]] = field(default_factory=dict)
    root_block_ids: Set[str] = field(default_factory=set)
    leaf_block_ids: Set[str] = field(default_factory=set)
    branching_block_ids: Set[str] = field(default_factory=set)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def add_link(self, link: RouteLink) -> None:
        self.links.append(link)
        self.outgoing[link.source_id].append(link)
        self.incoming[link.target_id].append(link)

    def is_terminal(self, node_id: str) -> bool:
        return not self.outgoing.get(node_id)


def build_label_graph(table: SymbolTable, block_ids: Sequence[str]) -> LabelGraph:
    """Derive explicit and implicit links for every label in the table.

    ``block_ids`` gives the file order used to order nodes deterministically.
    """
    graph = LabelGraph()
    block_order = {block_id: index for index, block_id in enumerate(block_ids)}
    labels = sorted(
        (label for label in table.labels.values() if label.kind == "label"),
        key=lambda label: (block_order.get(label.block_id, len(block_order)), label.line),
    )
    for label in labels:
        graph.node_ids.append(label.name)
        graph.outgoing[label.name] = []
        graph.incoming[label.name] = []

    counter = 0
    for label in labels:
        for statement in walk(label.statements):
            if not isinstance(statement, JumpStatement) or not statement.target:
                continue
            target_id = _resolve_target(table, statement.target)
            if target_id is None:
                continue
            graph.add_link(
                RouteLink(
                    id=f"rlink-{counter}",
                    source_id=label.name,
                    target_id=target_id,
                    type="explicit",
                    via=statement.verb,
                    line=statement.line,
                )
            )
            counter += 1
        if label.next_label is None or ends_in_transfer(label.statements):
            continue
        following = table.labels.get(label.next_label)
        # The winning definition of a redeclared name may live in another file.
        if following is None or following.kind != "label" or following.block_id != label.block_id:
            continue
        graph.add_link(
            RouteLink(
                id=f"rlink-{counter}",
                source_id=label.name,
                target_id=following.name,
                type="implicit",
                via="fallthrough",
                line=label.line,
            )
        )
        counter += 1

    _check_jump_sites(graph, table)
    _classify_blocks(graph, table, block_ids)
    logger.debug("Label graph: %d nodes, %d links", len(graph.node_ids), len(graph.links))
    return graph


def ends_in_transfer(statements: Sequence[Statement]) -> bool:
    """Return True when the last executable statement is a jump, call or return."""
    for statement in reversed(statements):
        if _is_init_time(statement):
            continue
        return isinstance(statement, (JumpStatement, ReturnStatement))
    return False


def _is_init_time(statement: Statement) -> bool:
    if isinstance(statement, INIT_TIME_STATEMENTS) or isinstance(statement, LabelStatement):
        return True
    return isinstance(statement, BlockStatement) and statement.header.startswith("init")


def _resolve_target(table: SymbolTable, target: str) -> str | None:
    label = table.labels.get(target)
    if label is None:
        return None
    if label.kind == "menu":
        return label.parent
    return label.name


def _check_jump_sites(graph: LabelGraph, table: SymbolTable) -> None:
    for block_id, jumps in table.jumps.items():
        for jump in jumps:
            if jump.is_dynamic:
                graph.diagnostics.append(
                    info(
                        codes.DYNAMIC_JUMP,
                        f"Dynamic {jump.type} target '{jump.target}' cannot be resolved statically.",
                        file=block_id,
                        line=jump.line,
                        expression=jump.target,
                    )
                )
                continue
            if jump.target in table.labels:
                continue
            graph.diagnostics.append(
                warn(
                    codes.UNRESOLVED_TARGET,
                    f"Label '{jump.target}' not found.",
                    file=block_id,
                    line=jump.line,
                    target=jump.target,
                    source_label=jump.source_label or "",
                )
            )
            invalid = graph.invalid_jumps.setdefault(block_id, [])
            if jump.target not in invalid:
                invalid.append(jump.target)


def _classify_blocks(graph: LabelGraph, table: SymbolTable, block_ids: Sequence[str]) -> None:
    seen: Set[tuple[str, str]] = set()
    for block_id in block_ids:
        for jump in table.jumps.get(block_id, []):
            target = table.labels.get(jump.target)
            if target is None or target.block_id == block_id:
                continue
            key = (block_id, target.block_id)
            if key in seen:
                continue
            seen.add(key)
            graph.block_links.append(
                BlockLink(source_id=block_id, target_id=target.block_id, target_label=target.name)
            )

    targeted = {link.target_id for link in graph.block_links}
    for block_id in block_ids:
        jumps = table.jumps.get(block_id, [])
        if block_id not in targeted:
            graph.root_block_ids.add(block_id)
        if not jumps:
            graph.leaf_block_ids.add(block_id)
        target_blocks = {
            table.labels[jump.target].block_id for jump in jumps if jump.target in table.labels
        }
        has_menu = "menu" in table.block_types.get(block_id, set())
        if has_menu or len(target_blocks) > 1:
            graph.branching_block_ids.add(block_id)
