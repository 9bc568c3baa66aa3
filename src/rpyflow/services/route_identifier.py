"""Route enumeration over the label graph."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Set

from rpyflow.core.palette import color_for_index
from rpyflow.data.config import AnalysisConfig
from rpyflow.domain import diagnostics as codes
from rpyflow.domain.diagnostics import Diagnostic, info, warn
from rpyflow.domain.graph import IdentifiedRoute, RouteLink
from rpyflow.domain.symbols import Label
from rpyflow.services.graph_builder import LabelGraph

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RouteEnumeration:
    routes: List[IdentifiedRoute] = field(default_factory=list)
    entry_labels: List[str] = field(default_factory=list)
    terminal_labels: List[str] = field(default_factory=list)
    truncated: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass(slots=True)
class _Frame:
    node_id: str
    links: List[RouteLink]
    index: int = 0


class _Budget:
    def __init__(self, max_routes: int, max_steps: int) -> None:
        self.max_routes = max_routes
        self.max_steps = max_steps
        self.steps = 0
        self.exhausted_by: str | None = None

    def take_step(self) -> bool:
        self.steps += 1
        if self.steps > self.max_steps:
            self.exhausted_by = "max_route_steps"
            return False
        return True


def select_entry_labels(graph: LabelGraph, config: AnalysisConfig | None = None) -> List[str]:
    """Pick entry labels: configured names, then in-degree zero, then the first label."""
    config = config or AnalysisConfig()
    known = set(graph.node_ids)
    configured = [name for name in config.entry_labels if name in known]
    if configured:
        return list(dict.fromkeys(configured))
    roots = [node_id for node_id in graph.node_ids if not graph.incoming.get(node_id)]
    if roots:
        return roots
    return graph.node_ids[:1]


def identify_routes(
    graph: LabelGraph,
    config: AnalysisConfig | None = None,
    labels: Mapping[str, Label] | None = None,
) -> RouteEnumeration:
    """Enumerate simple paths from each entry label to the labels that end them.

    A label whose outgoing links lead back onto the current path ends a
    truncated route there. Enumeration stops deterministically once either
    the route cap or the step cap is reached.
    """
    config = config or AnalysisConfig()
    labels = labels or {}
    terminal_overrides = set(config.terminal_labels)
    result = RouteEnumeration(entry_labels=select_entry_labels(graph, config))
    result.terminal_labels = [
        node_id
        for node_id in graph.node_ids
        if graph.is_terminal(node_id) or node_id in terminal_overrides
    ]
    budget = _Budget(config.max_routes, config.max_route_steps)
    seen: Set[tuple[str, ...]] = set()

    for entry in result.entry_labels:
        if not _walk_from(entry, graph, terminal_overrides, budget, seen, result.routes):
            break

    if budget.exhausted_by is not None:
        result.truncated = True
        result.diagnostics.append(
            warn(
                codes.ROUTE_ENUMERATION_TRUNCATED,
                f"Route enumeration stopped at {budget.exhausted_by}; results may be incomplete.",
                limit=budget.exhausted_by,
                routes=str(len(result.routes)),
            )
        )
        logger.info("Route enumeration truncated by %s after %d routes", budget.exhausted_by, len(result.routes))

    result.diagnostics.extend(_unreachable(graph, result.entry_labels, labels))
    logger.debug("Identified %d routes from %d entries", len(result.routes), len(result.entry_labels))
    return result


def _walk_from(
    entry: str,
    graph: LabelGraph,
    terminal_overrides: Set[str],
    budget: _Budget,
    seen: Set[tuple[str, ...]],
    routes: List[IdentifiedRoute],
) -> bool:
    path_nodes: List[str] = []
    path_links: List[RouteLink] = []
    on_path: Set[str] = set()
    stack: List[_Frame] = []

    def enter(node_id: str, via: RouteLink | None) -> bool:
        if not budget.take_step():
            return False
        path_nodes.append(node_id)
        on_path.add(node_id)
        if via is not None:
            path_links.append(via)
        outgoing = graph.outgoing.get(node_id, [])
        if not outgoing or node_id in terminal_overrides:
            stack.append(_Frame(node_id, []))
            return _record(path_nodes, path_links, False, seen, routes, budget)
        if any(link.target_id in on_path for link in outgoing):
            if not _record(path_nodes, path_links, True, seen, routes, budget):
                return False
        stack.append(_Frame(node_id, outgoing))
        return True

    if not enter(entry, None):
        return False
    while stack:
        frame = stack[-1]
        if frame.index >= len(frame.links):
            stack.pop()
            on_path.discard(path_nodes.pop())
            if path_links and len(path_links) > len(path_nodes) - 1:
                path_links.pop()
            continue
        link = frame.links[frame.index]
        frame.index += 1
        if link.target_id in on_path:
            continue
        if not enter(link.target_id, link):
            return False
    return True


def _record(
    path_nodes: Sequence[str],
    path_links: Sequence[RouteLink],
    truncated: bool,
    seen: Set[tuple[str, ...]],
    routes: List[IdentifiedRoute],
    budget: _Budget,
) -> bool:
    key = tuple(path_nodes)
    if not path_links or key in seen:
        return True
    if len(routes) >= budget.max_routes:
        budget.exhausted_by = "max_routes"
        return False
    seen.add(key)
    route_id = len(routes)
    routes.append(
        IdentifiedRoute(
            id=route_id,
            color=color_for_index(route_id),
            link_ids=[link.id for link in path_links],
            label_ids=list(path_nodes),
            truncated=truncated,
        )
    )
    return True


def _unreachable(
    graph: LabelGraph, entries: Sequence[str], labels: Mapping[str, Label]
) -> List[Diagnostic]:
    reachable: Set[str] = set()
    stack = list(entries)
    while stack:
        node_id = stack.pop()
        if node_id in reachable:
            continue
        reachable.add(node_id)
        for link in graph.outgoing.get(node_id, []):
            if link.target_id not in reachable:
                stack.append(link.target_id)
    found: List[Diagnostic] = []
    for node_id in graph.node_ids:
        if node_id in reachable:
            continue
        label = labels.get(node_id)
        found.append(
            info(
                codes.UNREACHABLE_LABEL,
                f"Label '{node_id}' is unreachable from the entry labels.",
                file=label.block_id if label else None,
                line=label.line if label else None,
                label=node_id,
            )
        )
    return found


def routes_by_label(routes: Sequence[IdentifiedRoute]) -> Dict[str, List[int]]:
    """Map each label id to the ids of the routes passing through it."""
    index: Dict[str, List[int]] = {}
    for route in routes:
        for label_id in route.label_ids:
            index.setdefault(label_id, []).append(route.id)
    return index
