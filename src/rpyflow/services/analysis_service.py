"""Analysis pipeline facade and the command interface over its last result."""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Set

from rpyflow.core.types import VariableKind
from rpyflow.data.config import AnalysisConfig
from rpyflow.domain.diagnostics import Diagnostic
from rpyflow.domain.graph import IdentifiedRoute, LabelNode, Position, RouteLink
from rpyflow.domain.symbols import Character, Label, Screen, Variable
from rpyflow.services.errors import NoAnalysisError, SymbolError
from rpyflow.services.graph_builder import LabelGraph, build_label_graph
from rpyflow.services.layout_engine import layout_label_nodes
from rpyflow.services.route_identifier import RouteEnumeration, identify_routes
from rpyflow.services.scanner import ScannedFile, scan_source
from rpyflow.services.symbol_table import SymbolTable, build_symbol_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProjectStats:
    file_count: int
    line_count: int
    label_count: int
    route_count: int
    branching_block_count: int
    complexity: int


@dataclass(slots=True)
class AnalysisResult:
    """Everything one analysis pass produces, rebuilt from scratch each time."""

    files: List[ScannedFile]
    symbols: SymbolTable
    graph: LabelGraph
    routes: RouteEnumeration
    label_nodes: List[LabelNode]
    stats: ProjectStats
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def labels(self) -> Dict[str, Label]:
        return self.symbols.labels

    @property
    def characters(self) -> Dict[str, Character]:
        return self.symbols.characters

    @property
    def variables(self) -> Dict[str, Variable]:
        return self.symbols.variables

    @property
    def screens(self) -> Dict[str, Screen]:
        return self.symbols.screens

    @property
    def story_block_ids(self) -> Set[str]:
        return self.symbols.story_block_ids

    @property
    def character_usage(self) -> Dict[str, int]:
        return self.symbols.character_usage

    @property
    def route_links(self) -> List[RouteLink]:
        return self.graph.links

    @property
    def identified_routes(self) -> List[IdentifiedRoute]:
        return self.routes.routes

    def node(self, label_id: str) -> LabelNode | None:
        return next((node for node in self.label_nodes if node.id == label_id), None)


@dataclass(frozen=True, slots=True)
class CommandResult:
    success: bool
    message: str
    code: str | None = None


def complexity_score(branching_blocks: int, route_count: int, label_count: int) -> int:
    """Return the 1-10 branching complexity shown in project statistics."""
    raw = (branching_blocks * 1.5 + route_count * 2) / max(1, label_count) * 5
    return min(10, max(1, math.floor(raw + 0.5)))


def analyze_project(
    sources: Mapping[str, str],
    prior_positions: Mapping[str, Position] | None = None,
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """Run the whole pipeline over a project's script sources.

    Malformed input never raises; problems are reported as diagnostics.
    Files are processed in sorted path order so the result only depends on
    the input.
    """
    config = config or AnalysisConfig()
    paths = sorted(path for path in sources if not config.is_excluded(path))
    skipped = len(sources) - len(paths)
    if skipped:
        logger.debug("Skipping %d excluded files", skipped)

    files = [scan_source(path, sources[path]) for path in paths]
    symbols = build_symbol_table(files, config)
    graph = build_label_graph(symbols, paths)
    routes = identify_routes(graph, config, symbols.labels)
    layout = layout_label_nodes(
        graph,
        symbols.labels,
        prior_positions,
        config.layout,
        routes.entry_labels,
    )

    diagnostics: List[Diagnostic] = []
    for scanned in files:
        diagnostics.extend(scanned.diagnostics)
    diagnostics.extend(symbols.diagnostics)
    diagnostics.extend(graph.diagnostics)
    diagnostics.extend(routes.diagnostics)
    diagnostics.extend(layout.diagnostics)

    stats = ProjectStats(
        file_count=len(files),
        line_count=sum(scanned.line_count for scanned in files),
        label_count=len(symbols.labels),
        route_count=len(routes.routes),
        branching_block_count=len(graph.branching_block_ids),
        complexity=complexity_score(len(graph.branching_block_ids), len(routes.routes), len(symbols.labels)),
    )
    logger.info(
        "Analysed %d files: %d labels, %d links, %d routes, %d diagnostics",
        stats.file_count,
        stats.label_count,
        len(graph.links),
        stats.route_count,
        len(diagnostics),
    )
    return AnalysisResult(
        files=files,
        symbols=symbols,
        graph=graph,
        routes=routes,
        label_nodes=layout.nodes,
        stats=stats,
        diagnostics=diagnostics,
    )


class AnalysisSession:
    """Runs one analysis pass at a time and applies commands to the latest result."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        *,
        positions: Mapping[str, Position] | None = None,
    ) -> None:
        self._config = config or AnalysisConfig()
        self._pass_lock = threading.Lock()
        self._request_lock = threading.Lock()
        self._positions_lock = threading.Lock()
        self._latest_request = 0
        self._result: AnalysisResult | None = None
        self._positions: Dict[str, Position] = {
            label_id: Position(position.x, position.y) for label_id, position in (positions or {}).items()
        }

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    @property
    def result(self) -> AnalysisResult | None:
        return self._result

    @property
    def positions(self) -> Dict[str, Position]:
        with self._positions_lock:
            return {label_id: Position(position.x, position.y) for label_id, position in self._positions.items()}

    def label_positions(self) -> Dict[str, Position]:
        """Positions of the labels in the latest result only."""
        with self._positions_lock:
            if self._result is None:
                return {}
            return {node.id: Position(node.position.x, node.position.y) for node in self._result.label_nodes}

    def require_result(self) -> AnalysisResult:
        if self._result is None:
            raise NoAnalysisError("No analysis has completed yet.")
        return self._result

    def request_analysis(self) -> int:
        """Register a new analysis request; older requests become stale."""
        with self._request_lock:
            self._latest_request += 1
            return self._latest_request

    def is_current(self, request_id: int) -> bool:
        with self._request_lock:
            return request_id == self._latest_request

    def analyze(self, sources: Mapping[str, str], request_id: int | None = None) -> AnalysisResult | None:
        """Run a pass and keep its result unless a newer request arrived meanwhile."""
        if request_id is None:
            request_id = self.request_analysis()
        with self._pass_lock:
            if not self.is_current(request_id):
                logger.info("Skipping superseded analysis request %d", request_id)
                return None
            with self._positions_lock:
                snapshot = dict(self._positions)
            result = analyze_project(sources, snapshot, self._config)
            if not self.is_current(request_id):
                logger.info("Dropping stale result of analysis request %d", request_id)
                return None
            with self._positions_lock:
                for node in result.label_nodes:
                    current = self._positions.get(node.id)
                    if current is not None and current is not snapshot.get(node.id):
                        # Moved while the pass was running.
                        node.position = Position(current.x, current.y)
                    else:
                        self._positions[node.id] = Position(node.position.x, node.position.y)
                self._result = result
            return result

    def add_variable(
        self,
        name: str,
        kind: VariableKind = "default",
        initial_value: str = "None",
        *,
        block_id: str | None = None,
    ) -> CommandResult:
        """Add a variable to the last result's symbol table."""
        try:
            result = self.require_result()
        except NoAnalysisError as exc:
            return CommandResult(success=False, message=str(exc), code="NO_ANALYSIS")
        if block_id is None:
            block_id = self._config.story_support_files[0] if self._config.story_support_files else ""
        try:
            variable = result.symbols.add_variable(name, kind, initial_value, block_id=block_id)
        except SymbolError as exc:
            logger.debug("Rejected variable %r: %s", name, exc)
            return CommandResult(success=False, message=str(exc), code=exc.code)
        return CommandResult(success=True, message=f"Added {variable.kind} '{variable.name}'.")

    def update_label_position(self, label_id: str, position: Position) -> CommandResult:
        return self.update_label_positions({label_id: position})

    def update_label_positions(self, positions: Mapping[str, Position]) -> CommandResult:
        """Move label nodes without re-running the analysis."""
        with self._positions_lock:
            result = self._result
            if result is not None:
                unknown = sorted(label_id for label_id in positions if result.node(label_id) is None)
                if unknown:
                    return CommandResult(
                        success=False,
                        message=f"Unknown label(s): {', '.join(unknown)}.",
                        code="UNKNOWN_LABEL",
                    )
            for label_id, position in positions.items():
                self._positions[label_id] = Position(position.x, position.y)
                if result is not None:
                    result.node(label_id).position = Position(position.x, position.y)
        return CommandResult(success=True, message=f"Updated {len(positions)} position(s).")
