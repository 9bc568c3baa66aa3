"""Command-line front end for project analysis."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from rpyflow.data import (
    ConfigError,
    ProjectLoadError,
    load_config,
    load_positions,
    load_project_sources,
    save_positions,
)
from rpyflow.services import AnalysisResult, AnalysisSession, serialize_result

from .render import render_counts, render_diagnostics, render_heading, render_routes

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LOAD_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpyflow",
        description="Analyse a Ren'Py project's labels, symbols and routes.",
    )
    parser.add_argument("project_dir", type=Path, help="Directory containing .rpy scripts")
    parser.add_argument("--config", type=Path, help="Analysis config JSON file")
    parser.add_argument("--positions", type=Path, help="Previously saved label positions")
    parser.add_argument("--save-positions", type=Path, help="Write label positions after analysis")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline progress")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run one analysis pass and print a summary or the JSON payload."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(args.config)
        positions = load_positions(args.positions) if args.positions else {}
        sources = load_project_sources(args.project_dir)
    except (ConfigError, ProjectLoadError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_LOAD_ERROR

    session = AnalysisSession(config, positions=positions)
    result = session.analyze(sources)
    if result is None:
        # Only possible when another request superseded this one.
        return EXIT_OK

    if args.save_positions:
        saved = session.label_positions()
        save_positions(args.save_positions, saved)
        logger.info("Saved %d label positions to %s", len(saved), args.save_positions)

    if args.json:
        print(json.dumps(serialize_result(result), indent=2))
    else:
        render_summary(result)
    return EXIT_OK


def render_summary(result: AnalysisResult) -> None:
    render_heading("Project")
    render_counts(
        [
            ("Files", result.stats.file_count),
            ("Lines", result.stats.line_count),
            ("Labels", result.stats.label_count),
            ("Characters", len(result.characters)),
            ("Variables", len(result.variables)),
            ("Screens", len(result.screens)),
            ("Links", len(result.route_links)),
            ("Routes", result.stats.route_count),
            ("Complexity", result.stats.complexity),
        ]
    )
    usage = sorted(result.character_usage.items(), key=lambda item: (-item[1], item[0]))
    if usage:
        render_heading("Character lines")
        render_counts(usage)
    render_routes(result.identified_routes)
    render_diagnostics(result.diagnostics)
