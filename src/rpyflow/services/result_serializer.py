"""JSON-friendly payloads for analysis results."""
from __future__ import annotations

from typing import Any, Dict

from rpyflow.domain.diagnostics import Diagnostic
from rpyflow.domain.graph import IdentifiedRoute, LabelNode, RouteLink
from rpyflow.domain.symbols import Character, Label, Screen, Variable
from rpyflow.services.analysis_service import AnalysisResult

ResultPayload = Dict[str, Any]
PAYLOAD_VERSION = 1


def serialize_result(result: AnalysisResult) -> ResultPayload:
    """Return a JSON-serializable payload of the whole analysis result."""
    symbols = result.symbols
    graph = result.graph
    return {
        "version": PAYLOAD_VERSION,
        "labels": {name: _serialize_label(label) for name, label in symbols.labels.items()},
        "characters": {tag: _serialize_character(character) for tag, character in symbols.characters.items()},
        "variables": {name: _serialize_variable(variable) for name, variable in symbols.variables.items()},
        "screens": {name: _serialize_screen(screen) for name, screen in symbols.screens.items()},
        "images": {
            name: {"block_id": image.block_id, "line": image.line, "usage_count": image.usage_count}
            for name, image in symbols.images.items()
        },
        "audios": {
            path: {
                "channel": audio.channel,
                "block_id": audio.block_id,
                "line": audio.line,
                "usage_count": audio.usage_count,
            }
            for path, audio in symbols.audios.items()
        },
        "character_usage": dict(symbols.character_usage),
        "story_block_ids": sorted(symbols.story_block_ids),
        "screen_only_block_ids": sorted(symbols.screen_only_block_ids),
        "config_block_ids": sorted(symbols.config_block_ids),
        "first_labels": dict(symbols.first_labels),
        "jumps": {
            block_id: [
                {
                    "target": jump.target,
                    "type": jump.type,
                    "is_dynamic": jump.is_dynamic,
                    "line": jump.line,
                    "column_start": jump.column_start,
                    "column_end": jump.column_end,
                }
                for jump in jumps
            ]
            for block_id, jumps in symbols.jumps.items()
        },
        "invalid_jumps": {block_id: list(targets) for block_id, targets in graph.invalid_jumps.items()},
        "variable_usages": {
            name: [{"block_id": usage.block_id, "line": usage.line} for usage in usages]
            for name, usages in symbols.variable_usages.items()
        },
        "block_links": [
            {"source_id": link.source_id, "target_id": link.target_id, "target_label": link.target_label}
            for link in graph.block_links
        ],
        "label_nodes": [_serialize_node(node) for node in result.label_nodes],
        "route_links": [_serialize_link(link) for link in graph.links],
        "identified_routes": [_serialize_route(route) for route in result.routes.routes],
        "entry_labels": list(result.routes.entry_labels),
        "routes_truncated": result.routes.truncated,
        "stats": {
            "files": result.stats.file_count,
            "lines": result.stats.line_count,
            "labels": result.stats.label_count,
            "routes": result.stats.route_count,
            "branching_blocks": result.stats.branching_block_count,
            "complexity": result.stats.complexity,
            "words": symbols.dialogue_stats.total_words,
            "words_by_speaker": dict(symbols.dialogue_stats.words_by_speaker),
        },
        "diagnostics": [serialize_diagnostic(diagnostic) for diagnostic in result.diagnostics],
    }


def serialize_diagnostic(diagnostic: Diagnostic) -> Dict[str, Any]:
    return {
        "severity": diagnostic.severity,
        "code": diagnostic.code,
        "message": diagnostic.message,
        "file": diagnostic.file,
        "line": diagnostic.line,
        "context": dict(diagnostic.context),
    }


def _serialize_label(label: Label) -> Dict[str, Any]:
    return {
        "block_id": label.block_id,
        "line": label.line,
        "column": label.column,
        "kind": label.kind,
        "container_name": label.container_name,
        "parent": label.parent,
    }


def _serialize_character(character: Character) -> Dict[str, Any]:
    return {
        "name": character.name,
        "color": character.color,
        "block_id": character.block_id,
        "line": character.line,
        "profile": character.profile,
        "options": dict(character.options),
    }


def _serialize_variable(variable: Variable) -> Dict[str, Any]:
    return {
        "kind": variable.kind,
        "initial_value": variable.initial_value,
        "block_id": variable.block_id,
        "line": variable.line,
    }


def _serialize_screen(screen: Screen) -> Dict[str, Any]:
    return {"parameters": screen.parameters, "block_id": screen.block_id, "line": screen.line}


def _serialize_node(node: LabelNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "label": node.label,
        "block_id": node.block_id,
        "container_name": node.container_name,
        "start_line": node.start_line,
        "position": {"x": node.position.x, "y": node.position.y},
        "width": node.width,
        "height": node.height,
    }


def _serialize_link(link: RouteLink) -> Dict[str, Any]:
    return {
        "id": link.id,
        "source_id": link.source_id,
        "target_id": link.target_id,
        "type": link.type,
        "via": link.via,
        "line": link.line,
    }


def _serialize_route(route: IdentifiedRoute) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": route.id,
        "color": route.color,
        "link_ids": list(route.link_ids),
        "label_ids": list(route.label_ids),
    }
    if route.truncated:
        payload["truncated"] = True
    return payload
