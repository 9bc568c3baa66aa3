"""Persistence helpers for user-arranged label positions."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping

from rpyflow.domain.graph import Position

from .errors import ProjectLoadError
from .json_loader import load_json, write_json


def load_positions(path: Path) -> Dict[str, Position]:
    """Load ``{label id: {"x": .., "y": ..}}`` or an empty map if absent."""
    if not path.exists():
        return {}
    raw = load_json(path)
    if not isinstance(raw, dict):
        raise ProjectLoadError(f"Expected top-level object in {path}")
    positions: Dict[str, Position] = {}
    for label_id, entry in raw.items():
        if not isinstance(entry, dict):
            raise ProjectLoadError(f"Position for '{label_id}' must be an object.")
        x = entry.get("x")
        y = entry.get("y")
        if isinstance(x, bool) or isinstance(y, bool) or not isinstance(x, (int, float)) or not isinstance(y, (int, float)):
            raise ProjectLoadError(f"Position for '{label_id}' needs numeric x and y.")
        positions[label_id] = Position(float(x), float(y))
    return positions


def save_positions(path: Path, positions: Mapping[str, Position]) -> None:
    """Persist positions keyed by label id."""
    payload = {
        label_id: {"x": position.x, "y": position.y}
        for label_id, position in positions.items()
    }
    write_json(path, payload)
