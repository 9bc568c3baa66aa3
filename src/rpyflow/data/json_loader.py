"""Low-level JSON helpers for config and position files."""
from __future__ import annotations

import json
from pathlib import Path

from .errors import ProjectLoadError


def load_json(path: Path) -> object:
    """Load JSON from disk and raise ProjectLoadError on failure."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ProjectLoadError(f"File not found: {path}") from exc
    except OSError as exc:
        raise ProjectLoadError(f"Unable to read file: {path}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProjectLoadError(f"Invalid JSON in {path}: {exc}") from exc


def write_json(path: Path, payload: object) -> None:
    """Write a JSON payload, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
