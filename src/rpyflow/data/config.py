"""Analysis configuration and its JSON loader."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError, ProjectLoadError
from .json_loader import load_json

_VALID_POLICIES = ("first", "last")


@dataclass(frozen=True, slots=True)
class LayoutConfig:
    """Spacing and sizing used by the layout engine."""

    x_gap: float = 70.0
    y_gap: float = 60.0
    group_gap: float = 200.0
    origin_x: float = 50.0
    origin_y: float = 50.0
    min_node_width: float = 180.0
    max_node_width: float = 360.0
    char_width: float = 8.0
    node_height: float = 40.0
    target_row_height: float = 18.0
    max_target_rows: int = 4
    max_row_width: float = 2400.0
    overlap_passes: int = 50


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Project-level tuning values for one analysis run."""

    entry_labels: tuple[str, ...] = ("start",)
    terminal_labels: tuple[str, ...] = ()
    redeclaration_policy: str = "first"
    max_routes: int = 256
    max_route_steps: int = 200_000
    excluded_files: tuple[str, ...] = ("debug_placeholders.rpy",)
    story_support_files: tuple[str, ...] = ("game/variables.rpy", "game/characters.rpy")
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    def __post_init__(self) -> None:
        if self.redeclaration_policy not in _VALID_POLICIES:
            raise ConfigError(
                f"redeclaration_policy must be one of {', '.join(_VALID_POLICIES)}."
            )
        if self.max_routes < 1:
            raise ConfigError("max_routes must be at least 1.")
        if self.max_route_steps < 1:
            raise ConfigError("max_route_steps must be at least 1.")

    def is_excluded(self, path: str) -> bool:
        """Return True when the file should not be analysed."""
        normalized = path.replace("\\", "/")
        return any(
            normalized == excluded or normalized.endswith("/" + excluded)
            for excluded in self.excluded_files
        )


def load_config(path: Path | None = None) -> AnalysisConfig:
    """Load config from disk or return defaults when no file is given."""
    if path is None or not path.exists():
        return AnalysisConfig()
    try:
        raw = load_json(path)
    except ProjectLoadError as exc:
        raise ConfigError(str(exc)) from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected top-level object in {path}")
    return config_from_mapping(raw)


def config_from_mapping(raw: Mapping[str, Any]) -> AnalysisConfig:
    """Build a config from a mapping, ignoring unknown keys."""
    values: dict[str, Any] = {}
    for config_field in fields(AnalysisConfig):
        if config_field.name == "layout" or config_field.name not in raw:
            continue
        value = raw[config_field.name]
        if config_field.name in ("entry_labels", "terminal_labels", "excluded_files", "story_support_files"):
            values[config_field.name] = _require_str_tuple(value, config_field.name)
        elif config_field.name == "redeclaration_policy":
            values[config_field.name] = _require_type(value, str, config_field.name)
        else:
            values[config_field.name] = _require_int(value, config_field.name)
    layout_raw = raw.get("layout")
    if layout_raw is not None:
        if not isinstance(layout_raw, dict):
            raise ConfigError("layout must be an object/dict.")
        values["layout"] = _layout_from_mapping(layout_raw)
    return AnalysisConfig(**values)


def _layout_from_mapping(raw: Mapping[str, Any]) -> LayoutConfig:
    layout = LayoutConfig()
    updates: dict[str, Any] = {}
    for layout_field in fields(LayoutConfig):
        if layout_field.name not in raw:
            continue
        value = raw[layout_field.name]
        context = f"layout.{layout_field.name}"
        if layout_field.name in ("overlap_passes", "max_target_rows"):
            updates[layout_field.name] = _require_int(value, context)
        else:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{context} must be a number.")
            updates[layout_field.name] = float(value)
    return replace(layout, **updates)


def _require_str_tuple(value: object, context: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{context} must be a list of strings.")
    return tuple(value)


def _require_int(value: object, context: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{context} must be an integer.")
    return value


def _require_type(value: object, expected_type: type, context: str) -> Any:
    if not isinstance(value, expected_type):
        raise ConfigError(f"{context} must be of type {expected_type.__name__}.")
    return value
