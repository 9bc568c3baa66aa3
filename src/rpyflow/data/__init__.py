"""Data layer utilities for loading sources, config and positions."""

from .config import AnalysisConfig, LayoutConfig, load_config
from .errors import ConfigError, DataError, ProjectLoadError
from .positions import load_positions, save_positions
from .project_loader import load_project_sources

__all__ = [
    "AnalysisConfig",
    "ConfigError",
    "DataError",
    "LayoutConfig",
    "ProjectLoadError",
    "load_config",
    "load_positions",
    "load_project_sources",
    "save_positions",
]
