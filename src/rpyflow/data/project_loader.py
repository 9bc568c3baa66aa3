"""Read script sources from a project directory."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from .errors import ProjectLoadError

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".rpy"


def load_project_sources(root: Path | str) -> Dict[str, str]:
    """Return ``{relative posix path: source}`` for every script under root.

    Paths are sorted so repeated loads of an unchanged tree feed the analysis
    the same ordering.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise ProjectLoadError(f"Project directory not found: {root_path}")
    sources: Dict[str, str] = {}
    for path in sorted(root_path.rglob(f"*{SCRIPT_SUFFIX}")):
        if not path.is_file():
            continue
        relative = path.relative_to(root_path).as_posix()
        try:
            sources[relative] = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ProjectLoadError(f"Unable to read script file: {path}") from exc
    logger.debug("Loaded %d script files from %s", len(sources), root_path)
    return sources
