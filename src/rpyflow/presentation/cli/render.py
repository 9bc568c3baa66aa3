"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import textwrap
from typing import Iterable, Sequence

from rpyflow.domain.diagnostics import Diagnostic, format_diagnostic
from rpyflow.domain.graph import IdentifiedRoute

SUMMARY_WIDTH = 100


def debug_enabled() -> bool:
    """Return True only when RPYFLOW_DEBUG is explicitly set to '1'."""
    return os.getenv("RPYFLOW_DEBUG") == "1"


def wrap_bullet(text: str, width: int = SUMMARY_WIDTH) -> list[str]:
    """Wrap one bullet line on word boundaries, indenting continuation lines."""
    if not text or width <= 2:
        return [f"- {text}"]
    wrapped = textwrap.wrap(
        text,
        width=width - 2,
        break_long_words=False,
        break_on_hyphens=False,
    )
    if not wrapped:
        return ["- "]
    return [f"- {wrapped[0]}"] + [f"  {line}" for line in wrapped[1:]]


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_counts(counts: Sequence[tuple[str, int]]) -> None:
    """Print aligned name/count pairs."""
    if not counts:
        return
    width = max(len(name) for name, _ in counts)
    for name, count in counts:
        print(f"{name.ljust(width)}  {count}")


def render_bullet_lines(lines: Iterable[str]) -> None:
    """Print bullet-prefixed lines."""
    for line in lines:
        for wrapped in wrap_bullet(line):
            print(wrapped)


def render_routes(routes: Sequence[IdentifiedRoute]) -> None:
    if not routes:
        return
    render_heading("Routes")
    lines = []
    for route in routes:
        marker = " (truncated)" if route.truncated else ""
        prefix = f"[{route.color}] " if debug_enabled() else ""
        lines.append(f"#{route.id} {prefix}{' -> '.join(route.label_ids)}{marker}")
    render_bullet_lines(lines)


def render_diagnostics(diagnostics: Sequence[Diagnostic]) -> None:
    if not diagnostics:
        return
    render_heading("Diagnostics")
    render_bullet_lines(format_diagnostic(diagnostic) for diagnostic in diagnostics)
