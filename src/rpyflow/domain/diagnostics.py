"""Structured, non-fatal analysis findings."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from rpyflow.core.types import Severity

UNPARSEABLE_LINE = "UNPARSEABLE_LINE"
UNTERMINATED_LINE = "UNTERMINATED_LINE"
INCONSISTENT_INDENT = "INCONSISTENT_INDENT"
DUPLICATE_LABEL = "DUPLICATE_LABEL"
DUPLICATE_CHARACTER = "DUPLICATE_CHARACTER"
DUPLICATE_SCREEN = "DUPLICATE_SCREEN"
DUPLICATE_VARIABLE = "DUPLICATE_VARIABLE"
UNRESOLVED_TARGET = "UNRESOLVED_TARGET"
DYNAMIC_JUMP = "DYNAMIC_JUMP"
ROUTE_ENUMERATION_TRUNCATED = "ROUTE_ENUMERATION_TRUNCATED"
UNREACHABLE_LABEL = "UNREACHABLE_LABEL"
LAYOUT_OVERLAP_UNRESOLVED = "LAYOUT_OVERLAP_UNRESOLVED"
INVALID_NAME = "INVALID_NAME"

DUPLICATE_NAME_CODES = frozenset(
    {DUPLICATE_LABEL, DUPLICATE_CHARACTER, DUPLICATE_SCREEN, DUPLICATE_VARIABLE}
)


@dataclass(frozen=True, slots=True)
class Diagnostic:
    severity: Severity
    code: str
    message: str
    file: str | None = None
    line: int | None = None
    context: Dict[str, str] = field(default_factory=dict)


def warn(code: str, message: str, *, file: str | None = None, line: int | None = None, **context: str) -> Diagnostic:
    return Diagnostic(severity="WARN", code=code, message=message, file=file, line=line, context=context)


def info(code: str, message: str, *, file: str | None = None, line: int | None = None, **context: str) -> Diagnostic:
    return Diagnostic(severity="INFO", code=code, message=message, file=file, line=line, context=context)


def format_diagnostic(diagnostic: Diagnostic) -> str:
    location = ""
    if diagnostic.file is not None:
        location = f" {diagnostic.file}"
        if diagnostic.line is not None:
            location += f":{diagnostic.line}"
    context = " ".join(f"{key}={value}" for key, value in diagnostic.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{diagnostic.severity}] {diagnostic.code}:{location} {diagnostic.message}{suffix}"
