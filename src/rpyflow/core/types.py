"""Shared type aliases for the core and domain layers."""
from typing import Literal

Severity = Literal["WARN", "INFO"]
LinkType = Literal["explicit", "implicit"]
LinkVia = Literal["jump", "call", "fallthrough"]
VariableKind = Literal["define", "default"]
LabelKind = Literal["label", "menu"]
RedeclarationPolicy = Literal["first", "last"]

__all__ = [
    "LabelKind",
    "LinkType",
    "LinkVia",
    "RedeclarationPolicy",
    "Severity",
    "VariableKind",
]
