"""Domain model exports."""

from .diagnostics import Diagnostic, format_diagnostic
from .graph import BlockLink, IdentifiedRoute, LabelNode, Position, RouteLink
from .symbols import (
    AudioSymbol,
    Character,
    DialogueLine,
    ImageSymbol,
    JumpLocation,
    Label,
    Screen,
    SymbolLocation,
    Variable,
)

__all__ = [
    "AudioSymbol",
    "BlockLink",
    "Character",
    "Diagnostic",
    "DialogueLine",
    "IdentifiedRoute",
    "ImageSymbol",
    "JumpLocation",
    "Label",
    "LabelNode",
    "Position",
    "RouteLink",
    "Screen",
    "SymbolLocation",
    "Variable",
    "format_diagnostic",
]
