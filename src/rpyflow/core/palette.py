"""Deterministic color assignment for characters and routes."""
from __future__ import annotations

from typing import Sequence

ROUTE_PALETTE: tuple[str, ...] = (
    "#E57373",
    "#F06292",
    "#BA68C8",
    "#9575CD",
    "#7986CB",
    "#64B5F6",
    "#4FC3F7",
    "#4DD0E1",
    "#4DB6AC",
    "#81C784",
    "#AED581",
    "#DCE775",
    "#FFF176",
    "#FFD54F",
    "#FFB74D",
    "#FF8A65",
    "#A1887F",
    "#90A4AE",
)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def string_hash(text: str) -> int:
    """Return the 31-multiplier string hash used for stable palette picks."""
    result = 0
    for char in text:
        result = ord(char) + (_to_int32(_to_int32(result) << 5) - result)
    return result


def color_for_key(key: str, palette: Sequence[str] = ROUTE_PALETTE) -> str:
    """Return a palette color derived from the key's hash."""
    if not palette:
        raise ValueError("Palette must not be empty.")
    return palette[abs(string_hash(key)) % len(palette)]


def color_for_index(index: int, palette: Sequence[str] = ROUTE_PALETTE) -> str:
    """Return the palette color cycled by index."""
    if not palette:
        raise ValueError("Palette must not be empty.")
    return palette[index % len(palette)]
