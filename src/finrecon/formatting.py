from __future__ import annotations

from typing import Optional

from finrecon.domain.reports import Cell

PLACEHOLDER = "-"


def format_number(value: Optional[float], decimals: int = 2) -> str:
    """Thousands-grouped with trailing zeros trimmed: 4500 -> "4,500", 1234.5 -> "1,234.5"."""
    if value is None:
        return PLACEHOLDER
    text = f"{float(value):,.{int(decimals)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{format_number(round(float(value), 1), 1)}%"


def format_large_number(value: float) -> str:
    v = float(value)
    if v >= 1_000_000:
        return f"{format_number(round(v / 1_000_000, 1), 1)}M"
    if v >= 1_000:
        return f"{format_number(round(v / 1_000, 1), 1)}K"
    return format_number(round(v), 0)


def money_cell(value: Optional[float], decimals: int = 2) -> Cell:
    return Cell(raw=None if value is None else float(value), display=format_number(value, decimals))


def count_cell(value: int) -> Cell:
    return Cell(raw=int(value), display=f"{int(value):,}")


def percent_cell(value: Optional[float]) -> Cell:
    return Cell(raw=value, display=format_percent(value))


def id_cell(value: Optional[int]) -> Cell:
    if value is None:
        return Cell(raw=None, display=PLACEHOLDER)
    return Cell(raw=int(value), display=str(int(value)))


def text_cell(value: object) -> Cell:
    if value is None or value == "":
        return Cell(raw=None, display=PLACEHOLDER)
    return Cell(raw=str(value), display=str(value))
