from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Union

Raw = Union[int, float, str, None]

ReportType = Literal[
    "sales",
    "purchases",
    "expenses",
    "accounts",
    "products",
    "customers",
    "suppliers",
    "receivables",
    "payables",
    "profit",
    "stock",
]


@dataclass(frozen=True)
class Cell:
    """A value as stored (``raw``) and as shown on screen (``display``)."""

    raw: Raw
    display: str


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    numeric: bool = False
    percent: bool = False


@dataclass(frozen=True)
class SummaryItem:
    label: str
    cell: Cell


@dataclass(frozen=True)
class TableSection:
    title: str
    columns: tuple[Column, ...]
    rows: tuple[dict[str, Cell], ...] = ()
    kind: Literal["table"] = field(default="table", init=False)

    def column_values(self, key: str) -> list[Raw]:
        return [row[key].raw for row in self.rows]


@dataclass(frozen=True)
class SummarySection:
    title: str
    items: tuple[SummaryItem, ...] = ()
    kind: Literal["summary"] = field(default="summary", init=False)


Section = Union[TableSection, SummarySection]


@dataclass(frozen=True)
class DateRange:
    date_from: Optional[str]
    date_to: Optional[str]


@dataclass(frozen=True)
class ReportData:
    title: str
    type: ReportType
    date_range: DateRange
    currency: Optional[str]
    summary: dict[str, Optional[float]]
    sections: tuple[Section, ...]

    def section(self, title: str) -> Section:
        for s in self.sections:
            if s.title == title:
                return s
        raise KeyError(title)

    def tables(self) -> list[TableSection]:
        return [s for s in self.sections if isinstance(s, TableSection)]

    def to_dict(self) -> dict:
        sections = []
        for s in self.sections:
            if isinstance(s, TableSection):
                sections.append(
                    {
                        "title": s.title,
                        "type": s.kind,
                        "columns": [{"key": c.key, "label": c.label, "numeric": c.numeric, "percent": c.percent} for c in s.columns],
                        "rows": [
                            {k: {"raw": c.raw, "display": c.display} for k, c in row.items()}
                            for row in s.rows
                        ],
                    }
                )
            else:
                sections.append(
                    {
                        "title": s.title,
                        "type": s.kind,
                        "items": [
                            {"label": it.label, "raw": it.cell.raw, "display": it.cell.display}
                            for it in s.items
                        ],
                    }
                )
        return {
            "title": self.title,
            "type": self.type,
            "dateRange": {"from": self.date_range.date_from, "to": self.date_range.date_to},
            "currency": self.currency,
            "summary": dict(self.summary),
            "sections": sections,
        }
