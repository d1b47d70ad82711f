from __future__ import annotations

import logging
import re
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from finrecon.domain.reports import ReportData, SummarySection, TableSection

log = logging.getLogger("finrecon.reports")

MAX_SHEET_NAME = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_INVALID_TABLE_CHARS = re.compile(r"[^A-Za-z0-9_]")


def sheet_title(title: str, taken: set[str]) -> str:
    """Excel-safe, unique (case-insensitive) worksheet name."""
    base = _INVALID_SHEET_CHARS.sub(" ", title).strip().strip("'") or "Sheet"
    base = base[:MAX_SHEET_NAME]
    name = base
    n = 2
    while name.lower() in taken:
        suffix = f" ({n})"
        name = base[: MAX_SHEET_NAME - len(suffix)] + suffix
        n += 1
    taken.add(name.lower())
    return name


def table_name(title: str, index: int) -> str:
    cleaned = _INVALID_TABLE_CHARS.sub("", title.title()) or "Section"
    return f"T{index}_{cleaned}"[:250]


class ReportExcelExporter:
    """Writes a ``ReportData`` to an .xlsx workbook.

    Cells hold raw values; the display strings only drive column widths.
    """

    def export(self, report: ReportData, path: str | Path) -> Path:
        path = Path(path)
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def pct(cell):
            cell.number_format = "0.00%"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        taken: set[str] = set()

        # -------- Summary --------
        ws = wb.active
        ws.title = sheet_title("Summary", taken)
        ws["A1"] = report.title
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Window"
        ws["B3"] = f"{report.date_range.date_from or '...'}  ->  {report.date_range.date_to or '...'}"
        ws["A4"] = "Currency"
        ws["B4"] = report.currency

        r = 6
        for section in report.sections:
            if not isinstance(section, SummarySection):
                continue
            ws[f"A{r}"] = section.title
            ws[f"A{r}"].font = Font(bold=True)
            r += 1
            for item in section.items:
                ws[f"A{r}"] = item.label
                ws[f"B{r}"] = item.cell.raw
                if isinstance(item.cell.raw, float):
                    money(ws[f"B{r}"])
                r += 1
            r += 1

        ws[f"A{r}"] = "Key"
        ws[f"B{r}"] = "Value"
        bold_row(ws, r)
        for key, value in report.summary.items():
            r += 1
            ws[f"A{r}"] = key
            ws[f"B{r}"] = value
            if isinstance(value, float):
                money(ws[f"B{r}"])

        set_widths(ws, {"A": 32, "B": 34})

        # -------- One sheet per table section --------
        tables: list[TableSection] = list(report.tables())
        for index, section in enumerate(tables, start=1):
            wsn = wb.create_sheet(sheet_title(section.title, taken))
            wsn.append([c.label for c in section.columns])
            bold_row(wsn, 1)

            widths = [len(c.label) for c in section.columns]
            for out_row, row in enumerate(section.rows, start=2):
                values = []
                for i, col in enumerate(section.columns):
                    cell = row.get(col.key)
                    value = cell.raw if cell is not None else None
                    # percent cells hold 33.3 for 33.3%; Excel expects the fraction
                    if col.percent and isinstance(value, (int, float)):
                        value = value / 100
                    values.append(value)
                    if cell is not None:
                        widths[i] = max(widths[i], len(cell.display))
                wsn.append(values)
                for i, col in enumerate(section.columns, start=1):
                    target = wsn.cell(row=out_row, column=i)
                    if col.percent and target.value is not None:
                        pct(target)
                    elif col.numeric and isinstance(target.value, float):
                        money(target)

            wsn.freeze_panes = "A2"
            set_widths(wsn, {get_column_letter(i): min(w + 2, 50) for i, w in enumerate(widths, start=1)})
            if section.rows:
                add_table(wsn, table_name(section.title, index), 1, 1, wsn.max_row, len(section.columns))

        path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(path)
        log.info("report_exported type=%s sheets=%s path=%s", report.type, len(wb.sheetnames), path)
        return path
