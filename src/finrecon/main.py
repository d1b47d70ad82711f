from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from finrecon.application.container import build_container
from finrecon.config import get_app_paths, load_settings
from finrecon.logging_config import setup_logging
from finrecon.services.reporting_service import GROUP_BY_OPTIONS

REPORT_TYPES = (
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
)


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="finrecon", description="Generate a financial report.")
    p.add_argument("report_type", choices=REPORT_TYPES)
    p.add_argument("--from", dest="date_from", default=None, help="YYYY-MM-DD, inclusive")
    p.add_argument("--to", dest="date_to", required=True, help="YYYY-MM-DD, inclusive")
    p.add_argument("--group-by", choices=GROUP_BY_OPTIONS, default=None)
    p.add_argument("--no-expenses", action="store_true")
    p.add_argument("--party-id", type=int, default=None)
    p.add_argument("--xlsx", type=Path, default=None, help="write the report to this workbook")
    return p


def _options(args: argparse.Namespace) -> dict:
    options: dict = {}
    if args.report_type == "profit":
        options["include_expenses"] = not args.no_expenses
        if args.group_by:
            options["group_by"] = args.group_by
    elif args.party_id is not None:
        if args.report_type in ("customers", "receivables"):
            options["customer_id"] = args.party_id
        elif args.report_type in ("suppliers", "payables"):
            options["supplier_id"] = args.party_id
    return options


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parser().parse_args(argv)

    settings = load_settings()
    setup_logging(settings.logs_dir or get_app_paths().logs_dir, level=logging.INFO)

    container = build_container(settings)
    report = container.reporting.generate(args.report_type, args.date_from, args.date_to, **_options(args))

    if args.xlsx is not None:
        container.excel.export(report, args.xlsx)
        print(f"Saved: {args.xlsx}")
    else:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
