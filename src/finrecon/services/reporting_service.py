from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Callable, Iterable, Optional, Sequence, Union

from finrecon.config import EngineSettings
from finrecon.domain.errors import ValidationError
from finrecon.domain.models import (
    PARTY_KIND_FOR,
    PURCHASE,
    SALE,
    Document,
    DocumentBalance,
    DocumentItem,
    DocumentKind,
    PartyBalance,
)
from finrecon.domain.reports import (
    Cell,
    Column,
    DateRange,
    ReportData,
    ReportType,
    Section,
    SummaryItem,
    SummarySection,
    TableSection,
)
from finrecon.formatting import count_cell, id_cell, money_cell, percent_cell, text_cell
from finrecon.repositories.contracts import ReportingRepository
from finrecon.services.balance_service import BalanceCalculator
from finrecon.services.currency_service import CurrencyNormalizer
from finrecon.services.fetching import fetch_all
from finrecon.services.inventory_service import BatchInventoryValuator, margin_percent

log = logging.getLogger("finrecon.reports")

DateLike = Union[date, str, None]

GROUP_BY_OPTIONS = ("none", "product", "month")

SUMMARY_TITLE = "Summary"
UNCATEGORIZED = "Uncategorized"
UNALLOCATED = "Unallocated (additional costs)"


def _money_col(key: str, label: str) -> Column:
    return Column(key, label, numeric=True)


def _percent_col(key: str, label: str) -> Column:
    return Column(key, label, numeric=True, percent=True)


def _document_columns(party_label: str) -> tuple[Column, ...]:
    return (
        Column("id", "No."),
        Column("date", "Date"),
        Column("party", party_label),
        _money_col("total", "Total"),
        _money_col("paid", "Paid"),
        _money_col("remaining", "Remaining"),
        Column("currency", "Currency"),
    )


ITEM_COLUMNS = (
    Column("document_id", "Document No."),
    Column("product", "Product"),
    _money_col("quantity", "Quantity"),
    Column("unit", "Unit"),
    _money_col("per_price", "Unit price"),
    _money_col("line_total", "Line total"),
)

PAYMENT_COLUMNS = (
    Column("document_id", "Document No."),
    Column("date", "Payment date"),
    _money_col("amount", "Amount"),
    Column("currency", "Currency"),
    _money_col("rate", "Rate"),
    _money_col("total", "Base amount"),
    Column("account", "Account"),
)

ADDITIONAL_COST_COLUMNS = (
    Column("document_id", "Document No."),
    Column("name", "Cost"),
    _money_col("amount", "Amount"),
)

EXPENSE_TYPE_COLUMNS = (
    Column("expense_type", "Expense type"),
    _money_col("count", "Count"),
    _money_col("total", "Total"),
)

EXPENSE_COLUMNS = (
    Column("id", "No."),
    Column("date", "Date"),
    Column("expense_type", "Type"),
    _money_col("amount", "Amount"),
    Column("currency", "Currency"),
    _money_col("rate", "Rate"),
    _money_col("total", "Total"),
    Column("bill_no", "Bill No."),
    Column("description", "Description"),
)

ACCOUNT_TOTAL_COLUMNS = (
    Column("account", "Account"),
    _money_col("deposits", "Deposits"),
    _money_col("withdrawals", "Withdrawals"),
    _money_col("net", "Net movement"),
)

TRANSACTION_COLUMNS = (
    Column("id", "No."),
    Column("date", "Date"),
    Column("account", "Account"),
    Column("type", "Type"),
    _money_col("amount", "Amount"),
    Column("currency", "Currency"),
    _money_col("rate", "Rate"),
    _money_col("total", "Total"),
    Column("notes", "Notes"),
)

PRODUCT_SALES_COLUMNS = (
    Column("product", "Product"),
    _money_col("quantity", "Quantity sold"),
    _money_col("amount", "Sales amount"),
    _money_col("document_count", "Sales"),
)

PRODUCT_PURCHASE_COLUMNS = (
    Column("product", "Product"),
    _money_col("quantity", "Quantity purchased"),
    _money_col("amount", "Purchase amount"),
    _money_col("document_count", "Purchases"),
)

PROFIT_PRODUCT_COLUMNS = (
    Column("product", "Product"),
    _money_col("revenue", "Revenue"),
    _money_col("cost", "Cost"),
    _money_col("profit", "Profit"),
    _percent_col("margin", "Margin"),
)

STOCK_COLUMNS = (
    Column("product", "Product"),
    Column("batch_number", "Batch"),
    Column("purchase_date", "Purchase date"),
    Column("expiry_date", "Expiry date"),
    Column("unit", "Unit"),
    _money_col("original_amount", "Purchased"),
    _money_col("remaining_quantity", "Remaining"),
    _money_col("cost_price", "Cost price"),
    _money_col("retail_price", "Retail price"),
    _money_col("stock_value", "Stock value"),
    _money_col("potential_revenue", "Potential revenue"),
    _money_col("potential_profit", "Potential profit"),
    _percent_col("margin", "Margin"),
)


def _party_columns(party_label: str) -> tuple[Column, ...]:
    return (
        Column("party", party_label),
        _money_col("document_count", "Documents"),
        _money_col("total", "Total"),
        _money_col("paid", "Paid"),
        _money_col("remaining", "Remaining"),
    )


def _outstanding_columns(party_label: str) -> tuple[Column, ...]:
    return (
        Column("party", party_label),
        Column("document_id", "Document No."),
        Column("date", "Date"),
        _money_col("total", "Total"),
        _money_col("paid", "Paid"),
        _money_col("remaining", "Remaining"),
    )


def _profit_month_columns(include_expenses: bool) -> tuple[Column, ...]:
    cols = (
        Column("month", "Month"),
        _money_col("revenue", "Revenue"),
        _money_col("cost", "Purchase cost"),
        _money_col("gross", "Gross profit"),
    )
    if include_expenses:
        cols += (_money_col("expenses", "Expenses"), _money_col("net", "Net profit"))
    return cols


_KIND_LABELS = {
    SALE: {"party": "Customer", "plural": "Sales", "singular": "Sale"},
    PURCHASE: {"party": "Supplier", "plural": "Purchases", "singular": "Purchase"},
}


def _iso(value: DateLike) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _month_key(iso_date: str) -> str:
    return str(iso_date)[:7]


class ReportingService:
    """Builds every dated report from source rows on each call.

    Parent rows are fetched first; child rows (items, payments, additional
    costs) follow in one batched call per kind keyed by the parent ids. Calls
    without an ordering dependency run concurrently. Nothing is cached.
    """

    def __init__(
        self,
        repo: ReportingRepository,
        normalizer: CurrencyNormalizer,
        settings: Optional[EngineSettings] = None,
    ):
        settings = settings or EngineSettings()
        self.repo = repo
        self.normalizer = normalizer
        self.balances = BalanceCalculator(normalizer)
        self.valuator = BatchInventoryValuator()
        self.max_workers = int(settings.max_parallel_fetches)
        self.decimals = int(settings.display_decimals)

    # ---------- plumbing ----------
    def _fetch(self, *calls: Callable[[], object]) -> list:
        return fetch_all(calls, max_workers=self.max_workers)

    def _money(self, value: Optional[float]) -> Cell:
        return money_cell(value, self.decimals)

    def _summary(self, items: Iterable[tuple[str, Cell]], title: str = SUMMARY_TITLE) -> SummarySection:
        return SummarySection(title=title, items=tuple(SummaryItem(label, cell) for label, cell in items))

    def _report(
        self,
        title: str,
        report_type: ReportType,
        date_from: Optional[str],
        date_to: Optional[str],
        summary: dict,
        sections: Sequence[Section],
    ) -> ReportData:
        report = ReportData(
            title=title,
            type=report_type,
            date_range=DateRange(date_from=date_from, date_to=date_to),
            currency=self.normalizer.base_currency_name,
            summary=summary,
            sections=tuple(sections),
        )
        rows = sum(len(t.rows) for t in report.tables())
        log.info("report_generated type=%s rows=%s from=%s to=%s", report_type, rows, date_from, date_to)
        return report

    def _document_rows(self, balances: Iterable[DocumentBalance]) -> tuple[dict[str, Cell], ...]:
        return tuple(
            {
                "id": id_cell(b.document.id),
                "date": text_cell(b.document.date),
                "party": text_cell(b.document.party_name),
                "total": self._money(b.total),
                "paid": self._money(b.paid),
                "remaining": self._money(b.remaining),
                "currency": text_cell(b.document.currency_name),
            }
            for b in balances
        )

    def _normalized_line(self, item: DocumentItem, docs_by_id: dict[int, Document]) -> float:
        doc = docs_by_id.get(int(item.document_id))
        rate = doc.exchange_rate if doc is not None else None
        return self.normalizer.normalize(item.line_total, rate)

    # ---------- transactional reports ----------
    def _document_report(self, kind: DocumentKind, report_type: ReportType, date_from: DateLike, date_to: DateLike) -> ReportData:
        f, t = _iso(date_from), _iso(date_to)
        labels = _KIND_LABELS[kind]

        docs = self.repo.list_documents(kind, f, t)
        ids = [d.id for d in docs]
        items, payments, costs = self._fetch(
            lambda: self.repo.list_items_by_document_ids(kind, ids),
            lambda: self.repo.list_payments_by_document_ids(kind, ids),
            lambda: self.repo.list_additional_costs_by_document_ids(kind, ids),
        )

        balances = self.balances.balances(docs, payments)
        total = sum((b.total for b in balances), 0.0)
        paid = sum((b.paid for b in balances), 0.0)
        remaining = sum((b.remaining for b in balances), 0.0)

        item_rows = tuple(
            {
                "document_id": id_cell(it.document_id),
                "product": text_cell(it.product_name),
                "quantity": self._money(it.quantity),
                "unit": text_cell(it.unit_name),
                "per_price": self._money(it.per_price),
                "line_total": self._money(it.line_total),
            }
            for it in items
        )
        payment_rows = tuple(
            {
                "document_id": id_cell(p.document_id),
                "date": text_cell(p.date),
                "amount": self._money(p.amount),
                "currency": text_cell(p.currency),
                "rate": self._money(p.rate),
                "total": self._money(self.normalizer.normalize(p.amount, p.rate)),
                "account": text_cell(p.account_name),
            }
            for p in payments
        )
        cost_rows = tuple(
            {
                "document_id": id_cell(c.document_id),
                "name": text_cell(c.name),
                "amount": self._money(c.amount),
            }
            for c in costs
        )

        plural = labels["plural"]
        return self._report(
            title=f"{plural} report",
            report_type=report_type,
            date_from=f,
            date_to=t,
            summary={
                "totalCount": len(docs),
                "totalAmount": total,
                "paidAmount": paid,
                "remainingAmount": remaining,
            },
            sections=[
                self._summary(
                    [
                        (f"{plural} count", count_cell(len(docs))),
                        ("Total amount", self._money(total)),
                        ("Paid amount", self._money(paid)),
                        ("Remaining amount", self._money(remaining)),
                    ]
                ),
                TableSection(f"{plural} list", _document_columns(labels["party"]), self._document_rows(balances)),
                TableSection(f"{labels['singular']} items", ITEM_COLUMNS, item_rows),
                TableSection(f"{labels['singular']} payments", PAYMENT_COLUMNS, payment_rows),
                TableSection("Additional costs", ADDITIONAL_COST_COLUMNS, cost_rows),
            ],
        )

    def sales_report(self, date_from: DateLike, date_to: DateLike) -> ReportData:
        return self._document_report(SALE, "sales", date_from, date_to)

    def purchase_report(self, date_from: DateLike, date_to: DateLike) -> ReportData:
        return self._document_report(PURCHASE, "purchases", date_from, date_to)

    def expense_report(self, date_from: DateLike, date_to: DateLike) -> ReportData:
        f, t = _iso(date_from), _iso(date_to)
        expenses = self.repo.list_expenses(f, t)

        by_type: dict[str, list] = defaultdict(list)
        for e in expenses:
            by_type[e.expense_type_name or UNCATEGORIZED].append(e)

        total = self.normalizer.normalize_total(expenses)
        type_rows = tuple(
            {
                "expense_type": text_cell(name),
                "count": count_cell(len(rows)),
                "total": self._money(self.normalizer.normalize_total(rows)),
            }
            for name, rows in by_type.items()
        )
        expense_rows = tuple(
            {
                "id": id_cell(e.id),
                "date": text_cell(e.date),
                "expense_type": text_cell(e.expense_type_name or UNCATEGORIZED),
                "amount": self._money(e.amount),
                "currency": text_cell(e.currency),
                "rate": self._money(e.rate),
                "total": self._money(self.normalizer.normalize(e.amount, e.rate)),
                "bill_no": text_cell(e.bill_no),
                "description": text_cell(e.description),
            }
            for e in expenses
        )
        return self._report(
            title="Expenses report",
            report_type="expenses",
            date_from=f,
            date_to=t,
            summary={"totalCount": len(expenses), "totalAmount": total},
            sections=[
                self._summary([("Expenses count", count_cell(len(expenses))), ("Total amount", self._money(total))]),
                TableSection("Totals by expense type", EXPENSE_TYPE_COLUMNS, type_rows),
                TableSection("Expenses list", EXPENSE_COLUMNS, expense_rows),
            ],
        )

    def account_report(self, date_from: DateLike, date_to: DateLike) -> ReportData:
        f, t = _iso(date_from), _iso(date_to)
        transactions = self.repo.list_account_transactions(f, t)

        deposits = [tx for tx in transactions if tx.transaction_type == "deposit"]
        withdrawals = [tx for tx in transactions if tx.transaction_type == "withdraw"]
        total_deposits = self.normalizer.normalize_total(deposits)
        total_withdrawals = self.normalizer.normalize_total(withdrawals)

        per_account: dict[str, list[float]] = {}
        for tx in transactions:
            bucket = per_account.setdefault(tx.account_name or f"#{tx.account_id}", [0.0, 0.0])
            value = self.normalizer.normalize(tx.amount, tx.rate)
            if tx.transaction_type == "deposit":
                bucket[0] += value
            elif tx.transaction_type == "withdraw":
                bucket[1] += value

        account_rows = tuple(
            {
                "account": text_cell(name),
                "deposits": self._money(dep),
                "withdrawals": self._money(wd),
                "net": self._money(dep - wd),
            }
            for name, (dep, wd) in per_account.items()
        )
        tx_rows = tuple(
            {
                "id": id_cell(tx.id),
                "date": text_cell(tx.date),
                "account": text_cell(tx.account_name),
                "type": text_cell({"deposit": "Deposit", "withdraw": "Withdrawal"}.get(tx.transaction_type, tx.transaction_type)),
                "amount": self._money(tx.amount),
                "currency": text_cell(tx.currency),
                "rate": self._money(tx.rate),
                "total": self._money(self.normalizer.normalize(tx.amount, tx.rate)),
                "notes": text_cell(tx.notes),
            }
            for tx in transactions
        )
        return self._report(
            title="Accounts report",
            report_type="accounts",
            date_from=f,
            date_to=t,
            summary={
                "totalCount": len(transactions),
                "totalDeposits": total_deposits,
                "totalWithdrawals": total_withdrawals,
                "netMovement": total_deposits - total_withdrawals,
            },
            sections=[
                self._summary(
                    [
                        ("Transactions count", count_cell(len(transactions))),
                        ("Total deposits", self._money(total_deposits)),
                        ("Total withdrawals", self._money(total_withdrawals)),
                        ("Net movement", self._money(total_deposits - total_withdrawals)),
                    ]
                ),
                TableSection("Totals by account", ACCOUNT_TOTAL_COLUMNS, account_rows),
                TableSection("Transactions list", TRANSACTION_COLUMNS, tx_rows),
            ],
        )

    def _product_totals(self, items: Iterable[DocumentItem], docs: Sequence[Document]) -> dict[int, dict]:
        docs_by_id = {int(d.id): d for d in docs}
        totals: dict[int, dict] = {}
        for it in items:
            entry = totals.setdefault(
                int(it.product_id),
                {"name": it.product_name, "quantity": 0.0, "amount": 0.0, "documents": set()},
            )
            entry["quantity"] += float(it.quantity)
            entry["amount"] += self._normalized_line(it, docs_by_id)
            entry["documents"].add(int(it.document_id))
            if entry["name"] is None:
                entry["name"] = it.product_name
        return totals

    def _product_rows(self, totals: dict[int, dict]) -> tuple[dict[str, Cell], ...]:
        ordered = sorted(totals.values(), key=lambda e: (-e["amount"], e["name"] or ""))
        return tuple(
            {
                "product": text_cell(e["name"]),
                "quantity": self._money(e["quantity"]),
                "amount": self._money(e["amount"]),
                "document_count": count_cell(len(e["documents"])),
            }
            for e in ordered
        )

    def product_report(self, date_from: DateLike, date_to: DateLike) -> ReportData:
        f, t = _iso(date_from), _iso(date_to)
        sales, purchases = self._fetch(
            lambda: self.repo.list_documents(SALE, f, t),
            lambda: self.repo.list_documents(PURCHASE, f, t),
        )
        sale_ids = [d.id for d in sales]
        purchase_ids = [d.id for d in purchases]
        sale_items, purchase_items = self._fetch(
            lambda: self.repo.list_items_by_document_ids(SALE, sale_ids),
            lambda: self.repo.list_items_by_document_ids(PURCHASE, purchase_ids),
        )

        sold = self._product_totals(sale_items, sales)
        bought = self._product_totals(purchase_items, purchases)
        total_sales = sum((e["amount"] for e in sold.values()), 0.0)
        total_purchases = sum((e["amount"] for e in bought.values()), 0.0)
        product_count = len(set(sold) | set(bought))

        return self._report(
            title="Products report",
            report_type="products",
            date_from=f,
            date_to=t,
            summary={
                "totalCount": product_count,
                "totalSalesAmount": total_sales,
                "totalPurchaseAmount": total_purchases,
            },
            sections=[
                self._summary(
                    [
                        ("Products count", count_cell(product_count)),
                        ("Total product sales", self._money(total_sales)),
                        ("Total product purchases", self._money(total_purchases)),
                    ]
                ),
                TableSection("Product sales", PRODUCT_SALES_COLUMNS, self._product_rows(sold)),
                TableSection("Product purchases", PRODUCT_PURCHASE_COLUMNS, self._product_rows(bought)),
            ],
        )

    # ---------- party reports ----------
    def _party_rows(self, parties: Iterable[PartyBalance]) -> tuple[dict[str, Cell], ...]:
        return tuple(
            {
                "party": text_cell(p.party_name),
                "document_count": count_cell(p.document_count),
                "total": self._money(p.total),
                "paid": self._money(p.paid),
                "remaining": self._money(p.remaining),
            }
            for p in parties
        )

    def _party_title(self, party_id: Optional[int], name: Optional[str], base: str, prefix: str) -> str:
        if party_id is not None and name:
            return f"{prefix}: {name}"
        return base

    def _party_lookup(self, kind: DocumentKind, party_id: Optional[int]) -> Callable[[], Optional[str]]:
        party_kind = PARTY_KIND_FOR[kind]

        def lookup() -> Optional[str]:
            if party_id is None:
                return None
            party = self.repo.get_party(party_kind, int(party_id))
            return party.full_name if party else None

        return lookup

    def _party_report(self, kind: DocumentKind, report_type: ReportType, date_from: DateLike, date_to: DateLike, party_id: Optional[int]) -> ReportData:
        f, t = _iso(date_from), _iso(date_to)
        labels = _KIND_LABELS[kind]

        docs, party_name = self._fetch(
            lambda: self.repo.list_documents(kind, f, t, party_id=party_id),
            self._party_lookup(kind, party_id),
        )
        payments = self.repo.list_payments_by_document_ids(kind, [d.id for d in docs])
        parties = self.balances.party_balances(self.balances.balances(docs, payments))
        parties.sort(key=lambda p: (-p.total, p.party_name or ""))

        total = sum((p.total for p in parties), 0.0)
        paid = sum((p.paid for p in parties), 0.0)
        remaining = sum((p.remaining for p in parties), 0.0)
        party_label = labels["party"]
        title = self._party_title(party_id, party_name, f"{party_label}s report", f"{party_label} report")

        return self._report(
            title=title,
            report_type=report_type,
            date_from=f,
            date_to=t,
            summary={
                "totalCount": len(parties),
                "totalAmount": total,
                "paidAmount": paid,
                "remainingAmount": remaining,
            },
            sections=[
                self._summary(
                    [
                        (f"{party_label}s count", count_cell(len(parties))),
                        (f"Total {labels['plural'].lower()}", self._money(total)),
                        ("Total paid", self._money(paid)),
                        ("Total remaining", self._money(remaining)),
                    ]
                ),
                TableSection(f"{party_label}s list", _party_columns(party_label), self._party_rows(parties)),
            ],
        )

    def customer_report(self, date_from: DateLike, date_to: DateLike, customer_id: Optional[int] = None) -> ReportData:
        return self._party_report(SALE, "customers", date_from, date_to, customer_id)

    def supplier_report(self, date_from: DateLike, date_to: DateLike, supplier_id: Optional[int] = None) -> ReportData:
        return self._party_report(PURCHASE, "suppliers", date_from, date_to, supplier_id)

    def _balance_report(self, kind: DocumentKind, report_type: ReportType, date_from: DateLike, date_to: DateLike, party_id: Optional[int]) -> ReportData:
        """As-of balance: every document up to ``date_to``, the lower bound is ignored."""
        f, t = _iso(date_from), _iso(date_to)
        labels = _KIND_LABELS[kind]

        docs, party_name = self._fetch(
            lambda: self.repo.list_documents(kind, None, t, party_id=party_id),
            self._party_lookup(kind, party_id),
        )
        payments = self.repo.list_payments_by_document_ids(kind, [d.id for d in docs])
        parties = self.balances.outstanding(
            self.balances.party_balances(self.balances.balances(docs, payments))
        )
        parties.sort(key=lambda p: (-p.remaining, p.party_name or ""))

        total = sum((p.total for p in parties), 0.0)
        paid = sum((p.paid for p in parties), 0.0)
        remaining = sum((p.remaining for p in parties), 0.0)

        party_label = labels["party"]
        heading = "Receivables" if kind == SALE else "Payables"
        list_title = f"{heading} ({party_label.lower()}s)"
        title = self._party_title(party_id, party_name, list_title, heading)

        outstanding_rows = tuple(
            {
                "party": text_cell(p.party_name),
                "document_id": id_cell(b.document.id),
                "date": text_cell(b.document.date),
                "total": self._money(b.total),
                "paid": self._money(b.paid),
                "remaining": self._money(b.remaining),
            }
            for p in parties
            for b in sorted(p.documents, key=lambda b: (b.document.date, b.document.id))
            if b.remaining != 0
        )

        return self._report(
            title=title,
            report_type=report_type,
            date_from=f,
            date_to=t,
            summary={
                "totalCount": len(parties),
                "totalAmount": total,
                "paidAmount": paid,
                "remainingAmount": remaining,
            },
            sections=[
                self._summary(
                    [
                        (f"{party_label}s with balance", count_cell(len(parties))),
                        (f"Total {labels['plural'].lower()}", self._money(total)),
                        ("Total paid", self._money(paid)),
                        (f"Total {heading.lower()}", self._money(remaining)),
                    ]
                ),
                TableSection(list_title, _party_columns(party_label), self._party_rows(parties)),
                TableSection("Outstanding documents", _outstanding_columns(party_label), outstanding_rows),
            ],
        )

    def receivables_report(self, date_from: DateLike, date_to: DateLike, customer_id: Optional[int] = None) -> ReportData:
        return self._balance_report(SALE, "receivables", date_from, date_to, customer_id)

    def payables_report(self, date_from: DateLike, date_to: DateLike, supplier_id: Optional[int] = None) -> ReportData:
        return self._balance_report(PURCHASE, "payables", date_from, date_to, supplier_id)

    # ---------- profit ----------
    def profit_report(
        self,
        date_from: DateLike,
        date_to: DateLike,
        include_expenses: bool = True,
        group_by: str = "none",
    ) -> ReportData:
        """Revenue is normalized sale totals, cost normalized purchase totals.

        Grouped rows always add up to the ungrouped figures: document-level
        amounts not carried by any item land in an "unallocated" product row.
        """
        if group_by not in GROUP_BY_OPTIONS:
            raise ValidationError(f"group_by must be one of {GROUP_BY_OPTIONS}. Received: {group_by!r}")
        f, t = _iso(date_from), _iso(date_to)

        sales, purchases, expenses = self._fetch(
            lambda: self.repo.list_documents(SALE, f, t),
            lambda: self.repo.list_documents(PURCHASE, f, t),
            (lambda: self.repo.list_expenses(f, t)) if include_expenses else (lambda: []),
        )

        revenue = sum((self.balances.document_total(d) for d in sales), 0.0)
        cost = sum((self.balances.document_total(d) for d in purchases), 0.0)
        expenses_total = self.normalizer.normalize_total(expenses)
        gross = revenue - cost
        net = gross - expenses_total
        margin_gross = margin_percent(gross, revenue)
        margin_net = margin_percent(net, revenue) if include_expenses else None

        summary_items = [
            ("Revenue", self._money(revenue)),
            ("Purchase cost", self._money(cost)),
            ("Gross profit", self._money(gross)),
        ]
        if include_expenses:
            summary_items += [
                ("Expenses", self._money(expenses_total)),
                ("Net profit", self._money(net)),
                ("Net margin", percent_cell(margin_net)),
            ]
        else:
            summary_items.append(("Gross margin", percent_cell(margin_gross)))

        sections: list[Section] = [self._summary(summary_items)]
        if group_by == "product":
            sections.append(self._profit_by_product(sales, purchases, revenue, cost))
        elif group_by == "month":
            sections.append(self._profit_by_month(sales, purchases, expenses, include_expenses))

        return self._report(
            title="Profit report",
            report_type="profit",
            date_from=f,
            date_to=t,
            summary={
                "totalCount": len(sales) + len(purchases),
                "revenue": revenue,
                "cost": cost,
                "grossProfit": gross,
                "expensesTotal": expenses_total if include_expenses else None,
                "netProfit": net if include_expenses else None,
                "marginGross": margin_gross,
                "marginNet": margin_net,
            },
            sections=sections,
        )

    def _profit_row(self, label: Optional[str], revenue: float, cost: float) -> dict[str, Cell]:
        profit = revenue - cost
        return {
            "product": text_cell(label),
            "revenue": self._money(revenue),
            "cost": self._money(cost),
            "profit": self._money(profit),
            "margin": percent_cell(margin_percent(profit, revenue)),
        }

    def _profit_by_product(self, sales: Sequence[Document], purchases: Sequence[Document], revenue: float, cost: float) -> TableSection:
        sale_ids = [d.id for d in sales]
        purchase_ids = [d.id for d in purchases]
        sale_items, purchase_items = self._fetch(
            lambda: self.repo.list_items_by_document_ids(SALE, sale_ids),
            lambda: self.repo.list_items_by_document_ids(PURCHASE, purchase_ids),
        )
        sold = self._product_totals(sale_items, sales)
        bought = self._product_totals(purchase_items, purchases)

        product_ids = set(sold) | set(bought)
        entries = []
        for pid in product_ids:
            rev = sold[pid]["amount"] if pid in sold else 0.0
            cst = bought[pid]["amount"] if pid in bought else 0.0
            name = (sold.get(pid) or bought.get(pid))["name"]
            entries.append((name, rev, cst))
        entries.sort(key=lambda e: (-e[1], e[0] or ""))

        rows = [self._profit_row(name, rev, cst) for name, rev, cst in entries]
        unallocated_revenue = revenue - sum((e[1] for e in entries), 0.0)
        unallocated_cost = cost - sum((e[2] for e in entries), 0.0)
        if abs(unallocated_revenue) > 1e-9 or abs(unallocated_cost) > 1e-9:
            rows.append(self._profit_row(UNALLOCATED, unallocated_revenue, unallocated_cost))

        return TableSection("Profit by product", PROFIT_PRODUCT_COLUMNS, tuple(rows))

    def _profit_by_month(self, sales: Sequence[Document], purchases: Sequence[Document], expenses: Sequence, include_expenses: bool) -> TableSection:
        revenue_by_month: dict[str, float] = defaultdict(float)
        cost_by_month: dict[str, float] = defaultdict(float)
        expenses_by_month: dict[str, float] = defaultdict(float)
        for d in sales:
            revenue_by_month[_month_key(d.date)] += self.balances.document_total(d)
        for d in purchases:
            cost_by_month[_month_key(d.date)] += self.balances.document_total(d)
        for e in expenses:
            expenses_by_month[_month_key(e.date)] += self.normalizer.normalize(e.amount, e.rate)

        months = sorted(set(revenue_by_month) | set(cost_by_month) | set(expenses_by_month))
        rows = []
        for month in months:
            rev = revenue_by_month.get(month, 0.0)
            cst = cost_by_month.get(month, 0.0)
            gross = rev - cst
            row = {
                "month": text_cell(month),
                "revenue": self._money(rev),
                "cost": self._money(cst),
                "gross": self._money(gross),
            }
            if include_expenses:
                exp = expenses_by_month.get(month, 0.0)
                row["expenses"] = self._money(exp)
                row["net"] = self._money(gross - exp)
            rows.append(row)

        return TableSection("Profit by month", _profit_month_columns(include_expenses), tuple(rows))

    # ---------- stock ----------
    def stock_report(self, as_of: DateLike = None) -> ReportData:
        as_of_iso = _iso(as_of) or date.today().isoformat()
        valuation = self.valuator.valuate_all(self.repo.list_stock_batches())

        rows = tuple(
            {
                "product": text_cell(v.batch.product_name),
                "batch_number": text_cell(v.batch.batch_number),
                "purchase_date": text_cell(v.batch.purchase_date),
                "expiry_date": text_cell(v.batch.expiry_date),
                "unit": text_cell(v.batch.unit_name),
                "original_amount": self._money(v.batch.original_amount),
                "remaining_quantity": self._money(v.batch.remaining_quantity),
                "cost_price": self._money(v.batch.cost_price if v.batch.cost_price is not None else v.batch.per_price),
                "retail_price": self._money(v.batch.retail_price if v.batch.retail_price is not None else v.batch.per_price),
                "stock_value": self._money(v.stock_value),
                "potential_revenue": self._money(v.potential_revenue),
                "potential_profit": self._money(v.potential_profit),
                "margin": percent_cell(v.margin_percent),
            }
            for v in valuation.batches
        )
        return self._report(
            title="Stock by batch",
            report_type="stock",
            date_from=None,
            date_to=as_of_iso,
            summary={
                "totalBatches": len(valuation.batches),
                "totalStockValue": valuation.total_stock_value,
                "totalPotentialRevenue": valuation.total_potential_revenue,
                "totalPotentialProfit": valuation.total_potential_profit,
                "marginPercent": valuation.margin_percent,
            },
            sections=[
                self._summary(
                    [
                        ("Batches in stock", count_cell(len(valuation.batches))),
                        ("Stock value", self._money(valuation.total_stock_value)),
                        ("Potential revenue", self._money(valuation.total_potential_revenue)),
                        ("Potential profit", self._money(valuation.total_potential_profit)),
                        ("Margin", percent_cell(valuation.margin_percent)),
                    ]
                ),
                TableSection("Batches", STOCK_COLUMNS, rows),
            ],
        )

    # ---------- dispatch ----------
    def generate(self, report_type: str, date_from: DateLike, date_to: DateLike, **options) -> ReportData:
        handlers: dict[str, Callable[..., ReportData]] = {
            "sales": self.sales_report,
            "purchases": self.purchase_report,
            "expenses": self.expense_report,
            "accounts": self.account_report,
            "products": self.product_report,
            "customers": self.customer_report,
            "suppliers": self.supplier_report,
            "receivables": self.receivables_report,
            "payables": self.payables_report,
            "profit": self.profit_report,
        }
        if report_type == "stock":
            return self.stock_report(as_of=date_to)
        handler = handlers.get(report_type)
        if handler is None:
            raise ValidationError(f"Unknown report type: {report_type!r}")
        return handler(date_from, date_to, **options)
