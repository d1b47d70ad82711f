from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from finrecon.domain.errors import ValidationError
from finrecon.domain.models import (
    AccountTransaction,
    AdditionalCost,
    Currency,
    Deduction,
    Document,
    DocumentItem,
    DocumentKind,
    Expense,
    Party,
    PartyKind,
    Payment,
    Product,
    StockBatch,
)


@dataclass(frozen=True)
class _DocumentTables:
    table: str
    party_column: str
    party_table: str
    items: str
    payments: str
    costs: str
    fk: str
    rate_expr: str
    payment_cols: str
    payment_joins: str
    item_extra_cols: str


_DOCUMENT_TABLES: dict[str, _DocumentTables] = {
    "sale": _DocumentTables(
        table="sales",
        party_column="customer_id",
        party_table="customers",
        items="sale_items",
        payments="sale_payments",
        costs="sale_additional_costs",
        fk="sale_id",
        rate_expr="d.exchange_rate",
        payment_cols="pay.amount AS amount, curr.name AS currency, pay.exchange_rate AS rate",
        payment_joins="LEFT JOIN currencies curr ON pay.currency_id = curr.id",
        item_extra_cols="NULL AS cost_price, NULL AS retail_price, NULL AS expiry_date",
    ),
    # purchases are stored in base currency and carry no rate of their own
    "purchase": _DocumentTables(
        table="purchases",
        party_column="supplier_id",
        party_table="suppliers",
        items="purchase_items",
        payments="purchase_payments",
        costs="purchase_additional_costs",
        fk="purchase_id",
        rate_expr="1.0",
        payment_cols="pay.amount AS amount, pay.currency AS currency, pay.rate AS rate",
        payment_joins="",
        item_extra_cols="i.cost_price AS cost_price, i.retail_price AS retail_price, i.expiry_date AS expiry_date",
    ),
}

_PARTY_TABLES: dict[str, str] = {"customer": "customers", "supplier": "suppliers"}


def _tables(kind: str) -> _DocumentTables:
    try:
        return _DOCUMENT_TABLES[kind]
    except KeyError:
        raise ValidationError(f"Unknown document kind: {kind!r}") from None


def _party_table(kind: str) -> str:
    try:
        return _PARTY_TABLES[kind]
    except KeyError:
        raise ValidationError(f"Unknown party kind: {kind!r}") from None


def _opt_float(v: Any) -> Optional[float]:
    return None if v is None else float(v)


def _opt_str(v: Any) -> Optional[str]:
    return None if v is None else str(v)


def _opt_int(v: Any) -> Optional[int]:
    return None if v is None else int(v)


def _date_filter(column: str, date_from: Optional[str], date_to: Optional[str]) -> tuple[list[str], list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if date_from is not None:
        clauses.append(f"{column} >= ?")
        params.append(date_from)
    if date_to is not None:
        clauses.append(f"{column} <= ?")
        params.append(date_to)
    return clauses, params


def _where(clauses: list[str]) -> str:
    return f"WHERE {' AND '.join(clauses)}" if clauses else ""


def _placeholders(ids: Sequence[int]) -> str:
    return ",".join("?" for _ in ids)


class SqlRepository:
    """Read-only queries over the bookkeeping schema.

    Uses only ``?`` placeholders and plain SELECTs so the same statements run
    on SQLite locally and on the MySQL-backed invoke endpoint. Subclasses
    provide ``_query``.
    """

    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        raise NotImplementedError

    # ---------- Currencies ----------
    def list_currencies(self) -> list[Currency]:
        rows = self._query("SELECT id, name, base, rate FROM currencies ORDER BY base DESC, name ASC")
        return [
            Currency(id=int(r["id"]), name=str(r["name"]), is_base=int(r["base"]) == 1, rate=float(r["rate"]))
            for r in rows
        ]

    # ---------- Documents ----------
    def list_documents(
        self,
        kind: DocumentKind,
        date_from: Optional[str],
        date_to: Optional[str],
        party_id: Optional[int] = None,
    ) -> list[Document]:
        t = _tables(kind)
        clauses, params = _date_filter("d.date", date_from, date_to)
        if party_id is not None:
            clauses.append(f"d.{t.party_column} = ?")
            params.append(int(party_id))
        rows = self._query(
            f"""
            SELECT d.id AS id, d.{t.party_column} AS party_id, pt.full_name AS party_name, d.date AS date,
                   d.total_amount AS total_amount, d.currency_id AS currency_id, curr.name AS currency_name,
                   {t.rate_expr} AS exchange_rate, d.notes AS notes
            FROM {t.table} d
            LEFT JOIN {t.party_table} pt ON d.{t.party_column} = pt.id
            LEFT JOIN currencies curr ON d.currency_id = curr.id
            {_where(clauses)}
            ORDER BY d.date DESC, d.id DESC
            """,
            params,
        )
        return [
            Document(
                id=int(r["id"]),
                kind=kind,
                party_id=int(r["party_id"]),
                party_name=_opt_str(r["party_name"]),
                date=str(r["date"]),
                total_amount=float(r["total_amount"] or 0.0),
                currency_id=_opt_int(r["currency_id"]),
                currency_name=_opt_str(r["currency_name"]),
                exchange_rate=_opt_float(r["exchange_rate"]),
                notes=_opt_str(r["notes"]),
            )
            for r in rows
        ]

    def list_items_by_document_ids(self, kind: DocumentKind, ids: Sequence[int]) -> list[DocumentItem]:
        ids = [int(i) for i in ids]
        if not ids:
            return []
        t = _tables(kind)
        rows = self._query(
            f"""
            SELECT i.id AS id, i.{t.fk} AS document_id, i.product_id AS product_id, p.name AS product_name,
                   i.unit_id AS unit_id, u.name AS unit_name, i.amount AS quantity, i.per_price AS per_price,
                   i.total AS line_total, {t.item_extra_cols}
            FROM {t.items} i
            LEFT JOIN products p ON i.product_id = p.id
            LEFT JOIN units u ON i.unit_id = u.id
            WHERE i.{t.fk} IN ({_placeholders(ids)})
            ORDER BY i.{t.fk}, i.id
            """,
            ids,
        )
        return [
            DocumentItem(
                id=int(r["id"]),
                document_id=int(r["document_id"]),
                product_id=int(r["product_id"]),
                product_name=_opt_str(r["product_name"]),
                unit_id=_opt_int(r["unit_id"]),
                unit_name=_opt_str(r["unit_name"]),
                quantity=float(r["quantity"]),
                per_price=float(r["per_price"]),
                line_total=float(r["line_total"]),
                cost_price=_opt_float(r["cost_price"]),
                retail_price=_opt_float(r["retail_price"]),
                expiry_date=_opt_str(r["expiry_date"]),
            )
            for r in rows
        ]

    def list_payments_by_document_ids(self, kind: DocumentKind, ids: Sequence[int]) -> list[Payment]:
        ids = [int(i) for i in ids]
        if not ids:
            return []
        t = _tables(kind)
        rows = self._query(
            f"""
            SELECT pay.id AS id, pay.{t.fk} AS document_id, {t.payment_cols},
                   pay.date AS date, a.name AS account_name
            FROM {t.payments} pay
            LEFT JOIN accounts a ON pay.account_id = a.id
            {t.payment_joins}
            WHERE pay.{t.fk} IN ({_placeholders(ids)})
            ORDER BY pay.{t.fk}, pay.date, pay.id
            """,
            ids,
        )
        return [
            Payment(
                id=int(r["id"]),
                document_id=int(r["document_id"]),
                amount=float(r["amount"]),
                currency=_opt_str(r["currency"]),
                rate=_opt_float(r["rate"]),
                date=str(r["date"]),
                account_name=_opt_str(r["account_name"]),
            )
            for r in rows
        ]

    def list_additional_costs_by_document_ids(self, kind: DocumentKind, ids: Sequence[int]) -> list[AdditionalCost]:
        ids = [int(i) for i in ids]
        if not ids:
            return []
        t = _tables(kind)
        rows = self._query(
            f"""
            SELECT c.id AS id, c.{t.fk} AS document_id, c.name AS name, c.amount AS amount
            FROM {t.costs} c
            WHERE c.{t.fk} IN ({_placeholders(ids)})
            ORDER BY c.{t.fk}, c.id
            """,
            ids,
        )
        return [
            AdditionalCost(
                id=int(r["id"]),
                document_id=int(r["document_id"]),
                name=str(r["name"]),
                amount=float(r["amount"]),
            )
            for r in rows
        ]

    # ---------- Expenses / accounts ----------
    def list_expenses(self, date_from: Optional[str], date_to: Optional[str]) -> list[Expense]:
        clauses, params = _date_filter("e.date", date_from, date_to)
        rows = self._query(
            f"""
            SELECT e.id AS id, e.expense_type_id AS expense_type_id, et.name AS expense_type_name,
                   e.account_id AS account_id, e.amount AS amount, e.currency AS currency, e.rate AS rate,
                   e.date AS date, e.bill_no AS bill_no, e.description AS description
            FROM expenses e
            LEFT JOIN expense_types et ON e.expense_type_id = et.id
            {_where(clauses)}
            ORDER BY e.date DESC, e.id DESC
            """,
            params,
        )
        return [
            Expense(
                id=int(r["id"]),
                expense_type_id=int(r["expense_type_id"]),
                expense_type_name=_opt_str(r["expense_type_name"]),
                account_id=_opt_int(r["account_id"]),
                amount=float(r["amount"]),
                currency=_opt_str(r["currency"]),
                rate=_opt_float(r["rate"]),
                date=str(r["date"]),
                bill_no=_opt_str(r["bill_no"]),
                description=_opt_str(r["description"]),
            )
            for r in rows
        ]

    def list_account_transactions(self, date_from: Optional[str], date_to: Optional[str]) -> list[AccountTransaction]:
        clauses, params = _date_filter("t.transaction_date", date_from, date_to)
        rows = self._query(
            f"""
            SELECT t.id AS id, t.account_id AS account_id, a.name AS account_name,
                   t.transaction_type AS transaction_type, t.amount AS amount, t.currency AS currency,
                   t.rate AS rate, t.transaction_date AS date, t.notes AS notes
            FROM account_transactions t
            LEFT JOIN accounts a ON t.account_id = a.id
            {_where(clauses)}
            ORDER BY t.transaction_date DESC, t.id DESC
            """,
            params,
        )
        return [
            AccountTransaction(
                id=int(r["id"]),
                account_id=int(r["account_id"]),
                account_name=_opt_str(r["account_name"]),
                transaction_type=str(r["transaction_type"]),
                amount=float(r["amount"]),
                currency=_opt_str(r["currency"]),
                rate=_opt_float(r["rate"]),
                date=str(r["date"]),
                notes=_opt_str(r["notes"]),
            )
            for r in rows
        ]

    # ---------- Catalog ----------
    def list_products(self) -> list[Product]:
        rows = self._query("SELECT id, name, unit, price FROM products ORDER BY name")
        return [
            Product(id=int(r["id"]), name=str(r["name"]), unit=_opt_str(r["unit"]), price=_opt_float(r["price"]))
            for r in rows
        ]

    def list_parties(self, kind: PartyKind) -> list[Party]:
        table = _party_table(kind)
        rows = self._query(f"SELECT id, full_name FROM {table} ORDER BY full_name")
        return [Party(id=int(r["id"]), full_name=str(r["full_name"]), kind=kind) for r in rows]

    def get_party(self, kind: PartyKind, party_id: int) -> Optional[Party]:
        table = _party_table(kind)
        rows = self._query(f"SELECT id, full_name FROM {table} WHERE id = ?", [int(party_id)])
        if not rows:
            return None
        return Party(id=int(rows[0]["id"]), full_name=str(rows[0]["full_name"]), kind=kind)

    def list_deductions(self) -> list[Deduction]:
        rows = self._query("SELECT id, employee_id, amount, currency, rate FROM deductions ORDER BY id")
        return [
            Deduction(
                id=int(r["id"]),
                employee_id=int(r["employee_id"]),
                amount=float(r["amount"]),
                currency=_opt_str(r["currency"]),
                rate=_opt_float(r["rate"]),
            )
            for r in rows
        ]

    # ---------- Stock ----------
    def list_stock_batches(self, include_depleted: bool = False) -> list[StockBatch]:
        # Remaining quantity follows the explicit sale_items -> purchase_items links written upstream.
        where = "" if include_depleted else "WHERE pi.amount - COALESCE(sold.qty, 0) > 0"
        rows = self._query(
            f"""
            SELECT pi.id AS purchase_item_id, pi.purchase_id AS purchase_id, pi.product_id AS product_id,
                   pr.name AS product_name, pur.batch_number AS batch_number, pur.date AS purchase_date,
                   pi.expiry_date AS expiry_date, u.name AS unit_name, pi.amount AS original_amount,
                   pi.amount - COALESCE(sold.qty, 0) AS remaining_quantity, pi.per_price AS per_price,
                   pi.cost_price AS cost_price, pi.retail_price AS retail_price
            FROM purchase_items pi
            JOIN purchases pur ON pi.purchase_id = pur.id
            LEFT JOIN products pr ON pi.product_id = pr.id
            LEFT JOIN units u ON pi.unit_id = u.id
            LEFT JOIN (
                SELECT purchase_item_id, SUM(amount) AS qty
                FROM sale_items
                WHERE purchase_item_id IS NOT NULL
                GROUP BY purchase_item_id
            ) sold ON sold.purchase_item_id = pi.id
            {where}
            ORDER BY pr.name, pur.date, pi.id
            """
        )
        return [
            StockBatch(
                purchase_item_id=int(r["purchase_item_id"]),
                purchase_id=int(r["purchase_id"]),
                product_id=int(r["product_id"]),
                product_name=_opt_str(r["product_name"]),
                batch_number=_opt_str(r["batch_number"]),
                purchase_date=str(r["purchase_date"]),
                expiry_date=_opt_str(r["expiry_date"]),
                unit_name=_opt_str(r["unit_name"]),
                original_amount=float(r["original_amount"]),
                remaining_quantity=float(r["remaining_quantity"]),
                per_price=float(r["per_price"]),
                cost_price=_opt_float(r["cost_price"]),
                retail_price=_opt_float(r["retail_price"]),
            )
            for r in rows
        ]
