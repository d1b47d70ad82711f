from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Optional

DocumentKind = Literal["sale", "purchase"]
PartyKind = Literal["customer", "supplier"]

SALE: DocumentKind = "sale"
PURCHASE: DocumentKind = "purchase"

PARTY_KIND_FOR: dict[str, PartyKind] = {SALE: "customer", PURCHASE: "supplier"}


@dataclass(frozen=True)
class Currency:
    id: int
    name: str
    is_base: bool
    rate: float


@dataclass(frozen=True)
class Party:
    id: int
    full_name: str
    kind: PartyKind


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    unit: Optional[str] = None
    price: Optional[float] = None


@dataclass(frozen=True)
class Document:
    """A sale or purchase header. ``total_amount`` is in the document currency."""

    id: int
    kind: DocumentKind
    party_id: int
    party_name: Optional[str]
    date: str
    total_amount: float
    currency_id: Optional[int] = None
    currency_name: Optional[str] = None
    exchange_rate: Optional[float] = 1.0
    notes: Optional[str] = None


@dataclass(frozen=True)
class DocumentItem:
    id: int
    document_id: int
    product_id: int
    product_name: Optional[str]
    unit_id: Optional[int]
    unit_name: Optional[str]
    quantity: float
    per_price: float
    line_total: float
    cost_price: Optional[float] = None
    retail_price: Optional[float] = None
    expiry_date: Optional[str] = None


@dataclass(frozen=True)
class AdditionalCost:
    id: int
    document_id: int
    name: str
    amount: float


@dataclass(frozen=True)
class Payment:
    id: int
    document_id: int
    amount: float
    currency: Optional[str]
    rate: Optional[float]
    date: str
    account_name: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    id: int
    expense_type_id: int
    expense_type_name: Optional[str]
    account_id: Optional[int]
    amount: float
    currency: Optional[str]
    rate: Optional[float]
    date: str
    bill_no: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class AccountTransaction:
    id: int
    account_id: int
    account_name: Optional[str]
    transaction_type: str
    amount: float
    currency: Optional[str]
    rate: Optional[float]
    date: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class Deduction:
    id: int
    employee_id: int
    amount: float
    currency: Optional[str]
    rate: Optional[float]


@dataclass(frozen=True)
class StockBatch:
    purchase_item_id: int
    purchase_id: int
    product_id: int
    product_name: Optional[str]
    batch_number: Optional[str]
    purchase_date: str
    expiry_date: Optional[str]
    unit_name: Optional[str]
    original_amount: float
    remaining_quantity: float
    per_price: float
    cost_price: Optional[float] = None
    retail_price: Optional[float] = None


@dataclass(frozen=True)
class DocumentBalance:
    document: Document
    total: float
    paid: float
    remaining: float


@dataclass(frozen=True)
class PartyBalance:
    party_id: int
    party_name: Optional[str]
    document_count: int
    total: float
    paid: float
    remaining: float
    documents: tuple[DocumentBalance, ...] = field(default=())


@dataclass(frozen=True)
class BatchValuation:
    batch: StockBatch
    stock_value: float
    potential_revenue: float
    potential_profit: float
    margin_percent: Optional[float]


@dataclass(frozen=True)
class StockValuation:
    batches: tuple[BatchValuation, ...]
    total_stock_value: float
    total_potential_revenue: float
    total_potential_profit: float
    margin_percent: Optional[float]


@dataclass(frozen=True)
class DashboardStats:
    products_count: int
    suppliers_count: int
    purchases_count: int
    monthly_income: float
    deductions_count: int
    total_deductions: float
