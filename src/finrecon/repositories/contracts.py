from __future__ import annotations

from typing import Optional, Protocol, Sequence

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


class ReportingRepository(Protocol):
    """Read-only data access consumed by the reporting services.

    Date bounds are inclusive ISO ``YYYY-MM-DD`` strings; ``date_from=None``
    means no lower bound. Child lookups take the full parent id set so a
    report costs a fixed number of round trips regardless of row count.
    """

    def list_currencies(self) -> list[Currency]: ...

    def list_documents(
        self,
        kind: DocumentKind,
        date_from: Optional[str],
        date_to: Optional[str],
        party_id: Optional[int] = None,
    ) -> list[Document]: ...

    def list_items_by_document_ids(self, kind: DocumentKind, ids: Sequence[int]) -> list[DocumentItem]: ...

    def list_payments_by_document_ids(self, kind: DocumentKind, ids: Sequence[int]) -> list[Payment]: ...

    def list_additional_costs_by_document_ids(self, kind: DocumentKind, ids: Sequence[int]) -> list[AdditionalCost]: ...

    def list_expenses(self, date_from: Optional[str], date_to: Optional[str]) -> list[Expense]: ...

    def list_account_transactions(self, date_from: Optional[str], date_to: Optional[str]) -> list[AccountTransaction]: ...

    def list_products(self) -> list[Product]: ...

    def list_parties(self, kind: PartyKind) -> list[Party]: ...

    def get_party(self, kind: PartyKind, party_id: int) -> Optional[Party]: ...

    def list_stock_batches(self, include_depleted: bool = False) -> list[StockBatch]: ...

    def list_deductions(self) -> list[Deduction]: ...
