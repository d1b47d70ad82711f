from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from finrecon.domain.models import Document, DocumentBalance, PartyBalance, Payment
from finrecon.services.currency_service import CurrencyNormalizer


class BalanceCalculator:
    """Paid/remaining for sale and purchase documents alike."""

    def __init__(self, normalizer: CurrencyNormalizer):
        self.normalizer = normalizer

    def document_total(self, document: Document) -> float:
        return self.normalizer.normalize(document.total_amount, document.exchange_rate)

    def balance(self, document: Document, payments: Iterable[Payment]) -> DocumentBalance:
        total = self.document_total(document)
        paid = self.normalizer.normalize_total(payments)
        # remaining is not clamped; a negative value is an overpayment
        return DocumentBalance(document=document, total=total, paid=paid, remaining=total - paid)

    def balances(self, documents: Iterable[Document], payments: Iterable[Payment]) -> list[DocumentBalance]:
        by_document: dict[int, list[Payment]] = defaultdict(list)
        for p in payments:
            by_document[int(p.document_id)].append(p)
        return [self.balance(d, by_document.get(int(d.id), ())) for d in documents]

    def party_balances(self, balances: Iterable[DocumentBalance]) -> list[PartyBalance]:
        """Roll document balances up per party.

        Remaining is summed per document first, then across the party's
        documents, so each document-level remainder stays inspectable in
        ``PartyBalance.documents``.
        """
        grouped: dict[int, list[DocumentBalance]] = defaultdict(list)
        for b in balances:
            grouped[int(b.document.party_id)].append(b)

        out = []
        for party_id, docs in grouped.items():
            out.append(
                PartyBalance(
                    party_id=party_id,
                    party_name=docs[0].document.party_name,
                    document_count=len(docs),
                    total=sum((d.total for d in docs), 0.0),
                    paid=sum((d.paid for d in docs), 0.0),
                    remaining=sum((d.remaining for d in docs), 0.0),
                    documents=tuple(docs),
                )
            )
        return out

    @staticmethod
    def outstanding(party_balances: Iterable[PartyBalance]) -> list[PartyBalance]:
        return [p for p in party_balances if p.remaining > 0]
