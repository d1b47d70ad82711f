import logging

import pytest

from finrecon.domain.errors import ConfigurationError
from finrecon.domain.models import Currency, Document, Payment
from finrecon.services.balance_service import BalanceCalculator
from finrecon.services.currency_service import CurrencyNormalizer

AFN = Currency(id=1, name="AFN", is_base=True, rate=1.0)
USD = Currency(id=2, name="USD", is_base=False, rate=70.0)


def _sale(doc_id: int, party_id: int, total: float, rate: float = 1.0, party_name: str = "Ahmad") -> Document:
    return Document(
        id=doc_id,
        kind="sale",
        party_id=party_id,
        party_name=party_name,
        date="2024-01-10",
        total_amount=total,
        exchange_rate=rate,
    )


def _pay(pay_id: int, doc_id: int, amount: float, rate: float) -> Payment:
    return Payment(id=pay_id, document_id=doc_id, amount=amount, currency="USD", rate=rate, date="2024-01-11")


def test_normalize_is_linear_in_rate():
    n = CurrencyNormalizer(AFN)
    assert n.normalize(50, 90) == 4500.0
    assert n.normalize(50, 180) == 2 * n.normalize(50, 90)
    assert n.normalize(50, 0) == 0.0


def test_missing_rate_contributes_nothing_and_warns(caplog):
    n = CurrencyNormalizer(AFN)
    with caplog.at_level(logging.WARNING, logger="finrecon.reports"):
        assert n.normalize(100, None) == 0.0
    assert "normalize_missing_rate" in caplog.text


def test_base_currency_must_be_unique():
    with pytest.raises(ConfigurationError):
        CurrencyNormalizer.from_currencies([USD])
    with pytest.raises(ConfigurationError):
        CurrencyNormalizer.from_currencies([AFN, Currency(id=3, name="EUR", is_base=True, rate=1.0)])
    with pytest.raises(ConfigurationError):
        CurrencyNormalizer(USD)

    n = CurrencyNormalizer.from_currencies([USD, AFN])
    assert n.base_currency_name == "AFN"


def test_pinned_base_currency_must_match_stored_base():
    with pytest.raises(ConfigurationError):
        CurrencyNormalizer.from_currencies([AFN, USD], pinned_name="USD")
    assert CurrencyNormalizer.from_currencies([AFN, USD], pinned_name="AFN").base_currency is AFN


def test_balance_of_sale_paid_in_foreign_currency():
    calc = BalanceCalculator(CurrencyNormalizer(AFN))
    b = calc.balance(_sale(1, 1, 10_000), [_pay(1, 1, 50, 90)])

    assert b.total == 10_000
    assert b.paid == 4_500
    assert b.remaining == 5_500


def test_remaining_is_total_minus_paid_for_any_payment_order():
    calc = BalanceCalculator(CurrencyNormalizer(AFN))
    doc = _sale(1, 1, 200, rate=70)
    payments = [_pay(1, 1, 10, 70), _pay(2, 1, 2000, 1), _pay(3, 1, 5, 72)]

    forward = calc.balance(doc, payments)
    backward = calc.balance(doc, list(reversed(payments)))

    assert forward.total == 14_000
    assert forward.remaining == pytest.approx(14_000 - (700 + 2000 + 360))
    assert backward.remaining == pytest.approx(forward.remaining)
    assert calc.balance(doc, []).remaining == 14_000


def test_overpayment_is_not_clamped():
    calc = BalanceCalculator(CurrencyNormalizer(AFN))
    b = calc.balance(_sale(1, 1, 100), [_pay(1, 1, 150, 1)])
    assert b.remaining == -50


def test_balances_ignore_payments_without_a_parent_in_scope():
    calc = BalanceCalculator(CurrencyNormalizer(AFN))
    out = calc.balances([_sale(1, 1, 100)], [_pay(1, 1, 40, 1), _pay(2, 99, 1000, 1)])
    assert len(out) == 1
    assert out[0].paid == 40


def test_party_rollup_sums_document_remainders():
    calc = BalanceCalculator(CurrencyNormalizer(AFN))
    docs = [_sale(1, 1, 100), _sale(2, 1, 50), _sale(3, 2, 80, party_name="Karim")]
    payments = [_pay(1, 1, 100, 1), _pay(2, 2, 20, 1), _pay(3, 3, 80, 1)]

    parties = {p.party_id: p for p in calc.party_balances(calc.balances(docs, payments))}

    assert parties[1].document_count == 2
    assert parties[1].total == 150
    assert parties[1].remaining == 30
    assert [d.remaining for d in parties[1].documents] == [0, 30]

    outstanding = calc.outstanding(parties.values())
    assert [p.party_id for p in outstanding] == [1]


def test_normalize_is_additive_in_amount():
    n = CurrencyNormalizer(AFN)
    for rate in (1, 0.5, 90, 72.25):
        assert n.normalize(30 + 12.5, rate) == pytest.approx(n.normalize(30, rate) + n.normalize(12.5, rate))
