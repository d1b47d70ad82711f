from __future__ import annotations

import logging
from typing import Iterable, Optional

from finrecon.domain.errors import ConfigurationError
from finrecon.domain.models import Currency

log = logging.getLogger("finrecon.reports")


class CurrencyNormalizer:
    """Single place where exchange-rate arithmetic happens.

    Rates are the snapshot stored on each transaction row: base-currency units
    per one unit of the transaction currency at entry time. The live rate on
    the currency table is never consulted, so historical reports stay
    reproducible.
    """

    def __init__(self, base_currency: Currency):
        if not base_currency.is_base:
            raise ConfigurationError(f"Currency {base_currency.name!r} is not flagged as base.")
        self.base_currency = base_currency

    @classmethod
    def from_currencies(cls, currencies: Iterable[Currency], pinned_name: Optional[str] = None) -> "CurrencyNormalizer":
        currencies = list(currencies)
        bases = [c for c in currencies if c.is_base]
        if len(bases) != 1:
            raise ConfigurationError(
                f"Exactly one base currency is required. Found {len(bases)}: {[c.name for c in bases]}"
            )
        base = bases[0]
        if pinned_name is not None and base.name != pinned_name:
            raise ConfigurationError(
                f"Configured base currency {pinned_name!r} does not match stored base {base.name!r}."
            )
        return cls(base)

    @classmethod
    def from_settings(cls, settings, currencies: Iterable[Currency]) -> "CurrencyNormalizer":
        return cls.from_currencies(currencies, pinned_name=getattr(settings, "base_currency", None))

    @property
    def base_currency_name(self) -> str:
        return self.base_currency.name

    def normalize(self, amount: Optional[float], rate: Optional[float]) -> float:
        # A missing rate is a data-entry defect: it contributes nothing rather than being read as 1.
        if rate is None:
            log.warning("normalize_missing_rate amount=%s", amount)
            return 0.0
        return float(amount or 0.0) * float(rate)

    def normalize_total(self, rows: Iterable) -> float:
        """Sum of ``normalize(row.amount, row.rate)`` over payments, expenses or deductions."""
        return sum((self.normalize(r.amount, r.rate) for r in rows), 0.0)
