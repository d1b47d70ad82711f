from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import Optional

from finrecon.config import EngineSettings
from finrecon.domain.models import PURCHASE, SALE, DashboardStats
from finrecon.formatting import format_large_number
from finrecon.repositories.contracts import ReportingRepository
from finrecon.services.currency_service import CurrencyNormalizer
from finrecon.services.fetching import fetch_all

log = logging.getLogger("finrecon.reports")


def month_bounds(today: date) -> tuple[str, str]:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return (
        today.replace(day=1).isoformat(),
        today.replace(day=last_day).isoformat(),
    )


class DashboardService:
    def __init__(
        self,
        repo: ReportingRepository,
        normalizer: CurrencyNormalizer,
        settings: Optional[EngineSettings] = None,
    ):
        settings = settings or EngineSettings()
        self.repo = repo
        self.normalizer = normalizer
        self.max_workers = int(settings.max_parallel_fetches)

    def stats(self, today: Optional[date] = None) -> DashboardStats:
        """Headline counts plus this month's collected sale payments and total deductions."""
        today = today or date.today()
        month_start, month_end = month_bounds(today)

        products, suppliers, purchases, month_sales, deductions = fetch_all(
            [
                self.repo.list_products,
                lambda: self.repo.list_parties("supplier"),
                lambda: self.repo.list_documents(PURCHASE, None, None),
                lambda: self.repo.list_documents(SALE, month_start, month_end),
                self.repo.list_deductions,
            ],
            max_workers=self.max_workers,
        )
        payments = self.repo.list_payments_by_document_ids(SALE, [d.id for d in month_sales])

        stats = DashboardStats(
            products_count=len(products),
            suppliers_count=len(suppliers),
            purchases_count=len(purchases),
            monthly_income=self.normalizer.normalize_total(payments),
            deductions_count=len(deductions),
            total_deductions=self.normalizer.normalize_total(deductions),
        )
        log.info(
            "dashboard_generated month=%s income=%s deductions=%s",
            month_start[:7],
            stats.monthly_income,
            stats.total_deductions,
        )
        return stats

    @staticmethod
    def headline(stats: DashboardStats) -> dict[str, str]:
        """Short K/M renderings for dashboard cards."""
        return {
            "products": format_large_number(stats.products_count),
            "suppliers": format_large_number(stats.suppliers_count),
            "purchases": format_large_number(stats.purchases_count),
            "monthlyIncome": format_large_number(stats.monthly_income),
            "deductions": format_large_number(stats.deductions_count),
            "totalDeductions": format_large_number(stats.total_deductions),
        }
