from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from finrecon.config import EngineSettings, load_settings
from finrecon.domain.errors import ConfigurationError
from finrecon.repositories.contracts import ReportingRepository
from finrecon.repositories.http_repo import HttpRepository
from finrecon.repositories.sqlite_repo import SqliteRepository
from finrecon.services.balance_service import BalanceCalculator
from finrecon.services.currency_service import CurrencyNormalizer
from finrecon.services.dashboard_service import DashboardService
from finrecon.services.excel_service import ReportExcelExporter
from finrecon.services.inventory_service import BatchInventoryValuator
from finrecon.services.reporting_service import ReportingService


@dataclass(frozen=True)
class EngineContainer:
    repo: ReportingRepository
    normalizer: CurrencyNormalizer
    balances: BalanceCalculator
    inventory: BatchInventoryValuator
    reporting: ReportingService
    dashboard: DashboardService
    excel: ReportExcelExporter


def build_repository(settings: EngineSettings) -> ReportingRepository:
    if settings.api_url:
        return HttpRepository(settings.api_url, timeout=settings.api_timeout)
    if settings.db_path is None:
        raise ConfigurationError("Either FINRECON_API_URL or FINRECON_DB_PATH must be set.")
    return SqliteRepository(settings.db_path)


def build_container(
    settings: Optional[EngineSettings] = None,
    repo: Optional[ReportingRepository] = None,
) -> EngineContainer:
    settings = settings or load_settings()
    repo = repo or build_repository(settings)

    normalizer = CurrencyNormalizer.from_settings(settings, repo.list_currencies())
    reporting = ReportingService(repo, normalizer, settings)

    return EngineContainer(
        repo=repo,
        normalizer=normalizer,
        balances=reporting.balances,
        inventory=reporting.valuator,
        reporting=reporting,
        dashboard=DashboardService(repo, normalizer, settings),
        excel=ReportExcelExporter(),
    )
