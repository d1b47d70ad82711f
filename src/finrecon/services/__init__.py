from .currency_service import CurrencyNormalizer
from .balance_service import BalanceCalculator
from .inventory_service import BatchInventoryValuator
from .reporting_service import ReportingService
from .dashboard_service import DashboardService
from .excel_service import ReportExcelExporter

__all__ = [
    "CurrencyNormalizer",
    "BalanceCalculator",
    "BatchInventoryValuator",
    "ReportingService",
    "DashboardService",
    "ReportExcelExporter",
]
