from .models import (
    AccountTransaction,
    AdditionalCost,
    Currency,
    Deduction,
    Document,
    DocumentItem,
    Expense,
    Party,
    Payment,
    Product,
    StockBatch,
)
from .errors import AppError, ValidationError, ConfigurationError, DataAccessError
from .reports import Cell, Column, DateRange, ReportData, SummaryItem, SummarySection, TableSection

__all__ = [
    "AccountTransaction",
    "AdditionalCost",
    "Currency",
    "Deduction",
    "Document",
    "DocumentItem",
    "Expense",
    "Party",
    "Payment",
    "Product",
    "StockBatch",
    "AppError",
    "ValidationError",
    "ConfigurationError",
    "DataAccessError",
    "Cell",
    "Column",
    "DateRange",
    "ReportData",
    "SummaryItem",
    "SummarySection",
    "TableSection",
]
