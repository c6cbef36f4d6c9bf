"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the system must conform to these schemas.
"""

from pocket_ledger.models.transaction import (
    CategoryFilter,
    CategoryTotal,
    DailyExpensePoint,
    DashboardSummary,
    DateRange,
    DateRangeFilter,
    ListFilter,
    MonthlyPoint,
    NoFilter,
    TotalsSummary,
    Transaction,
    TransactionCategory,
    TransactionPayload,
    TransactionType,
    UserProfile,
)
from pocket_ledger.models.validation import ValidationIssue

__all__ = [
    # Records
    "Transaction",
    "TransactionCategory",
    "TransactionPayload",
    "TransactionType",
    "UserProfile",
    # Derived views
    "CategoryTotal",
    "DailyExpensePoint",
    "DashboardSummary",
    "MonthlyPoint",
    "TotalsSummary",
    # Scope and filters
    "CategoryFilter",
    "DateRange",
    "DateRangeFilter",
    "ListFilter",
    "NoFilter",
    # Validation
    "ValidationIssue",
]
