"""
Ledger Core Package

The reactive part of Pocket Ledger: the snapshot cache and its live feed,
the aggregation and filter engines, and the edit session.
"""

from pocket_ledger.ledger.aggregation import (
    compute_category_breakdown,
    compute_daily_expense_trend,
    compute_monthly_series,
    compute_totals,
    summarize,
)
from pocket_ledger.ledger.cache import LiveTransactionFeed, TransactionCache
from pocket_ledger.ledger.filters import ListViewState, apply_filter
from pocket_ledger.ledger.session import (
    EditMode,
    EditSession,
    SessionClosedError,
    delete_transaction,
)

__all__ = [
    # Aggregation
    "compute_category_breakdown",
    "compute_daily_expense_trend",
    "compute_monthly_series",
    "compute_totals",
    "summarize",
    # Cache
    "LiveTransactionFeed",
    "TransactionCache",
    # Filters
    "ListViewState",
    "apply_filter",
    # Edit session
    "EditMode",
    "EditSession",
    "SessionClosedError",
    "delete_transaction",
]
