"""
Aggregation Engine

DESIGN DECISION: Every view is a pure function of the records it is given.
Nothing is maintained incrementally: when the cache changes, all four views
are recomputed from scratch.

Amounts are Decimal throughout.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Sequence

from pocket_ledger.models.transaction import (
    CategoryTotal,
    DailyExpensePoint,
    DashboardSummary,
    MonthlyPoint,
    TotalsSummary,
    Transaction,
    TransactionCategory,
    TransactionType,
)


ZERO = Decimal("0")


def compute_totals(records: Iterable[Transaction]) -> TotalsSummary:
    """Sum income and expense; balance is their difference."""
    income = ZERO
    expense = ZERO
    for record in records:
        if record.type == TransactionType.INCOME:
            income += record.amount
        elif record.type == TransactionType.EXPENSE:
            expense += record.amount
    return TotalsSummary(income=income, expense=expense, balance=income - expense)


def compute_category_breakdown(
    records: Iterable[Transaction],
    categories: Iterable[TransactionCategory] = TransactionCategory,
) -> list[CategoryTotal]:
    """
    Expense total per category.

    Entries follow the order of `categories` (not sorted by value) and
    categories with nothing spent are left out.
    """
    totals: dict[TransactionCategory, Decimal] = defaultdict(Decimal)
    for record in records:
        if record.type == TransactionType.EXPENSE:
            totals[record.category] += record.amount

    return [
        CategoryTotal(category=category, total=totals[category])
        for category in categories
        if totals.get(category, ZERO) > 0
    ]


def compute_monthly_series(records: Iterable[Transaction]) -> list[MonthlyPoint]:
    """One row per month that has any transaction, oldest first."""
    groups: dict[str, dict[str, Decimal]] = {}

    for record in records:
        key = record.month_key
        if key not in groups:
            groups[key] = {"income": ZERO, "expense": ZERO}
        if record.type == TransactionType.INCOME:
            groups[key]["income"] += record.amount
        elif record.type == TransactionType.EXPENSE:
            groups[key]["expense"] += record.amount

    # Keys are zero-padded, so string order is calendar order
    return [
        MonthlyPoint(month=key, income=sums["income"], expense=sums["expense"])
        for key, sums in sorted(groups.items())
    ]


def compute_daily_expense_trend(records: Iterable[Transaction]) -> list[DailyExpensePoint]:
    """One row per day that has any expense, oldest first."""
    groups: dict[str, Decimal] = defaultdict(Decimal)
    for record in records:
        if record.type == TransactionType.EXPENSE:
            groups[record.day_key] += record.amount

    return [
        DailyExpensePoint(date=key, expense=total)
        for key, total in sorted(groups.items())
    ]


def summarize(
    records: Sequence[Transaction],
    categories: Iterable[TransactionCategory] = TransactionCategory,
) -> DashboardSummary:
    """All four views over the same records."""
    return DashboardSummary(
        totals=compute_totals(records),
        category_breakdown=compute_category_breakdown(records, categories),
        monthly_series=compute_monthly_series(records),
        daily_expense_trend=compute_daily_expense_trend(records),
    )
