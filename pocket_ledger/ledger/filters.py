"""
Filter Engine

Decides which cached transactions the list shows. The list filter is
display-only: it never touches the record store query, so the chart
range and the list's date range can differ freely.

A filter is ONE of NoFilter, DateRangeFilter or CategoryFilter. Picking a
category filter discards any date bounds and vice versa; there is no way
to hold both.
"""

from datetime import date
from typing import Optional, Sequence

from pocket_ledger.models.transaction import (
    CategoryFilter,
    DateRangeFilter,
    ListFilter,
    NoFilter,
    Transaction,
    TransactionCategory,
)


def apply_filter(
    records: Sequence[Transaction],
    active_filter: ListFilter,
) -> list[Transaction]:
    """
    Transactions to display, in cache order.

    - NoFilter: everything
    - DateRangeFilter: dated within [start, end], whole days, either
      bound optional
    - CategoryFilter: matching category, or everything if none picked
    """
    if isinstance(active_filter, DateRangeFilter):
        return [r for r in records if active_filter.contains(r.date)]

    if isinstance(active_filter, CategoryFilter):
        if active_filter.category is None:
            return list(records)
        return [r for r in records if r.category == active_filter.category]

    return list(records)


class ListViewState:
    """
    The filter currently selected above the transaction list.

    Passed by reference into the dashboard instead of living in globals.
    """

    def __init__(self, active_filter: Optional[ListFilter] = None):
        self.active_filter: ListFilter = active_filter or NoFilter()

    def select_date_filter(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> ListFilter:
        self.active_filter = DateRangeFilter(start=start, end=end)
        return self.active_filter

    def select_category_filter(
        self,
        category: Optional[TransactionCategory] = None,
    ) -> ListFilter:
        self.active_filter = CategoryFilter(category=category)
        return self.active_filter

    def clear_filter(self) -> ListFilter:
        self.active_filter = NoFilter()
        return self.active_filter

    def apply(self, records: Sequence[Transaction]) -> list[Transaction]:
        return apply_filter(records, self.active_filter)
