"""
Shared fixtures for Pocket Ledger tests.

Test strategy:
1. Unit tests for the pure parts (models, validator, engines)
2. Flow tests against the in-memory record store
3. No real Google Sheets calls in tests
"""

from datetime import datetime

import pytest

from pocket_ledger.config import get_settings
from pocket_ledger.models.transaction import Transaction, TransactionCategory
from tests.helpers import make_txn


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Settings are cached process-wide; reset around every test."""
    for name in ("APP_USER_ID", "APP_USER_EMAIL", "APP_DEFAULT_CHART_DAYS",
                 "APP_MAX_TRANSACTION_AMOUNT", "APP_DEBUG_MODE"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def example_records() -> list[Transaction]:
    """The worked example: one salary, two food expenses over two months."""
    return [
        make_txn("t3", 15, "expense", TransactionCategory.FOOD, datetime(2024, 2, 1, 9, 30)),
        make_txn("t2", 40, "expense", TransactionCategory.FOOD, datetime(2024, 1, 6, 19, 0)),
        make_txn("t1", 100, "income", TransactionCategory.SALARY, datetime(2024, 1, 5, 10, 0)),
    ]
