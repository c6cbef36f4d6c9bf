"""Validation package."""

from pocket_ledger.validation.validator import (
    TransactionValidator,
    ValidationError,
    parse_amount,
    parse_category,
    parse_date,
)

__all__ = [
    "TransactionValidator",
    "ValidationError",
    "parse_amount",
    "parse_category",
    "parse_date",
]
