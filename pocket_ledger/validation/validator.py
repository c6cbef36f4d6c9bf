"""
Transaction Form Validation

DESIGN DECISION: The edit session stores whatever the user typed.
Nothing is checked until commit, and then everything is checked at once,
so the user sees every problem in one go instead of fixing them one by one.

A write that fails validation NEVER reaches the record store.

IMPORTANT: Validation never silently fixes values. An amount of "abc"
is an error, not zero.
"""

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from pocket_ledger.config import get_settings
from pocket_ledger.models.transaction import (
    TransactionCategory,
    TransactionPayload,
    TransactionType,
    to_local_naive,
)
from pocket_ledger.models.validation import ValidationIssue


class ValidationError(Exception):
    """One or more working fields are missing or invalid."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        summary = "; ".join(f"{i.field}: {i.message}" for i in issues)
        super().__init__(f"Invalid transaction: {summary}")

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


def parse_amount(value: Any) -> Decimal:
    """
    Parse a user-entered amount.

    Raises ValueError for anything that isn't a finite number.
    Sign is NOT checked here.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Amount must be a number, got {value!r}")
    if not amount.is_finite():
        raise ValueError("Amount must be a finite number")
    return amount


def parse_category(value: Any) -> TransactionCategory:
    """Accept the enum, its label ("Pocket Money") or its name ("POCKET_MONEY")."""
    if isinstance(value, TransactionCategory):
        return value
    text = str(value).strip()
    try:
        return TransactionCategory(text)
    except ValueError:
        pass
    for category in TransactionCategory:
        if text.lower() in (category.value.lower(), category.name.lower()):
            return category
    raise ValueError(f"Unknown category: {value!r}")


def parse_date(value: Any) -> datetime:
    """
    A picked calendar day means midnight of that day.

    Offset-aware input is converted to local time and stored naive.
    """
    if isinstance(value, datetime):
        return to_local_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    text = str(value).strip()
    try:
        return to_local_naive(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError(f"Unrecognized date: {value!r}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TransactionValidator:
    """
    Turns an edit session's working fields into a write payload.

    Checks:
    - amount: present, numeric, finite, non-negative, below the sanity bound
    - category: present and one of the fixed set
    - type: income or expense
    - date: parseable if given; blank means "now" for a new record and
      is an error when the record already has a date (require_date)
    """

    def __init__(self, max_amount: Optional[Decimal] = None):
        if max_amount is None:
            max_amount = Decimal(str(get_settings().app.max_transaction_amount))
        self._max_amount = max_amount

    def _check_amount(self, value: Any, issues: list[ValidationIssue]) -> Optional[Decimal]:
        if _is_blank(value):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
            ))
            return None
        try:
            amount = parse_amount(value)
        except ValueError as e:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=str(e),
                value=str(value),
            ))
            return None
        if amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="out_of_range",
                message="Amount cannot be negative",
                value=str(value),
            ))
            return None
        if amount > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="out_of_range",
                message=f"Amount cannot exceed {self._max_amount}",
                value=str(value),
            ))
            return None
        return amount

    def validate(
        self,
        fields: Mapping[str, Any],
        require_date: bool = False,
    ) -> TransactionPayload:
        """
        Validate working fields.

        Args:
            fields: Working values keyed by field name
            require_date: Treat a blank date as missing instead of "now"

        Returns:
            The payload to hand to the record store

        Raises:
            ValidationError: With every issue found
        """
        issues: list[ValidationIssue] = []

        amount = self._check_amount(fields.get("amount"), issues)

        category = None
        raw_category = fields.get("category")
        if _is_blank(raw_category):
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
            ))
        else:
            try:
                category = parse_category(raw_category)
            except ValueError as e:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="invalid_value",
                    message=str(e),
                    value=str(raw_category),
                ))

        txn_type = None
        raw_type = fields.get("type")
        try:
            if isinstance(raw_type, str):
                raw_type = raw_type.strip().lower()
            txn_type = TransactionType(raw_type)
        except ValueError:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message="Type must be income or expense",
                value=None if raw_type is None else str(raw_type),
            ))

        moment = None
        raw_date = fields.get("date")
        if _is_blank(raw_date) and require_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
            ))
        elif not _is_blank(raw_date):
            try:
                moment = parse_date(raw_date)
            except ValueError as e:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=str(e),
                    value=str(raw_date),
                ))

        note = fields.get("note") or ""

        if issues:
            raise ValidationError(issues)

        data = {
            "amount": amount,
            "category": category,
            "type": txn_type,
            "note": str(note),
        }
        # Blank date falls through to the model default (now)
        if moment is not None:
            data["date"] = moment

        try:
            return TransactionPayload(**data)
        except PydanticValidationError as e:
            raise ValidationError([
                ValidationIssue(
                    field=".".join(str(part) for part in err["loc"]) or "transaction",
                    issue_type=err["type"],
                    message=err["msg"],
                )
                for err in e.errors()
            ]) from e
