"""
Core Data Models for Pocket Ledger

These models define the schemas for everything flowing through the ledger:
1. Stored transactions (what the record store hands back)
2. Write payloads (what an edit session hands to the record store)
3. Derived views (what the aggregation engine hands to the dashboard)
4. List filters (what the user picked above the transaction list)

DESIGN DECISION: Stored records and derived views are frozen.
The transaction cache is replaced wholesale on every snapshot, so nothing
downstream is ever allowed to mutate a record in place.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionCategory(str, Enum):
    """
    Supported transaction categories.

    DESIGN DECISION: The declaration order IS the display order.
    The category breakdown walks this enum top to bottom and never
    re-sorts by value.
    """
    FOOD = "Food"
    TRANSPORT = "Transport"
    SALARY = "Salary"
    POCKET_MONEY = "Pocket Money"
    LENDING = "Lending"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    HEALTHCARE = "Healthcare"
    OTHER = "Other"  # Catch-all


class TransactionType(str, Enum):
    """Direction of money movement."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# STORED RECORDS
# =============================================================================

def to_local_naive(moment: datetime) -> datetime:
    """Offset-aware moments become local wall-clock time without tzinfo."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


Amount = Annotated[
    Decimal,
    Field(ge=0, allow_inf_nan=False, description="Non-negative amount"),
]


class TransactionPayload(BaseModel):
    """
    The body of a write request.

    Produced by the validator from an edit session's working fields.
    Everything a stored transaction has except the id, which only the
    record store may assign.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    amount: Amount
    category: TransactionCategory
    type: TransactionType = TransactionType.EXPENSE
    note: str = Field(
        default="",
        max_length=1000,
        description="Optional free text",
    )
    date: datetime = Field(
        default_factory=datetime.now,
        description="When the money moved (defaults to creation time)",
    )

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        """All stored moments are naive local time, so they stay comparable."""
        return to_local_naive(v)


class Transaction(TransactionPayload):
    """
    A transaction as delivered by the record store.

    CRITICAL: The id is assigned by the store on insert.
    The core never invents ids, so a freshly created transaction only
    becomes visible once the next snapshot contains it.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned identifier, unique per user",
    )

    def to_payload(self) -> TransactionPayload:
        """Strip the id, e.g. to seed an update."""
        return TransactionPayload(**self.model_dump(exclude={"id"}))

    @property
    def month_key(self) -> str:
        """Zero-padded YYYY-MM key; sorts lexicographically."""
        return self.date.strftime("%Y-%m")

    @property
    def day_key(self) -> str:
        """Zero-padded YYYY-MM-DD key; sorts lexicographically."""
        return self.date.strftime("%Y-%m-%d")


class UserProfile(BaseModel):
    """Profile document that sits next to the user's transactions."""

    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Name, else email, else the raw user id."""
        return self.name or self.email or self.user_id


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class TotalsSummary(BaseModel):
    """Income, expense and their difference over one snapshot."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class CategoryTotal(BaseModel):
    """Total expense for one category."""
    model_config = ConfigDict(frozen=True)

    category: TransactionCategory
    total: Decimal


class MonthlyPoint(BaseModel):
    """Income and expense for one calendar month."""
    model_config = ConfigDict(frozen=True)

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class DailyExpensePoint(BaseModel):
    """Expense for one calendar day."""
    model_config = ConfigDict(frozen=True)

    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    expense: Decimal = Decimal("0")


class DashboardSummary(BaseModel):
    """
    All four derived views, computed from the same snapshot.

    The dashboard hands this to the presentation layer as plain data.
    """
    model_config = ConfigDict(frozen=True)

    totals: TotalsSummary = Field(default_factory=TotalsSummary)
    category_breakdown: list[CategoryTotal] = Field(default_factory=list)
    monthly_series: list[MonthlyPoint] = Field(default_factory=list)
    daily_expense_trend: list[DailyExpensePoint] = Field(default_factory=list)


# =============================================================================
# QUERY SCOPE AND LIST FILTERS
# =============================================================================

class DateRange(BaseModel):
    """
    Inclusive calendar-date range; either bound may be omitted.

    Used both as the record store query scope (chart range) and as the
    bounds of the list's date filter.
    """
    model_config = ConfigDict(frozen=True)

    start: Optional[date] = None
    end: Optional[date] = None

    @model_validator(mode='after')
    def validate_bounds(self) -> 'DateRange':
        """Reject inverted ranges."""
        if self.start and self.end and self.end < self.start:
            raise ValueError("Range end cannot be before range start")
        return self

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, moment: datetime) -> bool:
        """True when the moment falls on a day within the range."""
        day = moment.date()
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True


class NoFilter(BaseModel):
    """Show every cached transaction."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class DateRangeFilter(BaseModel):
    """Show transactions dated within the (inclusive) bounds."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["date_range"] = "date_range"
    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, moment: datetime) -> bool:
        """Inverted bounds are allowed here; they simply match nothing."""
        day = moment.date()
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True


class CategoryFilter(BaseModel):
    """Show transactions of one category (all, if none selected yet)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["category"] = "category"
    category: Optional[TransactionCategory] = None


ListFilter = Annotated[
    Union[NoFilter, DateRangeFilter, CategoryFilter],
    Field(discriminator="kind"),
]
