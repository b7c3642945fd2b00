"""
Core Record Models for Personal Tracker

These models define the strict schemas for every record kept in the
record store. They are designed to:
1. Enforce type safety at runtime
2. Serialize to the camelCase wire format used by backups
3. Keep calendar dates as zero-padded YYYY-MM-DD strings

DESIGN DECISION: Calendar dates are plain strings, not date objects.
All aggregation filters compare them lexicographically, which is valid
because the format is zero-padded.
"""

import random
import string
import time
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """
    Generate a record id: epoch milliseconds plus a random base36 suffix.

    Collisions are negligible for a single user's document.
    """
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def _coerce_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _check_date(value: str) -> str:
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    if parsed.isoformat() != value:
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    return value


# A calendar day in YYYY-MM-DD form. date objects are accepted and normalized.
DateStr = Annotated[str, BeforeValidator(_coerce_date), AfterValidator(_check_date)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class HabitCategory(str, Enum):
    """Habit categories offered to the user."""
    HEALTH = "Health"
    LEARNING = "Learning"
    FINANCE = "Finance"
    PRODUCTIVITY = "Productivity"
    PERSONAL = "Personal"


class HabitType(str, Enum):
    """How a habit is logged."""
    BOOLEAN = "boolean"  # Done / not done
    NUMERIC = "numeric"  # An amount per day


class HabitPeriod(str, Enum):
    """What the goal value of a habit is measured against."""
    DAILY = "daily"      # goal_value per day
    MONTHLY = "monthly"  # goal_value per month


class HabitKind(str, Enum):
    """
    Closed set of habit behaviours (type x period).

    The aggregation engine dispatches on this instead of branching
    on the two flags separately.
    """
    BOOLEAN_MONTHLY = "boolean_monthly"
    BOOLEAN_DAILY = "boolean_daily"
    NUMERIC_MONTHLY = "numeric_monthly"
    NUMERIC_DAILY = "numeric_daily"


class GoalType(str, Enum):
    """Informational tag, not an enforced link."""
    HABIT = "habit"
    FINANCE = "finance"
    PORTFOLIO = "portfolio"


class GoalPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class TrackingType(str, Enum):
    """Whether the target applies to each period or to the running total."""
    PER_PERIOD = "per-period"
    CUMULATIVE = "cumulative"


class GoalStatus(str, Enum):
    """
    Goal status.

    FAILED has no automatic transition. It is only reachable through
    an explicit status override.
    """
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


EXPENSE_CATEGORIES: list[str] = [
    "Food & Dining",
    "Transport",
    "Utilities",
    "Shopping",
    "Entertainment",
    "Healthcare",
    "Education",
    "Bills",
    "Other",
]

INCOME_CATEGORIES: list[str] = [
    "Salary",
    "Freelance",
    "Investment",
    "Gift",
    "Refund",
    "Other",
]


def categories_for(transaction_type: TransactionType) -> list[str]:
    """Fixed category list for a transaction type."""
    if transaction_type == TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


# =============================================================================
# RECORD MODELS
# =============================================================================

class Record(BaseModel):
    """
    Base class for everything kept in the record store.

    Python attributes are snake_case; the wire format (backups, sheet
    headers) is camelCase.

    Records are frozen. A change goes through the store's update(),
    which builds a new validated instance. Fields not declared on the
    model are dropped when a record is parsed.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=generate_id,
        min_length=1,
        description="Unique record id"
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON-compatible form."""
        return self.model_dump(mode="json", by_alias=True)


class Habit(Record):
    """A recurring activity the user tracks against a period goal."""

    name: str = Field(..., min_length=1, max_length=200)
    category: HabitCategory
    goal_value: float = Field(
        ...,
        ge=0,
        description="Target count or sum per period"
    )
    type: HabitType = HabitType.BOOLEAN
    unit: Optional[str] = Field(
        default=None,
        max_length=40,
        description="Unit for numeric habits (e.g., glasses, minutes)"
    )
    period: HabitPeriod = HabitPeriod.MONTHLY
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    order: int = Field(
        default=0,
        ge=0,
        description="Display order, assigned at creation"
    )

    @property
    def kind(self) -> HabitKind:
        """The habit's behaviour variant."""
        if self.type == HabitType.NUMERIC:
            if self.period == HabitPeriod.DAILY:
                return HabitKind.NUMERIC_DAILY
            return HabitKind.NUMERIC_MONTHLY
        if self.period == HabitPeriod.DAILY:
            return HabitKind.BOOLEAN_DAILY
        return HabitKind.BOOLEAN_MONTHLY


class HabitEntry(Record):
    """
    A habit done (or an amount logged) on one calendar day.

    There is at most one entry per (habit_id, date). The habit engine
    is the only code that creates entries and it enforces this.
    """

    habit_id: str = Field(..., min_length=1)
    date: DateStr
    value: float = Field(
        default=1,
        ge=0,
        description="1 for boolean habits, the logged amount for numeric"
    )
    created_at: datetime = Field(default_factory=utc_now)


class Goal(Record):
    """A target the user updates progress on by hand."""

    name: str = Field(..., min_length=1, max_length=200)
    type: GoalType
    reference_id: Optional[str] = None
    target: float
    current: float = 0
    period: GoalPeriod = GoalPeriod.MONTHLY
    tracking_type: TrackingType = TrackingType.CUMULATIVE
    status: GoalStatus = GoalStatus.ACTIVE
    start_date: DateStr
    end_date: Optional[DateStr] = None
    unit: Optional[str] = Field(default=None, max_length=40)
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_dates(self) -> 'Goal':
        """End date cannot precede start date."""
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class Stock(Record):
    """
    An equity position.

    avg_buy_price is the weighted-average cost basis. It changes only
    when shares are averaged in, never on a sell.
    """

    symbol: str = Field(..., min_length=1, max_length=20)
    name: str = Field(default="", max_length=200)
    quantity: float = Field(..., ge=0)
    avg_buy_price: float = Field(..., ge=0)
    current_price: float = Field(..., ge=0)
    last_updated: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def invested(self) -> float:
        return self.quantity * self.avg_buy_price

    @property
    def market_value(self) -> float:
        return self.quantity * self.current_price

    @property
    def unrealized_pl(self) -> float:
        return self.market_value - self.invested

    @property
    def unrealized_pl_percent(self) -> float:
        if self.invested <= 0:
            return 0.0
        return self.unrealized_pl / self.invested * 100


class FinanceTransaction(Record):
    """
    A single income or expense.

    The category is free text here. Matching it against the fixed
    category lists is left to the caller.
    """

    type: TransactionType
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    amount: float = Field(..., gt=0)
    date: DateStr
    created_at: datetime = Field(default_factory=utc_now)


SETTINGS_ID = "default"


class AppSettings(Record):
    """Singleton user settings record."""

    id: str = SETTINGS_ID
    user_name: str = Field(default="User", max_length=100)
    currency: str = Field(default="LKR", pattern="^LKR$")
    month_start_day: int = Field(default=1, ge=1, le=28)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# DERIVED RESULTS
# =============================================================================

class HabitProgress(BaseModel):
    """A habit with its progress percentage."""
    habit: Habit
    progress: float


class WeekProgress(BaseModel):
    """Completion for one week of the selected month (numbered from 1)."""
    week: int = Field(ge=1)
    progress: float


class CategoryTotal(BaseModel):
    category: str
    total: float


class SaleResult(BaseModel):
    """Outcome of selling shares from a position."""
    stock_id: str
    symbol: str
    quantity_sold: float
    sell_price: float
    avg_buy_price: float
    realized_pl: float
    remaining_quantity: float
