"""
Income and Transaction Models for Stewardly

Stored income records are what the user actually logged. Effective
income adds virtual instances projected from monthly recurring records;
those are computed on read and never written back.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from stewardly.periods import utc_now


# =============================================================================
# ENUMS
# =============================================================================

class IncomeFrequency(str, Enum):
    """How often an income record recurs."""
    ONE_TIME = "oneTime"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class IncomeStatus(str, Enum):
    """Paused records stay stored but stop projecting."""
    ACTIVE = "active"
    PAUSED = "paused"


class MonthlyPayRule(str, Enum):
    """Which day of the month a monthly income lands on."""
    DAY_OF_MONTH = "dayOfMonth"
    END_OF_MONTH = "endOfMonth"


class TransactionDirection(str, Enum):
    IN = "in"
    OUT = "out"


# =============================================================================
# INCOME
# =============================================================================

class IncomeInput(BaseModel):
    """
    User-supplied fields of an income record.

    Required-field checks are done by the income store so they come back
    as readable reasons rather than pydantic errors.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: Optional[dt.date] = None
    name: str = ""
    amount: Decimal = Decimal("0")
    currency: str = ""
    frequency: IncomeFrequency = IncomeFrequency.ONE_TIME
    status: IncomeStatus = IncomeStatus.ACTIVE
    monthly_pay_rule: Optional[MonthlyPayRule] = None
    monthly_pay_day: Optional[int] = Field(default=None, ge=1, le=31)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    note: Optional[str] = Field(default=None, max_length=1000)


class IncomeRecord(BaseModel):
    """
    A stored (non-virtual) income event.

    CRITICAL: amount is strictly positive; name, currency and date are
    required.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
    )
    date: dt.date = Field(
        ...,
        description="Date received (or created, for recurring records)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount in the record's currency"
    )
    currency: str = Field(
        ...,
        min_length=1,
    )
    frequency: IncomeFrequency = IncomeFrequency.ONE_TIME
    status: IncomeStatus = IncomeStatus.ACTIVE

    # Only meaningful for monthly frequency
    monthly_pay_rule: Optional[MonthlyPayRule] = None
    monthly_pay_day: Optional[int] = Field(default=None, ge=1, le=31)

    # Inclusive projection window
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    note: Optional[str] = Field(default=None, max_length=1000)
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_window(self) -> 'IncomeRecord':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self

    @property
    def period(self) -> str:
        return f"{self.date.year:04d}-{self.date.month:02d}"

    @property
    def is_recurring_monthly(self) -> bool:
        return (
            self.frequency == IncomeFrequency.MONTHLY
            and self.status == IncomeStatus.ACTIVE
        )


class EffectiveIncome(IncomeRecord):
    """A stored record, or a virtual one projected from a recurring rule."""

    is_virtual: bool = False
    source_id: Optional[str] = Field(
        default=None,
        description="For virtual entries, the stored record they came from"
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class MoneyTransaction(BaseModel):
    """A dated money movement against a distribution category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    date: dt.date
    category: Optional[str] = None
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Absolute amount; sign is carried by direction"
    )
    direction: TransactionDirection = TransactionDirection.OUT
    note: Optional[str] = None

    @property
    def period(self) -> str:
        return f"{self.date.year:04d}-{self.date.month:02d}"
