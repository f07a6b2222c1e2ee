"""
Income Recurrence Engine

Projects monthly recurring income into periods as virtual records.

DESIGN DECISION: Virtual income is computed on every read and never
stored. A locked period shows exactly the income stored for it and no
projections, so locking pins a month to its historical data.
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional

from stewardly.models.income import EffectiveIncome, IncomeRecord, MonthlyPayRule
from stewardly.periods import (
    current_period,
    days_in_month,
    iter_periods,
    parse_period,
    period_from_date,
)
from stewardly.stores.locks import LockStore


DEFAULT_HISTORY_START = "2020-01"


def virtual_income_id(source_id: str, period: str) -> str:
    return f"virtual_{source_id}_{period}"


def sum_effective_income(entries: Iterable[IncomeRecord]) -> Decimal:
    return sum((entry.amount for entry in entries), Decimal("0"))


class IncomeRecurrenceEngine:
    """
    Computes effective income: stored records plus virtual projections.

    Results depend only on the stored records passed in and the lock
    state at call time.
    """

    def __init__(
        self,
        lock_store: LockStore,
        history_start: str = DEFAULT_HISTORY_START,
    ):
        """
        Args:
            lock_store: Lock flags; locked periods get no projections
            history_start: First period projected for a monthly record
                           with no start date
        """
        self._locks = lock_store
        self._history_start = history_start

    def get_recurrence_date(self, record: IncomeRecord, period: str) -> Optional[dt.date]:
        """
        Day a monthly record pays out in ``period``.

        Returns None for anything but an active monthly record with a pay
        rule, or when the date falls outside the record's start/end bounds.
        """
        if not record.is_recurring_monthly:
            return None

        year, month = parse_period(period)
        last_day = days_in_month(year, month)

        if record.monthly_pay_rule == MonthlyPayRule.END_OF_MONTH:
            day = last_day
        elif record.monthly_pay_rule == MonthlyPayRule.DAY_OF_MONTH:
            # No pay day means the record's own day; 31 clamps to the month end
            day = min(record.monthly_pay_day or record.date.day, last_day)
        else:
            return None

        target = dt.date(year, month, day)
        if record.start_date and target < record.start_date:
            return None
        if record.end_date and target > record.end_date:
            return None
        return target

    def generate_virtual_income(self, record: IncomeRecord, period: str) -> Optional[EffectiveIncome]:
        recurrence_date = self.get_recurrence_date(record, period)
        if recurrence_date is None:
            return None

        return EffectiveIncome(
            **record.model_dump(exclude={"id", "date"}),
            id=virtual_income_id(record.id, period),
            date=recurrence_date,
            is_virtual=True,
            source_id=record.id,
        )

    def get_effective_income_for_period(
        self,
        period: str,
        stored: Iterable[IncomeRecord],
    ) -> list[EffectiveIncome]:
        """
        Stored income dated in ``period``, plus virtual income if unlocked.

        A virtual record whose id matches any stored record id is dropped,
        so a projection that was also logged by hand is counted once.
        """
        stored = list(stored)
        result = [
            EffectiveIncome(**record.model_dump())
            for record in stored
            if record.period == period
        ]

        if self._locks.is_locked(period):
            return result

        stored_ids = {record.id for record in stored}
        for record in stored:
            virtual = self.generate_virtual_income(record, period)
            if virtual is not None and virtual.id not in stored_ids:
                result.append(virtual)
        return result

    def _projection_periods(self, record: IncomeRecord, today: dt.date) -> Iterable[str]:
        start = period_from_date(record.start_date) if record.start_date else self._history_start
        end = period_from_date(record.end_date) if record.end_date else current_period(today)
        return iter_periods(start, end)

    def get_all_effective_income(
        self,
        stored: Iterable[IncomeRecord],
        today: Optional[dt.date] = None,
    ) -> list[EffectiveIncome]:
        """
        Effective income across every period that has any.

        Covers each period a stored record is dated in, plus each month of
        every active monthly record's window (up to its end date, or the
        current month when open-ended).
        """
        stored = list(stored)
        today = today or dt.date.today()

        periods = {record.period for record in stored}
        for record in stored:
            if record.is_recurring_monthly:
                periods.update(self._projection_periods(record, today))

        result = []
        for period in sorted(periods):
            result.extend(self.get_effective_income_for_period(period, stored))
        return result

    @staticmethod
    def sum_effective_income(entries: Iterable[IncomeRecord]) -> Decimal:
        return sum_effective_income(entries)
