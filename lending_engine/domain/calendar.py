"""Business calendar - which dates a company collects on"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import FrozenSet, Iterable, List

from lending_engine.domain.exceptions import ConfigurationError
from lending_engine.domain.models import Holiday
from lending_engine.utils.date_utils import generate_date_range

# Longest forward roll before the calendar is considered unusable
MAX_ROLL_DAYS = 366


@dataclass(frozen=True)
class BusinessCalendar:
    """
    Snapshot of a company's non-collectible dates.

    Rest days come from two places: the configured weekly rest weekday and the
    materialized rest-day holiday rows. Both are waived when a modality collects on
    off days. Every other holiday always blocks collection.
    """

    company_id: str
    rest_weekday: int = 6
    holidays: FrozenSet[date] = field(default_factory=frozenset)
    rest_days: FrozenSet[date] = field(default_factory=frozenset)

    @classmethod
    def from_holidays(
        cls,
        company_id: str,
        holidays: Iterable[Holiday],
        rest_weekday: int,
        rest_day_description: str,
    ) -> "BusinessCalendar":
        holiday_dates = set()
        rest_dates = set()
        for holiday in holidays:
            if holiday.description == rest_day_description:
                rest_dates.add(holiday.holiday_date)
            else:
                holiday_dates.add(holiday.holiday_date)
        return cls(
            company_id=company_id,
            rest_weekday=rest_weekday,
            holidays=frozenset(holiday_dates),
            rest_days=frozenset(rest_dates),
        )

    def is_rest_day(self, day: date) -> bool:
        return day.weekday() == self.rest_weekday or day in self.rest_days

    def is_payable(self, day: date, off_days: bool = False) -> bool:
        """True when the company collects on this date"""
        if day in self.holidays:
            return False
        if not off_days and self.is_rest_day(day):
            return False
        return True

    def next_payable(self, day: date, off_days: bool = False) -> date:
        """Roll forward (never backward) to the first payable date on or after `day`"""
        candidate = day
        for _ in range(MAX_ROLL_DAYS):
            if self.is_payable(candidate, off_days):
                return candidate
            candidate += timedelta(days=1)
        raise ConfigurationError(
            f"Company {self.company_id} has no payable date within {MAX_ROLL_DAYS} days of {day.isoformat()}"
        )


def rest_days_between(start: date, end: date, rest_weekday: int) -> List[date]:
    """Every occurrence of the rest weekday from start to end (inclusive)"""
    return [day for day in generate_date_range(start, end) if day.weekday() == rest_weekday]
