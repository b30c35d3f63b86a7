"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def add_months(from_date: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping the day to the target month's end"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def now_in_timezone(tz_name: str) -> datetime:
    """Current wall-clock time in the business timezone"""
    return datetime.now(ZoneInfo(tz_name))
