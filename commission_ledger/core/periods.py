"""Named reporting periods for commission reports."""
from datetime import date, timedelta
from typing import Optional, Tuple

PERIODS = ("week", "month", "quarter", "year", "lastmonth", "lastyear")


def _shift_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) + months
    return date(month_index // 12, month_index % 12 + 1, 1)


def date_range_for_period(period: Optional[str], today: Optional[date] = None) -> Tuple[date, date]:
    """
    Resolve a named period to an inclusive (start, end) date range.

    Unknown or missing periods fall back to the last 30 days.

    Examples:
        >>> date_range_for_period("month", date(2026, 10, 18))
        (datetime.date(2026, 10, 1), datetime.date(2026, 10, 18))
        >>> date_range_for_period("lastmonth", date(2026, 1, 18))
        (datetime.date(2025, 12, 1), datetime.date(2025, 12, 31))
    """
    today = today or date.today()

    if period == "week":
        return today - timedelta(days=7), today
    if period == "month":
        return today.replace(day=1), today
    if period == "quarter":
        return _shift_months(today, -3), today
    if period == "year":
        return date(today.year, 1, 1), today
    if period == "lastmonth":
        first_of_this_month = today.replace(day=1)
        return _shift_months(today, -1), first_of_this_month - timedelta(days=1)
    if period == "lastyear":
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)

    return today - timedelta(days=30), today
