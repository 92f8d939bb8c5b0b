"""Date helpers shared by the ledger, budgets, goals and reports."""
from datetime import date, datetime, timedelta
from dateutil.relativedelta import relativedelta
import pytz
import os

APP_TIMEZONE = pytz.timezone(os.getenv("APP_TIMEZONE", "America/Sao_Paulo"))


def now_local() -> datetime:
    return datetime.now(APP_TIMEZONE)


def today_local() -> date:
    return now_local().date()


def calculate_date_range(period: str = "month", start_date: date = None, end_date: date = None, today: date = None):
    """
    Resolve a report period into an inclusive (start, end) date pair.

    `custom` needs both dates; every other period ends today and looks back
    one week, month, quarter or year. Unknown periods fall back to month.
    """
    today = today or today_local()
    if period == "custom":
        if not start_date or not end_date:
            raise ValueError("start_date and end_date are required for a custom period")
        if start_date > end_date:
            raise ValueError("start_date must be on or before end_date")
        return start_date, end_date

    if period == "week":
        start = today - timedelta(days=7)
    elif period == "quarter":
        start = today - relativedelta(months=3)
    elif period == "year":
        start = today - relativedelta(years=1)
    else:
        start = today - relativedelta(months=1)
    return start, today


def group_by_for_period(period: str) -> str:
    if period == "year":
        return "month"
    if period == "quarter":
        return "week"
    return "day"


def week_start(d: date) -> date:
    """Sunday on or before `d`."""
    return d - timedelta(days=(d.weekday() + 1) % 7)


def period_key(d: date, group_by: str) -> str:
    if group_by == "month":
        return d.strftime("%Y-%m")
    if group_by == "week":
        return week_start(d).isoformat()
    return d.isoformat()


def month_bounds(d: date):
    start = d.replace(day=1)
    end = start + relativedelta(months=1) - timedelta(days=1)
    return start, end


def year_bounds(d: date):
    return date(d.year, 1, 1), date(d.year, 12, 31)


def previous_period(start: date, end: date):
    """The period of equal length that ends the day before `start`."""
    length = (end - start).days
    prev_end = start - timedelta(days=1)
    return prev_end - timedelta(days=length), prev_end


def add_interval(d: date, frequency: str, count: int = 1) -> date:
    if frequency == "daily":
        return d + timedelta(days=count)
    if frequency == "weekly":
        return d + timedelta(weeks=count)
    if frequency == "monthly":
        return d + relativedelta(months=count)
    if frequency == "yearly":
        return d + relativedelta(years=count)
    raise ValueError(f"Unsupported frequency: {frequency}")
