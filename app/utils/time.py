"""Time Utilities for UTC management"""

from datetime import date, datetime, timezone


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    Avoids 'datetime.utcnow()' deprecation warnings.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_utc_today() -> date:
    return get_utc_now().date()


def accounting_month(moment: datetime) -> str:
    """YYYY-MM key used for payments and document numbering"""
    return moment.strftime("%Y-%m")


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5
