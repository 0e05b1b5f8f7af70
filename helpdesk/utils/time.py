"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone, timedelta
from typing import Optional
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """
    Get current UTC datetime

    Naive, in UTC, and truncated to milliseconds - the shape pymongo hands
    back from the database - so stored and in-memory values compare equal.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_utc_naive(dt: datetime) -> datetime:
    """Normalize any datetime to naive UTC for storage and queries"""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to naive UTC datetime

    Args:
        iso_string: ISO formatted datetime string

    Returns:
        Datetime object in UTC
    """
    return to_utc_naive(date_parser.isoparse(iso_string))


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Naive UTC datetime the given number of days before now"""
    return (now or utc_now()) - timedelta(days=days)
