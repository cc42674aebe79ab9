"""Time Utilities - UTC timestamps, parsing and SLA status"""
from datetime import date, datetime, timezone
from typing import Optional
from dateutil import parser as date_parser

from ..domain.enums import SlaStatus


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """Parse ISO 8601 string to an aware datetime (UTC when no offset is given)"""
    dt = date_parser.isoparse(iso_string)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string into a date"""
    return date_parser.isoparse(value).date()


def is_overdue(due_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check if due datetime has passed

    Args:
        due_at: Due datetime or None
        now: Reference time, defaults to the current UTC time

    Returns:
        True if overdue, False otherwise
    """
    if due_at is None:
        return False
    now = now or utc_now()
    if due_at.tzinfo is None and now.tzinfo is not None:
        due_at = due_at.replace(tzinfo=timezone.utc)
    return now > due_at


def sla_status(due_at: Optional[datetime], now: Optional[datetime] = None) -> SlaStatus:
    """SLA status of a step: steps without a due date are always on time"""
    return SlaStatus.OVERDUE if is_overdue(due_at, now) else SlaStatus.ON_TIME
