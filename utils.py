# machine_efficiency/utils.py
"""Utility functions for Machine Efficiency Dashboard"""
from datetime import datetime, date, timezone
from typing import Optional
import math

DATE_FORMATS = ('%Y-%m-%d', '%d/%m/%Y', '%m/%d/%Y', '%d-%m-%Y', '%Y/%m/%d')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-like timestamp or date string from the store.

    Args:
        value: Raw string, e.g. '2024-05-01T10:15:00.000Z' or '2024-05-01'

    Returns:
        Naive datetime, or None if the value does not parse
    """
    if not value:
        return None
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        return parsed.replace(tzinfo=None)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_record_date(value: Optional[str]) -> Optional[date]:
    """Calendar day of a store date/time value"""
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


def format_date_ddmmyy(value: Optional[str]) -> str:
    """Display form DD/MM/YY; unparseable input is returned as-is"""
    if not value:
        return ''
    parsed = parse_timestamp(value)
    if not parsed:
        return value
    return parsed.strftime('%d/%m/%y')


def today_str() -> str:
    """Current UTC calendar day as YYYY-MM-DD"""
    return datetime.now(timezone.utc).strftime('%Y-%m-%d')


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, as the dashboard displays"""
    return int(math.floor(value + 0.5))
