"""
Intent Classifier

Maps a posting date to an intent level by elapsed whole days, first match wins:

    d <= 7   -> hot
    d <= 30  -> middle
    d <= 90  -> low
    else     -> none

A missing date has no level of its own: the caller passes its source's
null-date policy as `fallback`.
"""

from datetime import date, datetime
from typing import Optional

from src.common.types import IntentLevel


HOT_MAX_DAYS = 7
MIDDLE_MAX_DAYS = 30
LOW_MAX_DAYS = 90


def elapsed_days(posted_date: date, today: Optional[date] = None) -> int:
    """Whole days between posted_date and today (negative for future dates)."""
    today = today or datetime.now().date()
    return (today - posted_date).days


def classify(
    posted_date: Optional[date],
    today: Optional[date] = None,
    fallback: IntentLevel = IntentLevel.NONE,
) -> IntentLevel:
    """
    Classify a posting date into an intent level.

    Args:
        posted_date: Resolved posting date, or None if unknown
        today: Reference date (default: today)
        fallback: Level returned when posted_date is None

    Returns:
        IntentLevel
    """
    if posted_date is None:
        return fallback

    days = elapsed_days(posted_date, today)
    if days <= HOT_MAX_DAYS:
        return IntentLevel.HOT
    if days <= MIDDLE_MAX_DAYS:
        return IntentLevel.MIDDLE
    if days <= LOW_MAX_DAYS:
        return IntentLevel.LOW
    return IntentLevel.NONE
