"""
Date Resolver

Parses the heterogeneous date hints returned by signal sources into a
calendar date, or None when the date is unknown.

Resolution order:
1. Structured hint (e.g. the search API's optional "date" field): direct
   parse with dateutil when it looks like an absolute date.
2. Absolute numeric patterns in the free text, first match wins:
   YYYY年M月D日, YYYY/M/D, YYYY-M-D.
3. Relative phrases: today / just now / N hours ago -> today,
   yesterday -> today - 1, N days ago, N weeks ago (7N days),
   N months ago (calendar months, not 30-day blocks). The English words
   today, just now and yesterday only count as the entire hint value.

None is a distinct outcome and is never replaced by today's date here; the
null-date policy belongs to each signal source.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Mapping, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


@dataclass(frozen=True)
class DateHint:
    """A structured date string plus free text to scan as fallback."""
    structured: Optional[str] = None
    text: str = ""


HintLike = Union[DateHint, Mapping, str, None]


ABSOLUTE_PATTERNS = (
    re.compile(r"(\d{4})年\s*(\d{1,2})月\s*(\d{1,2})日"),
    re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})"),
    re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"),
)

_NOW_WORDS = ("今日", "本日", "たった今")
_FRESH_MARKER = "新着"
_YESTERDAY_WORDS = ("昨日",)

# English day words are common in ad copy ("Apply today"); they count only as
# the whole hint value, e.g. the search API's date field
_ENGLISH_NOW = re.compile(r"^(?:today|just now)$", re.IGNORECASE)
_ENGLISH_YESTERDAY = re.compile(r"^yesterday$", re.IGNORECASE)

_MINUTES_AGO = re.compile(r"(\d+)\s*(?:分前|minutes?\s+ago|mins?\s+ago)", re.IGNORECASE)
_HOURS_AGO = re.compile(r"(\d+)\s*(?:時間前|hours?\s+ago)", re.IGNORECASE)
_DAYS_AGO = re.compile(r"(\d+)\s*(?:日前|days?\s+ago)", re.IGNORECASE)
_WEEKS_AGO = re.compile(r"(\d+)\s*(?:週間前|weeks?\s+ago)", re.IGNORECASE)
_MONTHS_AGO = re.compile(r"(\d+)\s*(?:(?:か|ヶ|ケ|カ|ヵ)月前|months?\s+ago)", re.IGNORECASE)

_HAS_YEAR = re.compile(r"\d{4}")


def resolve(hint: HintLike, now: Optional[datetime] = None) -> Optional[date]:
    """
    Resolve a date hint to a calendar date.

    Args:
        hint: DateHint, a mapping with "date"/"text" keys, or a plain string
        now: Reference time for relative phrases (default: datetime.now())

    Returns:
        The resolved date, or None if no pattern matched

    Examples:
        >>> resolve("2026年1月15日")
        datetime.date(2026, 1, 15)
        >>> resolve("3日前", now=datetime(2026, 1, 15))
        datetime.date(2026, 1, 12)
    """
    structured, text = _split_hint(hint)
    today = (now or datetime.now()).date()

    if structured:
        parsed = _parse_structured(structured)
        if parsed is None:
            # Structured field may itself be relative ("3 days ago", "Yesterday")
            parsed = parse_relative(_strip_markers(structured), today)
        if parsed is not None:
            return parsed

    cleaned = _strip_markers(text)
    if not cleaned:
        return None

    absolute = parse_absolute(cleaned)
    if absolute is not None:
        return absolute

    return parse_relative(cleaned, today)


def parse_absolute(text: str) -> Optional[date]:
    """Scan text for an absolute numeric date; first valid match wins."""
    for pattern in ABSOLUTE_PATTERNS:
        for match in pattern.finditer(text):
            year, month, day = (int(g) for g in match.groups())
            try:
                return date(year, month, day)
            except ValueError:
                continue
    return None


def parse_relative(text: str, today: date) -> Optional[date]:
    """Scan text for a relative phrase, anchored at today."""
    lowered = text.lower()

    if any(word in lowered for word in _NOW_WORDS) or text == _FRESH_MARKER or _ENGLISH_NOW.match(text):
        return today
    if _MINUTES_AGO.search(text) or _HOURS_AGO.search(text):
        return today
    if any(word in lowered for word in _YESTERDAY_WORDS) or _ENGLISH_YESTERDAY.match(text):
        return today - relativedelta(days=1)

    match = _DAYS_AGO.search(text)
    if match:
        return today - relativedelta(days=int(match.group(1)))

    match = _WEEKS_AGO.search(text)
    if match:
        return today - relativedelta(days=7 * int(match.group(1)))

    match = _MONTHS_AGO.search(text)
    if match:
        return today - relativedelta(months=int(match.group(1)))

    return None


def _strip_markers(text: str) -> str:
    return text.replace("+", "").replace("＋", "").strip()


def _split_hint(hint: HintLike):
    if hint is None:
        return None, ""
    if isinstance(hint, DateHint):
        return hint.structured, hint.text or ""
    if isinstance(hint, str):
        return None, hint
    if isinstance(hint, Mapping):
        structured = hint.get("date")
        text = hint.get("text") or ""
        return (str(structured) if structured else None), str(text)
    return None, ""


def _parse_structured(value: str) -> Optional[date]:
    """Direct parse of a structured date string; None unless it is absolute."""
    value = value.strip()
    if not value or not _HAS_YEAR.search(value):
        return None

    absolute = parse_absolute(value)
    if absolute is not None:
        return absolute

    try:
        return date_parser.parse(value).date()
    except (ValueError, OverflowError):
        return None
