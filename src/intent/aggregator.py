"""
Intent Aggregator

Reduces one company's matched postings for a run into a single aggregate:
- count: number of postings in this run
- best_level: highest-priority level (hot > middle > low > none); none if empty
- latest_date: most recent non-null posted date, or None

Pure and order-independent: max() over a total order yields the same result
for any permutation of the input.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from src.common.types import IntentLevel, RawPosting


@dataclass(frozen=True)
class ResolvedPosting:
    """A posting annotated with its resolved date and classified level."""
    posting: RawPosting
    posted_date: Optional[date]
    level: IntentLevel


@dataclass(frozen=True)
class IntentAggregate:
    best_level: IntentLevel
    latest_date: Optional[date]
    count: int


def aggregate(postings: Iterable[ResolvedPosting]) -> IntentAggregate:
    """
    Aggregate resolved postings into best level, latest date and count.

    Examples:
        >>> aggregate([]).best_level
        <IntentLevel.NONE: 'none'>
    """
    best = IntentLevel.NONE
    latest: Optional[date] = None
    count = 0

    for resolved in postings:
        count += 1
        if resolved.level.priority > best.priority:
            best = resolved.level
        if resolved.posted_date is not None and (latest is None or resolved.posted_date > latest):
            latest = resolved.posted_date

    return IntentAggregate(best_level=best, latest_date=latest, count=count)
