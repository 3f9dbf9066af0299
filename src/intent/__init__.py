"""
Intent scoring: date resolution, recency classification and per-company aggregation.

These modules are shared by every signal source; sources only extract
postings and choose their null-date policy.
"""

from src.intent.date_resolver import DateHint, resolve as resolve_date
from src.intent.classifier import classify
from src.intent.aggregator import IntentAggregate, ResolvedPosting, aggregate

__all__ = [
    "DateHint",
    "resolve_date",
    "classify",
    "IntentAggregate",
    "ResolvedPosting",
    "aggregate",
]
