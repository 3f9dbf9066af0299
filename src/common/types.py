"""
Canonical Types for the Intent Signal Pipeline

This module defines the data structures shared by every stage of the pipeline:
- Company: read-only registry record used as a matching target
- RawPosting: ephemeral job-posting candidate produced by a signal source
- IntentLevel: ordered hiring-intent classification (hot > middle > low > none)
- IntentSignal / CompanyIntent: the two persisted document shapes
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


SIGNAL_TYPE_JOB_POSTING = "job_posting"


class IntentLevel(str, Enum):
    """Hiring-intent level derived from posting recency."""
    HOT = "hot"
    MIDDLE = "middle"
    LOW = "low"
    NONE = "none"

    @property
    def priority(self) -> int:
        """Numeric rank used for max-reduction (hot=3 ... none=0)."""
        return LEVEL_PRIORITY[self]

    @classmethod
    def parse(cls, value: Optional[str], default: "IntentLevel") -> "IntentLevel":
        """Parse a level name, falling back to default on unknown input."""
        if not value:
            return default
        try:
            return cls(value.strip().lower())
        except ValueError:
            return default


LEVEL_PRIORITY: Dict[IntentLevel, int] = {
    IntentLevel.HOT: 3,
    IntentLevel.MIDDLE: 2,
    IntentLevel.LOW: 1,
    IntentLevel.NONE: 0,
}


@dataclass(frozen=True)
class Company:
    """Registry record. Owned by the registry, never mutated here."""
    id: str
    name: str


@dataclass(frozen=True)
class RawPosting:
    """
    One job-posting candidate as returned by a signal source.

    Attributes:
        title: Posting title
        employer_name: Free-text employer name as shown by the source
        location_text: Free-text location (empty when the source has none)
        source_url: Link to the posting (may be a non-stable redirect)
        source_name: Human-readable source/board name
        date_hint: Raw date text or structured date string, if any
        extra: Source-specific fields carried into raw_data (e.g. snippet)
    """
    title: str
    employer_name: str
    location_text: str
    source_url: str
    source_name: str
    date_hint: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass
class IntentSignal:
    """Persisted evidence row (append-only)."""
    company_id: str
    department_type: str
    title: str
    source_url: str
    source_name: str
    posted_date: Optional[date] = None
    raw_data: Dict[str, Any] = field(default_factory=dict)
    signal_type: str = SIGNAL_TYPE_JOB_POSTING
    discovered_at: datetime = field(default_factory=datetime.utcnow)

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document."""
        return {
            "company_id": self.company_id,
            "department_type": self.department_type,
            "signal_type": self.signal_type,
            "title": self.title,
            "source_url": self.source_url,
            "source_name": self.source_name,
            "posted_date": self.posted_date.isoformat() if self.posted_date else None,
            "raw_data": self.raw_data,
            "discovered_at": self.discovered_at,
        }


@dataclass
class CompanyIntent:
    """Aggregated intent row, one per (company_id, department_type)."""
    company_id: str
    department_type: str
    intent_level: IntentLevel
    signal_count: int
    latest_signal_date: Optional[date] = None
    total_signal_count: Optional[int] = None
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def to_document(self) -> Dict[str, Any]:
        """Convert to the $set payload of the intent upsert."""
        doc = {
            "company_id": self.company_id,
            "department_type": self.department_type,
            "intent_level": self.intent_level.value,
            "signal_count": self.signal_count,
            "latest_signal_date": (
                self.latest_signal_date.isoformat() if self.latest_signal_date else None
            ),
            "updated_at": self.updated_at,
        }
        if self.total_signal_count is not None:
            doc["total_signal_count"] = self.total_signal_count
        return doc
