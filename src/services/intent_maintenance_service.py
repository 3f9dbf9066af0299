"""
Intent Maintenance Service

Housekeeping over the intent collections:
- purge_errored_intents: delete company_intents rows with level "none" and
  signal_count 0 (markers of failed or empty runs) so those companies are
  processed again
- collect_stats: read-only counts per level, signals and registry size
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from src.common.repositories import (
    CompanyIntentRepositoryInterface,
    CompanyRegistryInterface,
    IntentSignalRepositoryInterface,
    get_company_registry,
    get_intent_repository,
    get_signal_repository,
)
from src.common.types import IntentLevel

logger = logging.getLogger(__name__)

ERRORED_FILTER = {"intent_level": IntentLevel.NONE.value, "signal_count": 0}


@dataclass
class PurgeResult:
    deleted: int
    remaining: int
    companies_total: int


@dataclass
class IntentStats:
    """Snapshot of the intent collections."""
    companies_total: int = 0
    intents_total: int = 0
    signals_total: int = 0
    errored_none: int = 0
    by_level: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "companies_total": self.companies_total,
            "intents_total": self.intents_total,
            "signals_total": self.signals_total,
            "errored_none": self.errored_none,
            "by_level": dict(self.by_level),
        }


class IntentMaintenanceService:
    """Purge and statistics operations over the intent collections."""

    def __init__(
        self,
        registry: Optional[CompanyRegistryInterface] = None,
        signal_repository: Optional[IntentSignalRepositoryInterface] = None,
        intent_repository: Optional[CompanyIntentRepositoryInterface] = None,
    ):
        self._registry = registry
        self._signal_repository = signal_repository
        self._intent_repository = intent_repository

    @property
    def registry(self) -> CompanyRegistryInterface:
        return self._registry or get_company_registry()

    @property
    def signals(self) -> IntentSignalRepositoryInterface:
        return self._signal_repository or get_signal_repository()

    @property
    def intents(self) -> CompanyIntentRepositoryInterface:
        return self._intent_repository or get_intent_repository()

    def purge_errored_intents(self) -> PurgeResult:
        """Delete none/0 intent rows and report what remains."""
        deleted = self.intents.delete_errored().modified_count
        logger.info(f"Deleted {deleted} errored intent records (none with 0 signals)")

        result = PurgeResult(
            deleted=deleted,
            remaining=self.intents.count(),
            companies_total=self.registry.count(),
        )
        logger.info(
            f"Remaining intent records: {result.remaining}/{result.companies_total} companies"
        )
        return result

    def collect_stats(self, department_type: Optional[str] = None) -> IntentStats:
        """Count intent rows per level plus signal and registry totals."""
        by_level = {level.value: 0 for level in IntentLevel}
        by_level.update(self.intents.count_by_level(department_type))

        intent_filter = {"department_type": department_type} if department_type else None
        errored_filter = dict(ERRORED_FILTER)
        if department_type:
            errored_filter["department_type"] = department_type

        return IntentStats(
            companies_total=self.registry.count(),
            intents_total=self.intents.count(intent_filter),
            signals_total=self.signals.count(intent_filter),
            errored_none=self.intents.count(errored_filter),
            by_level=by_level,
        )
