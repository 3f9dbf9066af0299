"""
Intent Persistence Service

The only writer of intent_signals and company_intents.

- upsert_signal: existence check on the stable source identity, then insert.
  The check-then-insert pair is not atomic; a single writer per run is
  assumed.
- upsert_intent: true upsert keyed on (company_id, department_type); this
  run's aggregate overwrites intent_level, signal_count, latest_signal_date
  and updated_at. total_signal_count is refreshed from the stored signal
  rows so history survives runs that match fewer postings.

Every failure is logged and recorded in the ErrorCollector, never raised:
one bad document must not abort the batch.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Set

from src.common.error_handling import ErrorCollector
from src.common.repositories import (
    CompanyIntentRepositoryInterface,
    IntentSignalRepositoryInterface,
    get_intent_repository,
    get_signal_repository,
)
from src.common.types import CompanyIntent, IntentLevel, IntentSignal
from src.intent.aggregator import IntentAggregate

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]


class SignalWriteStatus(str, Enum):
    INSERTED = "inserted"
    SKIPPED = "skipped"
    FAILED = "failed"


class IntentPersistenceService:
    """Idempotent writes of signals and per-company intent aggregates."""

    def __init__(
        self,
        signal_repository: Optional[IntentSignalRepositoryInterface] = None,
        intent_repository: Optional[CompanyIntentRepositoryInterface] = None,
        errors: Optional[ErrorCollector] = None,
        dry_run: bool = False,
        log_callback: Optional[LogCallback] = None,
    ):
        """
        Initialize the persistence service.

        Args:
            signal_repository: intent_signals repository (default: factory)
            intent_repository: company_intents repository (default: factory)
            errors: Collector for per-item failures
            dry_run: If True, only read (existence checks); never write
            log_callback: Optional callback for verbose logging
        """
        self._signal_repository = signal_repository
        self._intent_repository = intent_repository
        self.errors = errors if errors is not None else ErrorCollector()
        self.dry_run = dry_run
        self._log_callback = log_callback
        # source_urls a dry run would have inserted; stands in for the store
        self._dry_run_keys: Set[str] = set()

    def _get_signal_repository(self) -> IntentSignalRepositoryInterface:
        if self._signal_repository is not None:
            return self._signal_repository
        return get_signal_repository()

    def _get_intent_repository(self) -> CompanyIntentRepositoryInterface:
        if self._intent_repository is not None:
            return self._intent_repository
        return get_intent_repository()

    def _log(self, message: str) -> None:
        if self._log_callback:
            self._log_callback(message)

    def begin_run(self) -> None:
        """Reset per-run state."""
        self._dry_run_keys.clear()

    def ensure_indexes(self) -> None:
        """Create collection indexes (no-op in dry run)."""
        if self.dry_run:
            return
        self._get_signal_repository().ensure_indexes()
        self._get_intent_repository().ensure_indexes()

    def upsert_signal(self, signal: IntentSignal) -> SignalWriteStatus:
        """
        Insert a signal unless one with the same source_url exists.

        Returns:
            INSERTED, SKIPPED (already stored) or FAILED (logged)
        """
        repository = self._get_signal_repository()
        try:
            if repository.exists_by_source_url(signal.source_url):
                logger.debug(f"Signal exists, skipping: {signal.source_url}")
                return SignalWriteStatus.SKIPPED

            if self.dry_run:
                if signal.source_url in self._dry_run_keys:
                    return SignalWriteStatus.SKIPPED
                self._dry_run_keys.add(signal.source_url)
                self._log(f"[dry-run] would insert signal: {signal.title}")
                return SignalWriteStatus.INSERTED

            repository.insert(signal.to_document())
            return SignalWriteStatus.INSERTED
        except Exception as e:
            logger.error(f"Signal insert failed for {signal.source_url}: {e}")
            self.errors.add_error(
                stage="persist",
                operation="upsert_signal",
                message=f"{signal.company_id}: {e}",
                severity="medium",
                exception=e,
            )
            return SignalWriteStatus.FAILED

    def upsert_intent(
        self,
        company_id: str,
        department_type: str,
        aggregate: IntentAggregate,
        refresh_total: bool = True,
    ) -> bool:
        """
        Upsert the company's intent row with this run's aggregate.

        Args:
            company_id: Registry company ID
            department_type: Department tag
            aggregate: This run's aggregate for the company
            refresh_total: Recount total_signal_count from stored signals

        Returns:
            True if written (or would be written in dry run), False on failure
        """
        try:
            total = None
            if refresh_total and not self.dry_run:
                total = self._get_signal_repository().count({
                    "company_id": company_id,
                    "department_type": department_type,
                })

            intent = CompanyIntent(
                company_id=company_id,
                department_type=department_type,
                intent_level=aggregate.best_level,
                signal_count=aggregate.count,
                latest_signal_date=aggregate.latest_date,
                total_signal_count=total,
                updated_at=datetime.utcnow(),
            )

            if self.dry_run:
                self._log(
                    f"[dry-run] would upsert intent {company_id}/{department_type}: "
                    f"{intent.intent_level.value} ({intent.signal_count})"
                )
                return True

            self._get_intent_repository().upsert(
                company_id, department_type, intent.to_document()
            )
            return True
        except Exception as e:
            logger.error(f"Intent upsert failed for {company_id}/{department_type}: {e}")
            self.errors.add_error(
                stage="persist",
                operation="upsert_intent",
                message=f"{company_id}: {e}",
                severity="high",
                exception=e,
            )
            return False

    def mark_failed(self, company_id: str, department_type: str) -> bool:
        """
        Write the none/0 marker row for a company whose processing failed.

        The maintenance purge deletes these rows so the company is picked up
        again by the next run.
        """
        marker = IntentAggregate(best_level=IntentLevel.NONE, latest_date=None, count=0)
        return self.upsert_intent(company_id, department_type, marker, refresh_total=False)
