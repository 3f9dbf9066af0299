"""
Intent Pipeline Service

Runs one batch of the intent-signal pipeline:

    load registry -> build name index -> produce postings -> match to
    companies -> resolve dates and classify -> aggregate per company ->
    persist signals and intent rows

Two entry points, one per source:
- run_crawl: the crawler produces postings for all keywords up front; each
  posting's employer name is resolved against the registry.
- run_search: companies are processed one at a time; search results are
  attributed to the company whose queries produced them.

Execution is sequential by design (rate-sensitive sources). Per-item
failures are recorded and the batch continues; only a registry failure is
fatal (SetupError).

Usage:
    service = IntentPipelineService(config)
    async with BrowserCrawlerSource(config) as source:
        result = await service.run_crawl(source)
    print(result.summary_lines())
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from src.common.error_handling import ErrorCollector, SetupError
from src.common.intent_config import IntentConfig
from src.common.logger import get_logger
from src.common.rate_limiter import RequestPacer
from src.common.repositories import CompanyRegistryInterface, get_company_registry
from src.common.types import Company, IntentLevel, IntentSignal, RawPosting
from src.intent.aggregator import IntentAggregate, ResolvedPosting, aggregate
from src.intent.classifier import classify
from src.intent.date_resolver import resolve as resolve_date
from src.matching.entity_resolver import NameIndex, resolve as resolve_company
from src.services.intent_persistence_service import (
    IntentPersistenceService,
    SignalWriteStatus,
)
from src.services.signal_sources import SignalSource
from src.services.signal_sources.browser_crawler_source import BrowserCrawlerSource
from src.services.signal_sources.search_api_source import SearchApiSource

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]

LEVEL_LABELS = {
    IntentLevel.HOT: "HOT",
    IntentLevel.MIDDLE: "MID",
    IntentLevel.LOW: "LOW",
    IntentLevel.NONE: "---",
}


@dataclass
class IntentRunResult:
    """Result of one pipeline run."""

    source: str
    success: bool = True
    dry_run: bool = False
    companies_loaded: int = 0
    companies_processed: int = 0
    postings_found: int = 0
    matched_companies: int = 0
    matched_postings: int = 0
    unmatched_postings: int = 0
    signals_inserted: int = 0
    signals_skipped: int = 0
    signals_failed: int = 0
    intents_written: int = 0
    intents_failed: int = 0
    failed_companies: int = 0
    level_counts: Dict[str, int] = field(
        default_factory=lambda: {level.value: 0 for level in IntentLevel}
    )
    errors: List[Dict[str, Any]] = field(default_factory=list)
    duration_ms: int = 0
    error_message: Optional[str] = None

    def count_level(self, level: IntentLevel) -> None:
        self.level_counts[level.value] = self.level_counts.get(level.value, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "source": self.source,
            "success": self.success,
            "dry_run": self.dry_run,
            "stats": {
                "companies_loaded": self.companies_loaded,
                "companies_processed": self.companies_processed,
                "postings_found": self.postings_found,
                "matched_companies": self.matched_companies,
                "matched_postings": self.matched_postings,
                "unmatched_postings": self.unmatched_postings,
                "signals_inserted": self.signals_inserted,
                "signals_skipped": self.signals_skipped,
                "signals_failed": self.signals_failed,
                "intents_written": self.intents_written,
                "intents_failed": self.intents_failed,
                "failed_companies": self.failed_companies,
                "duration_ms": self.duration_ms,
            },
            "levels": dict(self.level_counts),
            "errors": self.errors,
            "error": self.error_message,
        }

    def summary_lines(self) -> List[str]:
        """Human-readable end-of-run summary."""
        lines = [
            f"=== {self.source} run complete{' (dry run)' if self.dry_run else ''} ===",
            f"Companies loaded:    {self.companies_loaded}",
            f"Companies processed: {self.companies_processed}",
            f"Postings found:      {self.postings_found}",
            f"Matched companies:   {self.matched_companies} ({self.matched_postings} postings)",
            f"Unmatched postings:  {self.unmatched_postings}",
            f"New signals:         {self.signals_inserted} (skipped {self.signals_skipped}, "
            f"failed {self.signals_failed})",
            f"Intent rows written: {self.intents_written} (failed {self.intents_failed})",
        ]
        if self.failed_companies:
            lines.append(f"Failed companies:    {self.failed_companies}")
        lines.append("Intent level distribution:")
        for level in IntentLevel:
            lines.append(f"  {level.value.upper():<7} {self.level_counts.get(level.value, 0)}")
        if self.errors:
            lines.append(f"Errors: {len(self.errors)}")
        return lines


class IntentPipelineService:
    """Batch orchestration of sources, matching, scoring and persistence."""

    def __init__(
        self,
        config: IntentConfig,
        registry: Optional[CompanyRegistryInterface] = None,
        persistence: Optional[IntentPersistenceService] = None,
        dry_run: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
        log_callback: Optional[LogCallback] = None,
        run_id: Optional[str] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Run configuration
            registry: Company registry (default: factory)
            persistence: Persistence gateway (default: Atlas-backed)
            dry_run: Produce, match and aggregate without writing
            clock: Current-time provider for date resolution (default: datetime.now)
            log_callback: Optional callback receiving status lines
            run_id: Run identifier for log correlation (default: random)
        """
        self.config = config
        self.dry_run = dry_run
        self.errors = ErrorCollector()
        self._registry = registry
        self.persistence = persistence or IntentPersistenceService(
            errors=self.errors, dry_run=dry_run, log_callback=log_callback
        )
        if persistence is not None:
            self.persistence.errors = self.errors
            self.persistence.dry_run = self.persistence.dry_run or dry_run
        self._clock = clock or datetime.now
        self._log_callback = log_callback
        self.run_id = run_id or uuid.uuid4().hex
        self.log = get_logger(__name__, run_id=self.run_id)

    def _get_registry(self) -> CompanyRegistryInterface:
        if self._registry is not None:
            return self._registry
        return get_company_registry()

    def _log(self, message: str, level: int = logging.INFO, stage: Optional[str] = None) -> None:
        stage_logger = self.log.bind(stage) if stage else self.log
        stage_logger.log(level, message)
        if self._log_callback and level >= logging.INFO:
            self._log_callback(message)

    # ===== Shared steps =====

    def load_companies(self) -> List[Company]:
        """
        Load the full registry.

        Raises:
            SetupError: If the registry cannot be read
        """
        try:
            companies = self._get_registry().load_all(page_size=self.config.registry_page_size)
        except Exception as e:
            raise SetupError(f"Failed to load company registry: {e}") from e
        self._log(f"Loaded {len(companies)} companies", stage="registry")
        return companies

    def resolve_posting(self, source: SignalSource, posting: RawPosting, now: datetime) -> ResolvedPosting:
        """Resolve a posting's date and classify it with the source's null-date policy."""
        hint = source.date_hint(posting)
        posted_date = resolve_date(hint, now=now)
        level = classify(posted_date, today=now.date(), fallback=source.null_date_level)
        if posted_date is None:
            self._log(f"No date in hint {hint!r} -> {level.value}", logging.DEBUG, stage="score")
        return ResolvedPosting(posting=posting, posted_date=posted_date, level=level)

    def persist_company(
        self,
        source: SignalSource,
        company: Company,
        resolved: List[ResolvedPosting],
        result: IntentRunResult,
    ) -> Optional[IntentAggregate]:
        """
        Write one company's signals and its intent row.

        Nothing is written for an empty posting list; an existing row from
        a previous run is left untouched.
        """
        if not resolved:
            return None

        department = self.config.department_type
        inserted = 0
        for item in resolved:
            signal = IntentSignal(
                company_id=company.id,
                department_type=department,
                title=item.posting.title,
                source_url=source.source_key(item.posting),
                source_name=item.posting.source_name,
                posted_date=item.posted_date,
                raw_data=source.raw_data(item.posting),
            )
            status = self.persistence.upsert_signal(signal)
            if status == SignalWriteStatus.INSERTED:
                inserted += 1
                result.signals_inserted += 1
            elif status == SignalWriteStatus.SKIPPED:
                result.signals_skipped += 1
            else:
                result.signals_failed += 1

        summary = aggregate(resolved)
        if self.persistence.upsert_intent(company.id, department, summary):
            result.intents_written += 1
        else:
            result.intents_failed += 1

        result.count_level(summary.best_level)
        self._log(
            f"  [{LEVEL_LABELS[summary.best_level]}] {company.name}: "
            f"{summary.count} postings ({inserted} new)",
            stage="persist",
        )
        return summary

    def _record_failed_queries(self, source: SignalSource, start: int, stage: str) -> int:
        failed = source.failed_queries[start:]
        for target in failed:
            self.errors.add_error(
                stage=stage,
                operation="fetch",
                message=f"{source.get_source_name()}: skipped {target}",
                severity="low",
            )
        return len(failed)

    def _finish(self, result: IntentRunResult, started: float) -> IntentRunResult:
        if result.intents_failed and not result.intents_written:
            # Nothing reached the store: the run failed even though no step raised
            self.errors.add_error(
                stage="persist",
                operation="run",
                message=f"All {result.intents_failed} intent upserts failed",
                severity="critical",
                recoverable=False,
            )

        result.duration_ms = int((time.time() - started) * 1000)
        result.errors = [e.to_dict() for e in self.errors.errors]
        result.success = not self.errors.has_critical_errors()
        if not result.success:
            result.error_message = "No intent row could be written"

        for line in result.summary_lines():
            self._log(line, stage="summary")
        if self.errors.errors:
            breakdown = self.errors.summary()
            self._log(
                f"Errors by stage: {breakdown['by_stage']}, by severity: {breakdown['by_severity']}",
                logging.WARNING,
                stage="summary",
            )
        return result

    def _start(self, source: SignalSource) -> IntentRunResult:
        self.errors.clear()
        self.persistence.begin_run()
        result = IntentRunResult(source=source.get_source_name(), dry_run=self.dry_run)
        try:
            self.persistence.ensure_indexes()
        except Exception as e:
            raise SetupError(f"Database unavailable: {e}") from e
        return result

    # ===== Crawl =====

    async def run_crawl(self, source: BrowserCrawlerSource) -> IntentRunResult:
        """
        Crawl all keywords, resolve employers against the registry and persist.

        Raises:
            SetupError: If the registry or database cannot be reached
        """
        started = time.time()
        result = self._start(source)

        companies = self.load_companies()
        result.companies_loaded = len(companies)
        index = NameIndex(companies)
        self._log(f"Name index built: {len(index)} keys", logging.DEBUG, stage="match")

        self._log(f"Crawling keywords: {', '.join(self.config.crawl_keywords)}", stage="crawl")
        failed_start = len(source.failed_queries)
        postings = await source.produce(self.config.crawl_keywords)
        self._record_failed_queries(source, failed_start, stage="crawl")
        result.postings_found = len(postings)
        self._log(f"Crawl complete: {len(postings)} postings", stage="crawl")

        matched: Dict[str, List[RawPosting]] = {}
        by_id: Dict[str, Company] = {}
        for posting in postings:
            company = resolve_company(posting.employer_name, index)
            if company is None:
                result.unmatched_postings += 1
                self._log(f"Unmatched employer: {posting.employer_name}", logging.DEBUG, stage="match")
                continue
            by_id[company.id] = company
            matched.setdefault(company.id, []).append(posting)

        result.matched_companies = len(matched)
        result.matched_postings = result.postings_found - result.unmatched_postings
        self._log(
            f"Matched {result.matched_companies} companies "
            f"({result.matched_postings} postings), unmatched {result.unmatched_postings}",
            stage="match",
        )

        now = self._clock()
        for company_id, company_postings in matched.items():
            company = by_id[company_id]
            resolved = [self.resolve_posting(source, p, now) for p in company_postings]
            self.persist_company(source, company, resolved, result)
            result.companies_processed += 1

        return self._finish(result, started)

    # ===== Search =====

    async def run_search(
        self,
        source: SearchApiSource,
        company_pacer: Optional[RequestPacer] = None,
    ) -> IntentRunResult:
        """
        Search every registry company in turn and persist its signals.

        A company whose queries all fail (or whose processing raises) gets
        the none/0 marker row when config.search_mark_failed_companies is set.

        Raises:
            SetupError: If the registry or database cannot be reached
        """
        started = time.time()
        result = self._start(source)
        pacer = company_pacer or RequestPacer(
            "search_company", self.config.search_company_delay_seconds
        )

        companies = self.load_companies()
        result.companies_loaded = len(companies)
        query_count = len(self.config.search_query_templates)
        total = len(companies)

        for i, company in enumerate(companies):
            if i > 0:
                await pacer.wait()
            self._log(f"[{i + 1}/{total}] {company.name} ...", stage="search")

            failed_start = len(source.failed_queries)
            try:
                postings = await source.produce_for_company(company)
            except SetupError:
                raise
            except Exception as e:
                self._log(f"  Error: {e}", logging.ERROR, stage="search")
                self.errors.add_error(
                    stage="search",
                    operation="company",
                    message=f"{company.name}: {e}",
                    severity="medium",
                    exception=e,
                )
                self._handle_failed_company(company, result)
                continue

            failed = self._record_failed_queries(source, failed_start, stage="search")
            if query_count and failed >= query_count:
                self._log("  All queries failed", logging.WARNING, stage="search")
                self._handle_failed_company(company, result)
                continue

            result.companies_processed += 1
            result.postings_found += len(postings)
            self._log(f"  Job results: {len(postings)}", stage="search")
            if not postings:
                continue

            result.matched_companies += 1
            result.matched_postings += len(postings)
            now = self._clock()
            resolved = [self.resolve_posting(source, p, now) for p in postings]
            self.persist_company(source, company, resolved, result)

        return self._finish(result, started)

    def _handle_failed_company(self, company: Company, result: IntentRunResult) -> None:
        result.failed_companies += 1
        result.companies_processed += 1
        if not self.config.search_mark_failed_companies:
            return
        if self.persistence.mark_failed(company.id, self.config.department_type):
            result.count_level(IntentLevel.NONE)
