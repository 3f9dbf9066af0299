"""
Signal Sources Module

Provides a unified interface for producing job-posting candidates from
external sources:
- Job aggregator (headless browser crawl over paginated result pages)
- Web search API (per-company query fan-out with job-result filtering)

Each source implements the SignalSource abstract base class. Sources only
extract postings and declare their policies (null-date fallback, whether
their URLs are stable); date resolution, classification and aggregation are
shared and live in src.intent.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional

from src.common.dedupe import signal_source_key
from src.common.intent_config import IntentConfig
from src.common.rate_limiter import RequestPacer
from src.common.types import IntentLevel, RawPosting
from src.intent.date_resolver import DateHint

logger = logging.getLogger(__name__)


class SignalSource(ABC):
    """Abstract base class for job-posting signal sources."""

    # True when source_url is a stable permalink usable as signal identity
    stable_urls: bool = True
    # Pseudo-URL scheme for synthetic identities when URLs are not stable
    key_scheme: str = "signal"

    def __init__(
        self,
        config: IntentConfig,
        pacer: Optional[RequestPacer] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the source.

        Args:
            config: Run configuration
            pacer: Sleep between queries (default: no delay)
            log_callback: Optional progress callback (receives status lines)
        """
        self.config = config
        self.pacer = pacer or RequestPacer(self.get_source_name())
        self._log_callback = log_callback
        self.failed_queries: List[str] = []

    def _log(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, message)
        if self._log_callback:
            self._log_callback(message)

    @abstractmethod
    def get_source_name(self) -> str:
        """
        Get the human-readable name of this source.

        Returns:
            Source name (e.g., "求人ボックス", "web_search")
        """
        pass

    @property
    @abstractmethod
    def null_date_level(self) -> IntentLevel:
        """Intent level assigned to postings whose date cannot be resolved."""
        pass

    @abstractmethod
    async def fetch_postings(self, query: str) -> List[RawPosting]:
        """
        Fetch postings for one query (a keyword or a search string).

        Transient failures are retried once inside the source; if the query
        still fails it is recorded in failed_queries and the postings
        collected so far (possibly none) are returned.
        """
        pass

    def posting_key(self, posting: RawPosting) -> Hashable:
        """Dedup key used by produce() across the queries of one call."""
        return posting.source_url

    def source_key(self, posting: RawPosting) -> str:
        """Stable identity persisted as intent_signals.source_url."""
        return signal_source_key(posting, stable_urls=self.stable_urls, scheme=self.key_scheme)

    def date_hint(self, posting: RawPosting) -> DateHint:
        """Date hint handed to the Date Resolver for this posting."""
        return DateHint(text=posting.date_hint or "")

    def raw_data(self, posting: RawPosting) -> Dict[str, Any]:
        """Source-specific payload stored in intent_signals.raw_data."""
        return dict(posting.extra)

    async def produce(self, queries: Iterable[str]) -> List[RawPosting]:
        """
        Run every query in order and return the deduplicated postings.

        Queries are paced by self.pacer (no wait before the first one).
        The first occurrence of each posting_key wins.
        """
        seen = set()
        postings: List[RawPosting] = []

        for index, query in enumerate(queries):
            if index > 0:
                await self.pacer.wait()

            fetched = await self.fetch_postings(query)

            new_count = 0
            for posting in fetched:
                key = self.posting_key(posting)
                if key in seen:
                    continue
                seen.add(key)
                postings.append(posting)
                new_count += 1

            logger.debug(
                f"{self.get_source_name()} query '{query}': "
                f"{len(fetched)} postings ({new_count} new, {len(postings)} total)"
            )

        return postings

    @staticmethod
    def utc_now_iso() -> str:
        return datetime.utcnow().isoformat()


# Import concrete implementations for convenience
from .browser_crawler_source import BrowserCrawlerSource
from .search_api_source import SearchApiSource

__all__ = ["SignalSource", "BrowserCrawlerSource", "SearchApiSource"]
