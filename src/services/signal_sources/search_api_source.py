"""
Web Search API Source

Fans a small set of query templates out per company against a generic web
search endpoint (Serper-compatible: POST {q, gl, hl, num}, X-API-KEY header)
and keeps results that look like job postings:
- the URL belongs to a known job-board domain, or
- the title contains a job-related keyword

Results are deduplicated by URL across all queries of one company. Result
URLs are stable permalinks and are used directly as the signal identity.

HTTP calls use requests and run in a worker thread so the pipeline's event
loop stays responsive; each query is retried once after a fixed backoff.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.common.error_handling import SourceFetchError
from src.common.intent_config import IntentConfig
from src.common.rate_limiter import RequestPacer
from src.common.types import Company, IntentLevel, RawPosting
from src.intent.date_resolver import DateHint
from src.services.signal_sources import SignalSource

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE_NAME = "不明"

JOB_BOARD_NAMES: Dict[str, str] = {
    "doda.jp": "doda",
    "rikunabi.com": "リクナビ",
    "mynavi.jp": "マイナビ",
    "tenshoku.mynavi.jp": "マイナビ転職",
    "en-japan.com": "エン転職",
    "employment.en-japan.com": "エン転職",
    "green-japan.com": "Green",
    "type.jp": "type",
    "indeed.com": "Indeed",
    "jp.indeed.com": "Indeed",
    "wantedly.com": "Wantedly",
    "linkedin.com": "LinkedIn",
    "bizreach.jp": "ビズリーチ",
    "openwork.jp": "OpenWork",
    "careerindex.jp": "キャリアインデックス",
}


def get_source_name_for_url(url: str) -> str:
    """
    Human-readable job-board name for a result URL.

    Unknown hosts fall back to the bare host name; URLs without a host
    return "不明".

    Examples:
        >>> get_source_name_for_url("https://www.doda.jp/job/1")
        'doda'
        >>> get_source_name_for_url("https://careers.example.co.jp/it")
        'careers.example.co.jp'
    """
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return UNKNOWN_SOURCE_NAME
    if not hostname:
        return UNKNOWN_SOURCE_NAME
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    return JOB_BOARD_NAMES.get(hostname, hostname)


def is_job_result(result: Dict[str, Any], domains: List[str], keywords: List[str]) -> bool:
    """Check whether a search result looks like a job posting."""
    url = str(result.get("link") or "").lower()
    title = str(result.get("title") or "").lower()

    if any(domain in url for domain in domains):
        return True
    return any(keyword in title for keyword in keywords)


class SearchApiSource(SignalSource):
    """Per-company web search for job postings."""

    stable_urls = True
    key_scheme = "search"

    def __init__(
        self,
        config: IntentConfig,
        api_key: str,
        session: Optional[requests.Session] = None,
        pacer: Optional[RequestPacer] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the search source.

        Args:
            config: Run configuration
            api_key: Search API key
            session: requests session (default: new session)
            pacer: Delay between queries (default: config.search_query_delay_seconds)
            log_callback: Optional progress callback
        """
        if not api_key:
            raise ValueError("Search API key is required")
        super().__init__(
            config,
            pacer=pacer or RequestPacer("search_api", config.search_query_delay_seconds),
            log_callback=log_callback,
        )
        self.api_key = api_key
        self.session = session or requests.Session()
        self._job_keywords = [k.lower() for k in config.job_keywords]
        self._job_domains = [d.lower() for d in config.job_domains]

    def get_source_name(self) -> str:
        return "web_search"

    @property
    def null_date_level(self) -> IntentLevel:
        return self.config.search_null_date_level

    def date_hint(self, posting: RawPosting) -> DateHint:
        snippet = posting.extra.get("snippet") or ""
        return DateHint(structured=posting.date_hint, text=f"{snippet} {posting.title}")

    # ===== HTTP =====

    def _post_query(self, query: str) -> Any:
        payload = {
            "q": query,
            "gl": self.config.search_country,
            "hl": self.config.search_locale,
            "num": self.config.search_result_count,
        }
        headers = {
            "X-API-KEY": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(
                self.config.search_endpoint,
                json=payload,
                headers=headers,
                timeout=self.config.search_timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise SourceFetchError(self.get_source_name(), query, str(e)) from e

        try:
            return response.json()
        except ValueError:
            logger.warning(f"Search returned non-JSON body for '{query}'")
            return None

    def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Run one query and return the organic results.

        A malformed payload yields an empty list.

        Raises:
            SourceFetchError: If the request fails twice
        """
        retrying = Retrying(
            stop=stop_after_attempt(2),
            wait=wait_fixed(self.config.search_retry_backoff_seconds),
            retry=retry_if_exception_type(SourceFetchError),
            reraise=True,
        )
        data = retrying(self._post_query, query)

        if not isinstance(data, dict):
            return []
        organic = data.get("organic")
        if not isinstance(organic, list):
            return []
        return [item for item in organic if isinstance(item, dict)]

    # ===== SignalSource =====

    def _to_posting(self, result: Dict[str, Any]) -> RawPosting:
        link = str(result["link"])
        snippet = result.get("snippet")
        original_date = result.get("date")
        return RawPosting(
            title=str(result["title"]),
            employer_name="",
            location_text="",
            source_url=link,
            source_name=get_source_name_for_url(link),
            date_hint=str(original_date) if original_date else None,
            extra={"snippet": snippet, "original_date": original_date},
        )

    async def fetch_postings(self, query: str) -> List[RawPosting]:
        """Search one query and keep job-like results."""
        try:
            results = await asyncio.to_thread(self.search, query)
        except SourceFetchError as e:
            self._log(f"  query skipped after retry: {e}", logging.WARNING)
            self.failed_queries.append(query)
            return []

        postings = []
        for result in results:
            if not result.get("link") or not result.get("title"):
                continue
            if not is_job_result(result, self._job_domains, self._job_keywords):
                continue
            postings.append(self._to_posting(result))
        return postings

    async def produce_for_company(self, company: Company) -> List[RawPosting]:
        """Run every query template for one company, deduplicated by URL."""
        return await self.produce(self.config.build_search_queries(company.name))
