"""
Job Aggregator Browser Crawler

Drives headless Chromium (Playwright) through the aggregator's result pages
for each keyword:
- Up to config.crawl_max_pages pages per keyword; a page with zero result
  cards ends that keyword early
- Jittered settle wait after navigation and jittered delay between pages
- One retry per page after a fixed backoff; a page that fails twice is
  skipped and the crawl moves on to the next page
- Postings deduplicated by (employer_name, title) across all keywords

The aggregator's links are redirect URLs, so signals are keyed by a
synthetic kyujinbox://employer/title identity instead.

Usage:
    async with BrowserCrawlerSource(config) as source:
        postings = await source.produce(config.crawl_keywords)
"""

import logging
from typing import Any, Callable, Dict, Hashable, List, Optional
from urllib.parse import quote

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.common.dedupe import posting_identity
from src.common.error_handling import SetupError, SourceFetchError
from src.common.intent_config import IntentConfig
from src.common.rate_limiter import RequestPacer
from src.common.types import IntentLevel, RawPosting
from src.services.signal_sources import SignalSource
from src.services.signal_sources.page_extractor import extract_postings

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--disable-blink-features=AutomationControlled"]
HIDE_WEBDRIVER_SCRIPT = "Object.defineProperty(navigator, 'webdriver', { get: () => false });"


class BrowserCrawlerSource(SignalSource):
    """Paginated crawl of the job aggregator's keyword result pages."""

    stable_urls = False
    key_scheme = "kyujinbox"

    def __init__(
        self,
        config: IntentConfig,
        page: Optional[Any] = None,
        pacer: Optional[RequestPacer] = None,
        page_pacer: Optional[RequestPacer] = None,
        settle_pacer: Optional[RequestPacer] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the crawler.

        Args:
            config: Run configuration
            page: Pre-built Playwright page (skips browser launch; used in tests)
            pacer: Delay between keywords
            page_pacer: Delay between result pages of one keyword
            settle_pacer: Wait after navigation before reading the DOM
            log_callback: Optional progress callback
        """
        super().__init__(
            config,
            pacer=pacer or RequestPacer(
                "kyujinbox_keyword",
                config.crawl_delay_min_seconds,
                config.crawl_delay_jitter_seconds,
            ),
            log_callback=log_callback,
        )
        self.page_pacer = page_pacer or RequestPacer(
            "kyujinbox_page",
            config.crawl_delay_min_seconds,
            config.crawl_delay_jitter_seconds,
        )
        self.settle_pacer = settle_pacer or RequestPacer(
            "kyujinbox_settle",
            config.crawl_settle_min_seconds,
            config.crawl_settle_jitter_seconds,
        )
        self._page = page
        self._playwright = None
        self._browser = None

    def get_source_name(self) -> str:
        return self.config.crawl_source_name

    @property
    def null_date_level(self) -> IntentLevel:
        return self.config.crawl_null_date_level

    def posting_key(self, posting: RawPosting) -> Hashable:
        return posting_identity(posting)

    def raw_data(self, posting: RawPosting) -> Dict[str, Any]:
        return {
            "original_url": posting.source_url,
            "location": posting.location_text,
            "crawled_at": self.utc_now_iso(),
        }

    # ===== Browser lifecycle =====

    async def __aenter__(self) -> "BrowserCrawlerSource":
        if self._page is None:
            await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """
        Launch Chromium and open a Japanese-locale page.

        Raises:
            SetupError: If the browser cannot be launched
        """
        from playwright.async_api import async_playwright

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.crawl_headless,
                args=LAUNCH_ARGS,
            )
            context = await self._browser.new_context(
                user_agent=self.config.crawl_user_agent,
                locale="ja-JP",
                timezone_id="Asia/Tokyo",
                viewport={"width": 1280, "height": 720},
            )
            await context.add_init_script(HIDE_WEBDRIVER_SCRIPT)
            self._page = await context.new_page()
        except Exception as e:
            await self.close()
            raise SetupError(f"Browser launch failed: {e}") from e

        logger.info("Browser started")

    async def close(self) -> None:
        """Close the browser and stop Playwright (safe to call twice)."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Browser close failed: {e}")
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Playwright stop failed: {e}")
            self._playwright = None

    # ===== Crawl =====

    def build_page_url(self, keyword: str, page_number: int) -> str:
        """Result page URL: /{keyword}の仕事 percent-encoded, with &p=N after page 1."""
        path = quote(f"{keyword}の仕事", safe="")
        page_param = f"&p={page_number}" if page_number > 1 else ""
        return f"{self.config.crawl_base_url.rstrip('/')}/{path}?{page_param}"

    async def _load_html(self, url: str) -> str:
        if self._page is None:
            raise SetupError("Browser not started")
        try:
            await self._page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.config.crawl_page_timeout_ms,
            )
            await self.settle_pacer.wait()
            return await self._page.content()
        except SetupError:
            raise
        except Exception as e:
            raise SourceFetchError(self.get_source_name(), url, str(e)) from e

    async def fetch_page(self, url: str) -> str:
        """
        Load one result page, retrying once after the configured backoff.

        Raises:
            SourceFetchError: If both attempts fail
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(2),
            wait=wait_fixed(self.config.crawl_retry_backoff_seconds),
            retry=retry_if_exception_type(SourceFetchError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(f"Retrying page: {url}")
                return await self._load_html(url)
        raise SourceFetchError(self.get_source_name(), url, "no attempt made")

    async def fetch_postings(self, query: str) -> List[RawPosting]:
        """Crawl all result pages for one keyword."""
        postings: List[RawPosting] = []
        seen = set()
        max_pages = self.config.crawl_max_pages

        self._log(f"--- keyword: {query} ---")

        for page_number in range(1, max_pages + 1):
            if page_number > 1:
                await self.page_pacer.wait()

            url = self.build_page_url(query, page_number)
            self._log(f"  Page {page_number}/{max_pages}: {query}")

            try:
                html = await self.fetch_page(url)
            except SourceFetchError as e:
                self._log(f"    -> skipped after retry: {e}", logging.WARNING)
                self.failed_queries.append(url)
                continue

            page_postings = extract_postings(
                html,
                base_url=self.config.crawl_base_url,
                source_name=self.get_source_name(),
            )

            if not page_postings:
                self._log("    -> 0 results, stopping keyword")
                break

            new_count = 0
            for posting in page_postings:
                key = self.posting_key(posting)
                if key in seen:
                    continue
                seen.add(key)
                postings.append(posting)
                new_count += 1

            self._log(
                f"    -> {len(page_postings)} found ({new_count} new, {len(postings)} total)"
            )

        return postings
