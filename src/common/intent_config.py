"""
Intent Pipeline Run Configuration

Holds every tunable of a pipeline run (keywords, query templates, pacing,
retry backoff, null-date policies). An IntentConfig is built once per run and
passed explicitly into each component, so tests can construct one directly
with zero delays instead of patching the environment.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from src.common.types import IntentLevel


DEFAULT_CRAWL_KEYWORDS = ["社内SE", "情報システム 求人", "情シス 求人"]

DEFAULT_SEARCH_QUERY_TEMPLATES = [
    "{name} 情報システム部 求人",
    "{name} 社内SE 採用",
]

DEFAULT_JOB_DOMAINS = [
    "doda.jp", "rikunabi.com", "mynavi.jp", "en-japan.com",
    "recruit.co.jp", "green-japan.com", "type.jp", "indeed.com",
    "wantedly.com", "linkedin.com", "jac-recruitment.jp",
    "careerindex.jp", "job.mynavi.jp", "employment.en-japan.com",
    "tenshoku.mynavi.jp", "mid-tenshoku.com", "openwork.jp",
    "career.levtech.jp", "bizreach.jp",
]

DEFAULT_JOB_KEYWORDS = [
    "求人", "採用", "募集", "転職", "キャリア", "仕事",
    "応募", "中途", "新卒", "job", "career", "recruit",
    "社内se", "情報システム", "エンジニア",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class IntentConfig:
    """Configuration for one intent pipeline run."""

    # General settings
    department_type: str = "it"
    registry_page_size: int = 500

    # Browser crawler (job aggregator)
    crawl_base_url: str = "https://xn--pckua2a7gp15o89zb.com"
    crawl_source_name: str = "求人ボックス"
    crawl_keywords: List[str] = field(default_factory=lambda: list(DEFAULT_CRAWL_KEYWORDS))
    crawl_max_pages: int = 10
    crawl_headless: bool = True
    crawl_user_agent: str = DEFAULT_USER_AGENT
    crawl_page_timeout_ms: int = 30000
    crawl_settle_min_seconds: float = 2.0
    crawl_settle_jitter_seconds: float = 2.0
    crawl_delay_min_seconds: float = 3.0
    crawl_delay_jitter_seconds: float = 4.0
    crawl_retry_backoff_seconds: float = 5.0
    crawl_null_date_level: IntentLevel = IntentLevel.NONE

    # Search API (generic web index)
    search_endpoint: str = "https://google.serper.dev/search"
    search_query_templates: List[str] = field(
        default_factory=lambda: list(DEFAULT_SEARCH_QUERY_TEMPLATES)
    )
    search_locale: str = "ja"
    search_country: str = "jp"
    search_result_count: int = 10
    search_timeout_seconds: float = 15.0
    search_query_delay_seconds: float = 1.0
    search_company_delay_seconds: float = 0.5
    search_retry_backoff_seconds: float = 5.0
    search_null_date_level: IntentLevel = IntentLevel.LOW
    search_mark_failed_companies: bool = True
    job_domains: List[str] = field(default_factory=lambda: list(DEFAULT_JOB_DOMAINS))
    job_keywords: List[str] = field(default_factory=lambda: list(DEFAULT_JOB_KEYWORDS))

    @classmethod
    def from_env(cls) -> "IntentConfig":
        """
        Load configuration from environment variables.

        Environment variables (all optional, defaults in the dataclass):
            INTENT_DEPARTMENT_TYPE: Department tag written on every row
            INTENT_REGISTRY_PAGE_SIZE: Registry page size

            INTENT_CRAWL_KEYWORDS: Comma-separated crawler keywords
            INTENT_CRAWL_MAX_PAGES: Max result pages per keyword
            INTENT_CRAWL_HEADLESS: Run the browser headless (default: true)
            INTENT_CRAWL_RETRY_BACKOFF: Seconds before the single page retry
            INTENT_CRAWL_NULL_DATE_LEVEL: Level for postings without a date

            INTENT_SEARCH_QUERIES: Comma-separated templates using {name}
            INTENT_SEARCH_RESULT_COUNT: Results requested per query
            INTENT_SEARCH_QUERY_DELAY: Seconds between search calls
            INTENT_SEARCH_COMPANY_DELAY: Seconds between companies
            INTENT_SEARCH_RETRY_BACKOFF: Seconds before the single query retry
            INTENT_SEARCH_NULL_DATE_LEVEL: Level for results without a date
            INTENT_SEARCH_MARK_FAILED: Write a none/0 row for failed companies
        """
        def parse_bool(val: Optional[str], default: bool = False) -> bool:
            if not val:
                return default
            return val.lower() in ("true", "1", "yes", "on")

        def parse_list(val: Optional[str], default: List[str]) -> List[str]:
            if not val:
                return list(default)
            items = [item.strip() for item in val.split(",") if item.strip()]
            return items or list(default)

        def parse_int(val: Optional[str], default: int) -> int:
            if not val:
                return default
            try:
                return int(val)
            except ValueError:
                return default

        def parse_float(val: Optional[str], default: float) -> float:
            if not val:
                return default
            try:
                return float(val)
            except ValueError:
                return default

        defaults = cls()
        return cls(
            department_type=os.getenv("INTENT_DEPARTMENT_TYPE", defaults.department_type),
            registry_page_size=parse_int(
                os.getenv("INTENT_REGISTRY_PAGE_SIZE"), defaults.registry_page_size
            ),

            crawl_keywords=parse_list(os.getenv("INTENT_CRAWL_KEYWORDS"), DEFAULT_CRAWL_KEYWORDS),
            crawl_max_pages=parse_int(os.getenv("INTENT_CRAWL_MAX_PAGES"), defaults.crawl_max_pages),
            crawl_headless=parse_bool(os.getenv("INTENT_CRAWL_HEADLESS"), True),
            crawl_retry_backoff_seconds=parse_float(
                os.getenv("INTENT_CRAWL_RETRY_BACKOFF"), defaults.crawl_retry_backoff_seconds
            ),
            crawl_null_date_level=IntentLevel.parse(
                os.getenv("INTENT_CRAWL_NULL_DATE_LEVEL"), defaults.crawl_null_date_level
            ),

            search_query_templates=parse_list(
                os.getenv("INTENT_SEARCH_QUERIES"), DEFAULT_SEARCH_QUERY_TEMPLATES
            ),
            search_result_count=parse_int(
                os.getenv("INTENT_SEARCH_RESULT_COUNT"), defaults.search_result_count
            ),
            search_query_delay_seconds=parse_float(
                os.getenv("INTENT_SEARCH_QUERY_DELAY"), defaults.search_query_delay_seconds
            ),
            search_company_delay_seconds=parse_float(
                os.getenv("INTENT_SEARCH_COMPANY_DELAY"), defaults.search_company_delay_seconds
            ),
            search_retry_backoff_seconds=parse_float(
                os.getenv("INTENT_SEARCH_RETRY_BACKOFF"), defaults.search_retry_backoff_seconds
            ),
            search_null_date_level=IntentLevel.parse(
                os.getenv("INTENT_SEARCH_NULL_DATE_LEVEL"), defaults.search_null_date_level
            ),
            search_mark_failed_companies=parse_bool(os.getenv("INTENT_SEARCH_MARK_FAILED"), True),
        )

    def build_search_queries(self, company_name: str) -> List[str]:
        """Expand the query templates for one company."""
        return [template.format(name=company_name) for template in self.search_query_templates]
