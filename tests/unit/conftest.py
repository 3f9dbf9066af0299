"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause 5-30s timeout per test)
- Environment variable isolation (prevents credential leakage)

It also provides in-memory repositories (tests/helpers/intent_fakes.py) and a
zero-delay IntentConfig so the pipelines run without a database or network.
"""

from datetime import datetime
from typing import List

import pytest
from unittest.mock import patch, MagicMock

from src.common.intent_config import IntentConfig
from src.common.repositories import reset_repositories
from src.common.types import Company
from tests.helpers.intent_fakes import (
    InMemoryCompanyRegistry,
    InMemoryIntentRepository,
    InMemorySignalRepository,
)


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    MongoClient("") defaults to localhost:27017, causing 5-30s timeout per test.
    """
    with patch("src.common.repositories.atlas_repository.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find_one = MagicMock(return_value=None)
        mock_collection.count_documents = MagicMock(return_value=0)

        mock_client.return_value = mock_instance
        yield mock_client

    reset_repositories()


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    Run parameters fall back to their dataclass defaults and no real
    MongoDB or search API credentials are visible.
    """
    for name in (
        "MONGODB_URI",
        "MONGODB_DATABASE",
        "SERPER_API_KEY",
        "DEBUG_MODE",
        "INTENT_DEPARTMENT_TYPE",
        "INTENT_CRAWL_KEYWORDS",
        "INTENT_CRAWL_MAX_PAGES",
        "INTENT_CRAWL_NULL_DATE_LEVEL",
        "INTENT_SEARCH_QUERIES",
        "INTENT_SEARCH_NULL_DATE_LEVEL",
        "INTENT_SEARCH_MARK_FAILED",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def companies() -> List[Company]:
    return [
        Company(id="c1", name="ABC株式会社"),
        Company(id="c2", name="株式会社テックソリューションズ"),
        Company(id="c3", name="有限会社さくら商事"),
    ]


@pytest.fixture
def registry(companies) -> InMemoryCompanyRegistry:
    return InMemoryCompanyRegistry(companies)


@pytest.fixture
def signal_repository() -> InMemorySignalRepository:
    return InMemorySignalRepository()


@pytest.fixture
def intent_repository() -> InMemoryIntentRepository:
    return InMemoryIntentRepository()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 15, 10, 30, 0)


@pytest.fixture
def intent_config() -> IntentConfig:
    """Run configuration with every delay and backoff set to zero."""
    return IntentConfig(
        crawl_keywords=["社内SE"],
        crawl_max_pages=3,
        crawl_settle_min_seconds=0.0,
        crawl_settle_jitter_seconds=0.0,
        crawl_delay_min_seconds=0.0,
        crawl_delay_jitter_seconds=0.0,
        crawl_retry_backoff_seconds=0.0,
        search_query_delay_seconds=0.0,
        search_company_delay_seconds=0.0,
        search_retry_backoff_seconds=0.0,
    )
