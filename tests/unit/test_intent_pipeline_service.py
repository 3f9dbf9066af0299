"""
Unit tests for IntentPipelineService.

End-to-end runs over the in-memory repositories: the crawler reads static
HTML through a mocked Playwright page, the search source a mocked requests
session.
"""

import copy
import json
from pathlib import Path

import pytest
import requests
from unittest.mock import AsyncMock, MagicMock, patch

from src.common.error_handling import SetupError
from src.common.rate_limiter import RequestPacer
from src.common.types import IntentLevel, RawPosting
from src.services.intent_persistence_service import IntentPersistenceService
from src.services.intent_pipeline_service import IntentPipelineService, IntentRunResult
from src.services.signal_sources import BrowserCrawlerSource, SearchApiSource

FIXTURES = Path(__file__).parent.parent / "fixtures"
RESULT_PAGE = (FIXTURES / "kyujinbox_result_page.html").read_text(encoding="utf-8")
EMPTY_PAGE = (FIXTURES / "kyujinbox_empty_page.html").read_text(encoding="utf-8")
SEARCH_PAYLOAD = json.loads((FIXTURES / "search_results.json").read_text(encoding="utf-8"))


def _crawler(config, contents=(RESULT_PAGE, EMPTY_PAGE)):
    page = MagicMock()
    page.goto = AsyncMock()
    page.content = AsyncMock(side_effect=list(contents))
    return BrowserCrawlerSource(config, page=page)


def _search_session(payloads):
    """Session whose response depends on the company name in the query."""
    def post(url, **kwargs):
        query = kwargs["json"]["q"]
        response = MagicMock()
        response.raise_for_status = MagicMock()
        payload = {"organic": []}
        for name, company_payload in payloads.items():
            if query.startswith(name):
                payload = company_payload
        response.json = MagicMock(return_value=payload)
        return response

    session = MagicMock()
    session.post.side_effect = post
    return session


@pytest.fixture
def pipeline(intent_config, registry, signal_repository, intent_repository, fixed_now):
    persistence = IntentPersistenceService(
        signal_repository=signal_repository,
        intent_repository=intent_repository,
    )
    return IntentPipelineService(
        intent_config,
        registry=registry,
        persistence=persistence,
        clock=lambda: fixed_now,
    )


class TestRunCrawl:
    """Tests for the crawler pipeline."""

    @pytest.mark.asyncio
    async def test_matches_and_persists(self, pipeline, intent_config, signal_repository, intent_repository):
        result = await pipeline.run_crawl(_crawler(intent_config))

        assert result.success is True
        assert result.companies_loaded == 3
        assert result.postings_found == 3
        assert result.matched_companies == 2
        assert result.matched_postings == 2
        assert result.unmatched_postings == 1
        assert result.signals_inserted == 2
        assert result.intents_written == 2
        assert result.level_counts["hot"] == 2

        row = intent_repository.find("c1", "it")
        assert row["intent_level"] == "hot"
        assert row["signal_count"] == 1
        assert row["latest_signal_date"] == "2026-03-12"
        assert row["total_signal_count"] == 1

        urls = {doc["source_url"] for doc in signal_repository.documents}
        assert "kyujinbox://abc/社内se(インフラ担当)" in urls
        assert all(doc["department_type"] == "it" for doc in signal_repository.documents)

    @pytest.mark.asyncio
    async def test_company_without_postings_gets_no_row(self, pipeline, intent_config, intent_repository):
        await pipeline.run_crawl(_crawler(intent_config))

        assert intent_repository.find("c3", "it") is None

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, pipeline, intent_config, signal_repository, intent_repository):
        await pipeline.run_crawl(_crawler(intent_config))
        second = await pipeline.run_crawl(_crawler(intent_config))

        assert second.signals_inserted == 0
        assert second.signals_skipped == 2
        assert len(signal_repository.documents) == 2
        assert intent_repository.count() == 2
        assert intent_repository.find("c2", "it")["total_signal_count"] == 1

    @pytest.mark.asyncio
    async def test_short_employer_name_matches_by_containment(self, pipeline, intent_config, intent_repository):
        posting = RawPosting(
            title="社内SE",
            employer_name="ABC",
            location_text="",
            source_url="https://example.com/r/1",
            source_name="求人ボックス",
            date_hint="2026年3月1日",
        )
        source = _crawler(intent_config)
        source.produce = AsyncMock(return_value=[posting])

        result = await pipeline.run_crawl(source)

        assert result.matched_companies == 1
        row = intent_repository.find("c1", "it")
        assert row["intent_level"] == "middle"
        assert row["latest_signal_date"] == "2026-03-01"

    @pytest.mark.asyncio
    async def test_undated_crawl_posting_uses_none_policy(self, pipeline, intent_config, intent_repository):
        posting = RawPosting(
            title="情シス",
            employer_name="さくら商事",
            location_text="",
            source_url="https://example.com/r/2",
            source_name="求人ボックス",
        )
        source = _crawler(intent_config)
        source.produce = AsyncMock(return_value=[posting])

        await pipeline.run_crawl(source)

        row = intent_repository.find("c3", "it")
        assert row["intent_level"] == "none"
        assert row["signal_count"] == 1
        assert row["latest_signal_date"] is None

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, intent_config, registry, signal_repository, intent_repository, fixed_now):
        pipeline = IntentPipelineService(
            intent_config,
            registry=registry,
            persistence=IntentPersistenceService(signal_repository, intent_repository),
            dry_run=True,
            clock=lambda: fixed_now,
        )

        result = await pipeline.run_crawl(_crawler(intent_config))

        assert result.dry_run is True
        assert result.signals_inserted == 2
        assert signal_repository.documents == []
        assert intent_repository.rows == {}

    @pytest.mark.asyncio
    async def test_registry_failure_is_setup_error(self, intent_config, signal_repository, intent_repository):
        registry = MagicMock()
        registry.load_all.side_effect = RuntimeError("ServerSelectionTimeoutError")
        pipeline = IntentPipelineService(
            intent_config,
            registry=registry,
            persistence=IntentPersistenceService(signal_repository, intent_repository),
        )

        with pytest.raises(SetupError, match="company registry"):
            await pipeline.run_crawl(_crawler(intent_config))

    @pytest.mark.asyncio
    async def test_signal_failure_does_not_abort(self, intent_config, registry, intent_repository, fixed_now):
        signals = MagicMock()
        signals.exists_by_source_url.return_value = False
        signals.insert.side_effect = RuntimeError("disk full")
        signals.count.return_value = 0
        pipeline = IntentPipelineService(
            intent_config,
            registry=registry,
            persistence=IntentPersistenceService(signals, intent_repository),
            clock=lambda: fixed_now,
        )

        result = await pipeline.run_crawl(_crawler(intent_config))

        assert result.signals_failed == 2
        assert result.intents_written == 2
        assert len(result.errors) == 2
        assert result.errors[0]["stage"] == "persist"

    @pytest.mark.asyncio
    async def test_skipped_pages_are_reported(self, pipeline, intent_config):
        source = _crawler(intent_config)
        source._page.goto = AsyncMock(side_effect=TimeoutError("timeout"))

        result = await pipeline.run_crawl(source)

        assert result.postings_found == 0
        assert len(result.errors) == intent_config.crawl_max_pages
        assert all(e["severity"] == "low" for e in result.errors)
        assert result.success is True


class TestRunSearch:
    """Tests for the search pipeline."""

    @pytest.mark.asyncio
    async def test_persists_company_results(self, pipeline, intent_config, signal_repository, intent_repository):
        source = SearchApiSource(
            intent_config, api_key="k", session=_search_session({"ABC株式会社": SEARCH_PAYLOAD})
        )

        result = await pipeline.run_search(source)

        assert result.companies_processed == 3
        assert result.postings_found == 3
        assert result.matched_companies == 1
        assert result.signals_inserted == 3
        assert result.failed_companies == 0

        row = intent_repository.find("c1", "it")
        assert row["intent_level"] == "hot"
        assert row["signal_count"] == 3
        assert row["latest_signal_date"] == "2026-03-13"
        assert all(doc["company_id"] == "c1" for doc in signal_repository.documents)
        # No postings, no row
        assert intent_repository.find("c2", "it") is None
        assert intent_repository.find("c3", "it") is None

    @pytest.mark.asyncio
    async def test_undated_result_uses_low_policy(self, pipeline, intent_config, intent_repository):
        payload = {"organic": [{"title": "社内SE募集", "link": "https://doda.jp/job/2"}]}
        source = SearchApiSource(
            intent_config, api_key="k",
            session=_search_session({"株式会社テックソリューションズ": payload}),
        )

        await pipeline.run_search(source)

        row = intent_repository.find("c2", "it")
        assert row["intent_level"] == "low"
        assert row["signal_count"] == 1
        assert row["latest_signal_date"] is None

    @pytest.mark.asyncio
    async def test_all_queries_failed_writes_marker(self, pipeline, intent_config, intent_repository):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("unreachable")
        source = SearchApiSource(intent_config, api_key="k", session=session)

        result = await pipeline.run_search(source)

        assert result.failed_companies == 3
        assert result.level_counts["none"] == 3
        assert session.post.call_count == 3 * 2 * 2
        row = intent_repository.find("c1", "it")
        assert row["intent_level"] == "none"
        assert row["signal_count"] == 0

    @pytest.mark.asyncio
    async def test_marker_disabled(self, pipeline, intent_config, intent_repository):
        intent_config.search_mark_failed_companies = False
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("unreachable")
        source = SearchApiSource(intent_config, api_key="k", session=session)

        result = await pipeline.run_search(source)

        assert result.failed_companies == 3
        assert intent_repository.rows == {}

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_company_and_continues(self, pipeline, intent_config, intent_repository):
        source = SearchApiSource(
            intent_config, api_key="k", session=_search_session({"ABC株式会社": SEARCH_PAYLOAD})
        )
        original = source.produce_for_company

        async def flaky(company):
            if company.id == "c3":
                raise KeyError("title")
            return await original(company)

        with patch.object(source, "produce_for_company", side_effect=flaky):
            result = await pipeline.run_search(source)

        assert result.failed_companies == 1
        assert result.errors[0]["stage"] == "search"
        assert intent_repository.find("c3", "it")["intent_level"] == "none"
        assert intent_repository.find("c1", "it")["intent_level"] == "hot"

    @pytest.mark.asyncio
    async def test_companies_are_paced(self, pipeline, intent_config):
        sleep = AsyncMock()
        pacer = RequestPacer("search_company", min_seconds=0.5, sleep=sleep)
        source = SearchApiSource(intent_config, api_key="k", session=_search_session({}))

        await pipeline.run_search(source, company_pacer=pacer)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)


class TestIntentRunResult:
    def test_to_dict_and_summary(self):
        result = IntentRunResult(source="web_search", signals_inserted=4, failed_companies=1)
        result.count_level(IntentLevel.HOT)

        data = result.to_dict()
        assert data["stats"]["signals_inserted"] == 4
        assert data["levels"]["hot"] == 1

        lines = result.summary_lines()
        assert lines[0] == "=== web_search run complete ==="
        assert any(line.startswith("Failed companies:") for line in lines)
        assert any("HOT" in line and line.endswith("1") for line in lines)


class TestPriorRowsUntouched:
    """A company without postings in this run keeps its previous row."""

    @pytest.mark.asyncio
    async def test_crawl_leaves_previous_row(self, pipeline, intent_config, intent_repository):
        intent_repository.upsert("c3", "it", {
            "intent_level": "hot",
            "signal_count": 4,
            "latest_signal_date": "2026-03-10",
            "total_signal_count": 9,
        })
        before = copy.deepcopy(intent_repository.find("c3", "it"))

        await pipeline.run_crawl(_crawler(intent_config))

        assert intent_repository.find("c3", "it") == before

    @pytest.mark.asyncio
    async def test_search_with_zero_results_leaves_previous_row(self, pipeline, intent_config, intent_repository):
        intent_repository.upsert("c2", "it", {"intent_level": "middle", "signal_count": 2})
        before = copy.deepcopy(intent_repository.find("c2", "it"))
        calls_before = intent_repository.upsert_calls
        source = SearchApiSource(intent_config, api_key="k", session=_search_session({}))

        result = await pipeline.run_search(source)

        assert result.failed_companies == 0
        assert intent_repository.find("c2", "it") == before
        assert intent_repository.upsert_calls == calls_before


class TestRunOutcome:
    """IntentRunResult.success reflects whether anything reached the store."""

    @pytest.mark.asyncio
    async def test_all_intent_upserts_failing_fails_the_run(
        self, intent_config, registry, signal_repository, fixed_now
    ):
        intents = MagicMock()
        intents.upsert.side_effect = RuntimeError("not primary")
        pipeline = IntentPipelineService(
            intent_config,
            registry=registry,
            persistence=IntentPersistenceService(signal_repository, intents),
            clock=lambda: fixed_now,
        )

        result = await pipeline.run_crawl(_crawler(intent_config))

        assert result.intents_failed == 2
        assert result.success is False
        assert result.error_message == "No intent row could be written"
        critical = [e for e in result.errors if e["severity"] == "critical"]
        assert len(critical) == 1
        assert critical[0]["recoverable"] is False

    @pytest.mark.asyncio
    async def test_partial_upsert_failure_still_succeeds(
        self, intent_config, registry, signal_repository, intent_repository, fixed_now
    ):
        original = intent_repository.upsert

        def flaky(company_id, department_type, fields):
            if company_id == "c1":
                raise RuntimeError("write conflict")
            return original(company_id, department_type, fields)

        intent_repository.upsert = flaky
        pipeline = IntentPipelineService(
            intent_config,
            registry=registry,
            persistence=IntentPersistenceService(signal_repository, intent_repository),
            clock=lambda: fixed_now,
        )

        result = await pipeline.run_crawl(_crawler(intent_config))

        assert result.intents_written == 1
        assert result.intents_failed == 1
        assert result.success is True

    @pytest.mark.asyncio
    async def test_error_breakdown_logged(self, intent_config, registry, signal_repository, fixed_now):
        intents = MagicMock()
        intents.upsert.side_effect = RuntimeError("not primary")
        logged = []
        pipeline = IntentPipelineService(
            intent_config,
            registry=registry,
            persistence=IntentPersistenceService(signal_repository, intents),
            clock=lambda: fixed_now,
            log_callback=logged.append,
        )

        await pipeline.run_crawl(_crawler(intent_config))

        assert any(line.startswith("Errors by stage: {'persist': 3}") for line in logged)


class TestDryRunCounts:
    @pytest.mark.asyncio
    async def test_same_synthetic_key_counted_once(
        self, intent_config, registry, signal_repository, intent_repository, fixed_now
    ):
        postings = [
            RawPosting(
                title="社内SE", employer_name=name, location_text="",
                source_url=f"https://example.com/r/{i}", source_name="求人ボックス",
                date_hint="3日前",
            )
            for i, name in enumerate(["ABC株式会社", "ＡＢＣ 株式会社"])
        ]
        source = _crawler(intent_config)
        source.produce = AsyncMock(return_value=postings)
        pipeline = IntentPipelineService(
            intent_config,
            registry=registry,
            persistence=IntentPersistenceService(signal_repository, intent_repository),
            dry_run=True,
            clock=lambda: fixed_now,
        )

        result = await pipeline.run_crawl(source)
        rerun = await pipeline.run_crawl(source)

        assert result.signals_inserted == 1
        assert result.signals_skipped == 1
        assert rerun.signals_inserted == 1
        assert signal_repository.documents == []
