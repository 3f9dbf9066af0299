"""
Unit tests for the date resolver.
"""

from datetime import date, datetime, timedelta

import pytest

from src.intent.date_resolver import DateHint, parse_absolute, resolve


NOW = datetime(2026, 3, 15, 10, 30, 0)
TODAY = NOW.date()


class TestAbsoluteDates:
    """Absolute numeric patterns are independent of the current date."""

    @pytest.mark.parametrize("text,expected", [
        ("2026年1月15日", date(2026, 1, 15)),
        ("掲載日: 2025年12月3日 更新", date(2025, 12, 3)),
        ("2026/01/15", date(2026, 1, 15)),
        ("2026/1/5", date(2026, 1, 5)),
        ("2026-02-28", date(2026, 2, 28)),
    ])
    def test_absolute_patterns(self, text, expected):
        assert resolve(text, now=NOW) == expected
        assert resolve(text, now=datetime(2020, 1, 1)) == expected

    def test_first_pattern_wins(self):
        """年月日 is tried before slash dates."""
        assert parse_absolute("2026/01/01 掲載 2025年5月5日") == date(2025, 5, 5)

    def test_invalid_calendar_date_skipped(self):
        """An impossible date is not a match; later valid matches still count."""
        assert parse_absolute("2026/02/30") is None
        assert parse_absolute("2026/13/01 2026/01/02") == date(2026, 1, 2)


class TestRelativeDates:
    """Relative phrases are anchored at the reference time."""

    @pytest.mark.parametrize("text", ["今日", "本日更新", "たった今", "新着", "Today", "just now"])
    def test_now_phrases(self, text):
        assert resolve(text, now=NOW) == TODAY

    @pytest.mark.parametrize("text", ["3時間前", "15分前", "2 hours ago"])
    def test_hours_and_minutes_ago_are_today(self, text):
        assert resolve(text, now=NOW) == TODAY

    def test_yesterday(self):
        assert resolve("昨日", now=NOW) == TODAY - timedelta(days=1)

    @pytest.mark.parametrize("n", [1, 3, 10, 45])
    def test_days_ago(self, n):
        assert resolve(f"{n}日前", now=NOW) == TODAY - timedelta(days=n)
        assert resolve(f"{n} days ago", now=NOW) == TODAY - timedelta(days=n)

    @pytest.mark.parametrize("n", [1, 2, 4, 12])
    def test_weeks_ago_is_seven_n_days(self, n):
        resolved = resolve(f"{n}週間前", now=NOW)
        assert (TODAY - resolved).days == 7 * n

    @pytest.mark.parametrize("marker", ["か", "ヶ", "ケ", "カ"])
    def test_months_ago_separators(self, marker):
        assert resolve(f"2{marker}月前", now=NOW) == date(2026, 1, 15)

    def test_months_ago_is_calendar_months(self):
        """Month subtraction clamps to month end instead of counting 30 days."""
        assert resolve("1ヶ月前", now=datetime(2026, 3, 31)) == date(2026, 2, 28)

    def test_plus_marker_stripped(self):
        """Aggregator markers like '30日以上前+' keep their number."""
        assert resolve("30日前+", now=NOW) == TODAY - timedelta(days=30)
        assert resolve("＋3日前", now=NOW) == TODAY - timedelta(days=3)


class TestUnknownDates:
    """Unknown hints resolve to None, never to today."""

    @pytest.mark.parametrize("hint", [None, "", "   ", "募集中", "新着あり", "date unknown"])
    def test_unknown(self, hint):
        assert resolve(hint, now=NOW) is None


class TestStructuredHints:
    """Structured date fields are parsed before the free text."""

    def test_structured_date_wins_over_text(self):
        hint = DateHint(structured="Jan 10, 2026", text="2日前")
        assert resolve(hint, now=NOW) == date(2026, 1, 10)

    def test_structured_relative_falls_back_to_text_scan(self):
        """A structured '3 days ago' has no year and is scanned as text."""
        hint = DateHint(structured="3 days ago", text="")
        assert resolve(hint, now=NOW) == TODAY - timedelta(days=3)

    def test_unparseable_structured_uses_text(self):
        hint = DateHint(structured="sometime 2026ish", text="掲載 2026/03/01")
        assert resolve(hint, now=NOW) == date(2026, 3, 1)

    def test_mapping_hint(self):
        assert resolve({"date": "2026-01-20", "text": "昨日"}, now=NOW) == date(2026, 1, 20)
        assert resolve({"text": "昨日"}, now=NOW) == TODAY - timedelta(days=1)


class TestEnglishDayWords:
    """English day words count only as the whole hint value."""

    @pytest.mark.parametrize("text", [
        "Apply today for our IT team",
        "Posted yesterday? Join us",
        "社内SE募集 Start today!",
        "We respond just now and then",
    ])
    def test_ad_copy_is_not_a_date(self, text):
        assert resolve({"text": text}, now=NOW) is None

    def test_structured_yesterday(self):
        hint = DateHint(structured="Yesterday", text="Apply today")
        assert resolve(hint, now=NOW) == TODAY - timedelta(days=1)

    def test_whole_text_today(self):
        assert resolve(" today ", now=NOW) == TODAY
