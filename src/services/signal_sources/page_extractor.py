"""
Result Page Extractor

Turns one job-aggregator result page (HTML) into RawPosting candidates.
This is the only code that knows the aggregator's markup; crawl
orchestration (navigation, pagination, delays, retry) lives in
browser_crawler_source and never touches selectors.

Each field has a prioritized tuple of CSS selectors, first match wins.
A card without both title and employer is skipped.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from src.common.types import RawPosting

logger = logging.getLogger(__name__)

MAX_LOCATION_LENGTH = 100


@dataclass(frozen=True)
class SelectorSet:
    """Prioritized CSS selectors per extracted field."""
    cards: Sequence[str]
    title: Sequence[str]
    employer: Sequence[str]
    link: Sequence[str]
    location: Sequence[str]
    date: Sequence[str]


KYUJINBOX_SELECTORS = SelectorSet(
    cards=(".p-result_card", '[class*="p-result_card"]'),
    title=(".p-result_title_link", ".p-result_title a"),
    employer=(".p-result_company", ".p-result_company a"),
    link=("a.p-result_title_link", ".p-result_title a"),
    location=(".p-result_info", ".p-result_area"),
    date=(".p-result_updatedAt_hyphen", "[class*='updatedAt']"),
)


def _first(card: Tag, selectors: Sequence[str]) -> Optional[Tag]:
    for selector in selectors:
        element = card.select_one(selector)
        if element is not None:
            return element
    return None


def _text(card: Tag, selectors: Sequence[str]) -> str:
    element = _first(card, selectors)
    if element is None:
        return ""
    return element.get_text().strip()


def find_cards(soup: BeautifulSoup, selectors: SelectorSet = KYUJINBOX_SELECTORS) -> List[Tag]:
    """Result cards from the first card selector that matches anything."""
    for selector in selectors.cards:
        cards = soup.select(selector)
        if cards:
            return cards
    return []


def absolute_url(href: str, base_url: str) -> str:
    """Prefix relative links with the site base URL."""
    if not href:
        return ""
    if href.startswith("http"):
        return href
    return f"{base_url.rstrip('/')}/{href.lstrip('/')}"


def extract_postings(
    html: str,
    base_url: str,
    source_name: str,
    selectors: SelectorSet = KYUJINBOX_SELECTORS,
) -> List[RawPosting]:
    """
    Extract postings from one result page.

    Args:
        html: Page HTML
        base_url: Site base URL for relative links
        source_name: Value for RawPosting.source_name
        selectors: Field selectors (default: the job aggregator's markup)

    Returns:
        Postings in card order; empty when the page has no result cards
    """
    soup = BeautifulSoup(html or "", "html.parser")
    postings: List[RawPosting] = []

    for card in find_cards(soup, selectors):
        title = _text(card, selectors.title)
        employer = _text(card, selectors.employer)
        if not title or not employer:
            logger.debug("Skipping card without title or employer")
            continue

        link = _first(card, selectors.link)
        href = link.get("href", "") if link is not None else ""
        if isinstance(href, list):
            href = href[0] if href else ""

        location = _text(card, selectors.location).split("\n")[0].strip()
        date_text = _text(card, selectors.date)

        postings.append(RawPosting(
            title=title,
            employer_name=employer,
            location_text=location[:MAX_LOCATION_LENGTH],
            source_url=absolute_url(href, base_url),
            source_name=source_name,
            date_hint=date_text or None,
        ))

    return postings
