"""
Signal Identity Module

Single source of truth for the stable source identity of an intent signal.
The persistence gateway skips a signal when a row with the same identity
already exists, which makes pipeline re-runs idempotent.

Usage:
    from src.common.dedupe import signal_source_key

    # Search results carry stable URLs:
    key = signal_source_key(posting, stable_urls=True)
    # Result: "https://doda.jp/job/123"

    # Aggregator links are redirects, so a synthetic key is derived:
    key = signal_source_key(posting, stable_urls=False, scheme="kyujinbox")
    # Result: "kyujinbox://abc/社内se募集"
"""

from typing import Tuple

from src.common.types import RawPosting
from src.matching.name_normalizer import normalize


def posting_identity(posting: RawPosting) -> Tuple[str, str]:
    """
    In-run dedup key for crawled postings: (employer_name, title).

    Raw text is used (not normalized) so two cards count as the same
    posting only if the aggregator rendered them identically.
    """
    return (posting.employer_name, posting.title)


def synthetic_source_url(scheme: str, employer_name: str, title: str) -> str:
    """
    Build a stable pseudo-URL from normalized employer name and title.

    Examples:
        >>> synthetic_source_url("kyujinbox", "ABC株式会社", "社内SE 募集")
        'kyujinbox://abc/社内se募集'
    """
    return f"{scheme}://{normalize(employer_name)}/{normalize(title)}"


def signal_source_key(posting: RawPosting, stable_urls: bool = True, scheme: str = "signal") -> str:
    """
    Stable source identity stored in intent_signals.source_url.

    Args:
        posting: The posting being persisted
        stable_urls: True when the source's URLs are stable permalinks
        scheme: Pseudo-URL scheme for synthetic keys

    Returns:
        The posting URL, or a synthetic key when URLs are not stable
        (or missing)
    """
    if stable_urls and posting.source_url:
        return posting.source_url
    return synthetic_source_url(scheme, posting.employer_name, posting.title)
