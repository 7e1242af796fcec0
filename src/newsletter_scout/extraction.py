"""Heuristic extraction of newsletter records from record pages.

Each record field has an ordered list of strategies. A strategy is a
plain function from a PageView to an optional string; the first one that
yields a non-blank value wins. A field with no winning strategy is an
empty string, so every page produces a complete record.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from newsletter_scout.constants import (
    AUTHOR_LINK_SELECTOR,
    AUTHOR_META_SELECTOR,
    DEFAULT_TARGET_DOMAINS,
    FEED_ANCHOR_SELECTOR,
    FEED_LINK_SELECTOR,
    FEED_PATH,
    LATEST_POST_LINK_SELECTOR,
    LATEST_POST_SEPARATOR,
    LATEST_POST_TITLE_SELECTOR,
    META_DESCRIPTION_SELECTOR,
    OG_DESCRIPTION_SELECTOR,
    OG_TITLE_SELECTOR,
    PUBLISHER_NAME_SELECTOR,
    SUBSCRIBER_COUNT_PATTERN,
    TAGLINE_SELECTOR,
    TITLE_ELEMENT_SELECTOR,
    TITLE_HEADING_SELECTOR,
    TOPIC_SELECTOR,
)
from newsletter_scout.dom import PageView
from newsletter_scout.exceptions import MalformedUrl
from newsletter_scout.models import ExtractedRecord, utc_now
from newsletter_scout.urls import host_in_domains, normalize_url, origin, url_host

logger = logging.getLogger(__name__)

Strategy = Callable[[PageView], Optional[str]]

# Errors a strategy may hit on odd markup; they mean "no value here"
STRATEGY_MISSES = (MalformedUrl, ValueError, AttributeError, KeyError, TypeError)

_SUBSCRIBER_RE = re.compile(SUBSCRIBER_COUNT_PATTERN, re.IGNORECASE)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(value.split())
    return value or None


def text_of(selectors: str) -> Strategy:
    """Strategy: text of the first non-empty element matching selectors."""
    def strategy(page: PageView) -> Optional[str]:
        return page.text(selectors)
    strategy.__name__ = f"text_of({selectors})"
    return strategy


def attr_of(selectors: str, name: str = "content") -> Strategy:
    """Strategy: attribute of the first element carrying it."""
    def strategy(page: PageView) -> Optional[str]:
        return page.attr(selectors, name)
    strategy.__name__ = f"attr_of({selectors}, {name})"
    return strategy


def absolute_href_of(selectors: str) -> Strategy:
    """Strategy: first href among matches, resolved against the page URL."""
    def strategy(page: PageView) -> Optional[str]:
        for href in page.attrs(selectors, "href"):
            if href.strip():
                return normalize_url(href, page.url)
        return None
    strategy.__name__ = f"absolute_href_of({selectors})"
    return strategy


def constructed_feed_url(target_domains: Iterable[str] = DEFAULT_TARGET_DOMAINS) -> Strategy:
    """Strategy: ``<publication-root>/feed`` for hosts of the platform."""
    domains = tuple(target_domains)

    def strategy(page: PageView) -> Optional[str]:
        if not host_in_domains(url_host(page.url), domains):
            return None
        return origin(page.url) + FEED_PATH
    strategy.__name__ = "constructed_feed_url"
    return strategy


def latest_post(page: PageView) -> Optional[str]:
    """Title of the first post preview, joined with its absolute link."""
    title = _clean(page.first_text(LATEST_POST_TITLE_SELECTOR))
    if not title:
        return None

    href = page.attr(LATEST_POST_LINK_SELECTOR, "href")
    if not href or not href.strip():
        return title
    try:
        link = normalize_url(href, page.url)
    except MalformedUrl:
        return title
    return f"{title}{LATEST_POST_SEPARATOR}{link}"


def subscriber_count_text(page: PageView) -> Optional[str]:
    """First "<number> subscribers" phrase anywhere in the page text."""
    match = _SUBSCRIBER_RE.search(page.full_text())
    return match.group(0) if match else None


def unique_texts(values: Iterable[str]) -> Tuple[str, ...]:
    """Trim and deduplicate by exact match, keeping first occurrences."""
    seen = set()
    result: List[str] = []
    for value in values:
        cleaned = value.strip() if value else ""
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return tuple(result)


def default_strategies(target_domains: Iterable[str] = DEFAULT_TARGET_DOMAINS) -> Dict[str, List[Strategy]]:
    """Ordered fallback chains for every single-valued record field."""
    return {
        "title": [
            text_of(TITLE_HEADING_SELECTOR),
            attr_of(OG_TITLE_SELECTOR),
            text_of(TITLE_ELEMENT_SELECTOR),
        ],
        "author": [
            text_of(PUBLISHER_NAME_SELECTOR),
            text_of(AUTHOR_LINK_SELECTOR),
            attr_of(AUTHOR_META_SELECTOR),
        ],
        "description": [
            attr_of(OG_DESCRIPTION_SELECTOR),
            attr_of(META_DESCRIPTION_SELECTOR),
            text_of(TAGLINE_SELECTOR),
        ],
        "feed_url": [
            absolute_href_of(FEED_LINK_SELECTOR),
            absolute_href_of(FEED_ANCHOR_SELECTOR),
            constructed_feed_url(target_domains),
        ],
        "latest_post": [latest_post],
        "subscriber_count_text": [subscriber_count_text],
    }


class ExtractionPipeline:
    """Maps a record page to an ExtractedRecord."""

    def __init__(
        self,
        target_domains: Iterable[str] = DEFAULT_TARGET_DOMAINS,
        strategies: Optional[Dict[str, Sequence[Strategy]]] = None,
        topic_selector: str = TOPIC_SELECTOR,
    ):
        self.target_domains = tuple(target_domains)
        self.strategies = strategies if strategies is not None else default_strategies(self.target_domains)
        self.topic_selector = topic_selector

    def resolve(self, field_name: str, page: PageView) -> str:
        """Run a field's fallback chain and return the first usable value."""
        for strategy in self.strategies.get(field_name, ()):
            try:
                value = _clean(strategy(page))
            except STRATEGY_MISSES as e:
                logger.debug(f"{field_name}: {getattr(strategy, '__name__', strategy)} missed on {page.url}: {e}")
                continue
            if value:
                return value
        return ""

    def topics(self, page: PageView) -> Tuple[str, ...]:
        try:
            return unique_texts(page.texts(self.topic_selector))
        except STRATEGY_MISSES as e:
            logger.debug(f"topics missed on {page.url}: {e}")
            return ()

    def extract(self, page: PageView, extracted_at: Optional[datetime] = None) -> ExtractedRecord:
        """Extract a complete record from a page.

        Args:
            page: Record page
            extracted_at: Timestamp to stamp on the record (defaults to now, UTC)

        Returns:
            ExtractedRecord with every field present
        """
        record = ExtractedRecord(
            source_url=page.url,
            title=self.resolve("title", page),
            author=self.resolve("author", page),
            description=self.resolve("description", page),
            topics=self.topics(page),
            feed_url=self.resolve("feed_url", page),
            latest_post=self.resolve("latest_post", page),
            subscriber_count_text=self.resolve("subscriber_count_text", page),
            extracted_at=extracted_at or utc_now(),
        )

        filled = sum(1 for v in (record.title, record.author, record.description, record.feed_url) if v)
        logger.debug(f"Extracted {filled}/4 core fields and {len(record.topics)} topics from {page.url}")
        return record

