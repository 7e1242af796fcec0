"""Tests for the crawl engine."""

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from newsletter_scout.config import CrawlConfig
from newsletter_scout.engine import NewsletterCrawler, crawl
from newsletter_scout.exceptions import (
    ConfigurationError,
    FetchError,
    FetchErrorKind,
    ResourceExhausted,
)
from newsletter_scout.fetcher import Fetcher
from newsletter_scout.models import EntryState, FetchedPage, FetchMode
from newsletter_scout.sink import MemorySink


class FakeFetcher(Fetcher):
    """Serves canned pages keyed by canonical URL.

    A value may be HTML or an exception to raise. Unknown URLs are 404s.
    """

    mode = FetchMode.STATIC

    def __init__(
        self,
        pages: Dict[str, Union[str, Exception]],
        redirects: Optional[Dict[str, str]] = None,
        delay: float = 0.0,
    ):
        self.pages = pages
        self.redirects = redirects or {}
        self.delay = delay
        self.requested: List[str] = []
        self.entered = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def fetch(self, url: str) -> FetchedPage:
        self.requested.append(url)
        await asyncio.sleep(self.delay)

        outcome = self.pages.get(url)
        if outcome is None:
            raise FetchError(url, "HTTP 404", FetchErrorKind.PERMANENT, status_code=404)
        if isinstance(outcome, Exception):
            raise outcome
        return FetchedPage(url=self.redirects.get(url, url), requested_url=url, html=outcome)


def links(*urls: str) -> str:
    return "".join(f'<a href="{url}">link</a>' for url in urls)


def run(config, fetcher, sink=None):
    sink = sink if sink is not None else MemorySink()
    crawler = NewsletterCrawler(config, fetcher, sink)
    stats = asyncio.run(crawler.run())
    return crawler, stats, sink


class TestNewsletterCrawler:
    """Test cases for NewsletterCrawler.run."""

    def test_publication_seed_yields_record(self):
        """Test a publication home page produces one record with its feed."""
        config = CrawlConfig(seed_urls=["https://writer.substack.com"], max_requests=10)
        fetcher = FakeFetcher({
            "https://writer.substack.com/": "<h1>My Newsletter</h1><a href='/feed'>RSS</a>",
        })

        crawler, stats, sink = run(config, fetcher)

        assert fetcher.requested == ["https://writer.substack.com/"]
        assert len(sink.records) == 1
        record = sink.records[0]
        assert record.title == "My Newsletter"
        assert record.feed_url == "https://writer.substack.com/feed"
        assert record.source_url == "https://writer.substack.com/"
        assert stats.done == 1
        assert stats.records_emitted == 1
        assert stats.finished_at is not None

    def test_listing_page_emits_no_record(self):
        """Test discovery pages only contribute links."""
        config = CrawlConfig(seed_urls=["https://substack.com/discover"], max_requests=10)
        fetcher = FakeFetcher({
            "https://substack.com/discover": links("https://a.substack.com/"),
            "https://a.substack.com/": "<h1>A</h1>",
        })

        _, stats, sink = run(config, fetcher)

        assert [r.source_url for r in sink.records] == ["https://a.substack.com/"]
        assert stats.done == 2

    def test_failed_fetch_does_not_stop_crawl(self):
        """Test a timed-out publication is marked failed and the rest continue."""
        config = CrawlConfig(seed_urls=["https://substack.com/discover"], max_requests=10)
        fetcher = FakeFetcher({
            "https://substack.com/discover": links("https://a.substack.com/", "https://b.substack.com/"),
            "https://a.substack.com/": FetchError(
                "https://a.substack.com/", "Request timeout after 30.0s", FetchErrorKind.TRANSIENT
            ),
            "https://b.substack.com/": "<h1>B Letter</h1>",
        })

        crawler, stats, sink = run(config, fetcher)

        assert crawler.frontier.state_of("https://a.substack.com/") is EntryState.FAILED
        assert crawler.frontier.state_of("https://b.substack.com/") is EntryState.DONE
        assert [r.title for r in sink.records] == ["B Letter"]
        assert stats.failed == 1
        assert stats.done == 2

    def test_unexpected_error_is_contained(self):
        """Test an unexpected error fails only its own request."""
        config = CrawlConfig(seed_urls=["https://a.substack.com/", "https://b.substack.com/"], max_requests=10)
        fetcher = FakeFetcher({
            "https://a.substack.com/": RuntimeError("parser blew up"),
            "https://b.substack.com/": "<h1>B</h1>",
        })

        crawler, stats, sink = run(config, fetcher)

        assert crawler.frontier.state_of("https://a.substack.com/") is EntryState.FAILED
        assert len(sink.records) == 1

    def test_budget_of_one_fetches_first_seed_only(self):
        """Test a budget of one accepts only the first seed."""
        config = CrawlConfig(
            seed_urls=["https://a.substack.com/", "https://b.substack.com/"],
            max_requests=1,
        )
        fetcher = FakeFetcher({
            "https://a.substack.com/": "<h1>A</h1>",
            "https://b.substack.com/": "<h1>B</h1>",
        })

        _, stats, sink = run(config, fetcher)

        assert fetcher.requested == ["https://a.substack.com/"]
        assert len(sink.records) <= 1
        assert stats.rejected == {"budget_exhausted": 1}

    def test_budget_bounds_fetches(self):
        """Test no more than max_requests URLs are ever fetched."""
        publications = [f"https://pub{i}.substack.com/" for i in range(10)]
        pages = {url: "<h1>Pub</h1>" for url in publications}
        pages["https://substack.com/discover"] = links(*publications)
        config = CrawlConfig(seed_urls=["https://substack.com/discover"], max_requests=4)
        fetcher = FakeFetcher(pages)

        crawler, stats, _ = run(config, fetcher)

        assert len(fetcher.requested) == 4
        assert fetcher.requested[1:] == publications[:3]
        assert crawler.frontier.accepted_count == 4
        assert stats.rejected["budget_exhausted"] == 7

    def test_each_url_fetched_once(self):
        """Test pages linking to each other are fetched once each."""
        config = CrawlConfig(seed_urls=["https://a.substack.com/"], max_requests=10)
        fetcher = FakeFetcher({
            "https://a.substack.com/": links("https://b.substack.com/", "https://a.substack.com/"),
            "https://b.substack.com/": links("https://a.substack.com/#top", "https://b.substack.com"),
        })

        _, stats, _ = run(config, fetcher)

        assert sorted(fetcher.requested) == ["https://a.substack.com/", "https://b.substack.com/"]
        assert stats.rejected["duplicate"] == 3

    def test_out_of_scope_links_not_followed(self):
        config = CrawlConfig(seed_urls=["https://blog.example.com/archive"], max_requests=10)
        fetcher = FakeFetcher({
            "https://blog.example.com/archive": links("https://other.com/p/x", "/p/one"),
            "https://blog.example.com/p/one": "<h1>One</h1>",
        })

        _, stats, sink = run(config, fetcher)

        assert "https://other.com/p/x" not in fetcher.requested
        assert "https://blog.example.com/p/one" in fetcher.requested
        assert stats.rejected["out_of_scope"] == 1
        assert len(sink.records) == 2

    def test_follow_external_links(self):
        """Test other hosts are followed when internal-only is off."""
        config = CrawlConfig(
            seed_urls=["https://blog.example.com/archive"],
            max_requests=10,
            follow_internal_only=False,
        )
        fetcher = FakeFetcher({
            "https://blog.example.com/archive": links("https://other.com/p/x"),
        })

        run(config, fetcher)

        assert "https://other.com/p/x" in fetcher.requested

    def test_redirect_records_final_url(self):
        """Test a redirected page is recorded under its final URL and not refetched."""
        config = CrawlConfig(seed_urls=["https://old.substack.com/"], max_requests=10)
        fetcher = FakeFetcher(
            {"https://old.substack.com/": "<h1>Renamed</h1>" + links("https://new.substack.com/")},
            redirects={"https://old.substack.com/": "https://new.substack.com/"},
        )

        _, stats, sink = run(config, fetcher)

        assert fetcher.requested == ["https://old.substack.com/"]
        assert sink.records[0].source_url == "https://new.substack.com/"
        assert stats.rejected["duplicate"] == 1

    def test_redirect_to_known_url_skipped(self):
        """Test a page redirecting to an already known URL emits nothing."""
        config = CrawlConfig(seed_urls=["https://a.substack.com/", "https://b.substack.com/"], max_requests=10)
        fetcher = FakeFetcher(
            {
                "https://a.substack.com/": "<h1>A</h1>",
                "https://b.substack.com/": "<h1>A via B</h1>",
            },
            redirects={"https://b.substack.com/": "https://a.substack.com/"},
        )

        _, _, sink = run(config, fetcher)

        assert [r.title for r in sink.records] == ["A"]

    def test_resource_exhaustion_aborts_run(self):
        config = CrawlConfig(seed_urls=["https://a.substack.com/"], max_requests=10)
        fetcher = FakeFetcher({"https://a.substack.com/": ResourceExhausted("browser crashed")})

        with pytest.raises(ResourceExhausted):
            run(config, fetcher)

    def test_run_deadline(self):
        """Test the run stops at the deadline and fails in-flight work."""
        config = CrawlConfig(
            seed_urls=["https://slow.substack.com/"],
            max_requests=10,
            run_deadline_seconds=0.1,
        )
        fetcher = FakeFetcher({"https://slow.substack.com/": "<h1>Slow</h1>"}, delay=5.0)

        crawler, stats, sink = run(config, fetcher)

        assert stats.deadline_exceeded is True
        assert stats.failed == 1
        assert crawler.frontier.state_of("https://slow.substack.com/") is EntryState.FAILED
        assert sink.records == []

    def test_no_usable_seeds(self):
        config = CrawlConfig(seed_urls=["not a url", "mailto:editor@example.com"])

        with pytest.raises(ConfigurationError):
            run(config, FakeFetcher({}))


class TestCrawl:
    """Test cases for the crawl entry point."""

    @pytest.mark.asyncio
    async def test_crawl_opens_fetcher(self):
        config = CrawlConfig(seed_urls=["https://writer.substack.com/"], max_requests=5)
        fetcher = FakeFetcher({"https://writer.substack.com/": "<h1>W</h1>"})
        sink = MemorySink()

        stats = await crawl(config, sink, fetcher=fetcher)

        assert fetcher.entered is True
        assert stats.records_emitted == 1
        assert len(sink) == 1

    @pytest.mark.asyncio
    async def test_crawl_validates_seeds_before_fetching(self):
        config = CrawlConfig(seed_urls=["not a url"])
        fetcher = FakeFetcher({})

        with pytest.raises(ConfigurationError):
            await crawl(config, MemorySink(), fetcher=fetcher)

        assert fetcher.entered is False
