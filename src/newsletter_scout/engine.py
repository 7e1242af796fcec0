"""Concurrent crawl engine: frontier, fetch, discover, classify, extract."""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional
from urllib.parse import urlsplit

from newsletter_scout.classifier import classify
from newsletter_scout.config import CrawlConfig
from newsletter_scout.discovery import LinkDiscovery
from newsletter_scout.dom import page_view_for
from newsletter_scout.exceptions import FetchError, MalformedUrl, ResourceExhausted
from newsletter_scout.extraction import ExtractionPipeline
from newsletter_scout.fetcher import Fetcher, create_fetcher
from newsletter_scout.frontier import Frontier
from newsletter_scout.models import CrawlRequest, CrawlStats, FetchedPage, FrontierEntry, utc_now
from newsletter_scout.scope import ScopeFilter
from newsletter_scout.sink import RecordSink
from newsletter_scout.urls import normalize_url

logger = logging.getLogger(__name__)


class NewsletterCrawler:
    """Crawls from seed URLs and emits newsletter records.

    A pool of asyncio workers pulls entries from a shared Frontier. For
    every page a worker:

    - offers discovered links back to the frontier
    - classifies the page by URL shape
    - extracts and emits a record when the page is a record page

    The run ends when the frontier has nothing pending or in flight, or
    when the optional run deadline passes. Per-request failures are
    logged and contained; ResourceExhausted aborts the run.
    """

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: Fetcher,
        sink: RecordSink,
        frontier: Optional[Frontier] = None,
        discovery: Optional[LinkDiscovery] = None,
        pipeline: Optional[ExtractionPipeline] = None,
    ):
        """Initialize the crawler.

        Args:
            config: Crawl input
            fetcher: An opened Fetcher for the run's fetch mode
            sink: Destination for extracted records
            frontier: Optional pre-built frontier
            discovery: Optional link discovery (defaults to config patterns)
            pipeline: Optional extraction pipeline
        """
        self.config = config
        self.fetcher = fetcher
        self.sink = sink
        self.frontier = frontier or Frontier(
            ScopeFilter(config.target_domains, config.follow_internal_only),
            config.max_requests,
        )
        self.discovery = discovery or LinkDiscovery(config.link_patterns)
        self.pipeline = pipeline or ExtractionPipeline(config.target_domains)
        self.stats = CrawlStats()
        self._wakeup: Optional[asyncio.Condition] = None

    def seed(self) -> List[str]:
        """Offer the seed URLs to the frontier.

        Returns:
            Seeds accepted into the frontier

        Raises:
            ConfigurationError: If no seed URL is usable
        """
        accepted = []
        for url in self.config.usable_seed_urls():
            result = self.frontier.offer(url, seed_host=urlsplit(url).netloc)
            self.stats.record_offer(result)
            if result.accepted:
                accepted.append(result.url)
            else:
                logger.info(f"Seed {url} not queued: {result.reason.value}")
        return accepted

    async def run(self) -> CrawlStats:
        """Crawl until the frontier drains or the deadline passes.

        Returns:
            CrawlStats for the run

        Raises:
            ConfigurationError: If no seed URL is usable
            ResourceExhausted: If the fetch collaborator gave out
        """
        seeds = self.seed()
        self._wakeup = asyncio.Condition()

        concurrency = self.config.concurrency
        logger.info(f"Starting crawl from {len(seeds)} seed(s)")
        logger.info(f"Max requests: {self.config.max_requests}, workers: {concurrency}, mode: {self.fetcher.mode.value}")

        workers = [asyncio.create_task(self._worker(i)) for i in range(concurrency)]
        try:
            if self.config.run_deadline_seconds:
                await asyncio.wait_for(asyncio.gather(*workers), timeout=self.config.run_deadline_seconds)
            else:
                await asyncio.gather(*workers)
        except asyncio.TimeoutError:
            self.stats.deadline_exceeded = True
            abandoned = self.frontier.abandon_in_flight()
            self.stats.failed += len(abandoned)
            logger.warning(
                f"Run deadline of {self.config.run_deadline_seconds}s reached; "
                f"abandoned {len(abandoned)} in-flight and {self.frontier.pending_count} pending requests"
            )
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            self.stats.finished_at = utc_now()

        logger.info(f"{'=' * 60}")
        logger.info(
            f"Crawl complete! {self.stats.done} pages done, {self.stats.failed} failed, "
            f"{self.stats.records_emitted} records emitted"
        )
        logger.info(f"{'=' * 60}")
        return self.stats

    async def _worker(self, worker_id: int) -> None:
        while True:
            entry = await self._next_entry()
            if entry is None:
                logger.debug(f"Worker {worker_id} finished")
                return
            await self._process(entry)
            await self._notify()

    async def _next_entry(self) -> Optional[FrontierEntry]:
        """Wait for a pending entry; None once the frontier is drained."""
        async with self._wakeup:
            while True:
                entry = self.frontier.next()
                if entry is not None:
                    return entry
                if self.frontier.is_drained:
                    self._wakeup.notify_all()
                    return None
                await self._wakeup.wait()

    async def _notify(self) -> None:
        async with self._wakeup:
            self._wakeup.notify_all()

    async def _process(self, entry: FrontierEntry) -> None:
        request = entry.request
        logger.info(f"Crawling ({self.frontier.accepted_count}/{self.config.max_requests}): {request.url}")

        succeeded = False
        try:
            page = await self.fetcher.fetch(request.url)
            self.process_page(request, page)
            succeeded = True
        except FetchError as e:
            logger.warning(f"  Failed: {e}")
        except ResourceExhausted:
            logger.error(f"Fetch collaborator exhausted while crawling {request.url}; aborting run")
            raise
        except Exception as e:
            logger.exception(f"Unexpected error processing {request.url}: {e}")
        finally:
            if self.frontier.complete(request.url, succeeded):
                if succeeded:
                    self.stats.done += 1
                else:
                    self.stats.failed += 1

    def process_page(self, request: CrawlRequest, page: FetchedPage) -> None:
        """Discover links on a fetched page and extract its record.

        Args:
            request: The request the page was fetched for
            page: Fetched content; its final URL replaces the requested one
        """
        try:
            final_url = normalize_url(page.url)
        except MalformedUrl:
            final_url = request.url

        if final_url != request.url:
            if not self.frontier.mark_seen(final_url):
                logger.info(f"  Redirected to already known {final_url}; skipping")
                return
            logger.debug(f"  Redirected to {final_url}")
            page = replace(page, url=final_url)

        view = page_view_for(page)

        queued = 0
        for link in self.discovery.discover(view):
            result = self.frontier.offer(link, request.seed_host, discovered_from=final_url)
            self.stats.record_offer(result)
            if result.accepted:
                queued += 1
        if queued:
            logger.info(f"  Queued {queued} new links")

        classification = classify(final_url, self.config.target_domains)
        if not classification.is_record:
            logger.debug(f"  Listing page, links only: {final_url}")
            return

        record = self.pipeline.extract(view)
        self.sink.append(record)
        self.stats.records_emitted += 1
        logger.info(f"  Saved newsletter record: {record.title or '(untitled)'}")


async def crawl(config: CrawlConfig, sink: RecordSink, fetcher: Optional[Fetcher] = None) -> CrawlStats:
    """Run a complete crawl for a configuration.

    Seeds are validated before any fetch collaborator is started.

    Args:
        config: Crawl input
        sink: Destination for records (not closed here)
        fetcher: Optional unopened fetcher; built from config if omitted

    Returns:
        CrawlStats for the run
    """
    config.usable_seed_urls()

    fetcher = fetcher or create_fetcher(config)
    async with fetcher:
        crawler = NewsletterCrawler(config, fetcher, sink)
        return await crawler.run()


def run_crawl(config: CrawlConfig, sink: RecordSink) -> CrawlStats:
    """Synchronous wrapper for crawl."""
    return asyncio.run(crawl(config, sink))
