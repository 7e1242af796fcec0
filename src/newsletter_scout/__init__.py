"""Newsletter directory crawler and metadata extractor."""

__version__ = "0.1.0"

from newsletter_scout.classifier import classify
from newsletter_scout.config import CrawlConfig, load_config, settings
from newsletter_scout.discovery import LinkDiscovery
from newsletter_scout.dom import PageView, RenderedPageView, SoupPageView, page_view_for
from newsletter_scout.engine import NewsletterCrawler, crawl, run_crawl
from newsletter_scout.exceptions import (
    ConfigurationError,
    FetchError,
    FetchErrorKind,
    MalformedUrl,
    NewsletterScoutError,
    RenderSettleTimeout,
    ResourceExhausted,
)
from newsletter_scout.extraction import ExtractionPipeline
from newsletter_scout.fetcher import Fetcher, RenderedFetcher, StaticFetcher, create_fetcher
from newsletter_scout.frontier import Frontier
from newsletter_scout.models import (
    CrawlRequest,
    CrawlStats,
    EntryState,
    ExtractedRecord,
    FetchedPage,
    FetchMode,
    FrontierEntry,
    OfferResult,
    PageClassification,
    RejectReason,
)
from newsletter_scout.scope import ScopeDecision, ScopeFilter
from newsletter_scout.sink import JsonLinesSink, MemorySink, RecordSink
from newsletter_scout.urls import normalize_url

__all__ = [
    # Core
    "NewsletterCrawler",
    "crawl",
    "run_crawl",
    "Frontier",
    "ScopeFilter",
    "ScopeDecision",
    "LinkDiscovery",
    "ExtractionPipeline",
    "classify",
    "normalize_url",
    # Fetching
    "Fetcher",
    "StaticFetcher",
    "RenderedFetcher",
    "create_fetcher",
    "PageView",
    "SoupPageView",
    "RenderedPageView",
    "page_view_for",
    # Models
    "CrawlRequest",
    "CrawlStats",
    "EntryState",
    "ExtractedRecord",
    "FetchedPage",
    "FetchMode",
    "FrontierEntry",
    "OfferResult",
    "PageClassification",
    "RejectReason",
    # Config
    "CrawlConfig",
    "load_config",
    "settings",
    # Sinks
    "RecordSink",
    "JsonLinesSink",
    "MemorySink",
    # Errors
    "NewsletterScoutError",
    "MalformedUrl",
    "FetchError",
    "FetchErrorKind",
    "RenderSettleTimeout",
    "ConfigurationError",
    "ResourceExhausted",
]
