from dotenv import load_dotenv
from pathlib import Path
from typing import Any, List, Optional
import json
import logging
import os

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from newsletter_scout.constants import (
    DEFAULT_LINK_PATTERNS,
    DEFAULT_MAX_REQUESTS,
    DEFAULT_RENDERED_CONCURRENCY,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SEED_URLS,
    DEFAULT_SETTLE_TIMEOUT_SECONDS,
    DEFAULT_STATIC_CONCURRENCY,
    DEFAULT_TARGET_DOMAINS,
    DEFAULT_USER_AGENT,
)
from newsletter_scout.exceptions import ConfigurationError, MalformedUrl
from newsletter_scout.models import FetchMode
from newsletter_scout.urls import normalize_url

load_dotenv()  # Loads variables from .env file

logger = logging.getLogger(__name__)


class Settings:
    """
    Manages process settings loaded from environment variables.
    """
    CRAWL_INPUT = os.getenv("CRAWL_INPUT")  # Path to the JSON crawl input
    OUTPUT_PATH = os.getenv("OUTPUT_PATH", "records.jsonl")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")
    PROXY_URL = os.getenv("PROXY_URL")
    USER_AGENT = os.getenv("USER_AGENT")


settings = Settings()


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class CrawlConfig(BaseModel):
    """
    Crawl input consumed at startup.

    Field names accept the camelCase keys of the JSON input (``seedUrls``,
    ``maxRequests``, ...) as well as the older ``startUrls``,
    ``maxRequestsPerCrawl`` and ``useBrowser`` keys.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    seed_urls: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SEED_URLS),
        validation_alias=_alias("seedUrls", "startUrls", "seed_urls"),
        description="URLs the crawl starts from",
    )

    max_requests: int = Field(
        default=DEFAULT_MAX_REQUESTS,
        gt=0,
        validation_alias=_alias("maxRequests", "maxRequestsPerCrawl", "max_requests"),
        description="Maximum number of URLs accepted into the frontier for the run",
    )

    use_rendered_fetch: bool = Field(
        default=False,
        validation_alias=_alias("useRenderedFetch", "useBrowser", "use_rendered_fetch"),
        description="Render pages in a headless browser instead of fetching static HTML",
    )

    follow_internal_only: bool = Field(
        default=True,
        validation_alias=_alias("followInternalOnly", "follow_internal_only"),
        description="Only follow links to the seed host or the target domain family",
    )

    target_domains: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TARGET_DOMAINS),
        validation_alias=_alias("targetDomains", "target_domains"),
        description="Publishing platform domain family",
    )

    link_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_LINK_PATTERNS),
        validation_alias=_alias("linkPatterns", "link_patterns"),
        description="URL globs a discovered link must match",
    )

    static_concurrency: int = Field(
        default=DEFAULT_STATIC_CONCURRENCY,
        ge=1,
        le=100,
        validation_alias=_alias("staticConcurrency", "static_concurrency"),
    )

    rendered_concurrency: int = Field(
        default=DEFAULT_RENDERED_CONCURRENCY,
        ge=1,
        le=20,
        validation_alias=_alias("renderedConcurrency", "rendered_concurrency"),
    )

    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0,
        validation_alias=_alias("requestTimeout", "request_timeout"),
        description="Per-request timeout in seconds",
    )

    settle_timeout: float = Field(
        default=DEFAULT_SETTLE_TIMEOUT_SECONDS,
        ge=0,
        validation_alias=_alias("settleTimeout", "settle_timeout"),
        description="Seconds to wait for a rendered page to reach network idle",
    )

    run_deadline_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=_alias("runDeadlineSeconds", "run_deadline_seconds"),
        description="Abort remaining work after this many seconds",
    )

    proxy_url: Optional[str] = Field(
        default=None,
        validation_alias=_alias("proxyUrl", "proxy_url"),
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        validation_alias=_alias("userAgent", "user_agent"),
    )

    @field_validator("seed_urls", mode="before")
    @classmethod
    def _coerce_seed_urls(cls, value: Any) -> Any:
        # Request-list inputs carry objects like {"url": "..."}
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [item.get("url", "") if isinstance(item, dict) else item for item in value]
        return value

    @property
    def fetch_mode(self) -> FetchMode:
        return FetchMode.RENDERED if self.use_rendered_fetch else FetchMode.STATIC

    @property
    def concurrency(self) -> int:
        """Worker pool size for the selected fetch mode."""
        if self.use_rendered_fetch:
            return self.rendered_concurrency
        return self.static_concurrency

    def usable_seed_urls(self) -> List[str]:
        """Canonical seed URLs, in input order, without duplicates.

        Raises:
            ConfigurationError: If no seed URL is usable
        """
        seeds: List[str] = []
        for raw in self.seed_urls:
            try:
                url = normalize_url(raw)
            except MalformedUrl as e:
                logger.warning(f"Ignoring seed URL: {e}")
                continue
            if url not in seeds:
                seeds.append(url)

        if not seeds:
            raise ConfigurationError("No usable seed URLs in crawl input")
        return seeds

    @classmethod
    def from_dict(cls, data: dict) -> "CrawlConfig":
        """Validate a crawl input mapping.

        Raises:
            ConfigurationError: If the input fails validation
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid crawl input: {e}") from e

    @classmethod
    def from_file(cls, path: str) -> "CrawlConfig":
        """Load the crawl input from a JSON file.

        Args:
            path: Path to JSON input file

        Returns:
            CrawlConfig with values from file

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigurationError(f"Crawl input not found: {path}")

        try:
            with open(file_path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Crawl input {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Crawl input {path} must be a JSON object")
        return cls.from_dict(data)

    def with_env_overrides(self) -> "CrawlConfig":
        """Fill transport settings the input left unset from the environment."""
        updates = {}
        if self.proxy_url is None and settings.PROXY_URL:
            updates["proxy_url"] = settings.PROXY_URL
        if settings.USER_AGENT and self.user_agent == DEFAULT_USER_AGENT:
            updates["user_agent"] = settings.USER_AGENT
        return self.model_copy(update=updates) if updates else self


def load_config(path: Optional[str] = None) -> CrawlConfig:
    """Load the crawl input from a path, ``CRAWL_INPUT`` or defaults."""
    path = path or settings.CRAWL_INPUT
    config = CrawlConfig.from_file(path) if path else CrawlConfig()
    return config.with_env_overrides()
