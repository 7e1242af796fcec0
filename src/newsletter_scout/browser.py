"""
Headless browser lifecycle for rendered fetching.

This module provides a validated Pydantic configuration for the browser
and a BrowserSession that owns the Playwright process:

    async with BrowserSession(config) as session:
        context = await session.new_context()
"""
import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from newsletter_scout.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SETTLE_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)
from newsletter_scout.exceptions import ResourceExhausted

logger = logging.getLogger(__name__)


class BrowserConfig(BaseModel):
    """
    Configuration for the Playwright browser used in rendered mode.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use for crawling"
    )

    timeout: int = Field(
        default=int(DEFAULT_REQUEST_TIMEOUT_SECONDS * 1000),
        description="Navigation timeout in milliseconds",
        ge=1000,
        le=300000
    )

    settle_timeout: int = Field(
        default=int(DEFAULT_SETTLE_TIMEOUT_SECONDS * 1000),
        description="Milliseconds to wait for network idle after navigation",
        ge=0,
        le=60000
    )

    wait_until: Literal["load", "domcontentloaded", "commit"] = Field(
        default="domcontentloaded",
        description="Navigation event after which the settle wait starts"
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User agent for every browser context"
    )

    proxy_url: Optional[str] = Field(
        default=None,
        description="Proxy server for all browser traffic"
    )

    block_resources: List[str] = Field(
        default_factory=lambda: ["image", "media", "font"],
        description="Resource types to block (e.g., 'image', 'font', 'stylesheet')"
    )

    launch_args: List[str] = Field(
        default_factory=lambda: ["--disable-blink-features=AutomationControlled"],
        description="Additional browser launch arguments"
    )

    @classmethod
    def from_crawl_config(cls, config) -> "BrowserConfig":
        """Derive browser settings from a CrawlConfig."""
        return cls(
            timeout=min(max(int(config.request_timeout * 1000), 1000), 300000),
            settle_timeout=min(int(config.settle_timeout * 1000), 60000),
            user_agent=config.user_agent,
            proxy_url=config.proxy_url,
        )


class BrowserSession:
    """
    Owns a Playwright browser for the duration of a crawl run.

    Each fetch should use its own context from ``new_context`` so cookies
    and storage never leak between pages.
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self._playwright = None
        self._browser = None

    async def __aenter__(self) -> "BrowserSession":
        """Launch the browser."""
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise ImportError(
                "Playwright is required for rendered fetching. "
                "Install it and run: playwright install chromium"
            )

        logger.info(f"Launching {self.config.browser_type} browser (headless={self.config.headless})")

        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.config.browser_type)

        launch_options = {"headless": self.config.headless}
        if self.config.launch_args:
            launch_options["args"] = self.config.launch_args
        if self.config.proxy_url:
            launch_options["proxy"] = {"server": self.config.proxy_url}

        try:
            self._browser = await launcher.launch(**launch_options)
        except Exception:
            logger.error(f"Could not launch {self.config.browser_type}; stopping Playwright")
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.info("Browser launched successfully")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close the browser."""
        if self._browser:
            logger.info("Closing browser")
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def new_context(self):
        """Create an isolated browser context.

        Raises:
            ResourceExhausted: If the browser is gone
        """
        if not self.is_connected:
            raise ResourceExhausted("Browser is not running or has disconnected")

        return await self._browser.new_context(
            user_agent=self.config.user_agent,
            locale="en-US",
            java_script_enabled=True,
        )
