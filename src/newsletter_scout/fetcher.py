"""Page retrieval: static HTTP fetch or rendered browser fetch.

A crawl run uses exactly one fetch mode. Both fetchers follow redirects
and report the final URL, and both turn every per-request failure into a
FetchError. Only collaborator exhaustion (closed client, dead browser)
escapes as ResourceExhausted.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from newsletter_scout.browser import BrowserConfig, BrowserSession
from newsletter_scout.constants import (
    DEFAULT_HEADERS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    HTML_CONTENT_TYPES,
    TRANSIENT_STATUS_CODES,
)
from newsletter_scout.exceptions import (
    FetchError,
    FetchErrorKind,
    RenderSettleTimeout,
    ResourceExhausted,
)
from newsletter_scout.models import FetchedPage, FetchMode

logger = logging.getLogger(__name__)


def _kind_for_status(status_code: int) -> FetchErrorKind:
    if status_code in TRANSIENT_STATUS_CODES or status_code >= 500:
        return FetchErrorKind.TRANSIENT
    return FetchErrorKind.PERMANENT


class Fetcher(ABC):
    """Retrieves one page per call. Use as an async context manager."""

    mode: FetchMode

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    @abstractmethod
    async def fetch(self, url: str) -> FetchedPage:
        """Fetch a URL.

        Raises:
            FetchError: If the page could not be retrieved
            ResourceExhausted: If the transport can no longer serve requests
        """


class StaticFetcher(Fetcher):
    """Fetches raw HTML over HTTP with httpx."""

    mode = FetchMode.STATIC

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        proxy_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the static fetcher.

        Args:
            timeout: Request timeout in seconds
            user_agent: User agent header
            proxy_url: Optional proxy for all requests
            client: Pre-built client (not closed by the fetcher)
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.proxy_url = proxy_url
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "StaticFetcher":
        if self._client is None:
            headers = dict(DEFAULT_HEADERS)
            headers["User-Agent"] = self.user_agent
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=headers,
                proxy=self.proxy_url,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> FetchedPage:
        if self._client is None:
            raise ResourceExhausted("HTTP client is not open; use StaticFetcher as an async context manager")

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Request timeout after {self.timeout}s", FetchErrorKind.TRANSIENT) from e
        except httpx.UnsupportedProtocol as e:
            raise FetchError(url, str(e), FetchErrorKind.PERMANENT) from e
        except httpx.TransportError as e:
            raise FetchError(url, f"Connection error: {e}", FetchErrorKind.TRANSIENT) from e
        except httpx.RequestError as e:
            # Redirect loops, invalid redirect targets, decoding failures
            raise FetchError(url, str(e), FetchErrorKind.PERMANENT) from e
        except RuntimeError as e:
            # httpx raises RuntimeError once the client has been closed
            raise ResourceExhausted(f"HTTP client unavailable: {e}") from e

        final_url = str(response.url)

        if response.status_code >= 400:
            raise FetchError(
                url,
                f"HTTP {response.status_code}",
                _kind_for_status(response.status_code),
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not content_type.startswith(HTML_CONTENT_TYPES):
            raise FetchError(
                url,
                f"Unsupported content type {content_type!r}",
                FetchErrorKind.PERMANENT,
                status_code=response.status_code,
            )

        if final_url != url:
            logger.debug(f"Redirected: {url} -> {final_url}")

        return FetchedPage(
            url=final_url,
            requested_url=url,
            html=response.text,
            mode=FetchMode.STATIC,
            status_code=response.status_code,
        )


class RenderedFetcher(Fetcher):
    """Fetches pages through a headless browser.

    After navigation the fetcher waits for network idle up to the settle
    timeout. A page that never settles is still returned, with whatever
    content had rendered by then.
    """

    mode = FetchMode.RENDERED

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        session: Optional[BrowserSession] = None,
    ):
        self.config = config or (session.config if session else BrowserConfig())
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "RenderedFetcher":
        if self._session is None:
            self._session = BrowserSession(self.config)
            await self._session.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._session is not None and self._owns_session:
            await self._session.__aexit__(exc_type, exc_val, exc_tb)
            self._session = None

    async def fetch(self, url: str) -> FetchedPage:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        if self._session is None:
            raise ResourceExhausted("Browser session is not open; use RenderedFetcher as an async context manager")

        context = await self._session.new_context()
        try:
            page = await context.new_page()
            if self.config.block_resources:
                await page.route("**/*", self._route_handler)

            try:
                response = await page.goto(
                    url,
                    wait_until=self.config.wait_until,
                    timeout=self.config.timeout,
                )
            except PlaywrightTimeoutError as e:
                raise FetchError(
                    url, f"Navigation timeout after {self.config.timeout}ms", FetchErrorKind.TRANSIENT
                ) from e
            except PlaywrightError as e:
                if not self._session.is_connected:
                    raise ResourceExhausted(f"Browser disconnected while loading {url}") from e
                raise FetchError(url, str(e), FetchErrorKind.TRANSIENT) from e

            status_code = response.status if response else 0
            if status_code >= 400:
                raise FetchError(url, f"HTTP {status_code}", _kind_for_status(status_code), status_code=status_code)

            settled = True
            try:
                await self._wait_for_settle(page, url)
            except RenderSettleTimeout as e:
                logger.info(f"{e}; extracting partial content")
                settled = False

            try:
                html = await page.content()
                text = await page.evaluate("() => document.body ? document.body.innerText : ''")
            except PlaywrightError as e:
                if not self._session.is_connected:
                    raise ResourceExhausted(f"Browser disconnected while reading {url}") from e
                raise FetchError(url, f"Could not read rendered content: {e}", FetchErrorKind.TRANSIENT) from e

            return FetchedPage(
                url=page.url,
                requested_url=url,
                html=html,
                mode=FetchMode.RENDERED,
                status_code=status_code,
                text=text,
                settled=settled,
            )
        finally:
            await context.close()

    async def _wait_for_settle(self, page, url: str) -> None:
        """Wait for network idle.

        Raises:
            RenderSettleTimeout: If the page is still busy at the deadline
        """
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        if self.config.settle_timeout <= 0:
            return
        try:
            await page.wait_for_load_state("networkidle", timeout=self.config.settle_timeout)
        except PlaywrightTimeoutError as e:
            raise RenderSettleTimeout(url, self.config.settle_timeout / 1000) from e

    async def _route_handler(self, route) -> None:
        if route.request.resource_type in self.config.block_resources:
            await route.abort()
        else:
            await route.continue_()


def create_fetcher(config, session: Optional[BrowserSession] = None) -> Fetcher:
    """Build the fetcher for the run's fetch mode.

    Args:
        config: CrawlConfig
        session: Optional already-running browser session for rendered mode

    Returns:
        An unopened Fetcher; enter it with ``async with``
    """
    if config.use_rendered_fetch:
        logger.info("Using rendered fetch mode (headless browser)")
        return RenderedFetcher(BrowserConfig.from_crawl_config(config), session=session)

    logger.info("Using static fetch mode (httpx)")
    return StaticFetcher(
        timeout=config.request_timeout,
        user_agent=config.user_agent,
        proxy_url=config.proxy_url,
    )
