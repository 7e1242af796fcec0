"""Exception types raised by the newsletter crawler."""

from enum import Enum
from typing import Optional


class NewsletterScoutError(Exception):
    """Base class for all crawler errors."""


class MalformedUrl(NewsletterScoutError):
    """Raised when an href cannot be turned into a crawlable absolute URL."""

    def __init__(self, href: str, reason: str = "unparseable"):
        self.href = href
        self.reason = reason
        super().__init__(f"Malformed URL {href!r}: {reason}")


class FetchErrorKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class FetchError(NewsletterScoutError):
    """Raised when a page could not be retrieved.

    Transient errors (timeouts, connection resets, 429/5xx) and permanent
    errors (4xx, unsupported content) are both terminal for the request;
    the kind is kept for logging and stats.
    """

    def __init__(
        self,
        url: str,
        message: str,
        kind: FetchErrorKind = FetchErrorKind.PERMANENT,
        status_code: Optional[int] = None,
    ):
        self.url = url
        self.message = message
        self.kind = kind
        self.status_code = status_code
        super().__init__(f"{kind.value} fetch error for {url}: {message}")

    @property
    def is_transient(self) -> bool:
        return self.kind == FetchErrorKind.TRANSIENT


class RenderSettleTimeout(NewsletterScoutError):
    """Raised when a rendered page does not reach network idle in time."""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Page {url} did not settle within {timeout:.1f}s")


class ConfigurationError(NewsletterScoutError):
    """Raised when the crawl input cannot produce a runnable crawl."""


class ResourceExhausted(NewsletterScoutError):
    """Raised when the egress or rendering collaborator can no longer serve requests."""
