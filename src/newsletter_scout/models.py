"""Data models for the newsletter crawler."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple


class EntryState(str, Enum):
    """Lifecycle of a frontier entry."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


class FetchMode(str, Enum):
    STATIC = "static"
    RENDERED = "rendered"


class RejectReason(str, Enum):
    """Why the frontier refused an offered URL."""

    MALFORMED = "malformed"
    OUT_OF_SCOPE = "out_of_scope"
    DUPLICATE = "duplicate"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class CrawlRequest:
    """A URL scheduled for crawling, tagged with the host of its seed."""

    url: str
    seed_host: str
    discovered_from: Optional[str] = None


@dataclass
class FrontierEntry:
    """A known URL and its processing state."""

    request: CrawlRequest
    state: EntryState = EntryState.PENDING

    @property
    def url(self) -> str:
        return self.request.url


@dataclass(frozen=True)
class OfferResult:
    """Outcome of offering a URL to the frontier."""

    accepted: bool
    url: str
    reason: Optional[RejectReason] = None

    @classmethod
    def accept(cls, url: str) -> "OfferResult":
        return cls(accepted=True, url=url)

    @classmethod
    def reject(cls, url: str, reason: RejectReason) -> "OfferResult":
        return cls(accepted=False, url=url, reason=reason)


@dataclass
class FetchedPage:
    """Content retrieved for one request.

    Owned by the worker processing the request and dropped once
    extraction completes.
    """

    url: str
    requested_url: str
    html: str
    mode: FetchMode = FetchMode.STATIC
    status_code: int = 200
    text: Optional[str] = None  # Rendered body text (rendered mode only)
    settled: bool = True

    @property
    def was_redirected(self) -> bool:
        return self.url != self.requested_url


@dataclass(frozen=True)
class PageClassification:
    """URL-shape classification of a fetched page. Both flags may be set."""

    is_listing: bool
    is_record: bool


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExtractedRecord:
    """Newsletter metadata extracted from a record page.

    Every string field is present and defaults to an empty string when
    no extraction strategy produced a value.
    """

    source_url: str
    title: str = ""
    author: str = ""
    description: str = ""
    topics: Tuple[str, ...] = ()
    feed_url: str = ""
    latest_post: str = ""
    subscriber_count_text: str = ""
    extracted_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """Serialize using the dataset's output keys."""
        return {
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "topics": list(self.topics),
            "rss": self.feed_url,
            "latest_post": self.latest_post,
            "subscribers": self.subscriber_count_text,
            "substack_url": self.source_url,
            "extracted_at": self.extracted_at.isoformat(),
        }


@dataclass
class CrawlStats:
    """Counters collected over one crawl run."""

    offered: int = 0
    accepted: int = 0
    rejected: Dict[str, int] = field(default_factory=dict)
    done: int = 0
    failed: int = 0
    records_emitted: int = 0
    deadline_exceeded: bool = False
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    def record_offer(self, result: OfferResult) -> None:
        self.offered += 1
        if result.accepted:
            self.accepted += 1
        else:
            key = result.reason.value
            self.rejected[key] = self.rejected.get(key, 0) + 1

    def to_dict(self) -> dict:
        return {
            "offered": self.offered,
            "accepted": self.accepted,
            "rejected": dict(self.rejected),
            "done": self.done,
            "failed": self.failed,
            "records_emitted": self.records_emitted,
            "deadline_exceeded": self.deadline_exceeded,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
