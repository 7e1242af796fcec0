"""Frontier of known URLs and the bounded work queue."""

import logging
import threading
from collections import deque
from typing import Deque, Dict, List, Optional
from urllib.parse import urlsplit

from newsletter_scout.exceptions import MalformedUrl
from newsletter_scout.models import (
    CrawlRequest,
    EntryState,
    FrontierEntry,
    OfferResult,
    RejectReason,
)
from newsletter_scout.scope import ScopeDecision, ScopeFilter
from newsletter_scout.urls import normalize_url

logger = logging.getLogger(__name__)


class Frontier:
    """Known URLs, their processing state and the request budget.

    Every accepted URL is kept for the lifetime of the run, so a canonical
    URL is accepted at most once. The number of accepted URLs never
    exceeds ``max_requests``. Entries are dispatched first-in first-out.

    All public methods take the same lock, so a single instance can be
    shared by concurrent workers.
    """

    def __init__(self, scope: ScopeFilter, max_requests: int):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")

        self.scope = scope
        self.max_requests = max_requests

        self._lock = threading.Lock()
        self._entries: Dict[str, FrontierEntry] = {}
        self._redirect_aliases: set = set()
        self._pending: Deque[str] = deque()
        self._in_flight = 0
        self._accepted = 0

    def offer(
        self,
        url: str,
        seed_host: str,
        discovered_from: Optional[str] = None,
    ) -> OfferResult:
        """Offer a discovered URL for crawling.

        Args:
            url: Absolute or relative URL
            seed_host: Host of the seed the discovering request came from
            discovered_from: URL of the page the link was found on; relative
                URLs are resolved against it

        Returns:
            OfferResult; rejected offers carry the RejectReason
        """
        try:
            canonical = normalize_url(url, discovered_from)
        except MalformedUrl as e:
            logger.debug(f"Dropping malformed URL: {e}")
            return OfferResult.reject(url, RejectReason.MALFORMED)

        host = urlsplit(canonical).netloc
        if self.scope.check_host(host, seed_host) is ScopeDecision.REJECT:
            return OfferResult.reject(canonical, RejectReason.OUT_OF_SCOPE)

        with self._lock:
            if canonical in self._entries or canonical in self._redirect_aliases:
                return OfferResult.reject(canonical, RejectReason.DUPLICATE)

            if self._accepted >= self.max_requests:
                return OfferResult.reject(canonical, RejectReason.BUDGET_EXHAUSTED)

            request = CrawlRequest(
                url=canonical,
                seed_host=seed_host,
                discovered_from=discovered_from,
            )
            self._entries[canonical] = FrontierEntry(request=request)
            self._pending.append(canonical)
            self._accepted += 1

            if self._accepted == self.max_requests:
                logger.info(f"Request budget of {self.max_requests} reached; frontier stops growing")

        return OfferResult.accept(canonical)

    def next(self) -> Optional[FrontierEntry]:
        """Dispatch the oldest pending entry.

        Returns:
            The entry, now IN_FLIGHT, or None when nothing is pending.
            Check ``is_drained`` to tell an idle frontier from a finished one.
        """
        with self._lock:
            if not self._pending:
                return None
            url = self._pending.popleft()
            entry = self._entries[url]
            entry.state = EntryState.IN_FLIGHT
            self._in_flight += 1
            return entry

    def complete(self, url: str, succeeded: bool) -> bool:
        """Move an in-flight entry to DONE or FAILED.

        Returns:
            False if the entry was no longer in flight (already abandoned)

        Raises:
            KeyError: If the URL is not in the frontier
        """
        with self._lock:
            entry = self._entries[url]
            if entry.state is not EntryState.IN_FLIGHT:
                logger.debug(f"Ignoring completion of {url}: entry is {entry.state.value}")
                return False
            entry.state = EntryState.DONE if succeeded else EntryState.FAILED
            self._in_flight -= 1
            return True

    def mark_seen(self, url: str) -> bool:
        """Record a redirect target as known without spending budget.

        Returns:
            True if the URL was not known before
        """
        try:
            canonical = normalize_url(url)
        except MalformedUrl:
            return False

        with self._lock:
            if canonical in self._entries or canonical in self._redirect_aliases:
                return False
            self._redirect_aliases.add(canonical)
            return True

    def abandon_in_flight(self) -> List[str]:
        """Fail every in-flight entry. Used when the run deadline passes."""
        with self._lock:
            abandoned = [
                url for url, entry in self._entries.items()
                if entry.state is EntryState.IN_FLIGHT
            ]
            for url in abandoned:
                self._entries[url].state = EntryState.FAILED
            self._in_flight = 0
            return abandoned

    def state_of(self, url: str) -> Optional[EntryState]:
        try:
            canonical = normalize_url(url)
        except MalformedUrl:
            return None
        with self._lock:
            entry = self._entries.get(canonical)
            return entry.state if entry else None

    @property
    def is_drained(self) -> bool:
        """True when no entry is pending or in flight."""
        with self._lock:
            return not self._pending and self._in_flight == 0

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def accepted_count(self) -> int:
        with self._lock:
            return self._accepted

    @property
    def known_count(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def remaining_budget(self) -> int:
        with self._lock:
            return self.max_requests - self._accepted

    def get_state(self) -> dict:
        """Snapshot of entry states, for logging and debugging."""
        with self._lock:
            counts = {state.value: 0 for state in EntryState}
            for entry in self._entries.values():
                counts[entry.state.value] += 1
            return {
                "max_requests": self.max_requests,
                "accepted": self._accepted,
                "redirect_aliases": len(self._redirect_aliases),
                "states": counts,
            }
