"""Scope policy for discovered links."""

import logging
from enum import Enum
from typing import Iterable, Tuple

from newsletter_scout.constants import DEFAULT_TARGET_DOMAINS
from newsletter_scout.exceptions import MalformedUrl
from newsletter_scout.urls import host_in_domains, url_host

logger = logging.getLogger(__name__)


class ScopeDecision(str, Enum):
    ALLOW = "allow"
    REJECT = "reject"


class ScopeFilter:
    """Decides whether a discovered URL may enter the frontier.

    With ``follow_internal_only`` a candidate is allowed when its host is
    the host of the seed that led to it, or belongs to one of the target
    domains (the publishing platform and its publisher subdomains).
    Without it every well-formed URL is allowed. Malformed URLs are
    always rejected.
    """

    def __init__(
        self,
        target_domains: Iterable[str] = DEFAULT_TARGET_DOMAINS,
        follow_internal_only: bool = True,
    ):
        self.target_domains: Tuple[str, ...] = tuple(d.lower() for d in target_domains)
        self.follow_internal_only = follow_internal_only

    def check(self, url: str, seed_host: str) -> ScopeDecision:
        """Check a candidate URL against the scope policy.

        Args:
            url: Candidate URL (absolute)
            seed_host: Host of the seed the discovering request came from

        Returns:
            ScopeDecision.ALLOW or ScopeDecision.REJECT
        """
        try:
            host = url_host(url)
        except MalformedUrl:
            return ScopeDecision.REJECT
        return self.check_host(host, seed_host)

    def check_host(self, host: str, seed_host: str) -> ScopeDecision:
        """Apply the policy to an already canonical host."""
        if not self.follow_internal_only:
            return ScopeDecision.ALLOW

        if seed_host and host == seed_host.lower():
            return ScopeDecision.ALLOW
        if host_in_domains(host, self.target_domains):
            return ScopeDecision.ALLOW

        logger.debug(f"Host {host} out of scope for seed {seed_host}")
        return ScopeDecision.REJECT

    def allows(self, url: str, seed_host: str) -> bool:
        return self.check(url, seed_host) is ScopeDecision.ALLOW
