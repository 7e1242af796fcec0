"""URL-shape classification of fetched pages."""

from typing import Iterable
from urllib.parse import urlsplit

from newsletter_scout.constants import (
    DEFAULT_TARGET_DOMAINS,
    LISTING_PATH_MARKERS,
    PLATFORM_RESERVED_SUBDOMAINS,
    RECORD_PATH_MARKERS,
)
from newsletter_scout.exceptions import MalformedUrl
from newsletter_scout.models import PageClassification
from newsletter_scout.urls import normalize_url


def is_publisher_host(host: str, target_domains: Iterable[str] = DEFAULT_TARGET_DOMAINS) -> bool:
    """Check whether a host is a publication subdomain of the platform.

    ``writer.substack.com`` is a publisher host; ``substack.com`` and
    ``www.substack.com`` are not.
    """
    hostname = host.split(":")[0].lower()
    for domain in target_domains:
        domain = domain.lower()
        if not hostname.endswith("." + domain):
            continue
        label = hostname[: -len(domain) - 1].split(".")[-1]
        if label and label not in PLATFORM_RESERVED_SUBDOMAINS:
            return True
    return False


def _has_marker(path: str, markers) -> bool:
    lowered = path.lower()
    for marker in markers:
        if lowered == marker.rstrip("/") or lowered.startswith(marker):
            return True
    return False


def classify(url: str, target_domains: Iterable[str] = DEFAULT_TARGET_DOMAINS) -> PageClassification:
    """Classify a page as a listing page, a record page, or both.

    Args:
        url: Final URL of the fetched page
        target_domains: Platform domain family

    Returns:
        PageClassification. Malformed URLs classify as neither.
    """
    try:
        parts = urlsplit(normalize_url(url))
    except MalformedUrl:
        return PageClassification(is_listing=False, is_record=False)

    path = parts.path or "/"
    publisher = is_publisher_host(parts.netloc, target_domains)
    publication_page = _has_marker(path, RECORD_PATH_MARKERS)
    is_record = publisher or publication_page

    home_or_archive = path == "/" or path.lower().startswith("/archive")
    listing_path = _has_marker(path, LISTING_PATH_MARKERS)
    is_listing = (not is_record) or listing_path or (publisher and home_or_archive)

    return PageClassification(is_listing=is_listing, is_record=is_record)
