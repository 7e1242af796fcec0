"""Discovery of candidate links on fetched pages."""

import logging
import re
from typing import Iterable, List, Optional, Pattern
from urllib.parse import urlsplit

from newsletter_scout.constants import (
    DEFAULT_LINK_PATTERNS,
    SKIPPED_EXTENSIONS,
    SKIPPED_HREF_PREFIXES,
    SKIPPED_PATH_SUFFIXES,
)
from newsletter_scout.dom import PageView
from newsletter_scout.exceptions import MalformedUrl
from newsletter_scout.urls import normalize_url

logger = logging.getLogger(__name__)


def glob_to_regex(pattern: str) -> Pattern[str]:
    """Compile a URL glob into a regex.

    ``**`` matches any run of characters, ``*`` any run without ``/`` and
    ``?`` a single character. Patterns starting with ``**/`` may match
    from the very start of the URL.
    """
    regex = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**/", i) and i == 0:
            regex.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            regex.append(".*")
            i += 2
            continue
        if char == "*":
            regex.append("[^/]*")
        elif char == "?":
            regex.append("[^/]")
        else:
            regex.append(re.escape(char))
        i += 1
    return re.compile("^" + "".join(regex) + "$")


class LinkDiscovery:
    """Finds outbound links worth crawling.

    A link qualifies when its canonical form matches one of the glob
    patterns: publisher subdomains, tag/topic listings, discovery pages
    and post/archive paths.
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self.patterns: List[str] = list(patterns if patterns is not None else DEFAULT_LINK_PATTERNS)
        self._compiled = [glob_to_regex(p) for p in self.patterns]

    def matches(self, url: str) -> bool:
        return any(regex.match(url) for regex in self._compiled)

    def discover(self, page: PageView) -> List[str]:
        """Return canonical candidate URLs in document order, without duplicates.

        Args:
            page: Fetched page; its URL is the base for relative hrefs

        Returns:
            List of canonical absolute URLs matching the link patterns
        """
        found: List[str] = []
        seen = set()

        for href in page.attrs("a[href], link[href]", "href"):
            href = href.strip()
            if not href or href.lower().startswith(SKIPPED_HREF_PREFIXES):
                continue

            try:
                url = normalize_url(href, page.url)
            except MalformedUrl as e:
                logger.debug(f"Skipping link on {page.url}: {e}")
                continue

            if url in seen or self._is_asset(url) or not self.matches(url):
                continue
            seen.add(url)
            found.append(url)

        return found

    @staticmethod
    def _is_asset(url: str) -> bool:
        path = urlsplit(url).path.lower()
        if path.endswith(SKIPPED_PATH_SUFFIXES):
            return True
        return any(path.endswith(ext) for ext in SKIPPED_EXTENSIONS)
