"""
Read-only DOM query interface used by link discovery and extraction.

Extraction logic is written once against PageView. Each fetch mode
supplies its own backend:

- SoupPageView parses static HTML with BeautifulSoup
- RenderedPageView parses the browser's DOM snapshot and reports the
  text the browser actually rendered
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from bs4 import BeautifulSoup

from newsletter_scout.models import FetchedPage, FetchMode


class PageView(ABC):
    """Capability interface over a fetched page.

    Selector arguments are CSS selector groups (comma separated). Text
    results are whitespace-stripped; empty strings count as no match.
    """

    def __init__(self, url: str):
        self.url = url

    @abstractmethod
    def texts(self, selectors: str) -> List[str]:
        """Stripped text of every matching element, in document order."""

    @abstractmethod
    def attrs(self, selectors: str, name: str) -> List[str]:
        """Values of attribute ``name`` on every matching element that has it."""

    @abstractmethod
    def full_text(self) -> str:
        """All visible text of the page."""

    def text(self, selectors: str) -> Optional[str]:
        """Text of the first matching element, or None."""
        for value in self.texts(selectors):
            if value:
                return value
        return None

    def first_text(self, selectors: str) -> Optional[str]:
        """Text of the first matching element even if it is empty."""
        values = self.texts(selectors)
        return values[0] if values else None

    def attr(self, selectors: str, name: str) -> Optional[str]:
        """Attribute of the first matching element carrying it, or None."""
        values = self.attrs(selectors, name)
        return values[0] if values else None


class SoupPageView(PageView):
    """PageView backed by a BeautifulSoup parse of static HTML."""

    def __init__(self, url: str, html: str):
        super().__init__(url)
        self.soup = BeautifulSoup(html or "", "html.parser")

    def texts(self, selectors: str) -> List[str]:
        # Inline tags must not split words, so whitespace is collapsed after joining
        return [" ".join(el.get_text().split()) for el in self.soup.select(selectors)]

    def attrs(self, selectors: str, name: str) -> List[str]:
        values = []
        for el in self.soup.select(selectors):
            value = el.get(name)
            if value is None:
                continue
            # Multi-valued attributes such as rel come back as lists
            if isinstance(value, list):
                value = " ".join(value)
            values.append(value)
        return values

    def full_text(self) -> str:
        body = self.soup.body or self.soup
        return " ".join(body.get_text().split())


class RenderedPageView(SoupPageView):
    """PageView over a rendered DOM snapshot.

    Element queries run on the snapshot HTML; ``full_text`` prefers the
    body text reported by the browser, which includes content produced
    by scripts after the snapshot markup was serialized.
    """

    def __init__(self, url: str, html: str, rendered_text: Optional[str] = None):
        super().__init__(url, html)
        self.rendered_text = rendered_text

    def full_text(self) -> str:
        if self.rendered_text:
            return self.rendered_text
        return super().full_text()


def page_view_for(page: FetchedPage) -> PageView:
    """Build the PageView backend matching the page's fetch mode."""
    if page.mode is FetchMode.RENDERED:
        return RenderedPageView(page.url, page.html, page.text)
    return SoupPageView(page.url, page.html)
