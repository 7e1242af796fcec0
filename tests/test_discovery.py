"""Tests for link discovery."""

import pytest

from newsletter_scout.discovery import LinkDiscovery, glob_to_regex
from newsletter_scout.dom import SoupPageView

DISCOVER_HTML = """
<html>
    <head>
        <link rel="stylesheet" href="https://substack.com/static/main.css">
    </head>
    <body>
        <a href="https://writer.substack.com/">Writer</a>
        <a href="/discover/category/tech">Tech</a>
        <a href="/tag/politics">Politics</a>
        <a href="https://twitter.com/someone">Twitter</a>
        <a href="mailto:hi@example.com">Mail</a>
        <a href="#top">Top</a>
        <a href="javascript:void(0)">Menu</a>
        <a href="https://writer.substack.com/#comments">Writer again</a>
        <a href="https://cdn.substack.com/image.png">Image</a>
        <a href="https://writer.substack.com/feed">RSS</a>
        <a href="/about">About</a>
        <a href="http://[::1">Broken</a>
        <a href="https://other.substack.com/p/a-post">Post</a>
    </body>
</html>
"""


class TestGlobToRegex:
    """Test cases for glob compilation."""

    def test_single_star_stops_at_slash(self):
        regex = glob_to_regex("**/s/*")
        assert regex.match("https://substack.com/s/tech")
        assert not regex.match("https://substack.com/s/tech/more")

    def test_double_star_crosses_slashes(self):
        regex = glob_to_regex("**/tag/**")
        assert regex.match("https://substack.com/tag/a/b")

    def test_subdomain_pattern(self):
        regex = glob_to_regex("**/*.substack.com/**")
        assert regex.match("https://writer.substack.com/")
        assert regex.match("https://writer.substack.com/p/post")
        assert not regex.match("https://substack.com/about")

    def test_question_mark(self):
        regex = glob_to_regex("https://example.com/?")
        assert regex.match("https://example.com/a")
        assert not regex.match("https://example.com/ab")


class TestLinkDiscovery:
    """Test cases for LinkDiscovery."""

    @pytest.fixture
    def page(self):
        return SoupPageView("https://substack.com/discover", DISCOVER_HTML)

    def test_discovers_matching_links_in_order(self, page):
        """Test only pattern-matching links are returned, in document order."""
        links = LinkDiscovery().discover(page)

        assert links == [
            "https://writer.substack.com/",
            "https://substack.com/discover/category/tech",
            "https://substack.com/tag/politics",
            "https://other.substack.com/p/a-post",
        ]

    def test_feed_and_asset_links_skipped(self, page):
        links = LinkDiscovery().discover(page)
        assert "https://writer.substack.com/feed" not in links
        assert "https://cdn.substack.com/image.png" not in links

    def test_custom_patterns(self, page):
        """Test configured patterns replace the defaults."""
        links = LinkDiscovery(patterns=["**/about"]).discover(page)
        assert links == ["https://substack.com/about"]

    def test_empty_page(self):
        page = SoupPageView("https://substack.com/discover", "")
        assert LinkDiscovery().discover(page) == []

    def test_matches(self):
        discovery = LinkDiscovery()
        assert discovery.matches("https://blog.example.com/archive")
        assert discovery.matches("https://blog.example.com/posts/2024/hello")
        assert not discovery.matches("https://blog.example.com/about")
