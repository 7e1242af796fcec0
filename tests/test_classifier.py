"""Tests for URL-shape page classification."""

import pytest

from newsletter_scout.classifier import classify, is_publisher_host


class TestIsPublisherHost:
    """Test cases for is_publisher_host."""

    def test_publication_subdomain(self):
        assert is_publisher_host("writer.substack.com")

    def test_platform_root_is_not_publisher(self):
        assert not is_publisher_host("substack.com")

    @pytest.mark.parametrize("host", ["www.substack.com", "cdn.substack.com", "api.substack.com"])
    def test_reserved_subdomains(self, host):
        """Test platform infrastructure hosts are not publications."""
        assert not is_publisher_host(host)

    def test_foreign_host(self):
        assert not is_publisher_host("blog.example.com")


class TestClassify:
    """Test cases for classify."""

    def test_publication_home_is_listing_and_record(self):
        """Test a publication root both lists posts and describes the newsletter."""
        result = classify("https://writer.substack.com/")
        assert result.is_record is True
        assert result.is_listing is True

    def test_publication_archive_is_listing_and_record(self):
        result = classify("https://writer.substack.com/archive")
        assert result.is_record is True
        assert result.is_listing is True

    def test_post_page_is_record_only(self):
        """Test a single post is a record page but not a listing."""
        result = classify("https://writer.substack.com/p/hello-world")
        assert result.is_record is True
        assert result.is_listing is False

    def test_discovery_page_is_listing_only(self):
        result = classify("https://substack.com/discover")
        assert result.is_listing is True
        assert result.is_record is False

    def test_tag_page_is_listing_only(self):
        result = classify("https://substack.com/tag/politics")
        assert result.is_listing is True
        assert result.is_record is False

    def test_reserved_host_is_listing_only(self):
        result = classify("https://www.substack.com/")
        assert result.is_listing is True
        assert result.is_record is False

    def test_custom_domain_archive_is_record(self):
        """Test post and archive paths mark records on any host."""
        assert classify("https://blog.example.com/archive").is_record is True
        assert classify("https://blog.example.com/p/one").is_record is True

    def test_other_page_is_listing(self):
        """Test unrecognized pages are treated as listings."""
        result = classify("https://blog.example.com/about")
        assert result.is_listing is True
        assert result.is_record is False

    def test_malformed_url_is_neither(self):
        result = classify("not a url")
        assert result.is_listing is False
        assert result.is_record is False

    def test_custom_target_domains(self):
        """Test publisher detection follows the configured domain family."""
        result = classify("https://news.example.org/", target_domains=["example.org"])
        assert result.is_record is True
