"""Tests for the command-line entry point."""

import json

import pytest

from newsletter_scout import cli
from newsletter_scout.config import settings
from newsletter_scout.exceptions import ResourceExhausted
from newsletter_scout.models import CrawlStats, ExtractedRecord
from newsletter_scout.sink import read_records


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Point output at a temp file and keep logging configuration untouched."""
    output = tmp_path / "records.jsonl"
    monkeypatch.setattr(settings, "OUTPUT_PATH", str(output))
    monkeypatch.setattr(settings, "CRAWL_INPUT", None)
    monkeypatch.setattr(settings, "PROXY_URL", None)
    monkeypatch.setattr(settings, "USER_AGENT", None)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    return output


def write_input(tmp_path, data) -> str:
    path = tmp_path / "input.json"
    path.write_text(json.dumps(data))
    return str(path)


class TestMain:
    """Test cases for cli.main."""

    def test_successful_run(self, cli_env, monkeypatch, tmp_path):
        """Test a completed crawl exits 0 and records reach the output file."""
        seen = {}

        async def fake_crawl(config, sink):
            seen["config"] = config
            sink.append(ExtractedRecord(source_url="https://writer.substack.com/", title="W"))
            return CrawlStats(records_emitted=1)

        monkeypatch.setattr(cli, "crawl", fake_crawl)
        path = write_input(tmp_path, {"seedUrls": ["https://writer.substack.com"], "maxRequests": 2})

        assert cli.main([path]) == 0
        assert seen["config"].max_requests == 2
        assert [r["title"] for r in read_records(str(cli_env))] == ["W"]

    def test_missing_input_file(self, cli_env, tmp_path):
        assert cli.main([str(tmp_path / "missing.json")]) == 1

    def test_no_usable_seeds(self, cli_env, tmp_path):
        """Test bad seeds are reported before any fetching starts."""
        path = write_input(tmp_path, {"seedUrls": ["not a url"]})
        assert cli.main([path]) == 1

    def test_resource_exhausted(self, cli_env, monkeypatch, tmp_path):
        async def fake_crawl(config, sink):
            raise ResourceExhausted("browser crashed")

        monkeypatch.setattr(cli, "crawl", fake_crawl)
        path = write_input(tmp_path, {"seedUrls": ["https://writer.substack.com"]})

        assert cli.main([path]) == 1

    def test_parser_input_optional(self):
        args = cli.build_parser().parse_args([])
        assert args.input is None
