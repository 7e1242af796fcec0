"""Command-line entry point for the newsletter crawler."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from newsletter_scout.config import load_config, settings
from newsletter_scout.engine import crawl
from newsletter_scout.exceptions import ConfigurationError, ResourceExhausted
from newsletter_scout.logging_config import setup_logging
from newsletter_scout.sink import JsonLinesSink

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newsletter-scout",
        description=(
            "Crawl newsletter directories and publications and write one JSON "
            "record per newsletter. Output path and logging are configured "
            "through OUTPUT_PATH, LOG_LEVEL and LOG_FILE."
        ),
    )
    parser.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Path to the JSON crawl input (default: $CRAWL_INPUT, else built-in defaults)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run a crawl.

    Returns:
        Process exit code: 0 on completion, 1 on configuration error or
        when the fetch collaborator is exhausted
    """
    args = build_parser().parse_args(argv)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    try:
        config = load_config(args.input)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    sink = JsonLinesSink(settings.OUTPUT_PATH)
    try:
        stats = asyncio.run(crawl(config, sink))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except ResourceExhausted as e:
        logger.error(f"Crawl aborted: {e}")
        return 1
    finally:
        sink.close()

    logger.info(f"Crawl stats: {json.dumps(stats.to_dict())}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
