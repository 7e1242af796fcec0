"""Root logger setup for crawl runs."""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Transports log every request at INFO
QUIET_LOGGERS = ('httpx', 'httpcore', 'urllib3', 'asyncio', 'playwright')


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Route crawler logs to stdout and, optionally, a file.

    Replaces any handlers already on the root logger. Unknown level names
    fall back to INFO.

    Args:
        level: Level name such as "DEBUG" or "warning"
        log_file: File that also receives every record; parent directories
            are created
        format_string: Format for both handlers (DEFAULT_LOG_FORMAT if omitted)
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_string or DEFAULT_LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
