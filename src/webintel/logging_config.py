"""Logging configuration for webintel.

Every module logs through ``logging.getLogger(__name__)``, so levels can be
set per package:

- ``webintel.crawler``: pages visited and skipped, sitemap locations tried
  (DEBUG), crawl and discovery summaries (INFO), failed fetches (WARNING)
- ``webintel.strategy``: detected site type and bucket sizes (INFO)
- ``webintel.session``: sync writes and deltas (DEBUG), fallback writes (WARNING)
- ``webintel.infrastructure``: slow operations and abandoned timers (INFO)
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional

# Browser and HTTP stacks log every request at DEBUG
QUIET_LOGGERS = ('playwright', 'httpx', 'httpcore', 'asyncio')


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    module_levels: Optional[Dict[str, str]] = None,
) -> None:
    """Configure the root logger for webintel.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        format_string: Optional custom format string
        module_levels: Per-logger overrides, e.g. {'webintel.session': 'DEBUG'}
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=numeric_level,
        format=format_string,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    for name, module_level in (module_levels or {}).items():
        logging.getLogger(name).setLevel(getattr(logging, module_level.upper(), numeric_level))
