"""
Logging utilities for the calendar sync service.

Provides a consistent logging format and configuration.
"""

import logging
import sys

# Third-party loggers that echo request URLs (and with them, query strings)
# at INFO level.
_NOISY_LOGGERS = ("httpx", "googleapiclient.discovery", "googleapiclient.discovery_cache")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging"]
