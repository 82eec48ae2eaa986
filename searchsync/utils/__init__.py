"""
Utility functions
"""

from searchsync.utils.logger import JsonFormatter, get_logger, logger, setup_logging
from searchsync.utils.time import format_es_date, parse_iso_date, parse_iso_datetime

__all__ = [
    # Logger
    "setup_logging",
    "get_logger",
    "logger",
    "JsonFormatter",
    # Time
    "format_es_date",
    "parse_iso_datetime",
    "parse_iso_date",
]
