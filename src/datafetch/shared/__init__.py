"""Shared utilities package."""

from datafetch.shared.logging import setup_logger, get_logger, LoggerAdapter
from datafetch.shared.retry import RetryStrategy
from datafetch.shared.shell import run_cmd
from datafetch.shared.files import dir_size, filename_from_url, format_bytes

__all__ = [
    "setup_logger",
    "get_logger",
    "LoggerAdapter",
    "RetryStrategy",
    "run_cmd",
    "dir_size",
    "filename_from_url",
    "format_bytes",
]
