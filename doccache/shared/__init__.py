"""Shared helpers: logging setup and small utilities."""

from doccache.shared.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
