"""Utility modules for XtreamTV"""

from .logging_setup import (
    get_logger,
    log_exception,
    setup_logging,
    setup_logging_from_config,
)

__all__ = [
    "get_logger",
    "log_exception",
    "setup_logging",
    "setup_logging_from_config",
]
