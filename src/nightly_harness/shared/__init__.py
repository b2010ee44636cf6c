"""Shared modules for nightly-harness.

This module provides functionality used across all harness components:
- Logging configuration
- Default path layout
"""

from .logging import configure_logging, get_logger
from .paths import CONFIG_FILE, HARNESS_DIR, get_log_file

__all__ = [
    # Paths
    "HARNESS_DIR",
    "CONFIG_FILE",
    "get_log_file",
    # Logging
    "configure_logging",
    "get_logger",
]
