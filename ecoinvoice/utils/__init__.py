"""
Utility Module for the Invoice Emissions System.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Common helpers
"""

from .logger import setup_logger, get_logger
from .helpers import ensure_directory, get_file_extension, round_or_none

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'get_file_extension',
    'round_or_none'
]
