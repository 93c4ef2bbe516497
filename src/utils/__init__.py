"""
Utility Module for the Invoice Consistency Engine.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Common helpers
"""

from .logger import setup_logger, get_logger
from .helpers import is_blank, ensure_directory, generate_timestamp, to_plain

__all__ = [
    'setup_logger',
    'get_logger',
    'is_blank',
    'ensure_directory',
    'generate_timestamp',
    'to_plain'
]
