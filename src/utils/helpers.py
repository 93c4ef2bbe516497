"""
Helper Utilities Module.

This module provides common utility functions used throughout the
consistency engine. Functions here should be generic and reusable
across different modules.

Functions:
    - is_blank: Null-or-whitespace check for loosely typed fields
    - ensure_directory: Create directory if it doesn't exist
    - generate_timestamp: Generate formatted timestamps
    - to_plain: Convert engine values into JSON-friendly primitives
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union


def is_blank(value: Optional[Any]) -> bool:
    """
    Check whether a field value is absent or contains only whitespace.

    Args:
        value: Any field value.

    Returns:
        True for None, empty and whitespace-only strings.

    Example:
        >>> is_blank("  ")
        True
        >>> is_blank(0)
        False
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/reports")
        PosixPath('outputs/reports')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Args:
        format_str: strftime format string.

    Returns:
        Formatted timestamp string.

    Example:
        >>> generate_timestamp("%Y-%m-%d")
        "2026-01-21"
    """
    return datetime.now().strftime(format_str)


def to_plain(value: Any) -> Any:
    """
    Recursively convert engine values into JSON-serializable primitives.

    Decimals become strings (no float rounding), dates become ISO strings
    and enums their value.

    Args:
        value: Value to convert.

    Returns:
        JSON-friendly representation of the value.
    """
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(to_plain(k)): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_plain(v) for v in value]
    if hasattr(value, "to_dict"):
        return to_plain(value.to_dict())
    return value
