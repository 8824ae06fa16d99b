"""
Helper Utilities Module.

Generic helpers shared across the invoice emissions system.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - round_or_none: Round a value while preserving absence
"""

import math
from pathlib import Path
from typing import Optional, Union


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


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the lowercase file extension, including the dot.

    Example:
        >>> get_file_extension("invoice.TXT")
        '.txt'
    """
    return Path(filepath).suffix.lower()


def round_or_none(value: Optional[float], digits: int = 2) -> Optional[float]:
    """
    Round a number, passing absent or non-finite values through as None.

    Example:
        >>> round_or_none(12.345, 1)
        12.3
        >>> round_or_none(None) is None
        True
    """
    if value is None or not math.isfinite(value):
        return None
    return round(value, digits)
