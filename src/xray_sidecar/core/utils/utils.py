"""Common utility functions."""

from typing import Final

# Size constants
BYTES_PER_KB: Final = 1024
BYTES_PER_MB: Final = BYTES_PER_KB * 1024
BYTES_PER_GB: Final = BYTES_PER_MB * 1024

# Size units above plain bytes, smallest first
SIZE_UNITS: Final = [
    ("KB", BYTES_PER_KB),
    ("MB", BYTES_PER_MB),
]


def format_bytes(bytes_: int) -> str:
    """Format a byte count into a human readable string.

    Plain bytes are shown as an integer, larger values with two decimals
    in 1024-based units up to GB.

    Args:
        bytes_: Number of bytes to format

    Returns:
        str: Formatted string with appropriate unit, e.g. ``"2.00 KB"``
    """
    if bytes_ < BYTES_PER_KB:
        return f"{bytes_} B"
    for unit, divisor in SIZE_UNITS:
        if bytes_ < divisor * BYTES_PER_KB:
            return f"{bytes_ / divisor:.2f} {unit}"
    return f"{bytes_ / BYTES_PER_GB:.2f} GB"
