"""Tests for byte formatting."""

import pytest

from xray_sidecar.core.utils import format_bytes


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0, "0 B"),
        (500, "500 B"),
        (1023, "1023 B"),
        (1024, "1.00 KB"),
        (2048, "2.00 KB"),
        (1536, "1.50 KB"),
        (5_242_880, "5.00 MB"),
        (3 * 1024**3, "3.00 GB"),
        (2048 * 1024**3, "2048.00 GB"),
    ],
)
def test_format_bytes(value, expected):
    assert format_bytes(value) == expected
