"""Utility functions and helpers."""

from xray_sidecar.core.utils.utils import format_bytes

__all__ = ["format_bytes"]
