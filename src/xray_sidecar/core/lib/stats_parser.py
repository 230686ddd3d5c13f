"""Normalization of stats service responses into connection counters.

The stats service reports a flat list of named counters whose naming is not
stable, and it sometimes answers in plain text instead of JSON. Parsing
therefore works in two tiers:

1. Structured tier: decode ``{"stat": [{"name": ..., "value": ...}]}`` and
   classify every entry by case-insensitive substring match on its name.
2. Fallback tier: if the structured decode fails, split the text on
   whitespace and read the number following any keyword token.

``parse_stats`` never raises. A response that makes no sense degrades to
all-zero counters so that stats delivery is never fatal to the caller.

Example:
    info = parse_stats(b'{"stat": [{"name": "user>>>connection", "value": 3}]}')
    assert info.active_connections == 3
"""

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Final

from loguru import logger

from xray_sidecar.core.exceptions import DecodeFailedError

# Ordered classification rules for structured entries: (substrings, counter).
# Rules are checked independently, so one name may feed several counters.
# "up"/"down" are deliberately broad and also match e.g. "backup" or "shutdown".
STAT_RULES: Final = [
    (("connection",), "active_connections"),
    (("uplink", "up"), "upload_bytes"),
    (("downlink", "down"), "download_bytes"),
]

# Keyword rules for the plain-text fallback
TEXT_RULES: Final = [
    ("conn", "active_connections"),
    ("up", "upload_bytes"),
    ("down", "download_bytes"),
]

_LEADING_INT = re.compile(r"-?\d+")

# Counters are signed 64-bit on the wire
INT64_MIN: Final = -(2**63)
INT64_MAX: Final = 2**63 - 1


@dataclass(frozen=True)
class ConnectionInfo:
    """Snapshot of connection and traffic counters.

    ``total_bytes`` is always the sum of upload and download and cannot be
    passed in.
    """

    active_connections: int = 0
    upload_bytes: int = 0
    download_bytes: int = 0
    total_bytes: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_bytes", self.upload_bytes + self.download_bytes)

    def as_dict(self) -> dict[str, int]:
        """Return the counters as a JSON-ready dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class RawStatEntry:
    """One counter as reported by the stats service."""

    name: str
    value: int


def _is_int64(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and INT64_MIN <= value <= INT64_MAX


def _field(obj: dict[str, Any], key: str) -> Any:
    """Look up ``key`` ignoring case; the last matching key in the object wins."""
    found = None
    for name, value in obj.items():
        if name.lower() == key:
            found = value
    return found


def decode_entries(data: bytes) -> list[RawStatEntry]:
    """Decode a structured stats response.

    A missing or null ``stat`` field means no entries. Missing names and
    values default to ``""`` and ``0``. Field names match case-insensitively
    and values must fit in a signed 64-bit integer.

    Args:
        data: Raw response bytes

    Returns:
        list[RawStatEntry]: Decoded entries in response order

    Raises:
        DecodeFailedError: If the bytes are not a structured stats response
    """
    try:
        # Invalid UTF-8 becomes U+FFFD instead of failing the whole response
        document = json.loads(data.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise DecodeFailedError(f"Response is not JSON: {e}") from e

    if document is None:
        return []
    if not isinstance(document, dict):
        raise DecodeFailedError(f"Expected a JSON object, got {type(document).__name__}")

    stats = _field(document, "stat")
    if stats is None:
        return []
    if not isinstance(stats, list):
        raise DecodeFailedError("Field 'stat' is not a list")

    entries = []
    for item in stats:
        if item is None:
            item = {}
        if not isinstance(item, dict):
            raise DecodeFailedError(f"Stat entry is not an object: {item!r}")
        name = _field(item, "name")
        value = _field(item, "value")
        name = "" if name is None else name
        value = 0 if value is None else value
        if not isinstance(name, str) or not _is_int64(value):
            raise DecodeFailedError(f"Malformed stat entry: {item!r}")
        entries.append(RawStatEntry(name=name, value=value))
    return entries


def classify_entries(entries: list[RawStatEntry]) -> ConnectionInfo:
    """Accumulate entries into counters using ``STAT_RULES``."""
    totals = dict.fromkeys(("active_connections", "upload_bytes", "download_bytes"), 0)
    for entry in entries:
        name = entry.name.lower()
        for substrings, counter in STAT_RULES:
            if any(sub in name for sub in substrings):
                totals[counter] += entry.value
    return ConnectionInfo(**totals)


def parse_int(token: str) -> int | None:
    """Extract an integer from a token, ignoring everything but digits and ``-``.

    Returns:
        int | None: The number, or None when the token holds no digits
    """
    kept = "".join(ch for ch in token if ch.isascii() and (ch.isdigit() or ch == "-"))
    match = _LEADING_INT.match(kept)
    if match is None:
        return None
    value = int(match.group())
    return value if INT64_MIN <= value <= INT64_MAX else None


def parse_text(data: bytes) -> ConnectionInfo:
    """Best-effort extraction of counters from a plain-text response."""
    totals = dict.fromkeys(("active_connections", "upload_bytes", "download_bytes"), 0)
    tokens = data.decode("utf-8", errors="replace").split()
    for i, token in enumerate(tokens[:-1]):
        lowered = token.lower()
        for keyword, counter in TEXT_RULES:
            if keyword in lowered:
                value = parse_int(tokens[i + 1])
                if value is not None:
                    totals[counter] += value
    return ConnectionInfo(**totals)


def parse_stats(data: bytes) -> ConnectionInfo:
    """Convert a raw stats response into a ``ConnectionInfo``.

    Args:
        data: Raw response bytes from the stats service

    Returns:
        ConnectionInfo: Parsed counters, all zero if nothing could be read
    """
    try:
        return classify_entries(decode_entries(data))
    except DecodeFailedError as e:
        logger.debug(f"Structured decode failed, falling back to text parsing: {e}")
    return parse_text(data)
