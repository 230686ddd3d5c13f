"""Custom exceptions for the sidecar.

This module defines the exceptions used throughout the sidecar. They cover:
- Stats service connection failures and timeouts
- Telegram delivery failures
- Stats response decode failures (recovered inside the parser)
- Boot-time template and child-process problems

Stats and delivery errors are never fatal to the process: the reporter and
the webhook log them, the status endpoint turns them into a 500.

Example:
    try:
        raw = client.fetch_raw_stats()
    except StatsError as e:
        logger.warning(f"Stats unavailable: {e}")
"""


class SidecarError(Exception):
    """Base exception for sidecar errors."""


class StatsError(SidecarError):
    """Raised when the stats service cannot be queried."""


class ConnectionFailedError(StatsError):
    """Raised when connecting to or talking with the stats service fails."""


class StatsTimeoutError(StatsError):
    """Raised when a stats query does not complete before its deadline."""


class DecodeFailedError(SidecarError):
    """Raised when a stats response is not in the structured format."""


class DeliveryFailedError(SidecarError):
    """Raised when a notification could not be delivered.

    Attributes:
        status_code: HTTP status of the API response, ``None`` on transport errors
        body: Response body returned by the API, for diagnostics
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TemplateError(SidecarError):
    """Raised when the config template cannot be read or the output written."""


class SupervisorError(SidecarError):
    """Raised when the xray child process cannot be started."""
