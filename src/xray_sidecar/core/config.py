"""Process-wide configuration.

The configuration is built once at startup, either from the environment
(``SidecarConfig.from_env``) or from CLI options, and passed explicitly to
the reporter and the HTTP surface. Nothing else reads the environment.

Example:
    config = SidecarConfig.from_env()
    if config.notification_target:
        Reporter(config, StatsSource.from_config(config), notifier).start()
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

DEFAULT_STATS_HOST: Final = "127.0.0.1"
DEFAULT_STATS_PORT: Final = 10085
DEFAULT_STATS_TIMEOUT: Final = 4.0  # Seconds, connect + read
DEFAULT_NOTIFY_TIMEOUT: Final = 10.0  # Seconds
DEFAULT_REPORT_INTERVAL: Final = 300.0  # Seconds
DEFAULT_WEBHOOK_HOST: Final = "0.0.0.0"  # noqa: S104
DEFAULT_WEBHOOK_PORT: Final = 8081


@dataclass(frozen=True)
class NotificationTarget:
    """Telegram chat receiving reports and the bot token used to reach it.

    Attributes:
        chat_id: Telegram chat identifier
        bot_token: Telegram bot API token
    """

    chat_id: str
    bot_token: str


@dataclass(frozen=True)
class SidecarConfig:
    """Read-only runtime configuration.

    Attributes:
        bot_token: Telegram bot token, empty when Telegram is not configured
        chat_id: Chat for periodic reports, empty disables the reporter
        report_interval: Seconds between periodic reports
        webhook_host: Address the HTTP surface listens on
        webhook_port: Port the HTTP surface listens on
        stats_host: Host of the stats service
        stats_port: Port of the stats service
        stats_timeout: Overall deadline for one stats query, in seconds
        notify_timeout: Timeout for one Telegram API call, in seconds
    """

    bot_token: str = ""
    chat_id: str = ""
    report_interval: float = DEFAULT_REPORT_INTERVAL
    webhook_host: str = DEFAULT_WEBHOOK_HOST
    webhook_port: int = DEFAULT_WEBHOOK_PORT
    stats_host: str = DEFAULT_STATS_HOST
    stats_port: int = DEFAULT_STATS_PORT
    stats_timeout: float = DEFAULT_STATS_TIMEOUT
    notify_timeout: float = DEFAULT_NOTIFY_TIMEOUT

    def __post_init__(self) -> None:
        if self.report_interval <= 0:
            raise ValueError(f"report_interval must be positive, got {self.report_interval}")
        if self.stats_timeout <= 0 or self.notify_timeout <= 0:
            raise ValueError("timeouts must be positive")

    @property
    def notification_target(self) -> NotificationTarget | None:
        """Return the periodic report target, or None when monitoring is disabled."""
        if self.bot_token and self.chat_id:
            return NotificationTarget(chat_id=self.chat_id, bot_token=self.bot_token)
        return None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SidecarConfig":
        """Build the configuration from environment variables.

        Empty values are treated as unset.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            SidecarConfig: The populated configuration

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        stats_host, stats_port = parse_address(
            getenv(env, "STATS_ADDR", f"{DEFAULT_STATS_HOST}:{DEFAULT_STATS_PORT}")
        )
        return cls(
            bot_token=getenv(env, "BOT_TOKEN", ""),
            chat_id=getenv(env, "CHAT_ID", ""),
            report_interval=float(getenv(env, "REPORT_INTERVAL", str(DEFAULT_REPORT_INTERVAL))),
            webhook_host=getenv(env, "WEBHOOK_HOST", DEFAULT_WEBHOOK_HOST),
            webhook_port=int(getenv(env, "WEBHOOK_PORT", str(DEFAULT_WEBHOOK_PORT))),
            stats_host=stats_host,
            stats_port=stats_port,
            stats_timeout=float(getenv(env, "STATS_TIMEOUT", str(DEFAULT_STATS_TIMEOUT))),
            notify_timeout=float(getenv(env, "NOTIFY_TIMEOUT", str(DEFAULT_NOTIFY_TIMEOUT))),
        )


def getenv(environ: Mapping[str, str], key: str, default: str) -> str:
    """Return ``environ[key]``, or ``default`` when missing or empty."""
    return environ.get(key) or default


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts.

    Raises:
        ValueError: If the port is missing or not a number
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid address {address!r}, expected host:port")
    return host or DEFAULT_STATS_HOST, int(port)
