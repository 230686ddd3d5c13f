"""Core sidecar library components."""

from .http_api import ApiServer, create_app
from .notifier import TelegramNotifier
from .reporter import Reporter, format_report
from .stats_client import StatsClient
from .stats_parser import ConnectionInfo, RawStatEntry, parse_stats
from .xray_stats import StatsSource

__all__ = [
    "ApiServer",
    "ConnectionInfo",
    "create_app",
    "format_report",
    "parse_stats",
    "RawStatEntry",
    "Reporter",
    "StatsClient",
    "StatsSource",
    "TelegramNotifier",
]
