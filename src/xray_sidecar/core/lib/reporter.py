"""Periodic stats reports pushed to Telegram.

The reporter runs in a daemon thread. On every tick it fetches a stats
snapshot, formats it and delivers it to the configured chat:

    Idle -> (timer fires) -> Fetching -> Formatting -> Delivering -> Idle

A failed fetch skips the cycle and a failed delivery is only logged; the
next tick is the retry. The thread dies with the process, an in-flight
delivery may be abandoned.

Example:
    reporter = Reporter(config, StatsSource.from_config(config), notifier)
    reporter.start()
"""

import threading
from datetime import datetime

from loguru import logger

from xray_sidecar.core.config import NotificationTarget, SidecarConfig
from xray_sidecar.core.exceptions import DeliveryFailedError, StatsError
from xray_sidecar.core.utils.utils import format_bytes

from .notifier import TelegramNotifier
from .stats_parser import ConnectionInfo
from .xray_stats import StatsSource

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_report(info: ConnectionInfo, now: datetime | None = None) -> str:
    """Render a snapshot as an HTML Telegram message.

    Args:
        info: Counters to report
        now: Timestamp to embed, defaults to the current local time

    Returns:
        str: The message text
    """
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return "\n".join(
        [
            "<b>📊 Server Stats</b>",
            f"<b>Active Connections:</b> {info.active_connections}",
            f"<b>Upload Traffic:</b> {format_bytes(info.upload_bytes)}",
            f"<b>Download Traffic:</b> {format_bytes(info.download_bytes)}",
            f"<b>Total Traffic:</b> {format_bytes(info.total_bytes)}",
            f"<b>Timestamp:</b> {timestamp}",
        ]
    )


class Reporter:
    """Deliver a stats report to the notification target on a fixed interval."""

    def __init__(
        self,
        config: SidecarConfig,
        stats_source: StatsSource,
        notifier: TelegramNotifier,
        target: NotificationTarget | None = None,
    ) -> None:
        """Initialize the reporter.

        Args:
            config: Runtime configuration, provides the interval and target
            stats_source: Where snapshots come from
            notifier: Delivery channel
            target: Override for ``config.notification_target``

        Raises:
            ValueError: If no notification target is configured
        """
        target = target or config.notification_target
        if target is None:
            raise ValueError("Reporter needs BOT_TOKEN and CHAT_ID to be configured")
        self.target = target
        self.interval = config.report_interval
        self.stats_source = stats_source
        self.notifier = notifier
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def tick(self) -> bool:
        """Run one fetch, format and deliver cycle.

        Returns:
            bool: True if the report was delivered
        """
        try:
            info = self.stats_source.snapshot()
        except StatsError as e:
            logger.warning(f"[Monitor] Error getting stats: {e}")
            return False

        try:
            self.notifier.deliver(self.target, format_report(info))
        except DeliveryFailedError as e:
            logger.error(f"[Monitor] Failed to send message: {e}")
            return False

        logger.info("[Monitor] Message sent successfully")
        return True

    def run(self) -> None:
        """Tick every ``interval`` seconds until ``stop`` is called."""
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("[Monitor] Unexpected error in report cycle")

    def start(self) -> threading.Thread:
        """Start the reporter in a daemon thread."""
        self._thread = threading.Thread(target=self.run, name="reporter", daemon=True)
        self._thread.start()
        logger.info(f"[Monitor] Connection monitoring started, sending updates every {self.interval:g}s")
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Ask the loop to exit and wait for the thread."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
