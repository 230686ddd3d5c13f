"""Stats snapshots for the reporter and the HTTP surface.

``StatsSource`` bundles the query client and the parser so that callers get
a ``ConnectionInfo`` in one call. Each snapshot opens its own connection,
so concurrent callers never share state.
"""

from xray_sidecar.core.config import SidecarConfig

from .stats_client import StatsClient
from .stats_parser import ConnectionInfo, parse_stats


class StatsSource:
    """Fetch and parse stats in one step."""

    def __init__(self, client: StatsClient) -> None:
        self.client = client

    @classmethod
    def from_config(cls, config: SidecarConfig) -> "StatsSource":
        return cls(StatsClient(config.stats_host, config.stats_port, config.stats_timeout))

    def snapshot(self) -> ConnectionInfo:
        """Return the current counters.

        Raises:
            StatsError: If the stats service cannot be queried
        """
        return parse_stats(self.client.fetch_raw_stats())
