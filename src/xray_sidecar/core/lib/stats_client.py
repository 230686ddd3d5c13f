"""Client for the Xray stats query port.

Every query opens a fresh TCP connection, sends a two-line command and
reads until the peer closes the connection. One deadline bounds the whole
exchange (connect, send and read), so a stuck stats service can never
hang the caller for longer than the configured timeout.

The client does not retry: the reporter's next tick, or the next HTTP
request, is the retry.

Example:
    client = StatsClient("127.0.0.1", 10085)
    raw = client.fetch_raw_stats(timeout=2.0)
"""

import socket
import time
from typing import Final

from loguru import logger

from xray_sidecar.core.config import DEFAULT_STATS_HOST, DEFAULT_STATS_PORT, DEFAULT_STATS_TIMEOUT
from xray_sidecar.core.exceptions import ConnectionFailedError, StatsTimeoutError

# Command name followed by operation name, newline terminated
QUERY_COMMAND: Final = b"StatsService\nQueryStats\n"
BUFFER_SIZE: Final = 4096


class StatsClient:
    """Short-lived connection client for the stats service."""

    def __init__(
        self,
        host: str = DEFAULT_STATS_HOST,
        port: int = DEFAULT_STATS_PORT,
        timeout: float = DEFAULT_STATS_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            host: Stats service host
            port: Stats service port
            timeout: Default overall deadline for a query, in seconds
        """
        self.host = host
        self.port = port
        self.timeout = timeout

    def _remaining(self, deadline: float) -> float:
        """Seconds left before ``deadline``, raising once it has passed."""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise StatsTimeoutError(f"Stats query to {self.host}:{self.port} timed out")
        return remaining

    def fetch_raw_stats(self, timeout: float | None = None) -> bytes:
        """Query the stats service and return its full response.

        Args:
            timeout: Overall deadline in seconds, defaults to the client's

        Returns:
            bytes: Everything the service sent before closing the connection

        Raises:
            ConnectionFailedError: If the service cannot be reached or drops the connection
            StatsTimeoutError: If the exchange does not finish before the deadline
        """
        deadline = time.monotonic() + (self.timeout if timeout is None else timeout)
        address = f"{self.host}:{self.port}"

        try:
            sock = socket.create_connection((self.host, self.port), timeout=self._remaining(deadline))
        except TimeoutError as e:
            raise StatsTimeoutError(f"Timed out connecting to stats service at {address}") from e
        except OSError as e:
            raise ConnectionFailedError(f"Failed to connect to stats service at {address}: {e}") from e

        with sock:
            try:
                sock.settimeout(self._remaining(deadline))
                sock.sendall(QUERY_COMMAND)

                chunks: list[bytes] = []
                while True:
                    sock.settimeout(self._remaining(deadline))
                    data = sock.recv(BUFFER_SIZE)
                    if not data:  # Peer closed, response complete
                        break
                    chunks.append(data)
            except TimeoutError as e:
                raise StatsTimeoutError(f"Timed out reading from stats service at {address}") from e
            except OSError as e:
                raise ConnectionFailedError(f"Stats service at {address} failed: {e}") from e

        response = b"".join(chunks)
        logger.debug(f"Received {len(response)} bytes from stats service at {address}")
        return response
