"""Shared pytest fixtures for xray-sidecar tests."""

from __future__ import annotations

import socketserver
import threading
from collections.abc import Callable, Iterator
from unittest.mock import MagicMock

import pytest

from xray_sidecar.core.config import SidecarConfig
from xray_sidecar.core.lib.notifier import TelegramNotifier
from xray_sidecar.core.lib.stats_parser import ConnectionInfo
from xray_sidecar.core.lib.xray_stats import StatsSource


class _StatsServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True


@pytest.fixture
def stats_server() -> Iterator[Callable[..., tuple[str, int, list[bytes]]]]:
    """Start a local stats service answering with a fixed response.

    The returned factory takes the response bytes and an optional ``hold``
    delay (seconds to wait before closing instead of answering), and
    returns ``(host, port, received)`` where ``received`` collects the
    commands sent by clients.
    """
    servers: list[_StatsServer] = []
    release = threading.Event()

    def start(response: bytes = b"", hold: float | None = None) -> tuple[str, int, list[bytes]]:
        received: list[bytes] = []

        class Handler(socketserver.BaseRequestHandler):
            def handle(self) -> None:
                received.append(self.request.recv(1024))
                if hold is not None:
                    release.wait(hold)
                    return
                self.request.sendall(response)

        server = _StatsServer(("127.0.0.1", 0), Handler)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        host, port = server.server_address[:2]
        return host, port, received

    yield start

    release.set()
    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def config() -> SidecarConfig:
    """Configuration with Telegram enabled."""
    return SidecarConfig(bot_token="123:abc", chat_id="-100", report_interval=60)


@pytest.fixture
def stats_source() -> MagicMock:
    """Stats source returning a fixed snapshot."""
    source = MagicMock(spec=StatsSource)
    source.snapshot.return_value = ConnectionInfo(
        active_connections=3, upload_bytes=2048, download_bytes=5_242_880
    )
    return source


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier recording deliveries."""
    return MagicMock(spec=TelegramNotifier)
