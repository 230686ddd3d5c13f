"""Tests for stats snapshots against a live stats service."""

from __future__ import annotations

import socket

import pytest

from xray_sidecar.core.config import SidecarConfig
from xray_sidecar.core.exceptions import ConnectionFailedError
from xray_sidecar.core.lib.stats_client import QUERY_COMMAND
from xray_sidecar.core.lib.stats_parser import ConnectionInfo
from xray_sidecar.core.lib.xray_stats import StatsSource


def _source(host: str, port: int) -> StatsSource:
    return StatsSource.from_config(SidecarConfig(stats_host=host, stats_port=port, stats_timeout=2.0))


def test_snapshot_parses_structured_response(stats_server):
    body = (
        b'{"stat": ['
        b'{"name": "user>>>a>>>connection", "value": 2},'
        b'{"name": "inbound>>>vless>>>traffic>>>uplink", "value": 2048},'
        b'{"name": "inbound>>>vless>>>traffic>>>downlink", "value": 4096}'
        b"]}"
    )
    host, port, received = stats_server(body)

    info = _source(host, port).snapshot()

    assert info == ConnectionInfo(active_connections=2, upload_bytes=2048, download_bytes=4096)
    assert info.total_bytes == 6144
    assert received == [QUERY_COMMAND]


def test_snapshot_falls_back_to_text(stats_server):
    host, port, _ = stats_server(b"connections: 5\nuplink 100\ndownlink 200\n")

    info = _source(host, port).snapshot()

    assert info == ConnectionInfo(active_connections=5, upload_bytes=100, download_bytes=200)


def test_snapshot_of_empty_response_is_all_zero(stats_server):
    host, port, _ = stats_server(b"")

    assert _source(host, port).snapshot() == ConnectionInfo()


def test_snapshot_propagates_connection_errors():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    source = _source("127.0.0.1", port)

    with pytest.raises(ConnectionFailedError):
        source.snapshot()
