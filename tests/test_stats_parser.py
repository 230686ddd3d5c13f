"""Tests for stats response parsing."""

from __future__ import annotations

import json

import pytest

from xray_sidecar.core.exceptions import DecodeFailedError
from xray_sidecar.core.lib.stats_parser import (
    ConnectionInfo,
    RawStatEntry,
    decode_entries,
    parse_int,
    parse_stats,
)


def _stats(*entries: tuple[str, int]) -> bytes:
    return json.dumps({"stat": [{"name": n, "value": v} for n, v in entries]}).encode()


class TestConnectionInfo:
    def test_total_is_derived(self):
        info = ConnectionInfo(active_connections=1, upload_bytes=10, download_bytes=32)
        assert info.total_bytes == 42

    def test_total_cannot_be_passed(self):
        with pytest.raises(TypeError):
            ConnectionInfo(upload_bytes=1, total_bytes=99)  # type: ignore[call-arg]

    def test_as_dict_has_the_four_counters(self):
        assert ConnectionInfo(2, 3, 4).as_dict() == {
            "active_connections": 2,
            "upload_bytes": 3,
            "download_bytes": 4,
            "total_bytes": 7,
        }


class TestStructuredTier:
    def test_uplink_and_connection_scenario(self):
        raw = (
            b'{"stat":[{"name":"inbound>>>proxy>>>traffic>>>uplink","value":1024},'
            b'{"name":"user>>>connection","value":3}]}'
        )
        assert parse_stats(raw) == ConnectionInfo(
            active_connections=3, upload_bytes=1024, download_bytes=0
        )
        assert parse_stats(raw).total_bytes == 1024

    def test_matching_is_case_insensitive_and_accumulates(self):
        raw = _stats(
            ("inbound>>>ws>>>traffic>>>UPLINK", 100),
            ("outbound>>>direct>>>traffic>>>uplink", 50),
            ("inbound>>>ws>>>traffic>>>Downlink", 7),
        )
        info = parse_stats(raw)
        assert (info.upload_bytes, info.download_bytes, info.total_bytes) == (150, 7, 157)

    def test_one_name_can_match_several_rules(self):
        # "connection" rule and the broad "down" rule both apply
        info = parse_stats(_stats(("connection>>>shutdown", 5)))
        assert info.active_connections == 5
        assert info.download_bytes == 5

    def test_no_matching_entries_gives_zero(self):
        assert parse_stats(_stats(("user>>>online", 9))) == ConnectionInfo()

    def test_missing_stat_field_gives_zero(self):
        assert parse_stats(b"{}") == ConnectionInfo()
        assert parse_stats(b'{"stat": null}') == ConnectionInfo()

    def test_missing_value_defaults_to_zero(self):
        assert decode_entries(b'{"stat": [{"name": "uplink"}]}') == [RawStatEntry("uplink", 0)]

    @pytest.mark.parametrize(
        "raw",
        [
            b"not json",
            b"[1, 2]",
            b'{"stat": "uplink"}',
            b'{"stat": [1]}',
            b'{"stat": [{"name": 5, "value": 1}]}',
            b'{"stat": [{"name": "up", "value": "12"}]}',
            b'{"stat": [{"name": "up", "value": 1.5}]}',
            b'{"stat": [{"name": "up", "value": true}]}',
            b"\xff\xfe\xfa",
        ],
    )
    def test_decode_rejects_unstructured_input(self, raw):
        with pytest.raises(DecodeFailedError):
            decode_entries(raw)


class TestFallbackTier:
    def test_plain_text_scenario(self):
        info = parse_stats(b"conn 5 up 2048 down 4096")
        assert info == ConnectionInfo(active_connections=5, upload_bytes=2048, download_bytes=4096)
        assert info.total_bytes == 6144

    def test_numbers_are_extracted_from_noisy_tokens(self):
        info = parse_stats(b"Connections: 12, uplink=(300) downlink: 4kB")
        assert info.active_connections == 12
        assert info.download_bytes == 4

    def test_keyword_without_number_is_skipped(self):
        assert parse_stats(b"conn none up") == ConnectionInfo()

    def test_negative_values_are_kept(self):
        assert parse_stats(b"up -10 down 15").total_bytes == 5

    @pytest.mark.parametrize("raw", [b"", b"   ", b"garbage", b"\x00\xff\x10", b'{"stat": [1]}'])
    def test_never_raises(self, raw):
        assert isinstance(parse_stats(raw), ConnectionInfo)

    def test_parsing_is_idempotent(self):
        raw = b"conn 5 up 2048 down 4096 backup 1"
        assert parse_stats(raw) == parse_stats(raw)


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("42", 42),
        ("x=42;", 42),
        ("-7", -7),
        ("12-3", 12),
        ("abc", None),
        ("-", None),
        ("--5", None),
        ("-9223372036854775808", -(2**63)),
        ("9223372036854775808", None),
    ],
)
def test_parse_int(token, expected):
    assert parse_int(token) == expected


class TestLenientDecoding:
    def test_invalid_utf8_in_names_keeps_counters(self):
        raw = (
            b'{"stat":[{"name":"inbound>>>traffic>>>uplink\xff","value":1024},'
            b'{"name":"user>>>connection","value":3}]}'
        )
        info = parse_stats(raw)
        assert (info.active_connections, info.upload_bytes) == (3, 1024)

    def test_field_names_match_case_insensitively(self):
        assert parse_stats(b'{"Stat":[{"Name":"uplink","Value":7}]}').upload_bytes == 7

    def test_last_matching_key_wins(self):
        assert decode_entries(b'{"stat": [{"name": "a", "NAME": "uplink"}]}') == [
            RawStatEntry("uplink", 0)
        ]

    def test_value_outside_int64_fails_decode(self):
        with pytest.raises(DecodeFailedError):
            decode_entries(b'{"stat": [{"name": "uplink", "value": 9223372036854775808}]}')

    def test_int64_bounds_are_accepted(self):
        entries = decode_entries(b'{"stat": [{"name": "uplink", "value": 9223372036854775807}]}')
        assert entries[0].value == 2**63 - 1

    def test_text_value_outside_int64_is_skipped(self):
        assert parse_stats(b"up 99999999999999999999 down 5") == ConnectionInfo(download_bytes=5)
