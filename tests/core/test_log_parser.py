from __future__ import annotations

from datetime import datetime

import pytest

from mcp_asterisk_status.core.log_parser import AsteriskLogParser, filter_event
from mcp_asterisk_status.core.models import LogEvent, LogLevel


def test_parse_full_line_with_call_id() -> None:
    line = (
        "[2025-12-30 08:00:05] WARNING[1201][C-00000002] res_rtp_asterisk.c: "
        "RTP read too short"
    )

    event = AsteriskLogParser().parse(line)

    assert event.timestamp == datetime(2025, 12, 30, 8, 0, 5)
    assert event.level is LogLevel.WARNING
    assert event.process == "1201"
    assert event.call_id == "C-00000002"
    assert event.source == "res_rtp_asterisk.c"
    assert event.message == "RTP read too short"
    assert event.is_error
    assert event.raw == line


def test_parse_line_without_call_id_and_fractional_seconds() -> None:
    event = AsteriskLogParser().parse(
        "[2025-12-30 08:00:00.123] NOTICE[1201] chan_pjsip.c: Endpoint 101 is now Reachable\n"
    )

    assert event.timestamp == datetime(2025, 12, 30, 8, 0, 0, 123000)
    assert event.level is LogLevel.NOTICE
    assert event.call_id is None
    assert event.message == "Endpoint 101 is now Reachable"
    assert not event.is_error


def test_syslog_style_timestamp_uses_default_year() -> None:
    event = AsteriskLogParser(default_year=2024).parse(
        "[Feb 29 10:30:45] ERROR[99] manager.c: Manager connection failed"
    )

    assert event.timestamp == datetime(2024, 2, 29, 10, 30, 45)
    assert event.level is LogLevel.ERROR


def test_unknown_level_and_bad_timestamp_keep_the_line() -> None:
    event = AsteriskLogParser().parse("[yesterday] CHATTY[7] app.c: hello")

    assert event.level is LogLevel.UNKNOWN
    assert event.level.priority == 5
    assert event.timestamp is None
    assert event.message == "hello"


def test_unparsable_line_becomes_verbose_event() -> None:
    line = "  == Using SIP RTP CoS mark 5"

    event = AsteriskLogParser().parse(line)

    assert event.level is LogLevel.VERBOSE
    assert event.message == line
    assert event.raw == line
    assert event.timestamp is None
    assert event.source == ""


@pytest.mark.parametrize(
    "line",
    [
        "[2025-12-30 08:00:07] VERBOSE[1305][C-00000002] pbx.c: Executing [101@from-internal:1]",
        "[2025-12-30 08:00:11] DEBUG[1201] manager.c: Manager 'admin' logged off",
        "free text that matches nothing",
        "",
    ],
)
def test_reparsing_raw_is_identical(line: str) -> None:
    parser = AsteriskLogParser()

    event = parser.parse(line)

    assert parser.parse(event.raw) == event


def test_verbosity_filter() -> None:
    parser = AsteriskLogParser()
    debug = parser.parse("[2025-12-30 08:00:11] DEBUG[1] x.c: noisy")
    error = parser.parse("[2025-12-30 08:00:11] ERROR[1] x.c: bad")

    assert filter_event(debug, 5) is None
    assert filter_event(debug, 8) is debug
    assert filter_event(error, 1) is error


def test_to_dict_is_json_friendly() -> None:
    event = LogEvent(
        timestamp=datetime(2025, 12, 30, 8, 0, 0),
        level=LogLevel.ERROR,
        process="1",
        source="x.c",
        message="bad",
        raw="raw",
    )

    assert event.to_dict() == {
        "timestamp": "2025-12-30T08:00:00",
        "level": "error",
        "process": "1",
        "source": "x.c",
        "message": "bad",
        "call_id": None,
        "is_error": True,
        "raw": "raw",
    }
