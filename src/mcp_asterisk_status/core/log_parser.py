"""Parser for Asterisk `full` / `messages` log lines."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from .models import LogEvent, LogLevel

ASTERISK_TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%b %d %H:%M:%S",
)


@dataclass(frozen=True, slots=True)
class AsteriskLogParser:
    """Parse '[ts] LEVEL[pid][callid] source: message' lines.

    Lines that do not match are kept as VERBOSE events carrying the raw text
    and no timestamp, so parsing the same line twice yields equal events.
    """

    timestamp_formats: Sequence[str] = ASTERISK_TIMESTAMP_FORMATS
    # Used for syslog-style stamps that carry no year; None means the current year.
    default_year: int | None = None

    _re = re.compile(
        r"^\[(?P<ts>[^\]]*)\]\s+(?P<level>\w+)\[(?P<pid>[^\]]*)\]"
        r"(?:\[(?P<callid>[^\]]*)\])?:?\s+(?P<source>.*?):\s+(?P<msg>.*)$"
    )

    def _parse_ts(self, ts_str: str) -> datetime | None:
        for fmt in self.timestamp_formats:
            value = ts_str
            if "%Y" not in fmt:
                value = f"{self.default_year or datetime.now().year} {ts_str}"
                fmt = f"%Y {fmt}"
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        return None

    def parse(self, line: str) -> LogEvent:
        raw = line.rstrip("\r\n")
        m = self._re.match(raw)
        if not m:
            return LogEvent(
                timestamp=None,
                level=LogLevel.VERBOSE,
                process="",
                source="",
                message=raw,
                raw=raw,
            )

        try:
            level = LogLevel(m.group("level").lower())
        except ValueError:
            level = LogLevel.UNKNOWN

        return LogEvent(
            timestamp=self._parse_ts(m.group("ts").strip()),
            level=level,
            process=m.group("pid"),
            source=m.group("source").strip(),
            message=m.group("msg"),
            raw=raw,
            call_id=m.group("callid") or None,
        )


def filter_event(event: LogEvent, verbosity: int) -> LogEvent | None:
    """Return `event` unless its level is noisier than `verbosity` allows."""
    if event.level.priority > verbosity:
        return None
    return event
