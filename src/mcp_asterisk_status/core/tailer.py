"""Rotation-aware tail of the Asterisk log file.

The tailer never keeps a file handle across polls: every iteration stats the
path, opens it, reads the new complete lines and closes it again, so
logrotate may move, truncate or recreate the file at any time.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

import aiofiles

from .log_parser import AsteriskLogParser, filter_event
from .models import DEFAULT_PRIORITY, LogEvent, LogLevel
from .settings import DEFAULT_LOG_PATHS

logger = logging.getLogger(__name__)

EventSink = Callable[[LogEvent], Awaitable[None] | None]
Sleep = Callable[[float], Awaitable[None]]

DEFAULT_POLL_INTERVAL = 0.1
SYNTHETIC_SOURCE = "tailer"


class TailerState(str, Enum):
    DISCONNECTED = "disconnected"
    STREAMING = "streaming"
    ROTATED = "rotated"
    STOPPED = "stopped"


@dataclass(slots=True)
class TailState:
    path: Path
    offset: int
    inode: int


def resolve_log_path(candidates: Sequence[str | Path]) -> Path:
    """First candidate that exists and is readable."""
    for candidate in candidates:
        path = Path(candidate)
        if path.is_file() and os.access(path, os.R_OK):
            return path
    names = ", ".join(str(c) for c in candidates)
    raise FileNotFoundError(f"No readable Asterisk log file among: {names}")


def synthetic_event(message: str, level: LogLevel = LogLevel.INFO) -> LogEvent:
    """Event produced by the tailer itself rather than read from the log."""
    return LogEvent(
        timestamp=datetime.now(UTC),
        level=level,
        process="",
        source=SYNTHETIC_SOURCE,
        message=message,
        raw=message,
    )


class LogTailer:
    def __init__(
        self,
        candidates: Sequence[str | Path] = DEFAULT_LOG_PATHS,
        *,
        parser: AsteriskLogParser | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Sleep = asyncio.sleep,
        encoding: str = "utf-8",
    ) -> None:
        if poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        self.candidates = tuple(candidates)
        self.parser = parser or AsteriskLogParser()
        self.poll_interval = poll_interval
        self.encoding = encoding
        self._sleep = sleep
        self.tail: TailState | None = None
        self.state = TailerState.DISCONNECTED

    def start(self) -> TailState:
        """Pick the log file and position at its end (history is never replayed)."""
        path = resolve_log_path(self.candidates)
        st = path.stat()
        self.tail = TailState(path=path, offset=st.st_size, inode=st.st_ino)
        self.state = TailerState.STREAMING
        logger.info("Tailing %s from offset %d", path, st.st_size)
        return self.tail

    async def poll_once(self) -> list[LogEvent]:
        """One iteration: detect rotation/truncation, else read appended lines."""
        if self.tail is None:
            self.start()
        tail = self.tail
        assert tail is not None

        try:
            st = tail.path.stat()
        except FileNotFoundError:
            # Moved away and not recreated yet; the next poll sees the new inode.
            logger.debug("%s is missing; waiting for it to reappear", tail.path)
            return []

        if st.st_ino != tail.inode:
            tail.inode = st.st_ino
            tail.offset = 0
            self.state = TailerState.ROTATED
            logger.info("%s rotated; reading new file from the start", tail.path)
            return [synthetic_event(f"Log file rotated: {tail.path}")]

        if st.st_size < tail.offset:
            tail.offset = 0
            logger.info("%s truncated; reading from the start", tail.path)
            return [synthetic_event(f"Log file truncated: {tail.path}")]

        self.state = TailerState.STREAMING
        if st.st_size == tail.offset:
            return []

        async with aiofiles.open(tail.path, "rb") as f:
            await f.seek(tail.offset)
            data = await f.read()

        # A line still being written stays unread until its newline arrives.
        end = data.rfind(b"\n")
        if end < 0:
            return []
        tail.offset += end + 1

        events: list[LogEvent] = []
        for raw in data[: end + 1].splitlines():
            line = raw.decode(self.encoding, errors="replace").rstrip("\r")
            if line.strip():
                events.append(self.parser.parse(line))
        return events

    async def run(
        self,
        sink: EventSink,
        stop: asyncio.Event,
        verbosity: int = DEFAULT_PRIORITY,
    ) -> None:
        """Poll until `stop` is set, pushing events that pass `verbosity` to `sink`."""
        try:
            if self.tail is None:
                self.start()
            while not stop.is_set():
                for event in await self.poll_once():
                    # Rotation and truncation notices pass at any verbosity.
                    synthetic = event.source == SYNTHETIC_SOURCE
                    if not synthetic and filter_event(event, verbosity) is None:
                        continue
                    result = sink(event)
                    if inspect.isawaitable(result):
                        await result
                if stop.is_set():
                    break
                await self._sleep(self.poll_interval)
        finally:
            self.state = TailerState.STOPPED
            logger.info("Log tail stopped")
