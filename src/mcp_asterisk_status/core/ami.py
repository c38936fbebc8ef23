"""Asterisk Manager Interface transport.

One AMITransport owns one TCP connection. It logs in lazily, writes actions
as CRLF `Key: value` blocks and reads responses under an explicit deadline.
A response that does not finish before the deadline is still returned, marked
incomplete: some listings stream past any sensible bound and partial data is
more useful to a status page than nothing.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .errors import AMIAuthError, AMIConnectionError
from .redaction import redact_fields
from .settings import AsteriskSettings

logger = logging.getLogger(__name__)

_SUCCESS_RE = re.compile(r"success", re.IGNORECASE)
_EVENTLIST_START_RE = re.compile(r"^EventList:\s*start\s*$", re.IGNORECASE | re.MULTILINE)
_EVENTLIST_DONE_RE = re.compile(r"^EventList:\s*Complete\s*$", re.IGNORECASE | re.MULTILINE)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True, slots=True)
class AMIAction:
    """Ordered AMI action; serialized exactly in field order."""

    fields: tuple[tuple[str, str], ...]

    @classmethod
    def build(cls, name: str, **fields: object) -> AMIAction:
        pairs = [("Action", name)]
        pairs.extend((k, str(v)) for k, v in fields.items())
        return cls(fields=tuple(pairs))

    @property
    def name(self) -> str:
        return self.fields[0][1] if self.fields else ""

    def serialize(self) -> bytes:
        body = "".join(f"{key}: {value}\r\n" for key, value in self.fields)
        return (body + "\r\n").encode("utf-8")


@dataclass(frozen=True, slots=True)
class AMIResponse:
    text: str
    complete: bool  # False when the deadline (or EOF) came before the terminator

    @property
    def incomplete(self) -> bool:
        return not self.complete


class AMITransport:
    """Owned AMI connection with an observable lifecycle."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 5038,
        username: str = "admin",
        secret: str = "",
        *,
        connect_timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.secret = secret
        self.connect_timeout = connect_timeout
        self._clock = clock
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self.state = ConnectionState.DISCONNECTED
        self.banner: str | None = None

    @classmethod
    def from_settings(cls, settings: AsteriskSettings) -> AMITransport:
        return cls(
            settings.ami_host,
            settings.ami_port,
            settings.ami_username,
            settings.ami_secret,
            connect_timeout=settings.ami_connect_timeout,
        )

    async def __aenter__(self) -> AMITransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def is_alive(self) -> bool:
        """End-of-stream probe: the socket is open and the peer has not hung up."""
        return (
            self._reader is not None
            and self._writer is not None
            and not self._writer.is_closing()
            and not self._reader.at_eof()
        )

    async def connect(self) -> None:
        """Open (or reuse) an authenticated connection."""
        if self.state is ConnectionState.AUTHENTICATED and self.is_alive():
            return
        if self._writer is not None:
            logger.debug("AMI connection to %s:%s is dead; reconnecting", self.host, self.port)
        await self._drop()

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except (OSError, TimeoutError) as exc:
            raise AMIConnectionError(
                f"Cannot connect to AMI at {self.host}:{self.port}: {str(exc) or 'timed out'}"
            ) from exc
        self.state = ConnectionState.CONNECTED

        try:
            banner = await asyncio.wait_for(self._reader.readline(), timeout=self.connect_timeout)
        except (OSError, TimeoutError) as exc:
            await self._drop()
            raise AMIConnectionError(f"No AMI banner from {self.host}:{self.port}") from exc
        if not banner:
            await self._drop()
            raise AMIConnectionError(f"AMI at {self.host}:{self.port} closed before banner")
        self.banner = banner.decode("utf-8", errors="replace").strip()
        logger.debug("AMI banner: %s", self.banner)

        await self.send_action(
            AMIAction.build("Login", Username=self.username, Secret=self.secret, Events="off")
        )
        response = await self.read_response(self.connect_timeout)
        if not _SUCCESS_RE.search(response.text):
            alive = self.is_alive()
            await self._drop()
            if not response.text and not alive:
                raise AMIConnectionError(f"AMI at {self.host}:{self.port} hung up during login")
            raise AMIAuthError(f"AMI login failed for user {self.username!r}")

        self.state = ConnectionState.AUTHENTICATED
        logger.info("AMI authenticated to %s:%s as %s", self.host, self.port, self.username)

    async def send_action(self, action: AMIAction) -> None:
        """Write an action without reading its response."""
        if self._writer is None or self._writer.is_closing():
            raise AMIConnectionError("AMI connection is not open")
        logger.debug("AMI >> %s", redact_fields(action.fields))
        try:
            self._writer.write(action.serialize())
            await self._writer.drain()
        except OSError as exc:
            await self._drop()
            raise AMIConnectionError(f"AMI write failed: {exc}") from exc

    async def read_response(self, timeout: float = 2.0) -> AMIResponse:
        """Read one blank-line terminated block, bounded by `timeout` seconds."""
        if self._reader is None:
            raise AMIConnectionError("AMI connection is not open")

        deadline = self._clock() + timeout
        lines: list[str] = []
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            try:
                raw = await asyncio.wait_for(self._reader.readline(), timeout=remaining)
            except TimeoutError:
                break
            except ValueError:
                # StreamReader raises ValueError when a single line overruns its buffer.
                logger.warning("AMI line exceeded stream buffer; returning partial response")
                break
            except OSError as exc:
                await self._drop()
                raise AMIConnectionError(f"AMI read failed: {exc}") from exc

            if not raw:
                logger.debug("AMI peer closed the connection mid-response")
                await self._drop()
                break

            line = raw.decode("utf-8", errors="replace")
            if line.strip():
                lines.append(line)
            elif lines:
                lines.append(line)
                return AMIResponse(text="".join(lines), complete=True)

        if lines:
            logger.warning("AMI response incomplete after %.1fs", timeout)
        return AMIResponse(text="".join(lines), complete=False)

    async def request(self, action: AMIAction, timeout: float = 3.0) -> AMIResponse:
        """Send an action and read its full response.

        Actions answered with an event list (`EventList: start`) are read until
        the block carrying `EventList: Complete`, all under one deadline.
        """
        await self.connect()
        await self.send_action(action)

        deadline = self._clock() + timeout
        first = await self.read_response(timeout)
        if first.incomplete or not _EVENTLIST_START_RE.search(first.text):
            return first

        parts = [first.text]
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return AMIResponse(text="".join(parts), complete=False)
            block = await self.read_response(remaining)
            parts.append(block.text)
            if block.incomplete:
                return AMIResponse(text="".join(parts), complete=False)
            if _EVENTLIST_DONE_RE.search(block.text):
                return AMIResponse(text="".join(parts), complete=True)

    async def close(self) -> None:
        """Log off (best effort) and release the socket."""
        if self.is_alive() and self._writer is not None:
            try:
                self._writer.write(AMIAction.build("Logoff").serialize())
                await self._writer.drain()
            except OSError as exc:
                logger.debug("AMI logoff failed: %s", exc)
        await self._drop()

    async def _drop(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        self.state = ConnectionState.DISCONNECTED
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as exc:
            logger.debug("AMI socket close raised: %s", exc)
