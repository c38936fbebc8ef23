"""Guarded access to the Asterisk CLI and its log output."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Sequence
from pathlib import Path

import aiofiles

from .errors import CommandRejected, CommandTimeout, CommandUnavailable
from .extractors import (
    parse_active_counts,
    parse_calls_cli,
    parse_channels_cli,
    parse_endpoint_list_cli,
    parse_help_cli,
    parse_registrations_cli,
    parse_version,
)
from .log_parser import AsteriskLogParser
from .models import (
    DEFAULT_PRIORITY,
    CallRow,
    ChannelRow,
    CommandHelp,
    CommandResult,
    EndpointStatus,
    LogEvent,
    LogLevel,
    Registration,
)
from .runner import CommandRunner
from .settings import DEFAULT_LOG_PATHS, AsteriskSettings
from .tailer import EventSink, LogTailer, resolve_log_path, synthetic_event

logger = logging.getLogger(__name__)

# Matched case-insensitively against the start of the command.
COMMAND_DENYLIST: tuple[str, ...] = (
    "core stop",
    "core restart",
    "core shutdown",
    "module unload",
    "database",
    "shell",
    "system",
)

MIN_VERBOSITY = 1
MAX_VERBOSITY = 10


def validate_command(command: str) -> bool:
    """False when `command` starts with a denylisted prefix."""
    normalized = " ".join(command.lower().split())
    return not any(normalized.startswith(prefix) for prefix in COMMAND_DENYLIST)


def clamp_verbosity(verbosity: int) -> int:
    return max(MIN_VERBOSITY, min(MAX_VERBOSITY, verbosity))


class ConsoleCommandGateway:
    """CLI commands, service state and log output for one Asterisk host.

    `execute_command` refuses denylisted commands before anything is spawned;
    every other failure is reported inside the returned CommandResult.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        log_paths: Sequence[str | Path] = DEFAULT_LOG_PATHS,
        parser: AsteriskLogParser | None = None,
        service_name: str = "asterisk",
        poll_interval: float | None = None,
    ) -> None:
        self.runner = runner
        self.log_paths = tuple(log_paths)
        self.parser = parser or AsteriskLogParser()
        self.service_name = service_name
        self.poll_interval = poll_interval

    @classmethod
    def from_settings(cls, settings: AsteriskSettings) -> ConsoleCommandGateway:
        return cls(CommandRunner.from_settings(settings), log_paths=settings.log_paths)

    async def execute_command(self, command: str) -> CommandResult:
        if not validate_command(command):
            logger.warning("Rejected CLI command %r", command)
            raise CommandRejected(command)
        try:
            return await self.runner.asterisk(command)
        except (CommandUnavailable, CommandTimeout) as exc:
            return CommandResult(
                command=command,
                argv=self.runner.asterisk_argv(command),
                success=False,
                error=str(exc),
            )

    async def _output(self, command: str) -> str | None:
        result = await self.execute_command(command)
        if not result.success:
            logger.warning("%r failed: %s", command, result.error)
            return None
        return result.output

    async def get_version(self) -> str | None:
        output = await self._output("core show version")
        return parse_version(output) if output is not None else None

    async def get_active_calls(self) -> list[CallRow]:
        output = await self._output("core show calls")
        return parse_calls_cli(output) if output is not None else []

    async def get_channels(self) -> list[ChannelRow]:
        output = await self._output("core show channels")
        return parse_channels_cli(output) if output is not None else []

    async def get_active_counts(self) -> dict[str, int]:
        """Summary counters from `core show channels`."""
        output = await self._output("core show channels")
        return parse_active_counts(output) if output is not None else {}

    async def get_pjsip_endpoints(self) -> list[EndpointStatus]:
        output = await self._output("pjsip show endpoints")
        return parse_endpoint_list_cli(output) if output is not None else []

    async def get_pjsip_registrations(self) -> list[Registration]:
        output = await self._output("pjsip show registrations")
        return parse_registrations_cli(output) if output is not None else []

    async def get_available_commands(self) -> list[CommandHelp]:
        output = await self._output("core show help")
        return parse_help_cli(output) if output is not None else []

    async def reload(self, module: str | None = None) -> CommandResult:
        if module:
            return await self.execute_command(f"module reload {module}")
        return await self.execute_command("core reload")

    async def hangup_channel(self, channel: str) -> CommandResult:
        return await self.execute_command(f"channel request hangup {channel}")

    async def originate_call(
        self,
        channel: str,
        extension: str,
        context: str = "from-internal",
    ) -> CommandResult:
        return await self.execute_command(
            f"channel originate {channel} extension {extension}@{context}"
        )

    async def show_dialplan(self, context: str | None = None) -> CommandResult:
        if context:
            return await self.execute_command(f"dialplan show {context}")
        return await self.execute_command("dialplan show")

    async def service_status(self) -> CommandResult:
        """`systemctl is-active`; an inactive unit (exit 3) is still a successful call."""
        try:
            return await self.runner.systemctl("is-active", self.service_name)
        except (CommandUnavailable, CommandTimeout) as exc:
            return CommandResult(
                command=f"systemctl is-active {self.service_name}",
                argv=["systemctl", "is-active", self.service_name],
                success=False,
                error=str(exc),
            )

    async def is_running(self) -> bool:
        result = await self.service_status()
        return result.success and result.output.strip() == "active"

    async def get_console_output(self, lines: int = 100) -> list[LogEvent]:
        """The last `lines` lines of the Asterisk log, parsed."""
        if lines < 1:
            raise ValueError("lines must be >= 1")
        path = resolve_log_path(self.log_paths)
        buf: deque[str] = deque(maxlen=lines)
        async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
            async for line in f:
                if line.strip():
                    buf.append(line.rstrip("\r\n"))
        return [self.parser.parse(line) for line in buf]

    async def get_recent_errors(self, lines: int = 100) -> list[LogEvent]:
        """Error and warning events among the last `lines` log lines."""
        return [event for event in await self.get_console_output(lines) if event.is_error]

    async def stream_live_output(
        self,
        sink: EventSink,
        stop: asyncio.Event,
        verbosity: int = DEFAULT_PRIORITY,
    ) -> None:
        """Push new log events to `sink` until `stop` is set."""
        kwargs = {} if self.poll_interval is None else {"poll_interval": self.poll_interval}
        tailer = LogTailer(self.log_paths, parser=self.parser, **kwargs)
        try:
            tailer.start()
        except FileNotFoundError as exc:
            logger.error("Cannot stream Asterisk output: %s", exc)
            result = sink(synthetic_event(str(exc), LogLevel.ERROR))
            if inspect.isawaitable(result):
                await result
            return
        await tailer.run(sink, stop, clamp_verbosity(verbosity))
