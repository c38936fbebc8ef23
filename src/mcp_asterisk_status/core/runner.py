"""Bounded external process execution (`asterisk -rx`, `systemctl`)."""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Sequence

from .errors import CommandTimeout, CommandUnavailable
from .models import CommandResult
from .settings import AsteriskSettings

logger = logging.getLogger(__name__)

# 3 is what systemctl (and the asterisk wrapper) return for an inactive unit.
SUCCESS_EXIT_CODES = frozenset({0, 3})

_EXIT_CODE_HELP = {
    1: "General error - the command may not exist, Asterisk may not be running, "
    "or permission was denied.",
    2: "Misuse of shell command - invalid command syntax.",
    126: "Permission denied - cannot execute the command.",
    127: "Command not found - the binary may not be in PATH.",
    130: "Terminated by Ctrl+C.",
}


def describe_exit_code(exit_code: int | None, output: str) -> str:
    """Human-readable failure summary for a non-success exit code."""
    details = [f"Command failed with code {exit_code}"]
    hint = _EXIT_CODE_HELP.get(exit_code) if exit_code is not None else None
    if hint:
        details.append(f"Possible cause: {hint}")
    if output.strip():
        details.append(f"Output: {output.strip()}")
    return "\n".join(details)


class CommandRunner:
    """Runs one process at a time with a deadline and captured output."""

    def __init__(
        self,
        *,
        asterisk_binary: str = "asterisk",
        timeout: float = 30.0,
        run_as: str | None = None,
    ) -> None:
        self.asterisk_binary = asterisk_binary
        self.timeout = timeout
        self.run_as = run_as

    @classmethod
    def from_settings(cls, settings: AsteriskSettings) -> CommandRunner:
        return cls(
            asterisk_binary=settings.asterisk_binary,
            timeout=settings.cli_timeout,
            run_as=settings.cli_user,
        )

    async def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        command: str | None = None,
    ) -> CommandResult:
        """Run `argv`, returning the result for any exit code.

        Raises CommandUnavailable when the process cannot be spawned and
        CommandTimeout when it outlives the deadline (it is killed first).
        """
        args = list(argv)
        label = command if command is not None else shlex.join(args)
        limit = self.timeout if timeout is None else timeout
        logger.debug("Running %s", shlex.join(args))

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise CommandUnavailable(f"Cannot execute {args[0]!r}: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=limit)
        except TimeoutError as exc:
            try:
                proc.kill()
            except ProcessLookupError:
                pass  # exited between the timeout and the kill
            await proc.wait()
            logger.error("Command %r timed out after %.1fs", label, limit)
            raise CommandTimeout(f"{label!r} timed out after {limit:.1f}s") from exc

        output = stdout.decode("utf-8", errors="replace").rstrip("\n") if stdout else ""
        code = proc.returncode
        success = code in SUCCESS_EXIT_CODES
        logger.info("Command %r exited with %s", label, code)
        return CommandResult(
            command=label,
            argv=args,
            exit_code=code,
            output=output,
            success=success,
            error=None if success else describe_exit_code(code, output),
        )

    def asterisk_argv(self, command: str) -> list[str]:
        argv = [self.asterisk_binary, "-rx", command]
        if self.run_as:
            argv = ["sudo", "-u", self.run_as, *argv]
        return argv

    async def asterisk(self, command: str, *, timeout: float | None = None) -> CommandResult:
        """Run one Asterisk CLI command."""
        return await self.run(self.asterisk_argv(command), timeout=timeout, command=command)

    async def systemctl(self, *args: str, timeout: float | None = None) -> CommandResult:
        return await self.run(["systemctl", *args], timeout=timeout)
