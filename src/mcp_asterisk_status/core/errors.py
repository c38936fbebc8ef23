"""Exception hierarchy for PBX access.

Façades (status service, validation, console gateway) convert everything
except CommandRejected into in-band result fields.
"""

from __future__ import annotations


class AsteriskError(Exception):
    """Base class for errors raised while talking to Asterisk."""


class AMIConnectionError(AsteriskError, ConnectionError):
    """The AMI socket could not be opened or died mid-exchange."""


class AMIAuthError(AsteriskError):
    """The AMI login response did not carry a success token."""


class AMIRequestError(AsteriskError):
    """AMI answered an action with `Response: Error` or not at all."""


class CommandRejected(AsteriskError):
    """A CLI command matched the denylist and was not dispatched."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Command not allowed for security reasons: {command!r}")
        self.command = command


class CommandUnavailable(AsteriskError, ConnectionError):
    """The CLI binary could not be spawned (missing or not executable)."""


class CommandTimeout(AsteriskError, TimeoutError):
    """A CLI process exceeded its deadline and was killed."""
