"""Runtime settings resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_LOG_PATHS: tuple[str, ...] = (
    "/var/log/asterisk/full",
    "/var/log/asterisk/messages",
)


@dataclass(frozen=True, slots=True)
class AsteriskSettings:
    ami_host: str = "127.0.0.1"
    ami_port: int = 5038
    ami_username: str = "admin"
    ami_secret: str = ""
    ami_connect_timeout: float = 5.0

    asterisk_binary: str = "asterisk"
    cli_timeout: float = 30.0
    cli_user: str | None = None  # run the CLI through `sudo -u <user>` when set

    log_paths: tuple[str, ...] = DEFAULT_LOG_PATHS
    dialplan_context: str = "from-internal"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def resolve_settings() -> AsteriskSettings:
    """Build settings from ASTERISK_* environment variables."""
    defaults = AsteriskSettings()

    log_paths = defaults.log_paths
    raw_paths = os.getenv("ASTERISK_LOG_PATHS")
    if raw_paths:
        log_paths = tuple(p for p in raw_paths.split(os.pathsep) if p.strip())
        if not log_paths:
            raise ValueError("ASTERISK_LOG_PATHS must name at least one file")

    return AsteriskSettings(
        ami_host=os.getenv("ASTERISK_AMI_HOST", defaults.ami_host),
        ami_port=_env_int("ASTERISK_AMI_PORT", defaults.ami_port),
        ami_username=os.getenv("ASTERISK_AMI_USERNAME", defaults.ami_username),
        ami_secret=os.getenv("ASTERISK_AMI_SECRET", defaults.ami_secret),
        ami_connect_timeout=_env_float(
            "ASTERISK_AMI_CONNECT_TIMEOUT", defaults.ami_connect_timeout
        ),
        asterisk_binary=os.getenv("ASTERISK_BINARY", defaults.asterisk_binary),
        cli_timeout=_env_float("ASTERISK_CLI_TIMEOUT", defaults.cli_timeout),
        cli_user=os.getenv("ASTERISK_CLI_USER") or None,
        log_paths=log_paths,
        dialplan_context=os.getenv("ASTERISK_DIALPLAN_CONTEXT", defaults.dialplan_context),
    )
