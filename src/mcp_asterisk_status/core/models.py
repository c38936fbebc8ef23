"""Core data models for PBX status and log events.

Status records are pydantic models because they leave the process (MCP tool
results, JSON schema resources). Log events are plain frozen dataclasses:
they are produced at a high rate and only pushed to a sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, computed_field

EndpointState = Literal["registered", "offline", "error", "unknown"]

# Device states Asterisk reports for a reachable device, normalized by
# normalize_device_state().
REGISTERED_DEVICE_STATES = frozenset({"inuse", "notinuse", "ringing"})


def normalize_device_state(value: str) -> str:
    """Collapse 'Not in use', 'not_inuse' and 'NOT_IN_USE' to one spelling."""
    return "".join(value.lower().split()).replace("_", "")


class LogLevel(str, Enum):
    """Asterisk logger channels, most severe first."""

    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"
    SECURITY = "security"
    VERBOSE = "verbose"
    DTMF = "dtmf"
    FAX = "fax"
    DEBUG = "debug"
    INFO = "info"  # synthetic tailer events; not an Asterisk channel
    UNKNOWN = "unknown"

    @property
    def priority(self) -> int:
        return LEVEL_PRIORITY.get(self, DEFAULT_PRIORITY)


DEFAULT_PRIORITY = 5

LEVEL_PRIORITY: dict[LogLevel, int] = {
    LogLevel.ERROR: 1,
    LogLevel.WARNING: 2,
    LogLevel.NOTICE: 3,
    LogLevel.SECURITY: 4,
    LogLevel.VERBOSE: 5,
    LogLevel.DTMF: 6,
    LogLevel.FAX: 7,
    LogLevel.DEBUG: 8,
}


@dataclass(frozen=True, slots=True)
class LogEvent:
    """One structured line of the Asterisk log."""

    timestamp: datetime | None  # None when the line carried no parsable timestamp
    level: LogLevel
    process: str
    source: str
    message: str
    raw: str
    call_id: str | None = None

    @property
    def is_error(self) -> bool:
        return self.level in (LogLevel.ERROR, LogLevel.WARNING)

    def to_dict(self) -> dict:
        """JSON-friendly form used by sinks and MCP tools."""
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp is not None else None,
            "level": self.level.value,
            "process": self.process,
            "source": self.source,
            "message": self.message,
            "call_id": self.call_id,
            "is_error": self.is_error,
            "raw": self.raw,
        }


class EndpointStatus(BaseModel):
    """Normalized PJSIP endpoint (or trunk) status."""

    name: str
    registered: bool = False
    status: EndpointState = "offline"
    device_state: str = "unknown"
    contacts: list[str] = Field(default_factory=list)
    ip_address: str | None = None
    port: int | None = None
    codecs: list[str] = Field(default_factory=list)
    last_qualify_ms: float | None = None
    user_agent: str | None = None
    error: str | None = None
    # Only filled by trunk queries.
    reachable: bool | None = None
    latency_ms: float | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_contacts(self) -> bool:
        return bool(self.contacts)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def device_state_registered(self) -> bool:
        return normalize_device_state(self.device_state) in REGISTERED_DEVICE_STATES


class Registration(BaseModel):
    """Outbound registration row from `pjsip show registrations`."""

    name: str
    server_uri: str
    auth: str | None = None
    status: str = "Unknown"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def registered(self) -> bool:
        return self.status.lower() == "registered"


class ChannelCodecInfo(BaseModel):
    channel: str | None = None
    read_codec: str | None = None
    write_codec: str | None = None
    read_format: str | None = None
    write_format: str | None = None
    sample_rate: int = 8000
    is_hd: bool = False
    error: str | None = None


class RTPStats(BaseModel):
    channel: str | None = None
    ssrc: str | None = None
    packets_sent: int = 0
    packets_received: int = 0
    packets_lost: int = 0
    jitter: float = 0.0
    rtt: float = 0.0
    packet_loss_percent: float = 0.0
    error: str | None = None


class ChannelRow(BaseModel):
    """Row of `core show channels`."""

    channel: str
    location: str
    state: str
    application: str | None = None
    context: str | None = None
    extension: str | None = None
    priority: str | None = None


class CallRow(BaseModel):
    """Row of `core show calls` style listings."""

    channel: str
    location: str
    state: str
    duration: str


class CommandHelp(BaseModel):
    command: str
    description: str


class TrunkValidation(BaseModel):
    trunk: str
    reachable: bool = False
    registered: bool = False
    endpoint_found: bool = False
    qualify_status: str = "unknown"
    latency_ms: float | None = None
    errors: list[str] = Field(default_factory=list)


class ExtensionValidation(BaseModel):
    extension: str
    registered: bool = False
    contact: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    port: int | None = None
    expiry: float | None = None
    errors: list[str] = Field(default_factory=list)


class RoutingResult(BaseModel):
    from_extension: str = Field(serialization_alias="from")
    to: str
    route_found: bool = False
    context: str | None = None
    application: str | None = None
    trunk: str | None = None
    errors: list[str] = Field(default_factory=list)


class CommandResult(BaseModel):
    """Outcome of one external process run."""

    command: str
    argv: list[str]
    exit_code: int | None = None
    output: str = ""
    success: bool = False
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
