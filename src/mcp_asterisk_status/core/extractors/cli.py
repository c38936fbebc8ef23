"""Extractors for `asterisk -rx` CLI text.

CLI output is columned and changes between Asterisk releases, so every
function here matches what it recognizes and skips the rest.
"""

from __future__ import annotations

import re
from typing import Any

from ..models import (
    CallRow,
    ChannelRow,
    CommandHelp,
    EndpointStatus,
    Registration,
)
from .ami import apply_contacts, apply_device_state, new_endpoint_fields, parse_codec_list

_ENDPOINT_ROW_RE = re.compile(
    r"^\s*Endpoint:\s+(?P<name>[^\s/]+)(?:/\S*)?\s+(?P<state>\S.*?)\s+\d+\s+of\s+\S+\s*$"
)
_CONTACTS_RE = re.compile(r"^\s*Contacts:\s*(?P<value>.*?)\s*$")
_ALLOW_RE = re.compile(r"^\s*allow\s*:\s*(?P<value>\S.*?)\s*$")

_VERSION_RE = re.compile(r"Asterisk\s+([\d.]+)")
_ACTIVE_CALLS_RE = re.compile(r"(\d+)\s+active call")
_ACTIVE_CHANNELS_RE = re.compile(r"(\d+)\s+active channel")
_PROCESSED_RE = re.compile(r"(\d+)\s+calls? processed")

_SUMMARY_RE = re.compile(r"^\s*\d+\s+(?:active|calls?)\b")
_CALL_ROW_RE = re.compile(r"^(\S+)\s+(\S+)\s+(\S+)\s+(\d+:\d+:\d+)")
_CHANNEL_ROW_RE = re.compile(
    r"^(?P<channel>\S+)\s+(?P<location>\S+)\s+(?P<state>\S+)(?:\s+(?P<app>\S.*?))?\s*$"
)
_LOCATION_RE = re.compile(r"^(?P<ext>[^@]+)@(?P<ctx>[^:]+):(?P<prio>\S+)$")
_REGISTRATION_ROW_RE = re.compile(
    r"^\s*(?P<name>[^\s/<]+)/(?P<uri>\S+)\s+(?P<auth>\S+)\s+(?P<status>[A-Za-z]+)"
)
_HELP_ROW_RE = re.compile(r"^\s*(?P<cmd>\S.*?)\s{2,}(?:--\s*)?(?P<desc>\S.*?)\s*$")

_AOR_CONTACT_RE = re.compile(r"Contact:\s*(\S+)\s+(\S+)\s+Avail\s+([\d.]+)")
_AOR_CONTACTS_RE = re.compile(r"Contacts:\s*(\S+)", re.IGNORECASE)
_QUALIFY_STATUS_RE = re.compile(r"Status\s*:\s*(\w+)")
_RTT_MS_RE = re.compile(r"RTT\s*:\s*([\d.]+)\s*ms")
_USER_AGENT_RE = re.compile(r"User-Agent:\s*(.+)$", re.MULTILINE)
_DIALPLAN_APP_RE = re.compile(r"\d+\.\s+(\w+)\(", re.MULTILINE)
_DIALPLAN_TRUNK_RE = re.compile(r"PJSIP/.*@([^),]+)", re.MULTILINE)


def _is_header(line: str) -> bool:
    return "<" in line and ">" in line


def _apply_cli_line(data: dict[str, Any], line: str) -> None:
    m = _CONTACTS_RE.match(line)
    if m:
        apply_contacts(data, m.group("value"))
        return
    m = _ALLOW_RE.match(line)
    if m:
        codecs = parse_codec_list(m.group("value"))
        if codecs:
            data["codecs"] = codecs


def parse_endpoint_cli(text: str, name: str) -> EndpointStatus:
    """Parse `pjsip show endpoint <name>` output."""
    data = new_endpoint_fields(name)
    for line in text.splitlines():
        if _is_header(line):
            continue
        m = _ENDPOINT_ROW_RE.match(line)
        if m:
            apply_device_state(data, m.group("state"))
            continue
        _apply_cli_line(data, line)
    return EndpointStatus(**data)


def parse_endpoint_list_cli(text: str) -> list[EndpointStatus]:
    """Parse `pjsip show endpoints`, one record per `Endpoint:` row."""
    endpoints: list[EndpointStatus] = []
    current: dict[str, Any] | None = None
    for line in text.splitlines():
        if _is_header(line):
            continue
        m = _ENDPOINT_ROW_RE.match(line)
        if m:
            if current is not None:
                endpoints.append(EndpointStatus(**current))
            current = new_endpoint_fields(m.group("name"))
            apply_device_state(current, m.group("state"))
        elif current is not None:
            _apply_cli_line(current, line)
    if current is not None:
        endpoints.append(EndpointStatus(**current))
    return endpoints


def parse_registrations_cli(text: str) -> list[Registration]:
    """Parse `pjsip show registrations` rows."""
    out: list[Registration] = []
    for line in text.splitlines():
        if _is_header(line) or line.lstrip().startswith("="):
            continue
        m = _REGISTRATION_ROW_RE.match(line)
        if m:
            out.append(
                Registration(
                    name=m.group("name"),
                    server_uri=m.group("uri"),
                    auth=m.group("auth"),
                    status=m.group("status"),
                )
            )
    return out


def parse_channels_cli(text: str) -> list[ChannelRow]:
    """Parse `core show channels` rows (header and summary lines skipped)."""
    out: list[ChannelRow] = []
    for line in text.splitlines():
        if not line.strip() or line.startswith("Channel") or _SUMMARY_RE.match(line):
            continue
        m = _CHANNEL_ROW_RE.match(line)
        if not m:
            continue
        row = ChannelRow(
            channel=m.group("channel"),
            location=m.group("location"),
            state=m.group("state"),
            application=m.group("app"),
        )
        loc = _LOCATION_RE.match(row.location)
        if loc:
            row.extension = loc.group("ext")
            row.context = loc.group("ctx")
            row.priority = loc.group("prio")
        out.append(row)
    return out


def parse_calls_cli(text: str) -> list[CallRow]:
    """Parse rows that carry an HH:MM:SS duration column."""
    out: list[CallRow] = []
    for line in text.splitlines():
        m = _CALL_ROW_RE.match(line)
        if m:
            out.append(
                CallRow(
                    channel=m.group(1),
                    location=m.group(2),
                    state=m.group(3),
                    duration=m.group(4),
                )
            )
    return out


def parse_help_cli(text: str) -> list[CommandHelp]:
    out: list[CommandHelp] = []
    for line in text.splitlines():
        m = _HELP_ROW_RE.match(line)
        if m:
            out.append(CommandHelp(command=m.group("cmd"), description=m.group("desc")))
    return out


def parse_version(text: str) -> str | None:
    m = _VERSION_RE.search(text)
    return m.group(1) if m else None


def parse_active_counts(text: str) -> dict[str, int]:
    """Summary counters from `core show channels` / `core show calls`."""
    counts: dict[str, int] = {}
    for key, rx in (
        ("active_calls", _ACTIVE_CALLS_RE),
        ("active_channels", _ACTIVE_CHANNELS_RE),
        ("calls_processed", _PROCESSED_RE),
    ):
        m = rx.search(text)
        if m:
            counts[key] = int(m.group(1))
    return counts


def parse_aor_contact(text: str) -> tuple[str, float] | None:
    """First available AOR contact row as (uri, expiry)."""
    m = _AOR_CONTACT_RE.search(text)
    if not m:
        return None
    return m.group(1).strip(), float(m.group(3))


def aor_has_contacts(text: str) -> bool:
    """True when an AOR `Contacts:` value is present and non-zero."""
    if "Contacts:" not in text:
        return False
    m = _AOR_CONTACTS_RE.search(text)
    if not m:
        return False
    value = m.group(1).strip()
    return bool(value) and value != "0"


def endpoint_block_exists(text: str, name: str) -> bool:
    return "Endpoint:" in text and name in text


def parse_qualify_status(text: str) -> str | None:
    m = _QUALIFY_STATUS_RE.search(text)
    return m.group(1).strip() if m else None


def parse_rtt_ms(text: str) -> float | None:
    m = _RTT_MS_RE.search(text)
    return float(m.group(1)) if m else None


def parse_user_agent(text: str) -> str | None:
    m = _USER_AGENT_RE.search(text)
    return m.group(1).strip() if m else None


def parse_dialplan_route(text: str) -> tuple[str | None, str | None]:
    """Best-effort (application, trunk) from `dialplan show` output."""
    app = _DIALPLAN_APP_RE.search(text)
    trunk = _DIALPLAN_TRUNK_RE.search(text)
    return (app.group(1) if app else None, trunk.group(1) if trunk else None)
