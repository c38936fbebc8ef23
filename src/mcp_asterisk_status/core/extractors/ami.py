"""Extractors for AMI `Key: value` responses."""

from __future__ import annotations

import re
from typing import Any

from ..models import REGISTERED_DEVICE_STATES, EndpointStatus, normalize_device_state

_KV_RE = re.compile(r"^(?P<key>[A-Za-z][\w-]*):\s*(?P<value>.*?)\s*$")
_CONTACT_ADDR_RE = re.compile(r"sip:[^@,\s]*@(?P<ip>\d{1,3}(?:\.\d{1,3}){3}):(?P<port>\d+)")
_HEADER_KEYS = frozenset({"Response", "Message", "ActionID", "Privilege"})
_END_COMMAND = "--END COMMAND--"


def parse_ami_fields(text: str) -> list[tuple[str, str]]:
    """Return all `Key: value` pairs in order, ignoring anything else."""
    out: list[tuple[str, str]] = []
    for line in text.splitlines():
        m = _KV_RE.match(line.strip())
        if m:
            out.append((m.group("key"), m.group("value")))
    return out


def split_ami_blocks(text: str) -> list[str]:
    """Split a response into its blank-line separated blocks."""
    blocks: list[str] = []
    current: list[str] = []
    for line in text.splitlines():
        if line.strip():
            current.append(line.rstrip("\r"))
        elif current:
            blocks.append("\n".join(current))
            current = []
    if current:
        blocks.append("\n".join(current))
    return blocks


def command_output(text: str) -> str:
    """Strip the AMI framing from a `Command` action response.

    Handles both the modern `Output: ...` lines and the legacy
    `Response: Follows` body terminated by `--END COMMAND--`.
    """
    out: list[str] = []
    in_header = True
    for line in text.splitlines():
        stripped = line.rstrip("\r")
        if stripped.strip() == _END_COMMAND:
            break
        if stripped.startswith("Output:"):
            value = stripped[len("Output:"):]
            out.append(value[1:] if value.startswith(" ") else value)
            in_header = False
            continue
        if in_header:
            m = _KV_RE.match(stripped.strip())
            if m and m.group("key") in _HEADER_KEYS:
                continue
            if not stripped.strip():
                continue
        in_header = False
        out.append(stripped.replace(_END_COMMAND, "").rstrip())
    while out and not out[-1].strip():
        out.pop()
    return "\n".join(out)


def split_contacts(value: str) -> list[str]:
    """Split a comma-joined contact list, dropping `<none>` placeholders."""
    return [c.strip() for c in value.split(",") if c.strip() and c.strip() != "<none>"]


def parse_codec_list(value: str) -> list[str]:
    """Parse `ulaw,alaw` or `(ulaw|alaw)` into a list."""
    cleaned = value.strip().strip("()")
    return [c.strip() for c in re.split(r"[|,]", cleaned) if c.strip() and c.strip() != "<none>"]


def contact_address(contacts: list[str]) -> tuple[str | None, int | None]:
    """Return ip/port of the last contact with a `sip:user@ip:port` URI."""
    ip: str | None = None
    port: int | None = None
    for contact in contacts:
        m = _CONTACT_ADDR_RE.search(contact)
        if m:
            ip = m.group("ip")
            port = int(m.group("port"))
    return ip, port


def new_endpoint_fields(name: str) -> dict[str, Any]:
    """Default field set for an endpoint nobody has described yet."""
    return {
        "name": name,
        "registered": False,
        "status": "offline",
        "device_state": "unknown",
        "contacts": [],
        "ip_address": None,
        "port": None,
        "codecs": [],
        "last_qualify_ms": None,
        "user_agent": None,
    }


def apply_device_state(data: dict[str, Any], value: str) -> None:
    state = value.strip().lower()
    data["device_state"] = state
    data["registered"] = normalize_device_state(state) in REGISTERED_DEVICE_STATES
    data["status"] = "registered" if data["registered"] else "offline"


def apply_contacts(data: dict[str, Any], value: str) -> None:
    contacts = split_contacts(value)
    if not contacts:
        return
    merged = list(data["contacts"])
    merged.extend(c for c in contacts if c not in merged)
    data["contacts"] = merged
    ip, port = contact_address(merged)
    if ip is not None:
        data["ip_address"] = ip
        data["port"] = port


def _apply_ami_field(data: dict[str, Any], key: str, value: str) -> None:
    if key == "DeviceState":
        apply_device_state(data, value)
    elif key == "Contacts":
        apply_contacts(data, value)
    elif key in ("Codecs", "Allow"):
        codecs = parse_codec_list(value)
        if codecs:
            data["codecs"] = codecs
    elif key == "RoundtripUsec":
        try:
            data["last_qualify_ms"] = round(int(value) / 1000, 2)
        except ValueError:
            pass  # "N/A" until the first qualify completes
    elif key == "UserAgent" and value:
        data["user_agent"] = value


def parse_endpoint_ami(text: str, name: str) -> EndpointStatus:
    """Parse a PJSIPShowEndpoint response (all of its event blocks)."""
    data = new_endpoint_fields(name)
    for key, value in parse_ami_fields(text):
        _apply_ami_field(data, key, value)
    return EndpointStatus(**data)


def parse_endpoint_list_ami(text: str) -> list[EndpointStatus]:
    """Parse a PJSIPShowEndpoints listing, one record per `ObjectName:`."""
    endpoints: list[EndpointStatus] = []
    current: dict[str, Any] | None = None
    for key, value in parse_ami_fields(text):
        if key == "ObjectName":
            if current is not None:
                endpoints.append(EndpointStatus(**current))
            current = new_endpoint_fields(value)
        elif current is not None:
            _apply_ami_field(current, key, value)
    if current is not None:
        endpoints.append(EndpointStatus(**current))
    return endpoints
