"""MCP tool implementations for the Asterisk CLI and log output."""

from __future__ import annotations

import asyncio
from typing import Any

from mcp_asterisk_status.core.console import ConsoleCommandGateway, clamp_verbosity
from mcp_asterisk_status.core.errors import CommandRejected
from mcp_asterisk_status.core.log_parser import filter_event
from mcp_asterisk_status.core.models import DEFAULT_PRIORITY, LogEvent
from mcp_asterisk_status.core.settings import AsteriskSettings, resolve_settings

DEFAULT_LINES = 100
HARD_LINE_LIMIT = 5000
MAX_STREAM_SECONDS = 60.0
DEFAULT_MAX_EVENTS = 200

_LISTINGS = ("calls", "channels", "endpoints", "registrations", "commands")


def _gateway(
    gateway: ConsoleCommandGateway | None,
    settings: AsteriskSettings | None,
) -> ConsoleCommandGateway:
    if gateway is not None:
        return gateway
    return ConsoleCommandGateway.from_settings(settings or resolve_settings())


def _lines(lines: int | None) -> int:
    if lines is None:
        return DEFAULT_LINES
    if lines <= 0:
        raise ValueError("lines must be > 0")
    return min(lines, HARD_LINE_LIMIT)


async def execute_command_impl(
    *,
    command: str,
    gateway: ConsoleCommandGateway | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    """Run a CLI command; denylisted commands come back as an error dict."""
    command = command.strip()
    if not command:
        raise ValueError("command must not be empty")
    try:
        result = await _gateway(gateway, settings).execute_command(command)
    except CommandRejected as exc:
        return {"command": command, "success": False, "rejected": True, "error": str(exc)}
    out = result.model_dump(mode="json")
    out["rejected"] = False
    return out


async def pbx_overview_impl(
    *,
    gateway: ConsoleCommandGateway | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    gw = _gateway(gateway, settings)
    running = await gw.is_running()
    calls = await gw.get_active_calls()
    counts = await gw.get_active_counts()
    return {
        "running": running,
        "version": await gw.get_version(),
        "active_calls": len(calls),
        "active_channels": counts.get("active_channels"),
        "calls_processed": counts.get("calls_processed"),
        "calls": [c.model_dump(mode="json") for c in calls],
    }


async def cli_listing_impl(
    *,
    listing: str,
    gateway: ConsoleCommandGateway | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    """One of the parsed CLI tables: calls, channels, endpoints, registrations, commands."""
    name = listing.strip().lower()
    if name not in _LISTINGS:
        raise ValueError(f"Unknown listing '{listing}'. Valid values: {', '.join(_LISTINGS)}.")
    gw = _gateway(gateway, settings)
    fetch = {
        "calls": gw.get_active_calls,
        "channels": gw.get_channels,
        "endpoints": gw.get_pjsip_endpoints,
        "registrations": gw.get_pjsip_registrations,
        "commands": gw.get_available_commands,
    }[name]
    rows = await fetch()
    return {"listing": name, "count": len(rows), "rows": [r.model_dump(mode="json") for r in rows]}


async def recent_errors_impl(
    *,
    lines: int | None = None,
    gateway: ConsoleCommandGateway | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    events = await _gateway(gateway, settings).get_recent_errors(_lines(lines))
    return {"count": len(events), "events": [e.to_dict() for e in events]}


async def console_output_impl(
    *,
    lines: int | None = None,
    verbosity: int = DEFAULT_PRIORITY,
    gateway: ConsoleCommandGateway | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    level = clamp_verbosity(verbosity)
    events = await _gateway(gateway, settings).get_console_output(_lines(lines))
    kept = [e for e in events if filter_event(e, level) is not None]
    return {"count": len(kept), "events": [e.to_dict() for e in kept]}


async def stream_log_events_impl(
    *,
    seconds: float = 5.0,
    verbosity: int = DEFAULT_PRIORITY,
    max_events: int = DEFAULT_MAX_EVENTS,
    gateway: ConsoleCommandGateway | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    """Collect live log events for a bounded window of time."""
    if seconds <= 0:
        raise ValueError("seconds must be > 0")
    if max_events <= 0:
        raise ValueError("max_events must be > 0")
    seconds = min(seconds, MAX_STREAM_SECONDS)

    events: list[LogEvent] = []
    stop = asyncio.Event()

    def sink(event: LogEvent) -> None:
        events.append(event)
        if len(events) >= max_events:
            stop.set()

    loop = asyncio.get_running_loop()
    timer = loop.call_later(seconds, stop.set)
    try:
        await _gateway(gateway, settings).stream_live_output(sink, stop, verbosity)
    finally:
        timer.cancel()
    return {
        "count": len(events),
        "truncated": len(events) >= max_events,
        "events": [e.to_dict() for e in events],
    }
