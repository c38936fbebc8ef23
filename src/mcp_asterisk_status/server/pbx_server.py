"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: endpoint/trunk status, PJSIP validation, guarded CLI access, log events
- Resources: help text, JSON schemas, the tail of the Asterisk log
- Prompts: diagnosis workflows built on the tools

Run locally (stdio):
    python -m mcp_asterisk_status.server.pbx_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_asterisk_status.prompts.registry import register_prompts
from mcp_asterisk_status.resources.registry import register_resources
from mcp_asterisk_status.tools.console import (
    cli_listing_impl,
    console_output_impl,
    execute_command_impl,
    pbx_overview_impl,
    recent_errors_impl,
    stream_log_events_impl,
)
from mcp_asterisk_status.tools.status import (
    call_routing_impl,
    channel_quality_impl,
    endpoint_status_impl,
    list_endpoints_impl,
    trunk_status_impl,
    validate_extension_impl,
    validate_trunk_impl,
)

LOGGER = logging.getLogger(__name__)

LOG_LEVEL_ENV = "ASTERISK_STATUS_LOG_LEVEL"


def configure_logging() -> None:
    """Log to stderr; stdout carries the MCP stdio stream."""
    level_name = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


mcp = FastMCP("asterisk-status", json_response=True)

register_resources(mcp)
register_prompts(mcp)


@mcp.tool()
async def endpoint_status(endpoint: str, cli_fallback: bool = True) -> dict[str, Any]:
    """Return the normalized status of one PJSIP endpoint.

    Parameters
    ----------
    endpoint:
        Endpoint name as configured in pjsip.conf (e.g. "101").
    cli_fallback:
        When true, `pjsip show endpoint` output fills fields AMI left empty.

    Returns
    -------
    dict:
        EndpointStatus; `status` is "unknown" when AMI was unreachable and
        "error" when the request failed after connecting.
    """
    return await endpoint_status_impl(endpoint=endpoint, cli_fallback=cli_fallback)


@mcp.tool()
async def list_endpoints(registered_only: bool = False) -> dict[str, Any]:
    """List every PJSIP endpoint AMI reports (empty when AMI is unavailable)."""
    return await list_endpoints_impl(registered_only=registered_only)


@mcp.tool()
async def trunk_status(trunk: str) -> dict[str, Any]:
    """Return endpoint status of a trunk with `reachable` and `latency_ms` filled."""
    return await trunk_status_impl(trunk=trunk)


@mcp.tool()
async def channel_quality(channel: str) -> dict[str, Any]:
    """Return codec (sample rate, HD flag) and RTP statistics for a live channel.

    `channel` is the full channel name, e.g. "PJSIP/101-00000001".
    """
    return await channel_quality_impl(channel=channel)


@mcp.tool()
async def validate_trunk(trunk: str) -> dict[str, Any]:
    """Check that a trunk endpoint exists and is qualified or has contacts."""
    return await validate_trunk_impl(trunk=trunk)


@mcp.tool()
async def validate_extension(extension: str) -> dict[str, Any]:
    """Check that an extension has a registered contact; report its address and agent."""
    return await validate_extension_impl(extension=extension)


@mcp.tool()
async def test_call_routing(
    from_extension: str,
    to: str,
    context: str | None = None,
) -> dict[str, Any]:
    """Look up the dialplan route for `to` in `context` (default from settings)."""
    return await call_routing_impl(from_extension=from_extension, to=to, context=context)


@mcp.tool()
async def execute_cli_command(command: str) -> dict[str, Any]:
    """Run one `asterisk -rx` command.

    Commands starting with core stop/restart/shutdown, module unload, database,
    shell or system are refused without running anything.
    """
    return await execute_command_impl(command=command)


@mcp.tool()
async def pbx_overview() -> dict[str, Any]:
    """Service state, Asterisk version and current calls."""
    return await pbx_overview_impl()


@mcp.tool()
async def cli_listing(listing: str) -> dict[str, Any]:
    """Parsed CLI table: calls, channels, endpoints, registrations or commands."""
    return await cli_listing_impl(listing=listing)


@mcp.tool()
async def recent_errors(lines: int | None = None) -> dict[str, Any]:
    """Error and warning events among the last `lines` log lines (default 100)."""
    return await recent_errors_impl(lines=lines)


@mcp.tool()
async def console_output(lines: int | None = None, verbosity: int = 5) -> dict[str, Any]:
    """Last `lines` log lines as structured events, filtered by verbosity (1-10)."""
    return await console_output_impl(lines=lines, verbosity=verbosity)


@mcp.tool()
async def stream_log_events(
    seconds: float = 5.0,
    verbosity: int = 5,
    max_events: int = 200,
) -> dict[str, Any]:
    """Follow the Asterisk log for up to `seconds` and return the new events."""
    return await stream_log_events_impl(
        seconds=seconds, verbosity=verbosity, max_events=max_events
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
