"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_asterisk_status.core.console import COMMAND_DENYLIST, ConsoleCommandGateway
from mcp_asterisk_status.core.models import (
    LEVEL_PRIORITY,
    ChannelCodecInfo,
    EndpointStatus,
    ExtensionValidation,
    RoutingResult,
    RTPStats,
    TrunkValidation,
)
from mcp_asterisk_status.core.settings import resolve_settings

TAIL_LINES = 200

_SCHEMAS = {
    "endpoint-status": EndpointStatus,
    "channel-codec": ChannelCodecInfo,
    "rtp-stats": RTPStats,
    "trunk-validation": TrunkValidation,
    "extension-validation": ExtensionValidation,
    "routing-result": RoutingResult,
}


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://asterisk-status/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        schemas = "".join(f"- app://asterisk-status/schemas/{name}\n" for name in _SCHEMAS)
        return (
            "Resources:\n"
            "- app://asterisk-status/help\n"
            "- app://asterisk-status/config/settings\n"
            "- app://asterisk-status/config/command-denylist\n"
            "- app://asterisk-status/config/log-levels\n"
            f"{schemas}"
            f"- asterisk-log://tail (last {TAIL_LINES} lines of the Asterisk log)\n"
        )

    @mcp.resource("app://asterisk-status/config/settings")
    def settings_resource() -> dict[str, Any]:
        """Effective settings, secret omitted."""
        s = resolve_settings()
        return {
            "ami_host": s.ami_host,
            "ami_port": s.ami_port,
            "ami_username": s.ami_username,
            "ami_secret_set": bool(s.ami_secret),
            "ami_connect_timeout": s.ami_connect_timeout,
            "asterisk_binary": s.asterisk_binary,
            "cli_timeout": s.cli_timeout,
            "cli_user": s.cli_user,
            "log_paths": [os.fspath(p) for p in s.log_paths],
            "dialplan_context": s.dialplan_context,
        }

    @mcp.resource("app://asterisk-status/config/command-denylist")
    def command_denylist() -> list[str]:
        return list(COMMAND_DENYLIST)

    @mcp.resource("app://asterisk-status/config/log-levels")
    def log_levels() -> dict[str, int]:
        """Log level priorities; verbosity N keeps levels with priority <= N."""
        return {level.value: priority for level, priority in LEVEL_PRIORITY.items()}

    @mcp.resource("app://asterisk-status/schemas/{name}")
    def schema(name: str) -> dict[str, Any]:
        """Return the JSON schema of one result model."""
        model = _SCHEMAS.get(name)
        if model is None:
            raise ValueError(f"Unknown schema '{name}'. Available: {', '.join(_SCHEMAS)}.")
        return model.model_json_schema(mode="serialization")

    @mcp.resource("asterisk-log://tail")
    async def tail_log() -> str:
        """Return the last lines of the first readable Asterisk log file."""
        gateway = ConsoleCommandGateway.from_settings(resolve_settings())
        events = await gateway.get_console_output(TAIL_LINES)
        return "\n".join(e.raw for e in events) + ("\n" if events else "")
