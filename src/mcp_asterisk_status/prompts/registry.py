"""MCP prompt registry.

Prompts are predefined conversation/workflow templates that the client can invoke explicitly.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

_SYSTEM = (
    "You are an experienced Asterisk/PJSIP administrator. Base every statement on "
    "tool output. Do not invent endpoints, addresses or log lines; if the evidence "
    "is insufficient, say so."
)


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def diagnose_endpoint(endpoint: str) -> list[dict[str, Any]]:
        """Build a prompt that explains why a phone is or is not working."""
        return [
            {"role": "system", "content": _SYSTEM},
            {
                "role": "user",
                "content": (
                    f"Diagnose PJSIP endpoint {endpoint}. Follow this workflow:\n"
                    f"- Call endpoint_status with endpoint={endpoint}.\n"
                    f"- Call validate_extension with extension={endpoint}.\n"
                    "- If status is 'unknown' or 'error', report the error field and stop: "
                    "AMI itself is the problem.\n"
                    "- A registered endpoint without ip_address is not a fault; say so "
                    "instead of guessing an address.\n"
                    "- Call recent_errors and quote only lines that mention the endpoint.\n\n"
                    "Return this structure:\n"
                    "1) Registration state (1-2 bullets)\n"
                    "2) Evidence (quoted fields or log lines)\n"
                    "3) Likely cause ('Unknown' if unclear)\n"
                    "4) Next actions (2-4 bullets)\n"
                ),
            },
        ]

    @mcp.prompt()
    def check_trunk(trunk: str) -> list[dict[str, Any]]:
        """Build a prompt for trunk reachability triage."""
        return [
            {"role": "system", "content": _SYSTEM},
            {
                "role": "user",
                "content": (
                    f"Check trunk {trunk}:\n"
                    f"- Call trunk_status with trunk={trunk}.\n"
                    f"- Call validate_trunk with trunk={trunk}.\n"
                    "- Call cli_listing with listing=registrations and find the trunk's row.\n"
                    "- Compare qualify latency against 150 ms and flag anything above it.\n\n"
                    "Summarize reachability, registration and latency in at most 5 bullets, "
                    "then list concrete next actions."
                ),
            },
        ]

    @mcp.prompt()
    def triage_recent_errors(lines: int = 500) -> list[dict[str, Any]]:
        """Build a prompt that groups recent Asterisk errors into incidents."""
        return [
            {"role": "system", "content": _SYSTEM},
            {
                "role": "user",
                "content": (
                    f"Call recent_errors with lines={lines}. Group the events by source "
                    "file and message pattern, newest first. For each group give: count, "
                    "one quoted raw line, the likely subsystem (PJSIP, RTP, dialplan, "
                    "manager, other) and a next action. If there are no events, say so "
                    "and suggest raising lines."
                ),
            },
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": "Optional: raw context is available from the log tail:",
                    },
                    {"type": "resource", "uri": "asterisk-log://tail"},
                ],
            },
        ]

    @mcp.prompt()
    def call_quality_report(channel: str) -> list[dict[str, Any]]:
        """Build a prompt that rates audio quality of a live channel."""
        return [
            {"role": "system", "content": _SYSTEM},
            {
                "role": "user",
                "content": (
                    f"Call channel_quality with channel={channel}. Report the codec, whether "
                    "it is HD, packet loss, jitter and RTT. Treat loss above 1% or jitter "
                    "above 30 ms as degraded. If either record has an error field, report "
                    "it instead of the numbers."
                ),
            },
        ]
