"""MCP tool implementations for PBX status and PJSIP validation.

Keep this layer thin: validate inputs, call the core façades and return
JSON-serializable dicts. Collaborators are injectable so tests can run
without a PBX.
"""

from __future__ import annotations

from typing import Any

from mcp_asterisk_status.core.runner import CommandRunner
from mcp_asterisk_status.core.settings import AsteriskSettings, resolve_settings
from mcp_asterisk_status.core.status_service import AsteriskStatusService
from mcp_asterisk_status.core.validation import PjsipValidation


def _require(name: str, value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{name} must not be empty")
    return value


def _status_service(
    service: AsteriskStatusService | None,
    settings: AsteriskSettings | None,
    *,
    cli_fallback: bool = False,
) -> AsteriskStatusService:
    if service is not None:
        return service
    return AsteriskStatusService.from_settings(
        settings or resolve_settings(), cli_fallback=cli_fallback
    )


def _validation(
    validation: PjsipValidation | None,
    settings: AsteriskSettings | None,
) -> PjsipValidation:
    if validation is not None:
        return validation
    return PjsipValidation(CommandRunner.from_settings(settings or resolve_settings()))


async def endpoint_status_impl(
    *,
    endpoint: str,
    cli_fallback: bool = True,
    service: AsteriskStatusService | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    svc = _status_service(service, settings, cli_fallback=cli_fallback)
    status = await svc.get_endpoint_details(_require("endpoint", endpoint))
    return status.model_dump(mode="json")


async def list_endpoints_impl(
    *,
    registered_only: bool = False,
    service: AsteriskStatusService | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    svc = _status_service(service, settings)
    endpoints = await svc.get_all_registered_endpoints()
    if registered_only:
        endpoints = [e for e in endpoints if e.registered]
    return {
        "count": len(endpoints),
        "registered": sum(1 for e in endpoints if e.registered),
        "endpoints": [e.model_dump(mode="json") for e in endpoints],
    }


async def trunk_status_impl(
    *,
    trunk: str,
    service: AsteriskStatusService | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    svc = _status_service(service, settings)
    status = await svc.get_trunk_status(_require("trunk", trunk))
    return status.model_dump(mode="json")


async def channel_quality_impl(
    *,
    channel: str,
    service: AsteriskStatusService | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    """Codec and RTP figures for one channel, fetched on separate connections."""
    svc = _status_service(service, settings)
    name = _require("channel", channel)
    codec = await svc.get_channel_codec_info(name)
    rtp = await svc.get_rtp_stats(name)
    return {
        "channel": name,
        "codec": codec.model_dump(mode="json"),
        "rtp": rtp.model_dump(mode="json"),
    }


async def validate_trunk_impl(
    *,
    trunk: str,
    validation: PjsipValidation | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    result = await _validation(validation, settings).validate_trunk_connection(
        _require("trunk", trunk)
    )
    return result.model_dump(mode="json")


async def validate_extension_impl(
    *,
    extension: str,
    validation: PjsipValidation | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    result = await _validation(validation, settings).validate_extension_registration(
        _require("extension", extension)
    )
    return result.model_dump(mode="json")


async def call_routing_impl(
    *,
    from_extension: str,
    to: str,
    context: str | None = None,
    validation: PjsipValidation | None = None,
    settings: AsteriskSettings | None = None,
) -> dict[str, Any]:
    """Dialplan lookup for `to`; context defaults to ASTERISK_DIALPLAN_CONTEXT."""
    if context is None:
        context = (settings or resolve_settings()).dialplan_context
    result = await _validation(validation, settings).test_call_routing(
        _require("from_extension", from_extension),
        _require("to", to),
        context,
    )
    return result.model_dump(mode="json", by_alias=True)
