"""Precedence rules between the AMI and CLI endpoint views."""

from __future__ import annotations

from ..models import EndpointStatus

_FAILED = ("unknown", "error")
_FILLABLE = (
    "contacts",
    "ip_address",
    "port",
    "codecs",
    "last_qualify_ms",
    "user_agent",
)


def merge_endpoint_status(
    primary: EndpointStatus,
    fallback: EndpointStatus | None,
) -> EndpointStatus:
    """Combine two views of one endpoint, `primary` (AMI) winning.

    A failed primary is replaced by a usable fallback. Otherwise the fallback
    only fills fields the primary left at their defaults; registration state
    always comes from the primary.
    """
    if fallback is None:
        return primary
    if primary.status in _FAILED:
        if fallback.status in _FAILED:
            return primary
        return fallback

    update = {}
    for field in _FILLABLE:
        if not getattr(primary, field) and getattr(fallback, field):
            update[field] = getattr(fallback, field)
    if primary.device_state == "unknown" and fallback.device_state != "unknown":
        update["device_state"] = fallback.device_state
        update["registered"] = fallback.registered
        update["status"] = fallback.status
    if not update:
        return primary
    return primary.model_copy(update=update)
