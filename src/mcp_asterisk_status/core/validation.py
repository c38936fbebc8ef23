"""PJSIP trunk, extension and dialplan checks through the Asterisk CLI."""

from __future__ import annotations

import logging

from .errors import AsteriskError
from .extractors import (
    aor_has_contacts,
    contact_address,
    endpoint_block_exists,
    parse_aor_contact,
    parse_dialplan_route,
    parse_qualify_status,
    parse_rtt_ms,
    parse_user_agent,
)
from .models import ExtensionValidation, RoutingResult, TrunkValidation
from .runner import CommandRunner

logger = logging.getLogger(__name__)

QUALIFIED_STATUSES = frozenset({"Reachable", "Qual"})
DEFAULT_CONTEXT = "from-internal"


class PjsipValidation:
    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    async def _query(self, command: str) -> tuple[str | None, str | None]:
        """Return (output, None) on success or (None, reason) on any failure."""
        try:
            result = await self.runner.asterisk(command)
        except AsteriskError as exc:
            logger.warning("%r failed: %s", command, exc)
            return None, str(exc)
        if not result.success:
            return None, result.error or f"exit code {result.exit_code}"
        return result.output, None

    async def validate_trunk_connection(self, trunk: str) -> TrunkValidation:
        result = TrunkValidation(trunk=trunk)

        output, error = await self._query(f"pjsip show endpoint {trunk}")
        if output is None:
            result.errors.append(f"Failed to query endpoint: {error}")
            return result

        qualified = False
        if endpoint_block_exists(output, trunk):
            result.endpoint_found = True
            status = parse_qualify_status(output)
            if status is not None:
                result.qualify_status = status.lower()
                qualified = status in QUALIFIED_STATUSES
            result.latency_ms = parse_rtt_ms(output)
        else:
            result.errors.append("Endpoint not found in Asterisk - check PJSIP configuration")

        aor_output, _ = await self._query(f"pjsip show aor {trunk}")
        has_contacts = aor_output is not None and aor_has_contacts(aor_output)

        result.registered = qualified or has_contacts
        result.reachable = result.endpoint_found and result.registered
        return result

    async def validate_extension_registration(self, extension: str) -> ExtensionValidation:
        result = ExtensionValidation(extension=extension)

        aor_output, aor_error = await self._query(f"pjsip show aor {extension}")
        if aor_output is None:
            result.errors.append(f"Failed to query AOR: {aor_error}")
        else:
            contact = parse_aor_contact(aor_output)
            if contact is not None:
                uri, expiry = contact
                result.registered = True
                result.contact = uri
                result.expiry = expiry
                result.ip_address, result.port = contact_address([uri])

        endpoint_output, endpoint_error = await self._query(f"pjsip show endpoint {extension}")
        if endpoint_output is None:
            result.errors.append(f"Failed to query endpoint: {endpoint_error}")
        else:
            result.user_agent = parse_user_agent(endpoint_output)

        if aor_output is not None and not result.registered:
            result.errors.append("Extension is not registered - check SIP client configuration")
        return result

    async def test_call_routing(
        self,
        from_extension: str,
        to: str,
        context: str = DEFAULT_CONTEXT,
    ) -> RoutingResult:
        result = RoutingResult(from_extension=from_extension, to=to)

        output, error = await self._query(f"dialplan show {to}@{context}")
        if output is None:
            result.errors.append(f"Failed to query dialplan: {error}")
            return result

        if f"Extension '{to}'" in output:
            result.route_found = True
            result.context = context
            result.application, result.trunk = parse_dialplan_route(output)
        else:
            result.errors.append(f"No routing found for number {to} in context {context}")
        return result
