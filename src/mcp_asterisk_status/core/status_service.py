"""Endpoint, trunk, codec and RTP status over AMI.

Every public call builds its own AMITransport, makes exactly one attempt and
closes the connection. Transport and process failures come back as fields on
the returned record; nothing here raises to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .ami import AMIAction, AMIResponse, AMITransport
from .errors import AMIAuthError, AMIConnectionError, AMIRequestError, AsteriskError
from .extractors import (
    command_output,
    merge_endpoint_status,
    parse_channel_codec_info,
    parse_endpoint_ami,
    parse_endpoint_cli,
    parse_endpoint_list_ami,
    parse_rtp_stats,
    split_ami_blocks,
)
from .models import ChannelCodecInfo, EndpointStatus, RTPStats
from .runner import CommandRunner
from .settings import AsteriskSettings

logger = logging.getLogger(__name__)

ENDPOINT_TIMEOUT = 3.0
ENDPOINT_LIST_TIMEOUT = 5.0
COMMAND_TIMEOUT = 3.0

TransportFactory = Callable[[], AMITransport]


def _raise_for_error(action: AMIAction, response: AMIResponse) -> None:
    blocks = split_ami_blocks(response.text)
    if not blocks:
        if response.incomplete:
            raise AMIRequestError(f"No response to {action.name} before the deadline")
        return
    head = blocks[0]
    if "Response: Error" in head:
        message = "unknown error"
        for line in head.splitlines():
            if line.startswith("Message:"):
                message = line[len("Message:"):].strip()
        raise AMIRequestError(f"{action.name} failed: {message}")


class AsteriskStatusService:
    def __init__(
        self,
        transport_factory: TransportFactory,
        *,
        cli_runner: CommandRunner | None = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._cli_runner = cli_runner

    @classmethod
    def from_settings(
        cls,
        settings: AsteriskSettings,
        *,
        cli_fallback: bool = False,
    ) -> AsteriskStatusService:
        return cls(
            lambda: AMITransport.from_settings(settings),
            cli_runner=CommandRunner.from_settings(settings) if cli_fallback else None,
        )

    async def _request(self, action: AMIAction, timeout: float) -> AMIResponse:
        async with self._transport_factory() as transport:
            await transport.connect()
            try:
                response = await transport.request(action, timeout=timeout)
            except AMIConnectionError as exc:
                # Connected and authenticated already, so this is a request failure.
                raise AMIRequestError(f"{action.name}: connection lost: {exc}") from exc
        _raise_for_error(action, response)
        return response

    async def _cli_endpoint(self, name: str) -> EndpointStatus | None:
        if self._cli_runner is None:
            return None
        try:
            result = await self._cli_runner.asterisk(f"pjsip show endpoint {name}")
        except AsteriskError as exc:
            logger.debug("CLI fallback for endpoint %s failed: %s", name, exc)
            return None
        if not result.success:
            return None
        return parse_endpoint_cli(result.output, name)

    async def get_endpoint_details(self, name: str) -> EndpointStatus:
        """Status of one endpoint; failures land in `status` and `error`."""
        action = AMIAction.build("PJSIPShowEndpoint", Endpoint=name)
        try:
            response = await self._request(action, ENDPOINT_TIMEOUT)
        except (AMIConnectionError, AMIAuthError) as exc:
            logger.warning("Endpoint %s: cannot reach AMI: %s", name, exc)
            primary = EndpointStatus(name=name, status="unknown", error=str(exc))
        except AsteriskError as exc:
            logger.warning("Endpoint %s: AMI request failed: %s", name, exc)
            primary = EndpointStatus(name=name, status="error", error=str(exc))
        else:
            primary = parse_endpoint_ami(response.text, name)
            if response.incomplete:
                logger.debug("Endpoint %s: parsed a partial AMI response", name)

        return merge_endpoint_status(primary, await self._cli_endpoint(name))

    async def get_all_registered_endpoints(self) -> list[EndpointStatus]:
        """Every endpoint AMI lists; an empty list when AMI is unavailable."""
        action = AMIAction.build("PJSIPShowEndpoints")
        try:
            response = await self._request(action, ENDPOINT_LIST_TIMEOUT)
        except AsteriskError as exc:
            logger.warning("Cannot list endpoints: %s", exc)
            return []
        return parse_endpoint_list_ami(response.text)

    async def _command(self, command: str) -> str:
        action = AMIAction.build("Command", Command=command)
        response = await self._request(action, COMMAND_TIMEOUT)
        return command_output(response.text)

    async def get_channel_codec_info(self, channel: str) -> ChannelCodecInfo:
        try:
            text = await self._command(f"core show channel {channel}")
        except AsteriskError as exc:
            logger.warning("Codec info for %s unavailable: %s", channel, exc)
            return ChannelCodecInfo(channel=channel, error=str(exc))
        return parse_channel_codec_info(text, channel)

    async def get_rtp_stats(self, channel: str) -> RTPStats:
        try:
            text = await self._command(f"rtp show stats {channel}")
        except AsteriskError as exc:
            logger.warning("RTP stats for %s unavailable: %s", channel, exc)
            return RTPStats(channel=channel, error=str(exc))
        return parse_rtp_stats(text, channel)

    async def get_trunk_status(self, trunk: str) -> EndpointStatus:
        """Endpoint status of a trunk plus reachability and qualify latency."""
        status = await self.get_endpoint_details(trunk)
        return status.model_copy(
            update={"reachable": status.registered, "latency_ms": status.last_qualify_ms}
        )
