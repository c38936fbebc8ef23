"""Text extractors: raw AMI/CLI output to typed records.

Everything here is pure and tolerant: unrecognized input degrades to the
documented defaults instead of raising.
"""

from __future__ import annotations

from .ami import (
    command_output,
    contact_address,
    parse_ami_fields,
    parse_endpoint_ami,
    parse_endpoint_list_ami,
    split_ami_blocks,
)
from .channel import (
    codec_sample_rate,
    packet_loss_percent,
    parse_channel_codec_info,
    parse_rtp_stats,
)
from .cli import (
    aor_has_contacts,
    endpoint_block_exists,
    parse_active_counts,
    parse_aor_contact,
    parse_calls_cli,
    parse_channels_cli,
    parse_dialplan_route,
    parse_endpoint_cli,
    parse_endpoint_list_cli,
    parse_help_cli,
    parse_qualify_status,
    parse_registrations_cli,
    parse_rtt_ms,
    parse_user_agent,
    parse_version,
)
from .merge import merge_endpoint_status

__all__ = [
    "aor_has_contacts",
    "codec_sample_rate",
    "command_output",
    "contact_address",
    "endpoint_block_exists",
    "merge_endpoint_status",
    "packet_loss_percent",
    "parse_active_counts",
    "parse_ami_fields",
    "parse_aor_contact",
    "parse_calls_cli",
    "parse_channel_codec_info",
    "parse_channels_cli",
    "parse_dialplan_route",
    "parse_endpoint_ami",
    "parse_endpoint_cli",
    "parse_endpoint_list_ami",
    "parse_endpoint_list_cli",
    "parse_help_cli",
    "parse_qualify_status",
    "parse_registrations_cli",
    "parse_rtp_stats",
    "parse_rtt_ms",
    "parse_user_agent",
    "parse_version",
    "split_ami_blocks",
]
