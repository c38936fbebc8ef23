from __future__ import annotations

import pytest

from mcp_asterisk_status.core.extractors import (
    aor_has_contacts,
    codec_sample_rate,
    command_output,
    contact_address,
    endpoint_block_exists,
    merge_endpoint_status,
    packet_loss_percent,
    parse_active_counts,
    parse_ami_fields,
    parse_aor_contact,
    parse_calls_cli,
    parse_channel_codec_info,
    parse_channels_cli,
    parse_dialplan_route,
    parse_endpoint_ami,
    parse_endpoint_cli,
    parse_endpoint_list_ami,
    parse_endpoint_list_cli,
    parse_help_cli,
    parse_qualify_status,
    parse_registrations_cli,
    parse_rtp_stats,
    parse_rtt_ms,
    parse_user_agent,
    parse_version,
    split_ami_blocks,
)
from mcp_asterisk_status.core.models import EndpointStatus

CLI_ENDPOINT_HEADER = (
    " Endpoint:  <Endpoint/CID.....................................>  <State.....>  <Channels.>\n"
    "    I/OAuth:  <AuthId/UserName...........................................................>\n"
    "        Aor:  <Aor............................................>  <MaxContact>\n"
    "      Contact:  <Aor/ContactUri..........................> <Hash....> <Status> <RTT(ms)..>\n"
    "==========================================================================================\n"
)

CLI_ENDPOINT_100 = (
    CLI_ENDPOINT_HEADER
    + "\n"
    " Endpoint:  100/100                                              Not in use    0 of inf\n"
    "     InAuth:  100-auth/100\n"
    "        Aor:  100                                                1\n"
    "      Contact:  100/sip:100@192.168.1.50:5060;ob       d1f9a0b3c5 Avail        12.345\n"
    "\n"
    " ParameterName                      : ParameterValue\n"
    " allow                              : (ulaw|alaw|g722)\n"
)


def test_ami_inuse_scenario() -> None:
    text = "DeviceState: inuse\r\nContacts: sip:100@192.168.1.50:5060\r\n\r\n"

    status = parse_endpoint_ami(text, "100")

    assert status.name == "100"
    assert status.registered is True
    assert status.status == "registered"
    assert status.ip_address == "192.168.1.50"
    assert status.port == 5060
    assert status.has_contacts


@pytest.mark.parametrize("state", ["not_inuse", "Not in use", "NOT_INUSE", "Ringing", "In use"])
def test_ami_device_states_counted_as_registered(state: str) -> None:
    status = parse_endpoint_ami(f"DeviceState: {state}\r\n\r\n", "200")

    assert status.registered is True
    assert status.status == "registered"
    assert status.device_state_registered


def test_not_inuse_without_contacts_keeps_both_flags_apart() -> None:
    status = parse_endpoint_ami("DeviceState: not_inuse\r\n\r\n", "200")

    assert status.registered is True
    assert status.device_state_registered is True
    assert status.has_contacts is False
    assert status.ip_address is None


@pytest.mark.parametrize("state", ["Unavailable", "invalid", "busy", ""])
def test_other_device_states_are_offline(state: str) -> None:
    status = parse_endpoint_ami(f"DeviceState: {state}\r\n", "200")

    assert status.registered is False
    assert status.status == "offline"


def test_ami_endpoint_fields() -> None:
    text = (
        "Event: EndpointDetail\r\n"
        "ObjectName: 100\r\n"
        "DeviceState: Not in use\r\n"
        "Allow: (ulaw|alaw)\r\n"
        "RoundtripUsec: 12340\r\n"
        "UserAgent: Yealink SIP-T46S 66.86.0.15\r\n"
        "Contacts: 100/sip:100@10.0.0.5:5062,\r\n"
        "\r\n"
    )

    status = parse_endpoint_ami(text, "100")

    assert status.codecs == ["ulaw", "alaw"]
    assert status.last_qualify_ms == 12.34
    assert status.user_agent == "Yealink SIP-T46S 66.86.0.15"
    assert status.contacts == ["100/sip:100@10.0.0.5:5062"]
    assert (status.ip_address, status.port) == ("10.0.0.5", 5062)


def test_ami_garbage_degrades_to_defaults() -> None:
    status = parse_endpoint_ami("\x00\x01 not an AMI reply\r\n:::\r\n", "300")

    assert status.model_dump() == EndpointStatus(name="300").model_dump()
    assert status.status == "offline"
    assert status.contacts == []


def test_ami_roundtrip_not_available_is_ignored() -> None:
    status = parse_endpoint_ami("RoundtripUsec: N/A\r\n", "100")

    assert status.last_qualify_ms is None


def test_endpoint_list_segments_on_object_name() -> None:
    text = (
        "Response: Success\r\n"
        "EventList: start\r\n"
        "Message: A listing of Endpoints follows, presented as EndpointList events\r\n"
        "\r\n"
        "Event: EndpointList\r\n"
        "ObjectType: endpoint\r\n"
        "ObjectName: 100\r\n"
        "OutboundAuths: \r\n"
        "Contacts: 100/sip:100@192.168.1.50:5060,\r\n"
        "DeviceState: Not in use\r\n"
        "\r\n"
        "Event: EndpointList\r\n"
        "ObjectName: 101\r\n"
        "Contacts: \r\n"
        "DeviceState: Unavailable\r\n"
        "\r\n"
        "Event: EndpointListComplete\r\n"
        "EventList: Complete\r\n"
        "ListItems: 2\r\n"
        "\r\n"
    )

    endpoints = parse_endpoint_list_ami(text)

    assert [e.name for e in endpoints] == ["100", "101"]
    assert endpoints[0].registered and endpoints[0].ip_address == "192.168.1.50"
    assert not endpoints[1].registered and endpoints[1].contacts == []


def test_endpoint_list_without_markers_is_empty() -> None:
    assert parse_endpoint_list_ami("Response: Success\r\n\r\n") == []


def test_split_and_fields() -> None:
    text = "Response: Success\r\nPing: Pong\r\n\r\n\r\nEvent: X\r\nKey: a: b\r\n\r\n"

    assert split_ami_blocks(text) == ["Response: Success\nPing: Pong", "Event: X\nKey: a: b"]
    assert parse_ami_fields(text) == [
        ("Response", "Success"),
        ("Ping", "Pong"),
        ("Event", "X"),
        ("Key", "a: b"),
    ]


def test_command_output_modern_framing() -> None:
    text = (
        "Response: Success\r\n"
        "Message: Command output follows\r\n"
        "Output: Channel: PJSIP/100-00000001\r\n"
        "Output:      ReadFormat: opus\r\n"
        "\r\n"
    )

    assert command_output(text) == "Channel: PJSIP/100-00000001\n     ReadFormat: opus"


def test_command_output_legacy_framing() -> None:
    text = (
        "Response: Follows\r\n"
        "Privilege: Command\r\n"
        "Packets Received: 100\n"
        "Packets Lost: 5\n"
        "--END COMMAND--\r\n"
        "\r\n"
    )

    assert command_output(text) == "Packets Received: 100\nPackets Lost: 5"


def test_cli_endpoint_parses_state_and_codecs() -> None:
    status = parse_endpoint_cli(CLI_ENDPOINT_100, "100")

    assert status.registered is True
    assert status.device_state == "not in use"
    assert status.codecs == ["ulaw", "alaw", "g722"]


def test_cli_endpoint_without_contacts_line_has_no_address() -> None:
    status = parse_endpoint_cli(CLI_ENDPOINT_100, "100")

    assert status.contacts == []
    assert status.ip_address is None
    assert status.port is None


def test_cli_contacts_line_sets_address() -> None:
    text = (
        " Endpoint:  100                                                  In use        1 of inf\n"
        " Contacts: 100/sip:100@10.1.2.3:5070\n"
    )

    status = parse_endpoint_cli(text, "100")

    assert status.contacts == ["100/sip:100@10.1.2.3:5070"]
    assert (status.ip_address, status.port) == ("10.1.2.3", 5070)


def test_cli_endpoint_list() -> None:
    text = (
        CLI_ENDPOINT_HEADER
        + "\n"
        " Endpoint:  100/100                                              Not in use    0 of inf\n"
        "        Aor:  100                                                1\n"
        "\n"
        " Endpoint:  101                                                  Unavailable   0 of inf\n"
        "\n"
        "Objects found: 2\n"
    )

    endpoints = parse_endpoint_list_cli(text)

    assert [(e.name, e.registered) for e in endpoints] == [("100", True), ("101", False)]


def test_contact_address_last_match_wins() -> None:
    contacts = ["100/sip:100@10.0.0.1:5060", "junk", "100/sip:100@10.0.0.2:5080;ob"]

    assert contact_address(contacts) == ("10.0.0.2", 5080)
    assert contact_address(["100/sip:100@host.example.com"]) == (None, None)


def test_merge_prefers_ami_and_fills_gaps() -> None:
    ami = EndpointStatus(name="100", registered=True, status="registered", device_state="inuse")
    cli = EndpointStatus(
        name="100",
        registered=False,
        status="offline",
        device_state="unavailable",
        codecs=["ulaw"],
        user_agent="Zoiper",
    )

    merged = merge_endpoint_status(ami, cli)

    assert merged.registered is True
    assert merged.device_state == "inuse"
    assert merged.codecs == ["ulaw"]
    assert merged.user_agent == "Zoiper"


def test_merge_replaces_failed_primary() -> None:
    ami = EndpointStatus(name="100", status="unknown", error="Cannot connect")
    cli = EndpointStatus(name="100", registered=True, status="registered", device_state="inuse")

    assert merge_endpoint_status(ami, cli) is cli
    assert merge_endpoint_status(ami, None) is ami


def test_merge_keeps_failed_primary_when_fallback_failed_too() -> None:
    ami = EndpointStatus(name="100", status="unknown", error="Cannot connect")
    cli = EndpointStatus(name="100", status="error", error="exit 1")

    assert merge_endpoint_status(ami, cli) is ami


def test_registrations() -> None:
    text = (
        " <Registration/ServerURI..............................>  <Auth..........>  <Status.......>\n"
        "==========================================================================================\n"
        "\n"
        " trunk-out/sip:sip.provider.com                          trunk-auth        Registered\n"
        " backup/sip:backup.provider.com:5080                     backup-auth       Rejected\n"
        "\n"
        "Objects found: 2\n"
    )

    regs = parse_registrations_cli(text)

    assert [(r.name, r.server_uri, r.registered) for r in regs] == [
        ("trunk-out", "sip:sip.provider.com", True),
        ("backup", "sip:backup.provider.com:5080", False),
    ]


def test_channels_and_counts() -> None:
    text = (
        "Channel              Location             State   Application(Data)\n"
        "PJSIP/100-00000001   101@from-internal:1  Up      Dial(PJSIP/101,30)\n"
        "PJSIP/101-00000002   (None)               Ringing AppDial((Outgoing Line))\n"
        "2 active channels\n"
        "1 active call\n"
        "5 calls processed\n"
    )

    rows = parse_channels_cli(text)

    assert [r.channel for r in rows] == ["PJSIP/100-00000001", "PJSIP/101-00000002"]
    assert (rows[0].extension, rows[0].context, rows[0].priority) == ("101", "from-internal", "1")
    assert rows[0].application == "Dial(PJSIP/101,30)"
    assert rows[1].context is None
    assert parse_active_counts(text) == {
        "active_calls": 1,
        "active_channels": 2,
        "calls_processed": 5,
    }


def test_calls_help_and_version() -> None:
    calls = parse_calls_cli("PJSIP/100-00000001 101@from-internal Up 00:01:23\nnoise\n")
    helps = parse_help_cli("            core reload  Global reload\n")

    assert [(c.channel, c.duration) for c in calls] == [("PJSIP/100-00000001", "00:01:23")]
    assert [(h.command, h.description) for h in helps] == [("core reload", "Global reload")]
    assert parse_version("Asterisk 20.5.0 built by root @ pbx on a x86_64") == "20.5.0"
    assert parse_version("command not found") is None


def test_aor_helpers() -> None:
    aor = (
        "      Aor:  100                                                  1\n"
        "    Contact:  100/sip:100@192.168.1.50:5060;ob             d1f9a0b3c5 Avail        12.345\n"
    )

    assert parse_aor_contact(aor) == ("100/sip:100@192.168.1.50:5060;ob", 12.345)
    assert parse_aor_contact("No objects found.") is None
    assert aor_has_contacts("  Contacts: 1\n")
    assert not aor_has_contacts("  Contacts: 0\n")
    assert not aor_has_contacts("max_contacts : 1\n")


def test_qualify_latency_and_agent() -> None:
    text = (
        " Endpoint:  trunk-out                                            Not in use    0 of inf\n"
        " Status : Reachable  RTT : 23.5 ms\n"
        " User-Agent: Asterisk PBX 20.5.0\n"
    )

    assert endpoint_block_exists(text, "trunk-out")
    assert not endpoint_block_exists("Unable to find object trunk-x.", "trunk-x")
    assert parse_qualify_status(text) == "Reachable"
    assert parse_rtt_ms(text) == 23.5
    assert parse_user_agent(text) == "Asterisk PBX 20.5.0"


def test_dialplan_route() -> None:
    text = (
        "[ Context 'from-internal' created by 'pbx_config' ]\n"
        "  '_9X.' =>         1. Dial(PJSIP/${EXTEN:1}@trunk-out,60)  [extensions.conf:12]\n"
    )

    assert parse_dialplan_route(text) == ("Dial", "trunk-out")
    assert parse_dialplan_route("") == (None, None)


@pytest.mark.parametrize(
    "codec,rate,hd",
    [("ulaw", 8000, False), ("g722", 16000, True), ("opus", 48000, True), ("mystery", 8000, False)],
)
def test_codec_table(codec: str, rate: int, hd: bool) -> None:
    info = parse_channel_codec_info(f"     ReadFormat: {codec}\n    WriteFormat: {codec}\n")

    assert codec_sample_rate(codec) == rate
    assert info.read_format == codec
    assert info.sample_rate == rate
    assert info.is_hd is hd


def test_channel_codec_legacy_lines() -> None:
    info = parse_channel_codec_info(
        "   Read Codec: (alaw)\n  Write Codec: (alaw)\n", "SIP/100-1"
    )

    assert (info.channel, info.read_codec, info.write_codec) == ("SIP/100-1", "alaw", "alaw")
    assert info.sample_rate == 8000


def test_channel_codec_empty_output_defaults() -> None:
    info = parse_channel_codec_info("")

    assert info.read_codec is None and info.read_format is None
    assert info.sample_rate == 8000
    assert info.is_hd is False


def test_rtp_loss_scenario() -> None:
    stats = parse_rtp_stats("Packets Received: 100\nPackets Lost: 5\n")

    assert stats.packet_loss_percent == 4.76
    assert stats.packets_sent == 0
    assert stats.jitter == 0.0


def test_rtp_full_block() -> None:
    stats = parse_rtp_stats(
        "SSRC: 0x1a2b3c4d\nPackets Sent: 1500\nPackets Received: 1490\n"
        "Packets Lost: 10\nJitter: 2.5\nRTT: 0.041\n",
        "PJSIP/100-00000001",
    )

    assert stats.ssrc == "0x1a2b3c4d"
    assert stats.packets_sent == 1500
    assert stats.jitter == 2.5
    assert stats.rtt == 0.041
    assert stats.packet_loss_percent == round(10 / 1500 * 100, 2)


def test_packet_loss_zero_denominator() -> None:
    assert packet_loss_percent(0, 0) == 0.0
