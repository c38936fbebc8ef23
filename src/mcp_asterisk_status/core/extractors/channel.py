"""Per-channel codec and RTP extractors."""

from __future__ import annotations

import re

from ..models import ChannelCodecInfo, RTPStats

NARROWBAND_RATE = 8000

# Wideband and better codecs; anything missing here is treated as narrowband.
CODEC_SAMPLE_RATES: dict[str, int] = {
    "g722": 16000,
    "g722.2": 16000,
    "siren7": 16000,
    "silk": 16000,
    "speex16": 16000,
    "slin16": 16000,
    "siren14": 32000,
    "slin32": 32000,
    "opus": 48000,
    "slin48": 48000,
}

_READ_CODEC_RE = re.compile(r"Read\s?Codec:\s*\(?([\w.]+)")
_WRITE_CODEC_RE = re.compile(r"Write\s?Codec:\s*\(?([\w.]+)")
_READ_FORMAT_RE = re.compile(r"Read\s?Format:\s*\(?([\w.]+)")
_WRITE_FORMAT_RE = re.compile(r"Write\s?Format:\s*\(?([\w.]+)")

_SSRC_RE = re.compile(r"SSRC:\s*(\S+)")
_SENT_RE = re.compile(r"Packets Sent:\s*(\d+)")
_RECEIVED_RE = re.compile(r"Packets Received:\s*(\d+)")
_LOST_RE = re.compile(r"Packets Lost:\s*(\d+)")
_JITTER_RE = re.compile(r"Jitter:\s*([\d.]+)")
_RTT_RE = re.compile(r"RTT:\s*([\d.]+)")


def codec_sample_rate(codec: str | None) -> int:
    if not codec:
        return NARROWBAND_RATE
    return CODEC_SAMPLE_RATES.get(codec.lower(), NARROWBAND_RATE)


def _last(rx: re.Pattern[str], text: str) -> str | None:
    value: str | None = None
    for line in text.splitlines():
        m = rx.search(line)
        if m:
            value = m.group(1)
    return value


def _as_float(value: str | None) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0


def parse_channel_codec_info(text: str, channel: str | None = None) -> ChannelCodecInfo:
    """Parse `core show channel <ch>`; old `Read Codec:` and new `ReadFormat:` forms."""
    read_codec = _last(_READ_CODEC_RE, text)
    write_codec = _last(_WRITE_CODEC_RE, text)
    read_format = _last(_READ_FORMAT_RE, text)
    write_format = _last(_WRITE_FORMAT_RE, text)

    codec = read_codec or write_codec or read_format or write_format
    rate = codec_sample_rate(codec)
    return ChannelCodecInfo(
        channel=channel,
        read_codec=read_codec,
        write_codec=write_codec,
        read_format=read_format,
        write_format=write_format,
        sample_rate=rate,
        is_hd=rate > NARROWBAND_RATE,
    )


def packet_loss_percent(received: int, lost: int) -> float:
    total = received + lost
    if total <= 0:
        return 0.0
    return round(lost / total * 100, 2)


def parse_rtp_stats(text: str, channel: str | None = None) -> RTPStats:
    """Parse RTP counters; each field stays at its default when absent."""
    received = int(_last(_RECEIVED_RE, text) or 0)
    lost = int(_last(_LOST_RE, text) or 0)
    return RTPStats(
        channel=channel,
        ssrc=_last(_SSRC_RE, text),
        packets_sent=int(_last(_SENT_RE, text) or 0),
        packets_received=received,
        packets_lost=lost,
        jitter=_as_float(_last(_JITTER_RE, text)),
        rtt=_as_float(_last(_RTT_RE, text)),
        packet_loss_percent=packet_loss_percent(received, lost),
    )
