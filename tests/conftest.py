from __future__ import annotations

import asyncio
import socket
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest
import pytest_asyncio

from tests.fakes import FakeAMI, FakeRunner


@pytest_asyncio.fixture
async def fake_ami() -> AsyncIterator[FakeAMI]:
    ami = FakeAMI()
    server = await asyncio.start_server(ami.handle, ami.host, 0)
    ami.port = server.sockets[0].getsockname()[1]
    try:
        yield ami
    finally:
        server.close()


@pytest.fixture
def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def write_asterisk_log() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text(
            "\n".join(
                [
                    "[2025-12-30 08:00:00] NOTICE[1201] chan_pjsip.c: Endpoint 101 is now Reachable",
                    "[2025-12-30 08:00:05] WARNING[1201][C-00000002] res_rtp_asterisk.c: "
                    "RTP read too short",
                    "[2025-12-30 08:00:07] VERBOSE[1305][C-00000002] pbx.c: Executing "
                    "[101@from-internal:1] Dial(\"PJSIP/100-00000001\", \"PJSIP/101\")",
                    "[2025-12-30 08:00:09] ERROR[1201] res_pjsip_outbound_registration.c: "
                    "No response received from 'sip:trunk.example.com'",
                    "[2025-12-30 08:00:11] DEBUG[1201] manager.c: Manager 'admin' logged off",
                ]
            )
            + "\n",
            encoding="utf-8",
        )

    return _write
