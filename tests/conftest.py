"""Shared fixtures for harness tests."""
import asyncio
import socket

import pytest

from avdtp_harness.engine.transport import TransportPair


async def recv_pdu(sock: socket.socket, timeout: float = 1.0) -> bytes:
    """Read one PDU from a non-blocking socket that nothing else watches."""
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.sock_recv(sock, 512), timeout=timeout)


async def settle(iterations: int = 5) -> None:
    """Let pending reader and idle callbacks run."""
    for _ in range(iterations):
        await asyncio.sleep(0.001)


@pytest.fixture
def pair():
    transport_pair = TransportPair.create()
    yield transport_pair
    transport_pair.close()
