"""
Tests for TransportPair and SeqPacketTransport.

Tests cover:
- Message boundaries are preserved
- Close happens exactly once
- Error mapping on closed endpoints
- Setup failure surfaces as TransportSetupError
"""
from unittest.mock import patch

import pytest

from avdtp_harness.engine.transport import TransportPair, ensure_open
from avdtp_harness.exceptions import (
    InvariantViolation,
    ReceiveError,
    SendError,
    TransportSetupError,
)


class TestTransportPair:
    def test_endpoints_are_non_blocking(self, pair):
        assert pair.sut_endpoint.getblocking() is False
        assert pair.peer_endpoint.socket.getblocking() is False

    def test_message_boundaries_preserved(self, pair):
        pair.peer_endpoint.send(b"\x00\x01")
        pair.peer_endpoint.send(b"\x10\x02\x04")

        assert pair.sut_endpoint.recv(512) == b"\x00\x01"
        assert pair.sut_endpoint.recv(512) == b"\x10\x02\x04"

    def test_peer_reads_one_pdu_per_call(self, pair):
        pair.sut_endpoint.send(b"\x02\x01\x04\x00")
        pair.sut_endpoint.send(b"\x22\x03")

        assert pair.peer_endpoint.recv(512) == b"\x02\x01\x04\x00"
        assert pair.peer_endpoint.recv(512) == b"\x22\x03"

    def test_nothing_to_read_raises_blocking(self, pair):
        with pytest.raises(BlockingIOError):
            pair.peer_endpoint.recv(512)

    def test_hangup_reads_empty(self, pair):
        pair.sut_endpoint.close()
        assert pair.peer_endpoint.recv(512) == b""

    def test_close_is_idempotent(self):
        transport_pair = TransportPair.create()
        transport_pair.close()
        transport_pair.close()

        assert transport_pair.closed
        assert transport_pair.peer_endpoint.closed
        assert transport_pair.sut_endpoint.fileno() == -1
        assert transport_pair.peer_endpoint.fileno() == -1

    def test_context_manager_closes(self):
        with TransportPair.create() as transport_pair:
            pass
        assert transport_pair.closed

    def test_setup_failure(self):
        with patch("avdtp_harness.engine.transport.socket.socketpair", side_effect=OSError("nope")):
            with pytest.raises(TransportSetupError):
                TransportPair.create()


class TestSeqPacketTransport:
    def test_send_after_close(self, pair):
        pair.peer_endpoint.close()
        with pytest.raises(SendError):
            pair.peer_endpoint.send(b"\x00")

    def test_recv_after_close(self, pair):
        pair.peer_endpoint.close()
        with pytest.raises(ReceiveError):
            pair.peer_endpoint.recv(512)

    def test_ensure_open(self, pair):
        ensure_open(pair.peer_endpoint)
        pair.peer_endpoint.close()
        with pytest.raises(InvariantViolation):
            ensure_open(pair.peer_endpoint, context="test")

    def test_send_error_mapped(self, pair):
        pair.sut_endpoint.close()
        with pytest.raises(SendError):
            pair.peer_endpoint.send(b"\x00\x01")
