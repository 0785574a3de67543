"""
Transport Abstraction Layer

Provides the connected byte-stream pair a scenario runs over. One endpoint
is handed to the session under test, the other stays with the harness and
plays the remote peer.

The pair is an AF_UNIX SOCK_SEQPACKET socketpair: reliable, in order and
message preserving, so one write on one side is exactly one read on the
other. No framing, coalescing or fragment reassembly happens here.
"""
import socket
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from avdtp_harness.exceptions import (
    InvariantViolation,
    ReceiveError,
    SendError,
    TransportError,
    TransportSetupError,
)

logger = structlog.get_logger()


class PeerTransport(ABC):
    """
    Abstract base class for the harness side of the pair.

    Implementations send and receive whole PDUs in a single operation and
    expose a descriptor for readiness notification.
    """

    @abstractmethod
    def send(self, data: bytes) -> int:
        """
        Write one PDU in one operation.

        Args:
            data: Complete PDU bytes

        Returns:
            Number of bytes written (always len(data))

        Raises:
            SendError: On a failed or short write
        """
        pass

    @abstractmethod
    def recv(self, bufsize: int) -> bytes:
        """
        Read one PDU in one operation.

        Returns:
            The PDU bytes, or b"" when the other side hung up

        Raises:
            ReceiveError: On a socket error
        """
        pass

    @abstractmethod
    def fileno(self) -> int:
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class SeqPacketTransport(PeerTransport):
    """Non-blocking sequenced-packet socket endpoint."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._closed = False

    @property
    def socket(self) -> socket.socket:
        return self._sock

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        if self._closed:
            return -1
        return self._sock.fileno()

    def send(self, data: bytes) -> int:
        if self._closed:
            raise SendError("Peer endpoint is closed", details={"data_size": len(data)})
        try:
            written = self._sock.send(data)
        except OSError as e:
            raise SendError(
                "Failed to write PDU to peer endpoint",
                details={"error": str(e), "data_size": len(data)},
            )
        if written != len(data):
            raise SendError(
                "Short write on peer endpoint",
                details={"written": written, "data_size": len(data)},
            )
        return written

    def recv(self, bufsize: int) -> bytes:
        if self._closed:
            raise ReceiveError("Peer endpoint is closed")
        try:
            return self._sock.recv(bufsize)
        except (BlockingIOError, InterruptedError):
            raise
        except OSError as e:
            raise ReceiveError(
                "Failed to read PDU from peer endpoint",
                details={"error": str(e), "error_type": type(e).__name__},
            )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sock.close()


class TransportPair:
    """
    Two connected endpoints: sut_endpoint for the session under test and
    peer_endpoint for the harness.

    Both endpoints are closed exactly once, by close().
    """

    def __init__(self, sut_endpoint: socket.socket, peer_endpoint: PeerTransport):
        self.sut_endpoint = sut_endpoint
        self.peer_endpoint = peer_endpoint
        self._closed = False

    @classmethod
    def create(cls) -> "TransportPair":
        """
        Create a connected, non-blocking SOCK_SEQPACKET pair.

        Raises:
            TransportSetupError: If the platform cannot provide the pair
        """
        try:
            sut_sock, peer_sock = socket.socketpair(socket.AF_UNIX, socket.SOCK_SEQPACKET)
        except (AttributeError, OSError) as e:
            raise TransportSetupError(
                "Unable to create AF_UNIX SOCK_SEQPACKET socket pair",
                details={"error": str(e)},
            )

        for sock in (sut_sock, peer_sock):
            sock.setblocking(False)

        logger.debug(
            "transport_pair_created",
            sut_fd=sut_sock.fileno(),
            peer_fd=peer_sock.fileno(),
        )
        return cls(sut_sock, SeqPacketTransport(peer_sock))

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close both endpoints. A second call is a no-op."""
        if self._closed:
            logger.debug("transport_pair_already_closed")
            return
        self._closed = True

        errors = []
        for name, endpoint in (("peer", self.peer_endpoint), ("sut", self.sut_endpoint)):
            try:
                endpoint.close()
            except OSError as e:
                logger.warning(
                    "transport_endpoint_close_failed",
                    endpoint=name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                errors.append(f"{name}: {e}")

        if errors:
            raise TransportError("Failed to close transport pair", details={"errors": errors})

    def __enter__(self) -> "TransportPair":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def ensure_open(transport: PeerTransport, context: Optional[str] = None) -> None:
    """Raise InvariantViolation if the transport was closed before its owner finished."""
    if transport.closed:
        raise InvariantViolation(
            "Peer transport used after close",
            details={"context": context},
        )
