"""
Session Engine interface.

The harness drives the protocol implementation under test through this
surface only. Handles returned by an engine (sessions, endpoints, streams,
capability records) are opaque to the harness and are passed back as-is.

Operations that cannot be carried out raise SessionError (or a subclass);
they never return status codes.
"""
from __future__ import annotations

import socket
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from avdtp_harness.protocol import AvdtpError, ServiceCapability

if TYPE_CHECKING:
    from avdtp_harness.engine.contracts import CapabilityIndication, ConfirmationContract

# on_result(session, remote_endpoints, error)
DiscoverCallback = Callable[[Any, List[Any], Optional[AvdtpError]], None]


class SessionEngine(ABC):
    """Abstract protocol implementation under test."""

    @abstractmethod
    def create(self, transport: socket.socket, imtu: int, omtu: int, version: int) -> Any:
        """
        Create a signaling session bound to the SUT endpoint.

        The session reads and writes transport but never closes it; the
        transport pair owns that.
        """

    @abstractmethod
    def release(self, session: Any) -> None:
        """Stop the session and drop every stream it owns."""

    @abstractmethod
    def discover(self, session: Any, on_result: DiscoverCallback) -> None:
        """Discover remote endpoints and their capabilities, then call on_result."""

    @abstractmethod
    def register_local_endpoint(
        self,
        role: int,
        media_type: int,
        codec_type: int,
        is_public: bool,
        ind: Optional["CapabilityIndication"] = None,
        cfm: Optional["ConfirmationContract"] = None,
        user_data: Any = None,
    ) -> Any:
        pass

    @abstractmethod
    def unregister_local_endpoint(self, endpoint: Any) -> None:
        pass

    @abstractmethod
    def find_remote_endpoint(self, session: Any, endpoint: Any) -> Optional[Any]:
        """Remote endpoint compatible with the local one, or None."""

    @abstractmethod
    def set_configuration(
        self,
        session: Any,
        remote_endpoint: Any,
        endpoint: Any,
        capabilities: List[ServiceCapability],
    ) -> Any:
        """Send SET_CONFIGURATION and return the new stream handle."""

    @abstractmethod
    def get_configuration(self, session: Any, stream: Any) -> None:
        pass

    @abstractmethod
    def open(self, session: Any, stream: Any) -> None:
        pass

    @abstractmethod
    def start(self, session: Any, stream: Any) -> None:
        pass

    @abstractmethod
    def set_stream_transport(self, stream: Any, fd: int, imtu: int, omtu: int) -> None:
        """Hand a media transport descriptor to the stream (the stream owns it)."""

    @abstractmethod
    def service_cap_new(self, category: int, payload: bytes = b"") -> ServiceCapability:
        """Construct an opaque capability record."""
