"""
Discovery callbacks used by initiator scenarios.

These are scenario business logic: what the local side does once the
session under test has discovered the remote endpoints.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

import structlog

from avdtp_harness.exceptions import HarnessError, SessionError, UnexpectedCallbackError
from avdtp_harness.protocol import AvdtpError, MediaCodecCapability, MediaType, ServiceCategory

if TYPE_CHECKING:
    from avdtp_harness.engine.scenario import ScenarioContext
    from avdtp_harness.engine.session_api import SessionEngine

logger = structlog.get_logger()

# Configuration requested from the remote source endpoint
REMOTE_CODEC_DATA = bytes([0x21, 0x02, 0x02, 0x20])


def ignore_discovery(session: Any, seps: List[Any], error: Optional[AvdtpError]) -> None:
    """Discovery result for scenarios that end once the PDUs are on the wire."""
    logger.debug("discovery_ignored", seps=len(seps), error=str(error) if error else None)


class DiscoverThenConfigure:
    """
    On discovery, pick the remote endpoint matching our local one and ask
    the session to configure it with media transport plus REMOTE_CODEC_DATA.
    """

    def __init__(
        self,
        engine: "SessionEngine",
        context: "ScenarioContext",
        codec_data: bytes = REMOTE_CODEC_DATA,
    ):
        self._engine = engine
        self._context = context
        self._codec_data = bytes(codec_data)
        self.stream: Any = None

    def capabilities(self) -> list:
        codec = MediaCodecCapability(
            media_type=MediaType.AUDIO, codec_type=0x00, data=self._codec_data
        )
        return [
            self._engine.service_cap_new(ServiceCategory.MEDIA_TRANSPORT, b""),
            self._engine.service_cap_new(ServiceCategory.MEDIA_CODEC, codec.encode()),
        ]

    def __call__(self, session: Any, seps: List[Any], error: Optional[AvdtpError]) -> None:
        context = self._context
        if context.finished:
            return

        if error is not None:
            context.fail(
                UnexpectedCallbackError(
                    f"discover failed with {error}", operation="discover", error=error
                )
            )
            return
        if not seps:
            context.fail(HarnessError("Discovery returned no remote endpoints"))
            return

        rsep = self._engine.find_remote_endpoint(session, context.local_endpoint)
        if rsep is None:
            context.fail(
                HarnessError(
                    "No remote endpoint matches the local endpoint",
                    details={"remote_endpoints": len(seps)},
                )
            )
            return

        try:
            self.stream = self._engine.set_configuration(
                session, rsep, context.local_endpoint, self.capabilities()
            )
        except SessionError as e:
            context.fail(e)
            return

        logger.debug("configuration_requested", scenario=context.name)
