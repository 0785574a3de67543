"""
Session Callback Contracts

The harness plays the local stream-endpoint owner opposite the session under
test. The session calls back into these contracts:

- CapabilityIndication: synchronous, asked for local capability records
  when the remote peer discovers or queries our endpoint.
- ConfirmationContract: asynchronous completion of set-configuration,
  get-configuration, open and start, with an optional error indicator.

ScenarioConfirmation delivers each completion through an asyncio future so a
test can await it, fails the scenario on any unexpected error indicator and
applies the scenario's follow-up plan (e.g. open the stream once the
configuration is accepted).
"""
from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from avdtp_harness.exceptions import HarnessError, SessionError, UnexpectedCallbackError
from avdtp_harness.protocol import (
    AvdtpError,
    MediaCodecCapability,
    MediaType,
    ServiceCapability,
    ServiceCategory,
    SignalId,
)

if TYPE_CHECKING:
    from avdtp_harness.engine.scenario import ScenarioContext
    from avdtp_harness.engine.session_api import SessionEngine

logger = structlog.get_logger()

# SBC-style codec blob advertised by the local endpoint
LOCAL_CODEC_DATA = bytes([0xFF, 0xFF, 0x02, 0x40])


class Operation(str, Enum):
    """Asynchronous operations reported through ConfirmationContract."""

    SET_CONFIGURATION = "set_configuration"
    GET_CONFIGURATION = "get_configuration"
    OPEN = "open"
    START = "start"


@dataclass(frozen=True)
class CallbackOutcome:
    """Success or failure of one asynchronous session operation."""

    operation: Operation
    error: Optional[AvdtpError] = None

    @property
    def error_present(self) -> bool:
        return self.error is not None

    @property
    def error_detail(self) -> Optional[AvdtpError]:
        return self.error


class CapabilityIndication(ABC):
    """Answers the session's requests for local capability data."""

    @abstractmethod
    def get_capability(self, session: Any, sep: Any, get_all: bool) -> List[ServiceCapability]:
        """
        Produce the capability records of a local endpoint.

        Args:
            session: Session handle asking for the data
            sep: Local endpoint being queried
            get_all: True for GET_ALL_CAPABILITIES, False for basic ones

        Returns:
            The complete, ordered list of records

        Raises:
            CapabilityError: With the AVDTP error code to reject with.
                No partial list is ever returned.
        """


class FixedCapabilityIndication(CapabilityIndication):
    """
    Advertises media transport plus an audio codec record carrying
    LOCAL_CODEC_DATA.
    """

    def __init__(self, engine: "SessionEngine", codec_data: bytes = LOCAL_CODEC_DATA):
        self._engine = engine
        self._codec_data = bytes(codec_data)

    def get_capability(self, session: Any, sep: Any, get_all: bool) -> List[ServiceCapability]:
        codec = MediaCodecCapability(
            media_type=MediaType.AUDIO, codec_type=0x00, data=self._codec_data
        )
        caps = [
            self._engine.service_cap_new(ServiceCategory.MEDIA_TRANSPORT, b""),
            self._engine.service_cap_new(ServiceCategory.MEDIA_CODEC, codec.encode()),
        ]
        logger.debug("capability_indication", get_all=get_all, records=len(caps))
        return caps


class ConfirmationContract(ABC):
    """Completion callbacks for locally initiated stream operations."""

    @abstractmethod
    def set_configuration(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        pass

    @abstractmethod
    def get_configuration(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        pass

    @abstractmethod
    def open(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        pass

    @abstractmethod
    def start(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        pass


@dataclass(frozen=True)
class FollowUpPlan:
    """
    What a scenario does after a confirmation succeeds.

    Attributes:
        after_configuration: GET_CONFIGURATION or OPEN, or None to stop
        start_after_open: Attach a media transport and START once opened
    """

    after_configuration: Optional[SignalId] = None
    start_after_open: bool = False
    media_transport_path: str = os.devnull


class ScenarioConfirmation(ConfirmationContract):
    """
    Confirmation contract bound to one scenario.

    Every outcome is recorded and delivered through a per-operation future.
    An error indicator fails the scenario with UnexpectedCallbackError;
    failure-path scenarios supply their own contract.
    """

    def __init__(
        self,
        engine: "SessionEngine",
        context: "ScenarioContext",
        plan: Optional[FollowUpPlan] = None,
        mtu: int = 672,
    ):
        self._engine = engine
        self._context = context
        self._plan = plan or FollowUpPlan()
        self._mtu = mtu
        self._futures: Dict[Operation, asyncio.Future] = {}
        self.history: List[CallbackOutcome] = []

    def _future(self, operation: Operation) -> asyncio.Future:
        future = self._futures.get(operation)
        if future is None:
            future = asyncio.get_running_loop().create_future()
            self._futures[operation] = future
        return future

    async def outcome(self, operation: Operation) -> CallbackOutcome:
        """Wait until the session reports operation."""
        return await self._future(operation)

    def _deliver(self, operation: Operation, error: Optional[AvdtpError]) -> bool:
        """Record the outcome; return True when the scenario may continue."""
        outcome = CallbackOutcome(operation=operation, error=error)
        self.history.append(outcome)
        future = self._future(operation)
        if not future.done():
            future.set_result(outcome)

        logger.debug(
            "confirmation_received",
            scenario=self._context.name,
            operation=operation.value,
            error=str(error) if error else None,
        )

        if error is not None:
            self._context.fail(
                UnexpectedCallbackError(
                    f"{operation.value} confirmed with error {error}",
                    operation=operation.value,
                    error=error,
                )
            )
            return False

        return not self._context.finished

    def _chain(self, description: str, action, *args) -> None:
        try:
            action(*args)
        except (SessionError, OSError) as e:
            self._context.fail(
                HarnessError(
                    f"Follow-up {description} failed: {e}",
                    details={"operation": description, "error_type": type(e).__name__},
                )
            )

    def set_configuration(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        if not self._deliver(Operation.SET_CONFIGURATION, error):
            return

        follow_up = self._plan.after_configuration
        if follow_up is None:
            return
        if follow_up == SignalId.GET_CONFIGURATION:
            self._chain("get_configuration", self._engine.get_configuration, session, stream)
        elif follow_up == SignalId.OPEN:
            self._chain("open", self._engine.open, session, stream)
        else:
            self._context.fail(
                HarnessError(
                    f"Unsupported follow-up after configuration: {follow_up!r}",
                    details={"follow_up": int(follow_up)},
                )
            )

    def get_configuration(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        self._deliver(Operation.GET_CONFIGURATION, error)

    def open(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        if not self._deliver(Operation.OPEN, error):
            return
        if not self._plan.start_after_open:
            return

        try:
            fd = os.open(self._plan.media_transport_path, os.O_RDWR)
        except OSError as e:
            self._context.fail(
                HarnessError(
                    "Unable to open media transport",
                    details={"path": self._plan.media_transport_path, "error": str(e)},
                )
            )
            return

        def attach() -> None:
            try:
                self._engine.set_stream_transport(stream, fd, self._mtu, self._mtu)
            except Exception:
                os.close(fd)
                raise

        self._chain("set_stream_transport", attach)
        if self._context.finished:
            return
        self._chain("start", self._engine.start, session, stream)

    def start(self, session: Any, sep: Any, stream: Any, error: Optional[AvdtpError]) -> None:
        self._deliver(Operation.START, error)
