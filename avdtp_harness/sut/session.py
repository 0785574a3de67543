"""
Reference AVDTP Session Engine

A compact signaling implementation the harness can exercise end to end.
It implements the SessionEngine surface on the same asyncio loop as the
harness: the session watches its end of the transport pair with
add_reader() and answers or issues signaling PDUs synchronously from that
callback.

Scope:
- Acceptor: DISCOVER, GET_CAPABILITIES, GET_ALL_CAPABILITIES,
  SET_CONFIGURATION, GET_CONFIGURATION, OPEN, START, CLOSE, SUSPEND, ABORT;
  anything else gets a general reject.
- Initiator: DISCOVER followed by capability retrieval for every remote
  endpoint, SET_CONFIGURATION, GET_CONFIGURATION, OPEN, START.
- One outstanding request at a time; further requests are queued.
- Transaction labels are per session and start at 0.

Local endpoints live in the engine's own registry, so two engines never
share endpoints.
"""
from __future__ import annotations

import asyncio
import os
import socket
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

import structlog

from avdtp_harness.engine.contracts import CapabilityIndication, ConfirmationContract
from avdtp_harness.engine.session_api import DiscoverCallback, SessionEngine
from avdtp_harness.exceptions import (
    CapabilityError,
    SessionError,
    SessionStateError,
    UnknownEndpointError,
)
from avdtp_harness.protocol import (
    BASIC_CATEGORIES,
    AvdtpError,
    ErrorCode,
    MediaCodecCapability,
    MessageType,
    ServiceCapability,
    ServiceCategory,
    SignalId,
)
from avdtp_harness.sut import signaling
from avdtp_harness.sut.signaling import SepInfo, SignalHeader, SignalingDecodeError

logger = structlog.get_logger()

GET_ALL_CAPABILITIES_VERSION = 0x0103


class StreamState(str, Enum):
    IDLE = "idle"
    CONFIGURED = "configured"
    OPEN = "open"
    STREAMING = "streaming"


@dataclass(eq=False)
class LocalSep:
    seid: int
    sep_type: int
    media_type: int
    codec_type: int
    public: bool
    ind: Optional[CapabilityIndication] = None
    cfm: Optional[ConfirmationContract] = None
    user_data: Any = None
    stream: Optional["Stream"] = None

    @property
    def in_use(self) -> bool:
        return self.stream is not None

    def info(self) -> SepInfo:
        return SepInfo(self.seid, self.in_use, self.media_type, self.sep_type)


@dataclass(eq=False)
class RemoteSep:
    seid: int
    sep_type: int
    media_type: int
    in_use: bool = False
    capabilities: List[ServiceCapability] = field(default_factory=list)

    @property
    def codec(self) -> Optional[MediaCodecCapability]:
        for cap in self.capabilities:
            if cap.category == ServiceCategory.MEDIA_CODEC:
                return MediaCodecCapability.decode(cap.payload)
        return None


@dataclass(eq=False)
class Stream:
    session: "AvdtpSession"
    lsep: LocalSep
    rseid: int
    capabilities: List[ServiceCapability]
    state: StreamState = StreamState.IDLE
    transport_fd: Optional[int] = None
    imtu: int = 0
    omtu: int = 0

    def close_transport(self) -> None:
        if self.transport_fd is None:
            return
        fd, self.transport_fd = self.transport_fd, None
        try:
            os.close(fd)
        except OSError as e:
            logger.warning("stream_transport_close_failed", fd=fd, error=str(e))


@dataclass
class _Request:
    signal_id: int
    params: bytes
    stream: Optional[Stream] = None
    seid: Optional[int] = None
    label: Optional[int] = None


class AvdtpSession:
    """One signaling channel between the local and a remote AVDTP entity."""

    def __init__(
        self,
        engine: "ReferenceEngine",
        sock: socket.socket,
        imtu: int,
        omtu: int,
        version: int,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.engine = engine
        self.version = version
        self.imtu = imtu
        self.omtu = omtu
        self.remote_seps: List[RemoteSep] = []
        self.streams: List[Stream] = []

        self._sock = sock
        self._loop = loop or asyncio.get_running_loop()
        self._fd: Optional[int] = sock.fileno()
        self._next_label = 0
        self._pending: Optional[_Request] = None
        self._queue: Deque[_Request] = deque()
        self._discover_cb: Optional[DiscoverCallback] = None
        self._discovered = False

        self._loop.add_reader(self._fd, self._on_readable)

    @property
    def connected(self) -> bool:
        return self._fd is not None

    def __repr__(self) -> str:
        return f"AvdtpSession(version=0x{self.version:04x}, streams={len(self.streams)})"

    # Transport

    def _stop_watching(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        self._loop.remove_reader(fd)

    def _on_readable(self) -> None:
        try:
            data = self._sock.recv(self.imtu)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            logger.warning("session_read_failed", error=str(e), error_type=type(e).__name__)
            self._stop_watching()
            return

        if not data:
            logger.info("session_disconnected")
            self._stop_watching()
            return

        self.handle_pdu(data)

    def _write(self, pdu: bytes) -> None:
        if self._fd is None:
            raise SessionError("Session transport is not connected")
        try:
            written = self._sock.send(pdu)
        except OSError as e:
            raise SessionError("Failed to send signaling PDU", details={"error": str(e)})
        if written != len(pdu):
            raise SessionError(
                "Short write on signaling channel",
                details={"written": written, "size": len(pdu)},
            )

    def _respond(self, pdu: bytes) -> None:
        try:
            self._write(pdu)
        except SessionError as e:
            logger.error("session_response_failed", error=e.message, **e.details)

    # Requests

    def _request(self, request: _Request) -> None:
        self._queue.append(request)
        if self._pending is None:
            self._send_next_request()

    def _send_next_request(self) -> None:
        while self._pending is None and self._queue:
            request = self._queue.popleft()
            request.label = self._next_label
            self._next_label = (self._next_label + 1) % 16
            self._pending = request
            logger.debug(
                "session_request_sent",
                signal=SignalId(request.signal_id).name,
                label=request.label,
            )
            self._write(signaling.command(request.label, request.signal_id, request.params))

    def _complete_request(self) -> Optional[_Request]:
        request, self._pending = self._pending, None
        return request

    # Dispatch

    def handle_pdu(self, data: bytes) -> None:
        try:
            header, params = signaling.decode_header(data)
        except SignalingDecodeError as e:
            logger.warning("session_bad_header", error=e.message, pdu=data.hex())
            return

        if header.message_type == MessageType.COMMAND:
            self._handle_command(header, params)
        else:
            self._handle_response(header, params)

    def _handle_command(self, header: SignalHeader, params: bytes) -> None:
        handlers: Dict[int, Callable[[SignalHeader, bytes], None]] = {
            SignalId.DISCOVER: self._on_discover_cmd,
            SignalId.GET_CAPABILITIES: self._on_get_capabilities_cmd,
            SignalId.GET_ALL_CAPABILITIES: self._on_get_capabilities_cmd,
            SignalId.SET_CONFIGURATION: self._on_set_configuration_cmd,
            SignalId.GET_CONFIGURATION: self._on_get_configuration_cmd,
            SignalId.OPEN: self._on_open_cmd,
            SignalId.START: self._on_start_cmd,
            SignalId.CLOSE: self._on_close_cmd,
            SignalId.SUSPEND: self._on_suspend_cmd,
            SignalId.ABORT: self._on_abort_cmd,
        }
        logger.debug("session_command_received", signal=header.signal_name, label=header.label)
        handler = handlers.get(header.signal_id)
        if handler is None:
            self._respond(signaling.general_reject(header.label, header.signal_id))
            return
        handler(header, params)

    def _reject(self, header: SignalHeader, *params: int) -> None:
        self._respond(signaling.reject(header.label, header.signal_id, bytes(params)))

    def _lookup_acp(self, header: SignalHeader, params: bytes) -> Optional[LocalSep]:
        if len(params) < 1:
            self._reject(header, ErrorCode.BAD_LENGTH)
            return None
        lsep = self.engine.find_local_endpoint(signaling.parse_seid(params[0]))
        if lsep is None:
            self._reject(header, ErrorCode.BAD_ACP_SEID)
        return lsep

    def _on_discover_cmd(self, header: SignalHeader, params: bytes) -> None:
        infos = [sep.info() for sep in self.engine.local_endpoints if sep.public]
        self._respond(
            signaling.accept(header.label, header.signal_id, signaling.encode_sep_infos(infos))
        )

    def _on_get_capabilities_cmd(self, header: SignalHeader, params: bytes) -> None:
        lsep = self._lookup_acp(header, params)
        if lsep is None:
            return
        if lsep.ind is None:
            self._reject(header, ErrorCode.NOT_SUPPORTED_COMMAND)
            return

        get_all = header.signal_id == SignalId.GET_ALL_CAPABILITIES
        try:
            caps = lsep.ind.get_capability(self, lsep, get_all)
        except CapabilityError as e:
            self._reject(header, e.error_code)
            return

        if not get_all:
            caps = [cap for cap in caps if cap.category in BASIC_CATEGORIES]
        self._respond(
            signaling.accept(header.label, header.signal_id, signaling.encode_capabilities(caps))
        )

    def _on_set_configuration_cmd(self, header: SignalHeader, params: bytes) -> None:
        if len(params) < 2:
            self._reject(header, 0x00, ErrorCode.BAD_LENGTH)
            return
        lsep = self.engine.find_local_endpoint(signaling.parse_seid(params[0]))
        if lsep is None:
            self._reject(header, 0x00, ErrorCode.BAD_ACP_SEID)
            return
        if lsep.in_use:
            self._reject(header, 0x00, ErrorCode.SEP_IN_USE)
            return
        try:
            caps = signaling.decode_capabilities(params[2:])
        except SignalingDecodeError as e:
            self._reject(header, e.category, e.error_code)
            return

        stream = Stream(
            session=self,
            lsep=lsep,
            rseid=signaling.parse_seid(params[1]),
            capabilities=caps,
            state=StreamState.CONFIGURED,
        )
        lsep.stream = stream
        self.streams.append(stream)
        self._respond(signaling.accept(header.label, header.signal_id))

    def _on_get_configuration_cmd(self, header: SignalHeader, params: bytes) -> None:
        lsep = self._lookup_acp(header, params)
        if lsep is None:
            return
        if lsep.stream is None:
            self._reject(header, ErrorCode.BAD_ACP_SEID)
            return
        self._respond(
            signaling.accept(
                header.label,
                header.signal_id,
                signaling.encode_capabilities(lsep.stream.capabilities),
            )
        )

    def _on_open_cmd(self, header: SignalHeader, params: bytes) -> None:
        lsep = self._lookup_acp(header, params)
        if lsep is None:
            return
        if lsep.stream is None or lsep.stream.state != StreamState.CONFIGURED:
            self._reject(header, ErrorCode.BAD_STATE)
            return
        lsep.stream.state = StreamState.OPEN
        self._respond(signaling.accept(header.label, header.signal_id))

    def _streams_for(self, header: SignalHeader, params: bytes, required: StreamState) -> Optional[List[Stream]]:
        """Resolve every SEID in a START/SUSPEND command, rejecting the first bad one."""
        if len(params) < 1:
            self._reject(header, 0x00, ErrorCode.BAD_LENGTH)
            return None
        streams = []
        for octet in params:
            lsep = self.engine.find_local_endpoint(signaling.parse_seid(octet))
            if lsep is None:
                self._reject(header, octet, ErrorCode.BAD_ACP_SEID)
                return None
            if lsep.stream is None or lsep.stream.state != required:
                self._reject(header, octet, ErrorCode.BAD_STATE)
                return None
            streams.append(lsep.stream)
        return streams

    def _on_start_cmd(self, header: SignalHeader, params: bytes) -> None:
        streams = self._streams_for(header, params, StreamState.OPEN)
        if streams is None:
            return
        for stream in streams:
            stream.state = StreamState.STREAMING
        self._respond(signaling.accept(header.label, header.signal_id))

    def _on_suspend_cmd(self, header: SignalHeader, params: bytes) -> None:
        streams = self._streams_for(header, params, StreamState.STREAMING)
        if streams is None:
            return
        for stream in streams:
            stream.state = StreamState.OPEN
        self._respond(signaling.accept(header.label, header.signal_id))

    def _on_close_cmd(self, header: SignalHeader, params: bytes) -> None:
        lsep = self._lookup_acp(header, params)
        if lsep is None:
            return
        stream = lsep.stream
        if stream is None or stream.state not in (StreamState.OPEN, StreamState.STREAMING):
            self._reject(header, ErrorCode.BAD_STATE)
            return
        self._drop_stream(stream)
        self._respond(signaling.accept(header.label, header.signal_id))

    def _on_abort_cmd(self, header: SignalHeader, params: bytes) -> None:
        if len(params) < 1:
            return
        lsep = self.engine.find_local_endpoint(signaling.parse_seid(params[0]))
        if lsep is not None and lsep.stream is not None:
            self._drop_stream(lsep.stream)
        self._respond(signaling.accept(header.label, header.signal_id))

    def _handle_response(self, header: SignalHeader, params: bytes) -> None:
        request = self._pending
        if request is None or request.label != header.label or request.signal_id != header.signal_id:
            logger.warning(
                "session_unexpected_response",
                signal=header.signal_name,
                label=header.label,
                message_type=header.message_type,
            )
            return
        self._complete_request()

        error: Optional[AvdtpError] = None
        if header.message_type == MessageType.GENERAL_REJECT:
            error = AvdtpError.avdtp(ErrorCode.NOT_SUPPORTED_COMMAND)
        elif header.message_type == MessageType.REJECT:
            error = AvdtpError.avdtp(self._reject_code(header.signal_id, params))

        handlers: Dict[int, Callable[[_Request, bytes, Optional[AvdtpError]], None]] = {
            SignalId.DISCOVER: self._on_discover_rsp,
            SignalId.GET_CAPABILITIES: self._on_get_capabilities_rsp,
            SignalId.GET_ALL_CAPABILITIES: self._on_get_capabilities_rsp,
            SignalId.SET_CONFIGURATION: self._on_set_configuration_rsp,
            SignalId.GET_CONFIGURATION: self._on_get_configuration_rsp,
            SignalId.OPEN: self._on_open_rsp,
            SignalId.START: self._on_start_rsp,
        }
        handler = handlers.get(header.signal_id)
        if handler is not None:
            handler(request, params, error)

        self._send_next_request()

    @staticmethod
    def _reject_code(signal_id: int, params: bytes) -> int:
        # SET_CONFIGURATION, START and SUSPEND rejects carry one octet before the code
        if signal_id in (SignalId.SET_CONFIGURATION, SignalId.RECONFIGURE, SignalId.START, SignalId.SUSPEND):
            return params[1] if len(params) > 1 else ErrorCode.BAD_LENGTH
        return params[0] if params else ErrorCode.BAD_LENGTH

    # Initiator: discovery

    def discover(self, on_result: DiscoverCallback) -> None:
        if self._discover_cb is not None:
            raise SessionStateError("Discovery already in progress", current_state="discovering")
        if self._discovered:
            self._loop.call_soon(on_result, self, list(self.remote_seps), None)
            return
        self._discover_cb = on_result
        self._request(_Request(SignalId.DISCOVER, b""))

    def _finish_discovery(self, error: Optional[AvdtpError]) -> None:
        callback, self._discover_cb = self._discover_cb, None
        self._discovered = error is None
        logger.debug("session_discovery_finished", seps=len(self.remote_seps), error=str(error) if error else None)
        if callback is not None:
            callback(self, list(self.remote_seps) if error is None else [], error)

    def _on_discover_rsp(self, request: _Request, params: bytes, error: Optional[AvdtpError]) -> None:
        if error is not None:
            self._finish_discovery(error)
            return
        try:
            infos = signaling.decode_sep_infos(params)
        except SignalingDecodeError as e:
            self._finish_discovery(AvdtpError.avdtp(e.error_code))
            return

        self.remote_seps = [
            RemoteSep(seid=info.seid, sep_type=info.sep_type, media_type=info.media_type, in_use=info.in_use)
            for info in infos
        ]
        if not self.remote_seps:
            self._finish_discovery(None)
            return
        signal_id = (
            SignalId.GET_ALL_CAPABILITIES
            if self.version >= GET_ALL_CAPABILITIES_VERSION
            else SignalId.GET_CAPABILITIES
        )
        for rsep in self.remote_seps:
            self._queue.append(_Request(signal_id, bytes([signaling.seid_octet(rsep.seid)]), seid=rsep.seid))

    def _on_get_capabilities_rsp(self, request: _Request, params: bytes, error: Optional[AvdtpError]) -> None:
        if error is None:
            try:
                caps = signaling.decode_capabilities(params)
            except SignalingDecodeError as e:
                error = AvdtpError.avdtp(e.error_code)
            else:
                for rsep in self.remote_seps:
                    if rsep.seid == request.seid:
                        rsep.capabilities = caps

        if error is not None:
            self._queue = deque(r for r in self._queue if r.signal_id not in (
                SignalId.GET_CAPABILITIES, SignalId.GET_ALL_CAPABILITIES))
            self._finish_discovery(error)
            return

        if not any(r.signal_id in (SignalId.GET_CAPABILITIES, SignalId.GET_ALL_CAPABILITIES) for r in self._queue):
            self._finish_discovery(None)

    # Initiator: stream operations

    def _confirm(self, operation: str, stream: Optional[Stream], error: Optional[AvdtpError]) -> None:
        if stream is None or stream.lsep.cfm is None:
            return
        callback = getattr(stream.lsep.cfm, operation)
        callback(self, stream.lsep, stream, error)

    def _on_set_configuration_rsp(self, request: _Request, params: bytes, error: Optional[AvdtpError]) -> None:
        stream = request.stream
        if stream is not None:
            if error is None:
                stream.state = StreamState.CONFIGURED
            else:
                self._drop_stream(stream)
        self._confirm("set_configuration", stream, error)

    def _on_get_configuration_rsp(self, request: _Request, params: bytes, error: Optional[AvdtpError]) -> None:
        self._confirm("get_configuration", request.stream, error)

    def _on_open_rsp(self, request: _Request, params: bytes, error: Optional[AvdtpError]) -> None:
        if request.stream is not None and error is None:
            request.stream.state = StreamState.OPEN
        self._confirm("open", request.stream, error)

    def _on_start_rsp(self, request: _Request, params: bytes, error: Optional[AvdtpError]) -> None:
        if request.stream is not None and error is None:
            request.stream.state = StreamState.STREAMING
        self._confirm("start", request.stream, error)

    def _require_state(self, stream: Stream, *states: StreamState) -> None:
        if stream.session is not self:
            raise SessionError("Stream belongs to another session")
        if stream.state not in states:
            raise SessionStateError(
                "Operation not valid in current stream state",
                current_state=stream.state.value,
                expected_state="|".join(state.value for state in states),
            )

    def set_configuration(self, rsep: RemoteSep, lsep: LocalSep, caps: List[ServiceCapability]) -> Stream:
        if lsep.in_use:
            raise SessionStateError("Local endpoint already in use", current_state="in_use", expected_state="idle")
        if rsep not in self.remote_seps:
            raise UnknownEndpointError("Remote endpoint was not discovered on this session")

        stream = Stream(session=self, lsep=lsep, rseid=rsep.seid, capabilities=list(caps))
        lsep.stream = stream
        self.streams.append(stream)
        params = bytes([signaling.seid_octet(rsep.seid), signaling.seid_octet(lsep.seid)])
        self._request(
            _Request(
                SignalId.SET_CONFIGURATION,
                params + signaling.encode_capabilities(caps),
                stream=stream,
            )
        )
        return stream

    def get_configuration(self, stream: Stream) -> None:
        self._require_state(stream, StreamState.CONFIGURED, StreamState.OPEN, StreamState.STREAMING)
        self._request(
            _Request(SignalId.GET_CONFIGURATION, bytes([signaling.seid_octet(stream.rseid)]), stream=stream)
        )

    def open(self, stream: Stream) -> None:
        self._require_state(stream, StreamState.CONFIGURED)
        self._request(_Request(SignalId.OPEN, bytes([signaling.seid_octet(stream.rseid)]), stream=stream))

    def start(self, stream: Stream) -> None:
        self._require_state(stream, StreamState.OPEN)
        self._request(_Request(SignalId.START, bytes([signaling.seid_octet(stream.rseid)]), stream=stream))

    # Lifecycle

    def _drop_stream(self, stream: Stream) -> None:
        stream.close_transport()
        stream.state = StreamState.IDLE
        if stream.lsep.stream is stream:
            stream.lsep.stream = None
        if stream in self.streams:
            self.streams.remove(stream)

    def find_remote(self, lsep: LocalSep) -> Optional[RemoteSep]:
        for rsep in self.remote_seps:
            if rsep.sep_type == lsep.sep_type or rsep.media_type != lsep.media_type:
                continue
            codec = rsep.codec
            if codec is None or codec.codec_type != lsep.codec_type:
                continue
            return rsep
        return None

    def close(self) -> None:
        """Stop watching the transport and drop all streams. The socket stays open."""
        self._stop_watching()
        self._pending = None
        self._queue.clear()
        self._discover_cb = None
        for stream in list(self.streams):
            self._drop_stream(stream)


class ReferenceEngine(SessionEngine):
    """SessionEngine backed by AvdtpSession with a private endpoint registry."""

    def __init__(self) -> None:
        self.local_endpoints: List[LocalSep] = []
        self.sessions: List[AvdtpSession] = []

    def find_local_endpoint(self, seid: int) -> Optional[LocalSep]:
        for sep in self.local_endpoints:
            if sep.seid == seid:
                return sep
        return None

    def _allocate_seid(self) -> int:
        used = {sep.seid for sep in self.local_endpoints}
        for seid in range(1, signaling.MAX_SEID + 1):
            if seid not in used:
                return seid
        raise SessionError("No free SEID", details={"registered": len(used)})

    @staticmethod
    def _session(session: Any) -> AvdtpSession:
        if not isinstance(session, AvdtpSession):
            raise SessionError("Not a reference session handle", details={"type": type(session).__name__})
        return session

    def create(self, transport: socket.socket, imtu: int, omtu: int, version: int) -> AvdtpSession:
        session = AvdtpSession(self, transport, imtu, omtu, version)
        self.sessions.append(session)
        logger.debug("session_created", imtu=imtu, omtu=omtu, version=f"0x{version:04x}")
        return session

    def release(self, session: Any) -> None:
        session = self._session(session)
        session.close()
        if session in self.sessions:
            self.sessions.remove(session)
        logger.debug("session_released")

    def discover(self, session: Any, on_result: DiscoverCallback) -> None:
        self._session(session).discover(on_result)

    def register_local_endpoint(
        self,
        role: int,
        media_type: int,
        codec_type: int,
        is_public: bool,
        ind: Optional[CapabilityIndication] = None,
        cfm: Optional[ConfirmationContract] = None,
        user_data: Any = None,
    ) -> LocalSep:
        sep = LocalSep(
            seid=self._allocate_seid(),
            sep_type=int(role),
            media_type=int(media_type),
            codec_type=int(codec_type),
            public=is_public,
            ind=ind,
            cfm=cfm,
            user_data=user_data,
        )
        self.local_endpoints.append(sep)
        logger.debug("local_endpoint_registered", seid=sep.seid, sep_type=sep.sep_type, public=is_public)
        return sep

    def unregister_local_endpoint(self, endpoint: Any) -> None:
        if endpoint not in self.local_endpoints:
            raise UnknownEndpointError("Local endpoint is not registered")
        if endpoint.stream is not None:
            endpoint.stream.session._drop_stream(endpoint.stream)
        self.local_endpoints.remove(endpoint)
        logger.debug("local_endpoint_unregistered", seid=endpoint.seid)

    def find_remote_endpoint(self, session: Any, endpoint: Any) -> Optional[RemoteSep]:
        return self._session(session).find_remote(endpoint)

    def set_configuration(
        self,
        session: Any,
        remote_endpoint: Any,
        endpoint: Any,
        capabilities: List[ServiceCapability],
    ) -> Stream:
        return self._session(session).set_configuration(remote_endpoint, endpoint, capabilities)

    def get_configuration(self, session: Any, stream: Any) -> None:
        self._session(session).get_configuration(stream)

    def open(self, session: Any, stream: Any) -> None:
        self._session(session).open(stream)

    def start(self, session: Any, stream: Any) -> None:
        self._session(session).start(stream)

    def set_stream_transport(self, stream: Any, fd: int, imtu: int, omtu: int) -> None:
        stream.close_transport()
        stream.transport_fd = fd
        stream.imtu = imtu
        stream.omtu = omtu

    def service_cap_new(self, category: int, payload: bytes = b"") -> ServiceCapability:
        return ServiceCapability(category=int(category), payload=bytes(payload or b""))
