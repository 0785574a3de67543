"""
Peer Event Loop Adapter - drives the script over the peer endpoint.

Runs on an asyncio event loop:
- call_soon() is the idle slot for the next scripted send
- add_reader() is the readiness watch on the peer endpoint

Progression is driven by reads only. A verified read either ends the
scenario (script exhausted) or schedules exactly one send; a send never
chains into anything. Sends are deferred rather than issued inline so that
callbacks the session runs while processing a PDU are never re-entered by
a nested write.

At most one send may be pending and at most one reader may be registered.
"""
from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, Callable, Optional

import structlog

from avdtp_harness.engine.hexdump import RECEIVED, SENT, hexdump
from avdtp_harness.engine.transport import PeerTransport, ensure_open
from avdtp_harness.engine.verifier import ExchangeVerifier
from avdtp_harness.exceptions import (
    InvariantViolation,
    ReceiveError,
    SendError,
    UnexpectedHangupError,
    VerificationError,
)

if TYPE_CHECKING:
    from avdtp_harness.engine.scenario import ScenarioContext

logger = structlog.get_logger()


def stderr_sink(line: str) -> None:
    print(line, file=sys.stderr)


class PeerEventLoopAdapter:
    """
    Bridges a scenario's Script to its peer endpoint.

    Example:
        adapter = PeerEventLoopAdapter(context, pair.peer_endpoint)
        adapter.start()           # watch the peer endpoint
        adapter.schedule_send()   # harness speaks first
        await context.wait()
        adapter.stop()
    """

    def __init__(
        self,
        context: "ScenarioContext",
        transport: PeerTransport,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        verbose: bool = False,
        trace_prefix: str = "",
        trace_sink: Optional[Callable[[str], None]] = None,
        read_buffer_size: int = 512,
    ):
        self._context = context
        self._transport = transport
        self._loop = loop or asyncio.get_running_loop()
        self._verifier = ExchangeVerifier(context.script)
        self._verbose = verbose
        self._trace_prefix = trace_prefix
        self._trace_sink = trace_sink or stderr_sink
        self._read_buffer_size = read_buffer_size

        self._watched_fd: Optional[int] = None
        self._pending_send: Optional[asyncio.Handle] = None

    @property
    def watching(self) -> bool:
        return self._watched_fd is not None

    @property
    def send_pending(self) -> bool:
        return self._pending_send is not None

    def start(self) -> None:
        """Register the read-ready handler on the peer endpoint."""
        if self.watching:
            raise InvariantViolation(
                "Peer endpoint already has a reader",
                details={"fd": self._watched_fd},
            )
        ensure_open(self._transport, context="start")

        fd = self._transport.fileno()
        self._loop.add_reader(fd, self.on_readable)
        self._watched_fd = fd
        logger.debug("peer_watch_added", scenario=self._context.name, fd=fd)

    def stop(self) -> None:
        """Remove the watch and drop any pending send. Safe to call twice."""
        if self._pending_send is not None:
            self._pending_send.cancel()
            self._pending_send = None

        if self._watched_fd is None:
            return
        fd, self._watched_fd = self._watched_fd, None
        self._loop.remove_reader(fd)
        logger.debug("peer_watch_removed", scenario=self._context.name, fd=fd)

    def schedule_send(self) -> None:
        """Queue the next scripted entry for the next loop iteration."""
        if self._pending_send is not None:
            raise InvariantViolation(
                "A scripted send is already pending",
                details={"cursor": self._context.script.cursor},
            )
        self._pending_send = self._loop.call_soon(self._send_next)

    def _trace(self, direction: str, data: bytes) -> None:
        def record(line: str) -> None:
            self._context.trace.append(line)
            if self._verbose:
                self._trace_sink(line)

        hexdump(direction, data, record, self._trace_prefix)

    def _send_next(self) -> None:
        self._pending_send = None
        if self._context.finished:
            return

        script = self._context.script
        cursor = script.cursor
        entry = script.next()
        if not entry.valid:
            self._context.complete()
            return

        try:
            written = self._transport.send(entry.data)
        except SendError as e:
            self._context.fail(e)
            return

        self._context.sent += 1
        self._context.mark_exchanging()
        self._trace(SENT, entry.data[:written])
        logger.debug("pdu_sent", scenario=self._context.name, cursor=cursor, length=written)

    def _hangup(self, reason: str, **details) -> None:
        self.stop()
        self._context.fail(
            UnexpectedHangupError(
                f"Peer endpoint {reason} before the script ended",
                details={"cursor": self._context.script.cursor, "condition": reason, **details},
            )
        )

    def on_readable(self) -> None:
        """Read one PDU, verify it, then finish or schedule the next send."""
        if self._context.finished:
            return

        if self._transport.closed:
            self._hangup("invalid")
            return

        try:
            data = self._transport.recv(self._read_buffer_size)
        except (BlockingIOError, InterruptedError):
            return
        except ReceiveError as e:
            self._hangup("error", error=e.details.get("error"))
            return

        if not data:
            self._hangup("hung up")
            return

        self._context.received += 1
        self._context.mark_exchanging()
        self._trace(RECEIVED, data)

        try:
            self._verifier.verify(data)
        except VerificationError as e:
            self._context.fail(e)
            return

        if self._context.script.exhausted:
            self._context.complete()
        else:
            self.schedule_send()
