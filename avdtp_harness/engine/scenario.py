"""
Scenario Context and Runner

One scenario = one transport pair + one script + one session engine
instance. The runner acquires them in order, lets the peer event loop
adapter drain the script, then tears everything down in reverse order no
matter how the scenario ended.

State machine:
    IDLE -> AWAITING_FIRST_EXCHANGE -> EXCHANGING -> COMPLETED | FAILED

COMPLETED and FAILED are terminal; the first terminal transition wins and
releases the runner.

Scenario objects supply the scenario-specific glue through two hooks:
    setup(context, engine, settings) -> local endpoint or None
    kickoff(context, engine, adapter) -> start the first exchange
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Iterable, List, Optional, Protocol

import structlog

from avdtp_harness.config import Settings, settings as default_settings
from avdtp_harness.engine.event_loop import PeerEventLoopAdapter
from avdtp_harness.engine.script import Script
from avdtp_harness.engine.session_api import SessionEngine
from avdtp_harness.engine.transport import PeerTransport, TransportPair
from avdtp_harness.exceptions import HarnessError, ScenarioTimeoutError
from avdtp_harness.models import RunSummary, ScenarioResult, ScenarioStatus

logger = structlog.get_logger()


class ScenarioDefinition(Protocol):
    """What the runner needs from a scenario."""

    name: str

    def build_script(self) -> Script: ...

    def setup(self, context: "ScenarioContext", engine: SessionEngine, config: Settings) -> Any: ...

    def kickoff(
        self, context: "ScenarioContext", engine: SessionEngine, adapter: PeerEventLoopAdapter
    ) -> None: ...

    def teardown(self, context: "ScenarioContext", engine: SessionEngine) -> None: ...


class ScenarioContext:
    """
    Per-scenario state shared by the adapter, contracts and runner.

    Owns the script and the completion future; holds non-owning references
    to the session handle and the local endpoint (the runner releases those).
    """

    def __init__(
        self,
        name: str,
        script: Script,
        peer: PeerTransport,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.name = name
        self.script = script
        self.peer = peer
        self.session: Any = None
        self.local_endpoint: Any = None
        self.confirmation: Any = None
        self.status = ScenarioStatus.IDLE
        self.error: Optional[BaseException] = None
        self.sent = 0
        self.received = 0
        self.trace: List[str] = []
        self._loop = loop or asyncio.get_running_loop()
        self._done: asyncio.Future = self._loop.create_future()

    @property
    def finished(self) -> bool:
        return self.status.terminal

    def begin(self) -> None:
        if self.status == ScenarioStatus.IDLE:
            self.status = ScenarioStatus.AWAITING_FIRST_EXCHANGE

    def mark_exchanging(self) -> None:
        if self.status == ScenarioStatus.AWAITING_FIRST_EXCHANGE:
            self.status = ScenarioStatus.EXCHANGING

    def _finish(self, status: ScenarioStatus) -> None:
        self.status = status
        if not self._done.done():
            self._done.set_result(status)

    def complete(self) -> None:
        if self.finished:
            return
        logger.info("scenario_completed", scenario=self.name, cursor=self.script.cursor)
        self._finish(ScenarioStatus.COMPLETED)

    def fail(self, error: BaseException) -> None:
        """Fail the scenario. Later failures are logged and otherwise ignored."""
        if self.finished:
            logger.debug(
                "scenario_error_after_finish",
                scenario=self.name,
                status=self.status.value,
                error=str(error),
            )
            return
        self.error = error
        logger.warning(
            "scenario_failed",
            scenario=self.name,
            cursor=self.script.cursor,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._finish(ScenarioStatus.FAILED)

    async def wait(self) -> ScenarioStatus:
        return await asyncio.shield(self._done)

    def to_result(self, duration_ms: float = 0.0) -> ScenarioResult:
        error = self.error
        return ScenarioResult(
            name=self.name,
            status=self.status,
            cursor=self.script.cursor,
            sent=self.sent,
            received=self.received,
            error=(error.message if isinstance(error, HarnessError) else str(error)) if error else None,
            error_type=type(error).__name__ if error else None,
            details=dict(error.details) if isinstance(error, HarnessError) else {},
            trace=list(self.trace),
            duration_ms=duration_ms,
        )


class ScenarioRunner:
    """
    Runs scenarios against fresh session engine instances.

    Example usage:
        runner = ScenarioRunner(ReferenceEngine)
        summary = runner.run(registry.scenarios())
        sys.exit(summary.exit_status)
    """

    def __init__(
        self,
        engine_factory: Callable[[], SessionEngine],
        config: Optional[Settings] = None,
        trace_sink: Optional[Callable[[str], None]] = None,
    ):
        self._engine_factory = engine_factory
        self._settings = config or default_settings
        self._trace_sink = trace_sink

    @staticmethod
    def _as_harness_error(exc: BaseException, where: str, **details: Any) -> HarnessError:
        """Wrap a session engine's own exception so it fails only its scenario."""
        if isinstance(exc, HarnessError):
            return exc
        return HarnessError(
            f"Unhandled error in {where}: {exc}",
            details={"error_type": type(exc).__name__, **details},
        )

    def _exception_handler(self, context: ScenarioContext, previous):
        """Uncaught errors in loop callbacks fail the running scenario."""

        def handler(loop: asyncio.AbstractEventLoop, info: dict) -> None:
            exc = info.get("exception")
            if exc is not None and not context.finished:
                context.fail(
                    self._as_harness_error(exc, "event loop callback", message=info.get("message"))
                )
                return
            if previous is not None:
                previous(loop, info)
            else:
                loop.default_exception_handler(info)

        return handler

    async def _wait(self, context: ScenarioContext) -> None:
        timeout = self._settings.scenario_timeout_sec
        if timeout is None:
            await context.wait()
            return
        try:
            await asyncio.wait_for(context.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            context.fail(
                ScenarioTimeoutError(
                    f"Scenario did not finish within {timeout}s",
                    details={"timeout_sec": timeout, "cursor": context.script.cursor},
                )
            )

    async def run_scenario(self, scenario: ScenarioDefinition) -> ScenarioResult:
        """
        Run one scenario to COMPLETED or FAILED.

        Raises:
            TransportSetupError: The socket pair cannot be created; no
                scenario logic has run
        """
        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        engine = self._engine_factory()
        mtu = self._settings.signaling_mtu

        pair = TransportPair.create()
        context = ScenarioContext(scenario.name, scenario.build_script(), pair.peer_endpoint, loop)
        adapter = PeerEventLoopAdapter(
            context,
            pair.peer_endpoint,
            loop=loop,
            verbose=self._settings.verbose,
            trace_prefix=self._settings.trace_prefix,
            trace_sink=self._trace_sink,
            read_buffer_size=self._settings.read_buffer_size,
        )
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._exception_handler(context, previous_handler))

        logger.info("scenario_started", scenario=scenario.name, entries=len(context.script))
        try:
            context.session = engine.create(
                pair.sut_endpoint, mtu, mtu, self._settings.protocol_version
            )
            context.local_endpoint = scenario.setup(context, engine, self._settings)
            adapter.start()
            context.begin()

            if context.script.exhausted:
                context.complete()
            else:
                scenario.kickoff(context, engine, adapter)

            await self._wait(context)
        except HarnessError as e:
            context.fail(e)
        except Exception as e:
            context.fail(self._as_harness_error(e, "session engine"))
        finally:
            self._teardown(context, engine, adapter, pair, scenario)
            loop.set_exception_handler(previous_handler)

        duration_ms = (time.perf_counter() - started) * 1000
        result = context.to_result(duration_ms)
        logger.info(
            "scenario_finished",
            scenario=scenario.name,
            status=result.status.value,
            sent=result.sent,
            received=result.received,
            duration_ms=round(duration_ms, 3),
        )
        return result

    def _teardown(
        self,
        context: ScenarioContext,
        engine: SessionEngine,
        adapter: PeerEventLoopAdapter,
        pair: TransportPair,
        scenario: ScenarioDefinition,
    ) -> None:
        """Release in reverse acquisition order: watch, endpoint, session, pair."""
        adapter.stop()

        steps = [
            ("local_endpoint", lambda: scenario.teardown(context, engine)),
            ("session", lambda: context.session is not None and engine.release(context.session)),
            ("transport_pair", pair.close),
        ]
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.warning(
                    "scenario_teardown_failed",
                    scenario=context.name,
                    step=name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                context.fail(self._as_harness_error(e, f"{name} teardown"))

    def run(self, scenarios: Iterable[ScenarioDefinition]) -> RunSummary:
        """Run each scenario on its own event loop and aggregate the results."""
        summary = RunSummary()
        for scenario in scenarios:
            summary.results.append(asyncio.run(self.run_scenario(scenario)))
        return summary
