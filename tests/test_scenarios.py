"""
End-to-end scenario tests against the reference session engine.

Tests cover:
- Every built-in Stream Management scenario passes
- Send/receive accounting for acceptor and initiator scenarios
- Mismatch, rejection and timeout failures
- Teardown releases everything, runs are repeatable
"""
import asyncio
from unittest.mock import patch

import pytest

from avdtp_harness.config import Settings
from avdtp_harness.engine.scenario import ScenarioRunner
from avdtp_harness.exceptions import TransportSetupError
from avdtp_harness.models import ScenarioStatus
from avdtp_harness.scenarios import catalog
from avdtp_harness.scenarios.catalog import default_registry
from avdtp_harness.scenarios.definitions import Scenario, ScenarioKind
from avdtp_harness.sut.session import ReferenceEngine


@pytest.fixture
def config():
    return Settings(scenario_timeout_sec=5)


@pytest.fixture
def engines():
    return []


@pytest.fixture
def runner(config, engines):
    def factory():
        engine = ReferenceEngine()
        engines.append(engine)
        return engine

    return ScenarioRunner(factory, config=config, trace_sink=lambda line: None)


def run_one(runner, scenario):
    return asyncio.run(runner.run_scenario(scenario))


class TestCatalog:
    @pytest.mark.parametrize("name", default_registry().names())
    def test_scenario_passes(self, runner, name):
        scenario = default_registry().get(name)

        result = run_one(runner, scenario)

        assert result.status == ScenarioStatus.COMPLETED, result.error
        assert result.cursor == len(scenario.pdus)
        assert result.sent + result.received == len(scenario.pdus)

    def test_discover_initiator_counts(self, runner):
        result = run_one(runner, default_registry().get("/TP/SIG/SMG/BV-05-C"))

        assert (result.sent, result.received) == (0, 1)
        assert len(result.trace) == 1
        assert result.trace[0].startswith("AVDTP: > 00 01")

    def test_get_capabilities_acceptor_counts(self, runner):
        result = run_one(runner, default_registry().get("/TP/SIG/SMG/BV-08-C"))

        assert result.cursor == 4
        assert (result.sent, result.received) == (2, 2)

    def test_run_aggregates(self, runner):
        registry = default_registry()

        summary = runner.run(registry.select(["/TP/SIG/SMG/BV-0*"]))

        assert len(summary.results) == 5
        assert summary.passed == 5
        assert summary.exit_status == 0


class TestFailures:
    def test_altered_byte_fails_at_entry(self, runner):
        altered = bytearray(catalog.GET_CAPABILITIES_RSP)
        altered[11] ^= 0x01
        scenario = Scenario(
            name="/altered",
            kind=ScenarioKind.SERVER,
            pdus=(catalog.DISCOVER_CMD, catalog.DISCOVER_RSP, catalog.GET_CAPABILITIES_CMD, bytes(altered)),
        )

        result = run_one(runner, scenario)

        assert result.status == ScenarioStatus.FAILED
        assert result.error_type == "ContentMismatchError"
        assert result.cursor == 3
        assert result.details["offset"] == 11

    def test_unexpected_reject_fails(self, runner):
        scenario = Scenario(
            name="/rejected",
            kind=ScenarioKind.GET_CONFIGURATION,
            pdus=catalog._CAPABILITIES + (
                catalog.SET_CONFIGURATION_CMD,
                bytes([0x23, 0x03, 0x00, 0x29]),
                catalog.GET_CONFIGURATION_CMD,
            ),
        )

        result = run_one(runner, scenario)

        assert result.status == ScenarioStatus.FAILED
        assert result.error_type == "UnexpectedCallbackError"
        assert result.details["operation"] == "set_configuration"

    def test_silent_session_times_out(self, engines):
        runner = ScenarioRunner(ReferenceEngine, config=Settings(scenario_timeout_sec=0.2))
        scenario = Scenario(
            name="/silent",
            kind=ScenarioKind.SERVER,
            pdus=(bytes([0x99, 0x01]), bytes([0x92, 0x01])),
        )

        result = run_one(runner, scenario)

        assert result.status == ScenarioStatus.FAILED
        assert result.error_type == "ScenarioTimeoutError"
        assert result.cursor == 1

    def test_transport_setup_failure_propagates(self, runner):
        scenario = default_registry().get("/TP/SIG/SMG/BV-06-C")
        with patch(
            "avdtp_harness.engine.scenario.TransportPair.create",
            side_effect=TransportSetupError("no sockets"),
        ):
            with pytest.raises(TransportSetupError):
                run_one(runner, scenario)

    def test_engine_crash_fails_only_its_scenario(self, config):
        class CrashingDiscoverEngine(ReferenceEngine):
            def discover(self, session, on_result):
                raise RuntimeError("discover exploded")

        runner = ScenarioRunner(CrashingDiscoverEngine, config=config, trace_sink=lambda line: None)
        registry = default_registry()

        summary = runner.run(
            [registry.get("/TP/SIG/SMG/BV-05-C"), registry.get("/TP/SIG/SMG/BV-06-C")]
        )

        crashed, answered = summary.results
        assert crashed.status == ScenarioStatus.FAILED
        assert crashed.error_type == "HarnessError"
        assert crashed.details["error_type"] == "RuntimeError"
        assert answered.passed
        assert summary.exit_status == 1

    def test_engine_crash_on_release_keeps_verdict_and_closes_transport(self, config):
        pairs = []

        class CrashingReleaseEngine(ReferenceEngine):
            def create(self, transport, imtu, omtu, version):
                pairs.append(transport)
                return super().create(transport, imtu, omtu, version)

            def release(self, session):
                super().release(session)
                raise RuntimeError("release exploded")

        runner = ScenarioRunner(CrashingReleaseEngine, config=config, trace_sink=lambda line: None)

        result = run_one(runner, default_registry().get("/TP/SIG/SMG/BV-06-C"))

        assert result.status == ScenarioStatus.COMPLETED
        assert pairs[0].fileno() == -1


class TestLifecycle:
    def test_empty_script_completes_immediately(self, runner):
        result = run_one(runner, Scenario(name="/empty", kind=ScenarioKind.SERVER))

        assert result.status == ScenarioStatus.COMPLETED
        assert (result.sent, result.received, result.cursor) == (0, 0, 0)

    def test_teardown_releases_session_and_endpoint(self, runner, engines):
        run_one(runner, default_registry().get("/TP/SIG/SMG/BV-17-C"))

        engine = engines[0]
        assert engine.local_endpoints == []
        assert engine.sessions == []

    def test_repeated_runs_are_identical(self, runner):
        scenario = default_registry().get("/TP/SIG/SMG/BV-11-C")

        first = run_one(runner, scenario)
        second = run_one(runner, scenario)

        assert first.passed and second.passed
        assert first.trace == second.trace
        assert (first.sent, first.received, first.cursor) == (second.sent, second.received, second.cursor)

    def test_each_run_gets_fresh_engine(self, runner, engines):
        scenario = default_registry().get("/TP/SIG/SMG/BV-06-C")
        run_one(runner, scenario)
        run_one(runner, scenario)

        assert len(engines) == 2
        assert engines[0] is not engines[1]
