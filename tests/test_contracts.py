"""
Tests for the session callback contracts.

Tests cover:
- FixedCapabilityIndication record set and wire encoding
- ScenarioConfirmation outcome delivery through futures
- Unexpected error indicators fail the scenario
- Follow-up chaining (get configuration, open, start)
"""
import asyncio
import os
from unittest.mock import MagicMock

import pytest

from avdtp_harness.engine.contracts import (
    CallbackOutcome,
    FixedCapabilityIndication,
    FollowUpPlan,
    Operation,
    ScenarioConfirmation,
)
from avdtp_harness.engine.scenario import ScenarioContext
from avdtp_harness.engine.script import Script
from avdtp_harness.exceptions import SessionStateError, UnexpectedCallbackError
from avdtp_harness.models import ScenarioStatus
from avdtp_harness.protocol import AvdtpError, ErrorCode, ServiceCategory, SignalId
from avdtp_harness.sut.session import ReferenceEngine
from avdtp_harness.sut.signaling import encode_capabilities


@pytest.fixture
def engine():
    return MagicMock()


async def make_context():
    return ScenarioContext("contract-test", Script([b"\x00"]), MagicMock())


class TestCallbackOutcome:
    def test_success(self):
        outcome = CallbackOutcome(Operation.OPEN)
        assert not outcome.error_present
        assert outcome.error_detail is None

    def test_failure(self):
        error = AvdtpError.avdtp(ErrorCode.BAD_STATE)
        outcome = CallbackOutcome(Operation.START, error)
        assert outcome.error_present
        assert outcome.error_detail == error
        assert str(error) == "avdtp:BAD_STATE"


class TestFixedCapabilityIndication:
    def test_records_in_order(self):
        indication = FixedCapabilityIndication(ReferenceEngine())
        caps = indication.get_capability(session=None, sep=None, get_all=False)

        assert [cap.category for cap in caps] == [
            ServiceCategory.MEDIA_TRANSPORT,
            ServiceCategory.MEDIA_CODEC,
        ]
        assert caps[0].payload == b""
        assert caps[1].payload == bytes([0x00, 0x00, 0xFF, 0xFF, 0x02, 0x40])

    def test_wire_encoding(self):
        indication = FixedCapabilityIndication(ReferenceEngine())
        caps = indication.get_capability(session=None, sep=None, get_all=True)

        assert encode_capabilities(caps) == bytes(
            [0x01, 0x00, 0x07, 0x06, 0x00, 0x00, 0xFF, 0xFF, 0x02, 0x40]
        )


class TestScenarioConfirmation:
    @pytest.mark.asyncio
    async def test_success_resolves_future(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(engine, context)

        confirmation.set_configuration("session", "sep", "stream", None)
        outcome = await asyncio.wait_for(
            confirmation.outcome(Operation.SET_CONFIGURATION), timeout=1
        )

        assert outcome == CallbackOutcome(Operation.SET_CONFIGURATION)
        assert not context.finished
        engine.get_configuration.assert_not_called()
        engine.open.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_indicator_fails_scenario(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(
            engine, context, FollowUpPlan(after_configuration=SignalId.OPEN)
        )
        error = AvdtpError.avdtp(ErrorCode.UNSUPPORTED_CONFIGURATION)

        confirmation.set_configuration("session", "sep", "stream", error)

        assert context.status == ScenarioStatus.FAILED
        assert isinstance(context.error, UnexpectedCallbackError)
        assert context.error.operation == "set_configuration"
        outcome = await confirmation.outcome(Operation.SET_CONFIGURATION)
        assert outcome.error_present
        engine.open.assert_not_called()

    @pytest.mark.asyncio
    async def test_chains_get_configuration(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(
            engine, context, FollowUpPlan(after_configuration=SignalId.GET_CONFIGURATION)
        )

        confirmation.set_configuration("session", "sep", "stream", None)

        engine.get_configuration.assert_called_once_with("session", "stream")

    @pytest.mark.asyncio
    async def test_chains_open(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(
            engine, context, FollowUpPlan(after_configuration=SignalId.OPEN)
        )

        confirmation.set_configuration("session", "sep", "stream", None)

        engine.open.assert_called_once_with("session", "stream")

    @pytest.mark.asyncio
    async def test_follow_up_failure_fails_scenario(self, engine):
        context = await make_context()
        engine.open.side_effect = SessionStateError("bad", current_state="idle")
        confirmation = ScenarioConfirmation(
            engine, context, FollowUpPlan(after_configuration=SignalId.OPEN)
        )

        confirmation.set_configuration("session", "sep", "stream", None)

        assert context.status == ScenarioStatus.FAILED
        assert context.error.details["operation"] == "open"

    @pytest.mark.asyncio
    async def test_no_follow_up_after_finish(self, engine):
        context = await make_context()
        context.complete()
        confirmation = ScenarioConfirmation(
            engine, context, FollowUpPlan(after_configuration=SignalId.OPEN)
        )

        confirmation.set_configuration("session", "sep", "stream", None)

        engine.open.assert_not_called()
        assert len(confirmation.history) == 1

    @pytest.mark.asyncio
    async def test_open_attaches_transport_and_starts(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(
            engine, context, FollowUpPlan(after_configuration=SignalId.OPEN, start_after_open=True), mtu=672
        )

        confirmation.open("session", "sep", "stream", None)

        engine.set_stream_transport.assert_called_once()
        stream, fd, imtu, omtu = engine.set_stream_transport.call_args.args
        try:
            assert stream == "stream"
            assert fd >= 0
            assert (imtu, omtu) == (672, 672)
        finally:
            os.close(fd)
        engine.start.assert_called_once_with("session", "stream")

    @pytest.mark.asyncio
    async def test_open_without_start_plan(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(engine, context)

        confirmation.open("session", "sep", "stream", None)

        engine.set_stream_transport.assert_not_called()
        engine.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_and_get_configuration_recorded(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(engine, context)

        confirmation.get_configuration("session", "sep", "stream", None)
        confirmation.start("session", "sep", "stream", None)

        assert [outcome.operation for outcome in confirmation.history] == [
            Operation.GET_CONFIGURATION,
            Operation.START,
        ]
        assert not context.finished

    @pytest.mark.asyncio
    async def test_failed_transport_attach_closes_fd(self, engine):
        context = await make_context()
        attached = []

        def refuse(stream, fd, imtu, omtu):
            attached.append(fd)
            raise SessionStateError("stream busy", current_state="idle")

        engine.set_stream_transport.side_effect = refuse
        confirmation = ScenarioConfirmation(
            engine, context, FollowUpPlan(after_configuration=SignalId.OPEN, start_after_open=True)
        )

        confirmation.open("session", "sep", "stream", None)

        assert context.status == ScenarioStatus.FAILED
        assert context.error.details["operation"] == "set_stream_transport"
        with pytest.raises(OSError):
            os.fstat(attached[0])
        engine.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_outcome_awaited_before_delivery(self, engine):
        context = await make_context()
        confirmation = ScenarioConfirmation(engine, context)

        waiter = asyncio.ensure_future(confirmation.outcome(Operation.START))
        await asyncio.sleep(0)
        confirmation.start("session", "sep", "stream", None)

        assert (await asyncio.wait_for(waiter, timeout=1)).operation == Operation.START
