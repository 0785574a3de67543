"""
Scenario definitions

A Scenario is a name, a kind and an ordered tuple of PDUs. The kind selects
the scenario glue: which local endpoint is registered, which contracts it
carries, who speaks first and what happens after each confirmation.

Kinds mirror the Stream Management Service procedures:

    server             harness initiates, local source endpoint answers
    discover           session discovers, nothing else
    get_capabilities   session discovers and queries capabilities
    set_configuration  ... then configures the matching remote endpoint
    get_configuration  ... then reads the configuration back
    open               ... then opens the stream
    start              ... then opens and starts the stream
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import structlog

from avdtp_harness.config import Settings
from avdtp_harness.engine.contracts import (
    FixedCapabilityIndication,
    FollowUpPlan,
    ScenarioConfirmation,
)
from avdtp_harness.engine.script import Script
from avdtp_harness.models import ScenarioRole
from avdtp_harness.protocol import MediaType, SepType, SignalId
from avdtp_harness.scenarios.flows import DiscoverThenConfigure, ignore_discovery

if TYPE_CHECKING:
    from avdtp_harness.engine.event_loop import PeerEventLoopAdapter
    from avdtp_harness.engine.scenario import ScenarioContext
    from avdtp_harness.engine.session_api import SessionEngine

logger = structlog.get_logger()


class ScenarioKind(str, Enum):
    SERVER = "server"
    DISCOVER = "discover"
    GET_CAPABILITIES = "get_capabilities"
    SET_CONFIGURATION = "set_configuration"
    GET_CONFIGURATION = "get_configuration"
    OPEN = "open"
    START = "start"


@dataclass(frozen=True)
class ScenarioPlan:
    """Scenario glue selected by kind."""

    role: ScenarioRole
    local_sep_type: Optional[SepType] = None  # None: no local endpoint
    public: bool = False
    capability_indication: bool = False
    confirmations: bool = False
    configure_after_discover: bool = False
    follow_up: FollowUpPlan = field(default_factory=FollowUpPlan)


PLANS: Dict[ScenarioKind, ScenarioPlan] = {
    ScenarioKind.SERVER: ScenarioPlan(
        role=ScenarioRole.ACCEPTOR,
        local_sep_type=SepType.SOURCE,
        public=True,
        capability_indication=True,
    ),
    ScenarioKind.DISCOVER: ScenarioPlan(role=ScenarioRole.INITIATOR),
    ScenarioKind.GET_CAPABILITIES: ScenarioPlan(role=ScenarioRole.INITIATOR),
    ScenarioKind.SET_CONFIGURATION: ScenarioPlan(
        role=ScenarioRole.INITIATOR,
        local_sep_type=SepType.SINK,
        configure_after_discover=True,
    ),
    ScenarioKind.GET_CONFIGURATION: ScenarioPlan(
        role=ScenarioRole.INITIATOR,
        local_sep_type=SepType.SINK,
        confirmations=True,
        configure_after_discover=True,
        follow_up=FollowUpPlan(after_configuration=SignalId.GET_CONFIGURATION),
    ),
    ScenarioKind.OPEN: ScenarioPlan(
        role=ScenarioRole.INITIATOR,
        local_sep_type=SepType.SINK,
        confirmations=True,
        configure_after_discover=True,
        follow_up=FollowUpPlan(after_configuration=SignalId.OPEN),
    ),
    ScenarioKind.START: ScenarioPlan(
        role=ScenarioRole.INITIATOR,
        local_sep_type=SepType.SINK,
        confirmations=True,
        configure_after_discover=True,
        follow_up=FollowUpPlan(after_configuration=SignalId.OPEN, start_after_open=True),
    ),
}


@dataclass(frozen=True)
class Scenario:
    """One registered conformance test case."""

    name: str
    kind: ScenarioKind
    pdus: Tuple[bytes, ...] = ()
    description: str = ""

    @property
    def plan(self) -> ScenarioPlan:
        return PLANS[self.kind]

    @property
    def role(self) -> ScenarioRole:
        return self.plan.role

    def build_script(self) -> Script:
        """Fresh script (and cursor) for every run."""
        return Script(self.pdus)

    def setup(self, context: "ScenarioContext", engine: "SessionEngine", config: Settings) -> Any:
        """Register the local endpoint this kind needs, if any."""
        plan = self.plan
        if plan.local_sep_type is None:
            return None

        ind = FixedCapabilityIndication(engine) if plan.capability_indication else None
        cfm = None
        if plan.confirmations:
            cfm = ScenarioConfirmation(engine, context, plan.follow_up, mtu=config.signaling_mtu)
            context.confirmation = cfm

        return engine.register_local_endpoint(
            plan.local_sep_type,
            MediaType.AUDIO,
            0x00,
            plan.public,
            ind=ind,
            cfm=cfm,
            user_data=context,
        )

    def kickoff(
        self,
        context: "ScenarioContext",
        engine: "SessionEngine",
        adapter: "PeerEventLoopAdapter",
    ) -> None:
        if self.role == ScenarioRole.ACCEPTOR:
            adapter.schedule_send()
            return

        callback = (
            DiscoverThenConfigure(engine, context)
            if self.plan.configure_after_discover
            else ignore_discovery
        )
        engine.discover(context.session, callback)

    def teardown(self, context: "ScenarioContext", engine: "SessionEngine") -> None:
        if context.local_endpoint is not None:
            engine.unregister_local_endpoint(context.local_endpoint)
            context.local_endpoint = None
