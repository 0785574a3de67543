"""
Stream Management Service conformance scenarios.

Verifies that the discover, get capabilities, set/get configuration, open
and start procedures are implemented as AVDTP specifies, in both the
acceptor (server) and initiator roles.

Transaction labels restart at 0 for every session, so each initiator script
counts its labels from 0.
"""
from avdtp_harness.engine.script import raw_pdu
from avdtp_harness.scenarios.definitions import ScenarioKind
from avdtp_harness.scenarios.registry import ScenarioRegistry

DISCOVER_CMD = raw_pdu(0x00, 0x01)
DISCOVER_RSP = raw_pdu(0x02, 0x01, 0x04, 0x00)
GET_CAPABILITIES_CMD = raw_pdu(0x10, 0x02, 0x04)
GET_CAPABILITIES_RSP = raw_pdu(0x12, 0x02, 0x01, 0x00, 0x07, 0x06, 0x00, 0x00,
                               0xff, 0xff, 0x02, 0x40)
SET_CONFIGURATION_CMD = raw_pdu(0x20, 0x03, 0x04, 0x04, 0x01, 0x00, 0x07, 0x06,
                                0x00, 0x00, 0x21, 0x02, 0x02, 0x20)
SET_CONFIGURATION_RSP = raw_pdu(0x22, 0x03)
GET_CONFIGURATION_CMD = raw_pdu(0x30, 0x04, 0x04)
GET_CONFIGURATION_RSP = raw_pdu(0x32, 0x04, 0x01, 0x00, 0x07, 0x06, 0x00, 0x00,
                                0x21, 0x02, 0x02, 0x20)
OPEN_CMD = raw_pdu(0x30, 0x06, 0x04)
OPEN_RSP = raw_pdu(0x32, 0x06)
START_CMD = raw_pdu(0x40, 0x07, 0x04)

_CAPABILITIES = (DISCOVER_CMD, DISCOVER_RSP, GET_CAPABILITIES_CMD, GET_CAPABILITIES_RSP)
_CONFIGURED = _CAPABILITIES + (SET_CONFIGURATION_CMD, SET_CONFIGURATION_RSP)


def register_stream_management(registry: ScenarioRegistry) -> ScenarioRegistry:
    registry.define_test("/TP/SIG/SMG/BV-05-C", ScenarioKind.DISCOVER,
                         DISCOVER_CMD,
                         description="Initiator sends DISCOVER")
    registry.define_test("/TP/SIG/SMG/BV-06-C", ScenarioKind.SERVER,
                         DISCOVER_CMD, DISCOVER_RSP,
                         description="Acceptor answers DISCOVER")
    registry.define_test("/TP/SIG/SMG/BV-07-C", ScenarioKind.GET_CAPABILITIES,
                         DISCOVER_CMD, DISCOVER_RSP, GET_CAPABILITIES_CMD,
                         description="Initiator sends GET_CAPABILITIES")
    registry.define_test("/TP/SIG/SMG/BV-08-C", ScenarioKind.SERVER,
                         *_CAPABILITIES,
                         description="Acceptor answers GET_CAPABILITIES")
    registry.define_test("/TP/SIG/SMG/BV-09-C", ScenarioKind.SET_CONFIGURATION,
                         *_CAPABILITIES, SET_CONFIGURATION_CMD,
                         description="Initiator sends SET_CONFIGURATION")
    registry.define_test("/TP/SIG/SMG/BV-10-C", ScenarioKind.SERVER,
                         *_CONFIGURED,
                         description="Acceptor answers SET_CONFIGURATION")
    registry.define_test("/TP/SIG/SMG/BV-11-C", ScenarioKind.GET_CONFIGURATION,
                         *_CONFIGURED, GET_CONFIGURATION_CMD,
                         description="Initiator sends GET_CONFIGURATION")
    registry.define_test("/TP/SIG/SMG/BV-12-C", ScenarioKind.SERVER,
                         *_CONFIGURED, GET_CONFIGURATION_CMD, GET_CONFIGURATION_RSP,
                         description="Acceptor answers GET_CONFIGURATION")
    registry.define_test("/TP/SIG/SMG/BV-15-C", ScenarioKind.OPEN,
                         *_CONFIGURED, OPEN_CMD,
                         description="Initiator sends OPEN")
    registry.define_test("/TP/SIG/SMG/BV-16-C", ScenarioKind.SERVER,
                         *_CONFIGURED, OPEN_CMD, OPEN_RSP,
                         description="Acceptor answers OPEN")
    registry.define_test("/TP/SIG/SMG/BV-17-C", ScenarioKind.START,
                         *_CONFIGURED, OPEN_CMD, OPEN_RSP, START_CMD,
                         description="Initiator sends START")
    return registry


def default_registry() -> ScenarioRegistry:
    """Fresh registry holding every built-in scenario."""
    return register_stream_management(ScenarioRegistry())
