"""Tests for scenario registration and selection."""
import pytest

from avdtp_harness.exceptions import ConfigurationError
from avdtp_harness.models import ScenarioRole
from avdtp_harness.scenarios.catalog import default_registry
from avdtp_harness.scenarios.definitions import ScenarioKind
from avdtp_harness.scenarios.registry import ScenarioRegistry


@pytest.fixture
def registry():
    registry = ScenarioRegistry()
    registry.define_test("/TP/SIG/SMG/BV-05-C", ScenarioKind.DISCOVER, [0x00, 0x01])
    registry.define_test("/TP/SIG/SMG/BV-06-C", "server", b"\x00\x01", bytearray(b"\x02\x01\x04\x00"))
    registry.define_test("/TP/SIG/SMGX/BV-01-C", ScenarioKind.SERVER, b"\x00\x01")
    return registry


class TestRegistration:
    def test_pdus_are_copied_into_template(self, registry):
        scenario = registry.get("/TP/SIG/SMG/BV-06-C")

        assert scenario.pdus == (b"\x00\x01", b"\x02\x01\x04\x00")
        assert all(isinstance(pdu, bytes) for pdu in scenario.pdus)
        assert scenario.role == ScenarioRole.ACCEPTOR

    def test_duplicate_name(self, registry):
        with pytest.raises(ConfigurationError):
            registry.define_test("/TP/SIG/SMG/BV-05-C", ScenarioKind.DISCOVER, b"\x00\x01")

    def test_unknown_kind(self, registry):
        with pytest.raises(ConfigurationError):
            registry.define_test("/TP/SIG/SMG/BV-99-C", "reconfigure", b"\x00")

    def test_unknown_name(self, registry):
        with pytest.raises(ConfigurationError):
            registry.get("/nope")

    def test_build_script_is_fresh(self, registry):
        scenario = registry.get("/TP/SIG/SMG/BV-06-C")
        script = scenario.build_script()
        script.advance()

        assert scenario.build_script().cursor == 0


class TestSelection:
    def test_no_patterns_selects_all_in_order(self, registry):
        assert [s.name for s in registry.select()] == registry.names()

    def test_exact_name(self, registry):
        assert [s.name for s in registry.select(["/TP/SIG/SMG/BV-06-C"])] == ["/TP/SIG/SMG/BV-06-C"]

    def test_path_prefix_respects_segments(self, registry):
        names = [s.name for s in registry.select(["/TP/SIG/SMG"])]
        assert names == ["/TP/SIG/SMG/BV-05-C", "/TP/SIG/SMG/BV-06-C"]

    def test_wildcard(self, registry):
        names = [s.name for s in registry.select(["/TP/SIG/SMG/BV-0?-C"])]
        assert names == ["/TP/SIG/SMG/BV-05-C", "/TP/SIG/SMG/BV-06-C"]

    def test_no_match(self, registry):
        assert registry.select(["/TP/SIG/ABORT"]) == []


def test_default_registry_catalog():
    registry = default_registry()

    assert len(registry) == 11
    assert registry.names()[0] == "/TP/SIG/SMG/BV-05-C"
    assert registry.names()[-1] == "/TP/SIG/SMG/BV-17-C"
    assert "/TP/SIG/SMG/BV-13-C" not in registry
