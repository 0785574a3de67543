"""
Scenario registration

Scenarios are registered by name with an ordered list of PDUs and run in
registration order. Names are slash-separated paths (e.g.
"/TP/SIG/SMG/BV-05-C"), so a selection pattern is either an exact name, a
path prefix, or a shell-style wildcard.
"""
from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

import structlog

from avdtp_harness.engine.script import ScriptBuilder
from avdtp_harness.exceptions import ConfigurationError
from avdtp_harness.scenarios.definitions import Scenario, ScenarioKind

logger = structlog.get_logger()

PduLiteral = Union[bytes, bytearray, Sequence[int]]


def _matches(name: str, pattern: str) -> bool:
    if any(ch in pattern for ch in "*?["):
        return fnmatchcase(name, pattern)
    prefix = pattern.rstrip("/")
    return name == prefix or name.startswith(prefix + "/") or (prefix == "" and name.startswith("/"))


class ScenarioRegistry:
    """Ordered collection of scenarios keyed by name."""

    def __init__(self) -> None:
        self._scenarios: Dict[str, Scenario] = {}

    def __len__(self) -> int:
        return len(self._scenarios)

    def __iter__(self) -> Iterator[Scenario]:
        return iter(self._scenarios.values())

    def __contains__(self, name: object) -> bool:
        return name in self._scenarios

    def register(self, scenario: Scenario) -> Scenario:
        if scenario.name in self._scenarios:
            raise ConfigurationError(
                f"Scenario already registered: {scenario.name}",
                details={"name": scenario.name},
            )
        self._scenarios[scenario.name] = scenario
        logger.debug("scenario_registered", scenario=scenario.name, kind=scenario.kind.value)
        return scenario

    def define_test(
        self,
        name: str,
        kind: Union[ScenarioKind, str],
        *pdus: PduLiteral,
        description: str = "",
    ) -> Scenario:
        """Register a scenario from ordered PDU literals."""
        try:
            kind = ScenarioKind(kind)
        except ValueError:
            raise ConfigurationError(f"Unknown scenario kind: {kind}", details={"name": name})

        template = ScriptBuilder().extend(pdus).template()
        return self.register(Scenario(name=name, kind=kind, pdus=template, description=description))

    def get(self, name: str) -> Scenario:
        try:
            return self._scenarios[name]
        except KeyError:
            raise ConfigurationError(f"No scenario named {name}", details={"name": name})

    def names(self) -> List[str]:
        return list(self._scenarios)

    def select(self, patterns: Optional[Iterable[str]] = None) -> List[Scenario]:
        """Scenarios matching any pattern, in registration order (all if none given)."""
        patterns = list(patterns or [])
        if not patterns:
            return list(self._scenarios.values())
        return [
            scenario
            for scenario in self._scenarios.values()
            if any(_matches(scenario.name, pattern) for pattern in patterns)
        ]
