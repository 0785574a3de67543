"""
Conformance scenarios

definitions.py - Scenario, ScenarioKind and the per-kind glue
flows.py       - discovery callbacks for initiator scenarios
registry.py    - named, ordered scenario registration
catalog.py     - built-in Stream Management Service scenarios
"""
