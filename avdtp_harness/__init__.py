"""
AVDTP signaling conformance harness

engine/    - script, transport pair, peer event loop, verifier, contracts, runner
sut/       - reference session engine exercised by the built-in scenarios
scenarios/ - scenario definitions, registry and the built-in catalogue
"""
