"""
Custom Exception Hierarchy for the Conformance Harness

Provides structured exceptions for setup, verification, callback and
transport failures. All custom exceptions inherit from HarnessError.

Every error raised while a scenario runs is fatal to that scenario: the
runner records it on the ScenarioResult and moves on to the next scenario.
"""
from typing import Optional


class HarnessError(Exception):
    """
    Base exception for all harness-specific errors.

    All custom exceptions should inherit from this class to allow
    catching all harness errors with a single except clause.
    """
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Setup Errors

class SetupError(HarnessError):
    """
    Harness setup failed before any scenario logic ran.

    Not a testable protocol condition: the environment cannot host a scenario.
    """
    pass


class TransportSetupError(SetupError):
    """The connected socket pair could not be created."""
    pass


# Configuration Errors

class ConfigurationError(HarnessError):
    """
    Invalid configuration or scenario registration.

    Raised when settings are invalid or a scenario is defined twice or not found.
    """
    pass


# Script Errors

class ScriptError(HarnessError):
    """Invalid use of a PDU script."""
    pass


# Verification Errors

class VerificationError(HarnessError):
    """
    Observed bytes differ from the expected script entry.

    Carries both byte sequences and the offset of the first difference so
    the failing exchange can be diagnosed from the report alone.
    """
    def __init__(
        self,
        message: str,
        expected: bytes = b"",
        observed: bytes = b"",
        offset: Optional[int] = None,
        cursor: Optional[int] = None,
    ):
        super().__init__(
            message,
            {
                "expected": expected.hex(),
                "observed": observed.hex(),
                "expected_length": len(expected),
                "observed_length": len(observed),
                "offset": offset,
                "cursor": cursor,
            },
        )
        self.expected = expected
        self.observed = observed
        self.offset = offset
        self.cursor = cursor


class LengthMismatchError(VerificationError):
    """Observed PDU length differs from the expected entry length."""
    pass


class ContentMismatchError(VerificationError):
    """Observed PDU has the expected length but different content."""
    pass


# Callback Errors

class CallbackError(HarnessError):
    """
    Session callback contract errors.

    Base class for failures reported through, or raised by, callback contracts.
    """
    pass


class UnexpectedCallbackError(CallbackError):
    """The session reported an error where the scenario assumed success."""
    def __init__(self, message: str, operation: str, error: Optional[object] = None):
        super().__init__(message, {"operation": operation, "error": repr(error)})
        self.operation = operation
        self.error = error


class CapabilityError(CallbackError):
    """A capability indication could not produce its capability list."""
    def __init__(self, message: str, error_code: int):
        super().__init__(message, {"error_code": error_code})
        self.error_code = error_code


# Transport Errors

class TransportError(HarnessError):
    """
    Peer transport failures.

    Base class for errors on the harness side of the socket pair.
    """
    pass


class SendError(TransportError):
    """Scripted PDU could not be written in one operation."""
    pass


class ReceiveError(TransportError):
    """Read from the peer endpoint failed."""
    pass


class UnexpectedHangupError(TransportError):
    """Peer endpoint reported hangup, error or an invalid descriptor mid-scenario."""
    pass


class ScenarioTimeoutError(HarnessError):
    """Opt-in watchdog expired before the scenario reached a terminal state."""
    pass


# Session Engine Errors

class SessionError(HarnessError):
    """
    Session engine operation failures.

    Raised by session engine operations instead of negative status codes.
    """
    pass


class SessionStateError(SessionError):
    """Operation is not valid in the current stream or session state."""
    def __init__(self, message: str, current_state: str, expected_state: Optional[str] = None):
        super().__init__(message, {"current_state": current_state, "expected_state": expected_state})
        self.current_state = current_state
        self.expected_state = expected_state


class UnknownEndpointError(SessionError):
    """Referenced stream endpoint is not registered or not discovered."""
    pass


# Invariant Errors

class InvariantViolation(HarnessError):
    """
    Internal invariant violated.

    Indicates a bug in the harness itself (should never happen).
    """
    pass
