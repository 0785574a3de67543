"""
Exchange Verifier - byte-exact comparison of inbound PDUs.

Each PDU the session emits is compared against the entry at the script
cursor: first the length, then every byte. A mismatch is fatal to the
scenario, since later entries cannot be judged once the exchange has
desynchronised. The cursor only advances on a match.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from avdtp_harness.engine.script import Script
from avdtp_harness.exceptions import (
    ContentMismatchError,
    LengthMismatchError,
    VerificationError,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class Verdict:
    """Result of comparing one observed PDU with the expected entry."""

    passed: bool
    expected_length: int
    observed_length: int
    reason: Optional[str] = None
    offset: Optional[int] = None  # first differing byte


def first_difference(expected: bytes, observed: bytes) -> Optional[int]:
    """Offset of the first differing byte, or None if the common prefix matches."""
    for offset, (want, got) in enumerate(zip(expected, observed)):
        if want != got:
            return offset
    return None


class ExchangeVerifier:
    """Compares observed PDUs against a script and advances its cursor."""

    def __init__(self, script: Script):
        self._script = script

    @property
    def script(self) -> Script:
        return self._script

    def check(self, observed: bytes) -> Verdict:
        """Compare without side effects."""
        entry = self._script.current()
        expected = entry.data

        if not entry.valid:
            return Verdict(
                passed=False,
                expected_length=0,
                observed_length=len(observed),
                reason="unexpected PDU after end of script",
                offset=0,
            )

        if len(observed) != len(expected):
            return Verdict(
                passed=False,
                expected_length=len(expected),
                observed_length=len(observed),
                reason="length mismatch",
                offset=first_difference(expected, observed),
            )

        offset = first_difference(expected, observed)
        if offset is not None:
            return Verdict(
                passed=False,
                expected_length=len(expected),
                observed_length=len(observed),
                reason="content mismatch",
                offset=offset,
            )

        return Verdict(passed=True, expected_length=len(expected), observed_length=len(observed))

    def verify(self, observed: bytes) -> Verdict:
        """
        Verify observed bytes against the entry at the cursor.

        Returns:
            The passing Verdict; the cursor has moved to the next entry

        Raises:
            LengthMismatchError: Lengths differ
            ContentMismatchError: Same length, different bytes
            VerificationError: Script already exhausted
        """
        cursor = self._script.cursor
        expected = self._script.current().data
        verdict = self.check(observed)

        if not verdict.passed:
            logger.error(
                "pdu_mismatch",
                cursor=cursor,
                reason=verdict.reason,
                offset=verdict.offset,
                expected=expected.hex(),
                observed=observed.hex(),
            )
            if verdict.reason == "length mismatch":
                error_cls = LengthMismatchError
            elif verdict.reason == "content mismatch":
                error_cls = ContentMismatchError
            else:
                error_cls = VerificationError
            raise error_cls(
                f"PDU {cursor}: {verdict.reason} "
                f"(expected {verdict.expected_length} bytes, got {verdict.observed_length}"
                + (f", first difference at offset {verdict.offset})" if verdict.offset is not None else ")"),
                expected=expected,
                observed=observed,
                offset=verdict.offset,
                cursor=cursor,
            )

        self._script.advance()
        logger.debug("pdu_verified", cursor=cursor, length=len(observed))
        return verdict
