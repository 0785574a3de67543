"""
Scripted PDU Store - ordered wire traffic for one scenario.

A Script holds the byte sequences the harness expects to exchange with the
session under test, in order. Direction is implicit: the peer event loop
sends an entry when it is the harness's turn and verifies an entry when the
session's bytes arrive. Every script ends with two terminal sentinels, so a
script with no entries is a scenario that ends immediately.

The cursor is the only mutable state. It moves forward one entry per send
and one entry per verified read, and never moves past the first terminal.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Union

import structlog

from avdtp_harness.exceptions import ScriptError

logger = structlog.get_logger()

BytesLike = Union[bytes, bytearray, memoryview, Sequence[int]]

_TERMINATORS = 2


@dataclass(frozen=True)
class PduEntry:
    """One scripted PDU. valid=False marks the end of the script."""

    data: bytes = b""
    valid: bool = True

    @classmethod
    def terminator(cls) -> "PduEntry":
        return cls(data=b"", valid=False)

    def __len__(self) -> int:
        return len(self.data)


def _own(data: BytesLike) -> bytes:
    """Copy caller data into an immutable bytes object."""
    if isinstance(data, PduEntry):
        return data.data
    return bytes(data)


class Script:
    """
    Ordered PDU entries plus a cursor.

    Example:
        script = Script([b"\\x00\\x01", b"\\x02\\x01\\x04\\x00"])
        entry = script.next()      # first entry, cursor -> 1
        script.exhausted           # False until the cursor hits a terminator
    """

    def __init__(self, entries: Iterable[BytesLike] = ()):
        self._entries: List[PduEntry] = [PduEntry(_own(data)) for data in entries]
        self._entries.extend(PduEntry.terminator() for _ in range(_TERMINATORS))
        self._cursor = 0

    def __len__(self) -> int:
        """Number of valid entries, terminators excluded."""
        return len(self._entries) - _TERMINATORS

    def __iter__(self) -> Iterator[PduEntry]:
        return iter(self._entries[: len(self)])

    def __repr__(self) -> str:
        return f"Script(entries={len(self)}, cursor={self._cursor})"

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def exhausted(self) -> bool:
        return not self._entries[self._cursor].valid

    def append(self, data: BytesLike) -> None:
        """Add an entry before the terminators. Only valid before the script runs."""
        if self._cursor != 0:
            raise ScriptError(
                "Cannot append to a script that is already running",
                details={"cursor": self._cursor},
            )
        self._entries.insert(len(self), PduEntry(_own(data)))

    def current(self) -> PduEntry:
        """Entry at the cursor (a terminator once the script is exhausted)."""
        return self._entries[self._cursor]

    def peek(self, offset: int = 0) -> PduEntry:
        """Entry `offset` positions past the cursor, clamped to the terminators."""
        index = min(self._cursor + offset, len(self._entries) - 1)
        return self._entries[index]

    def advance(self) -> None:
        """Move the cursor forward one entry; a no-op on a terminator."""
        if self.exhausted:
            return
        self._cursor += 1

    def next(self) -> PduEntry:
        """Return the entry at the cursor and advance past it."""
        entry = self.current()
        self.advance()
        return entry

    def reset(self) -> None:
        logger.debug("script_reset", previous_cursor=self._cursor)
        self._cursor = 0

    def remaining(self) -> List[PduEntry]:
        return [entry for entry in self._entries[self._cursor:] if entry.valid]


def raw_pdu(*octets: int) -> bytes:
    """Build one PDU from octet literals: raw_pdu(0x00, 0x01) -> b'\\x00\\x01'."""
    return bytes(octets)


class ScriptBuilder:
    """Collects PDUs in order and produces an immutable template for scripts."""

    def __init__(self) -> None:
        self._pdus: List[bytes] = []

    def pdu(self, *octets: int) -> "ScriptBuilder":
        self._pdus.append(raw_pdu(*octets))
        return self

    def extend(self, pdus: Iterable[BytesLike]) -> "ScriptBuilder":
        for data in pdus:
            self._pdus.append(_own(data))
        return self

    def template(self) -> tuple:
        """Frozen copy of the PDUs, suitable for sharing between runs."""
        return tuple(self._pdus)

    def build(self) -> Script:
        return Script(self._pdus)
