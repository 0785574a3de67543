"""
AVDTP signaling wire codec used by the reference session engine.

Single-packet signaling messages only:

    octet 0: transaction label (4 bits) | packet type (2) | message type (2)
    octet 1: RFA (2 bits) | signal identifier (6)
    octet 2..: signal-specific parameters

SEIDs travel in the upper six bits of an octet. Service capabilities are
(category, length, payload) triples.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from avdtp_harness.exceptions import SessionError
from avdtp_harness.protocol import (
    ErrorCode,
    MessageType,
    PacketType,
    ServiceCapability,
    SignalId,
)

HEADER_SIZE = 2
MAX_SEID = 0x3E


class SignalingDecodeError(SessionError):
    """Malformed signaling PDU; carries the AVDTP error code to reject with."""

    def __init__(self, message: str, error_code: int = ErrorCode.BAD_HEADER_FORMAT, category: int = 0):
        super().__init__(message, {"error_code": int(error_code), "category": category})
        self.error_code = int(error_code)
        self.category = category


@dataclass(frozen=True)
class SignalHeader:
    label: int
    message_type: int
    signal_id: int
    packet_type: int = PacketType.SINGLE

    def encode(self) -> bytes:
        return bytes(
            [
                ((self.label & 0x0F) << 4)
                | ((self.packet_type & 0x03) << 2)
                | (self.message_type & 0x03),
                self.signal_id & 0x3F,
            ]
        )

    @property
    def signal_name(self) -> str:
        try:
            return SignalId(self.signal_id).name
        except ValueError:
            return f"0x{self.signal_id:02x}"


def decode_header(data: bytes) -> Tuple[SignalHeader, bytes]:
    """Split a PDU into its header and parameters."""
    if len(data) < HEADER_SIZE:
        raise SignalingDecodeError("PDU shorter than signaling header", ErrorCode.BAD_LENGTH)

    packet_type = (data[0] >> 2) & 0x03
    if packet_type != PacketType.SINGLE:
        raise SignalingDecodeError(
            f"Fragmented signaling (packet type {packet_type}) is not supported",
            ErrorCode.BAD_HEADER_FORMAT,
        )

    header = SignalHeader(
        label=data[0] >> 4,
        message_type=data[0] & 0x03,
        signal_id=data[1] & 0x3F,
        packet_type=packet_type,
    )
    return header, bytes(data[HEADER_SIZE:])


def build_pdu(label: int, message_type: int, signal_id: int, params: bytes = b"") -> bytes:
    return SignalHeader(label=label, message_type=message_type, signal_id=signal_id).encode() + params


def command(label: int, signal_id: int, params: bytes = b"") -> bytes:
    return build_pdu(label, MessageType.COMMAND, signal_id, params)


def accept(label: int, signal_id: int, params: bytes = b"") -> bytes:
    return build_pdu(label, MessageType.ACCEPT, signal_id, params)


def reject(label: int, signal_id: int, params: bytes = b"") -> bytes:
    return build_pdu(label, MessageType.REJECT, signal_id, params)


def general_reject(label: int, signal_id: int) -> bytes:
    return build_pdu(label, MessageType.GENERAL_REJECT, signal_id)


def seid_octet(seid: int) -> int:
    return (seid & 0x3F) << 2


def parse_seid(octet: int) -> int:
    return octet >> 2


@dataclass(frozen=True)
class SepInfo:
    """One DISCOVER record."""

    seid: int
    in_use: bool
    media_type: int
    sep_type: int

    def encode(self) -> bytes:
        return bytes(
            [
                seid_octet(self.seid) | (0x02 if self.in_use else 0x00),
                ((self.media_type & 0x0F) << 4) | ((self.sep_type & 0x01) << 3),
            ]
        )

    @classmethod
    def decode(cls, data: Sequence[int]) -> "SepInfo":
        return cls(
            seid=parse_seid(data[0]),
            in_use=bool(data[0] & 0x02),
            media_type=data[1] >> 4,
            sep_type=(data[1] >> 3) & 0x01,
        )


def encode_sep_infos(infos: Iterable[SepInfo]) -> bytes:
    return b"".join(info.encode() for info in infos)


def decode_sep_infos(params: bytes) -> List[SepInfo]:
    if len(params) == 0 or len(params) % 2:
        raise SignalingDecodeError("Malformed DISCOVER response", ErrorCode.BAD_LENGTH)
    return [SepInfo.decode(params[i:i + 2]) for i in range(0, len(params), 2)]


def encode_capabilities(caps: Iterable[ServiceCapability]) -> bytes:
    return b"".join(cap.encode() for cap in caps)


def decode_capabilities(params: bytes) -> List[ServiceCapability]:
    """Parse a run of (category, length, payload) records."""
    caps: List[ServiceCapability] = []
    offset = 0
    while offset < len(params):
        if offset + 2 > len(params):
            raise SignalingDecodeError("Truncated capability header", ErrorCode.BAD_LENGTH)
        category = params[offset]
        length = params[offset + 1]
        start = offset + 2
        end = start + length
        if end > len(params):
            raise SignalingDecodeError(
                "Capability payload runs past end of PDU",
                ErrorCode.BAD_LENGTH,
                category=category,
            )
        caps.append(ServiceCapability(category=category, payload=bytes(params[start:end])))
        offset = end
    return caps
