"""
AVDTP vocabulary shared by the harness and session engines.

Constants follow the AVDTP 1.3 signaling tables. Capability records are
opaque to the harness: it builds them through a session engine's
service_cap_new() and hands them back unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class SepType(IntEnum):
    SOURCE = 0x00
    SINK = 0x01


class MediaType(IntEnum):
    AUDIO = 0x00
    VIDEO = 0x01
    MULTIMEDIA = 0x02


class MessageType(IntEnum):
    COMMAND = 0x00
    GENERAL_REJECT = 0x01
    ACCEPT = 0x02
    REJECT = 0x03


class PacketType(IntEnum):
    SINGLE = 0x00
    START = 0x01
    CONTINUE = 0x02
    END = 0x03


class SignalId(IntEnum):
    DISCOVER = 0x01
    GET_CAPABILITIES = 0x02
    SET_CONFIGURATION = 0x03
    GET_CONFIGURATION = 0x04
    RECONFIGURE = 0x05
    OPEN = 0x06
    START = 0x07
    CLOSE = 0x08
    SUSPEND = 0x09
    ABORT = 0x0A
    SECURITY_CONTROL = 0x0B
    GET_ALL_CAPABILITIES = 0x0C
    DELAY_REPORT = 0x0D


class ServiceCategory(IntEnum):
    MEDIA_TRANSPORT = 0x01
    REPORTING = 0x02
    RECOVERY = 0x03
    CONTENT_PROTECTION = 0x04
    HEADER_COMPRESSION = 0x05
    MULTIPLEXING = 0x06
    MEDIA_CODEC = 0x07
    DELAY_REPORTING = 0x08


class ErrorCode(IntEnum):
    BAD_HEADER_FORMAT = 0x01
    BAD_LENGTH = 0x11
    BAD_ACP_SEID = 0x12
    SEP_IN_USE = 0x13
    SEP_NOT_IN_USE = 0x14
    BAD_SERV_CATEGORY = 0x17
    BAD_PAYLOAD_FORMAT = 0x18
    NOT_SUPPORTED_COMMAND = 0x19
    INVALID_CAPABILITIES = 0x1A
    BAD_RECOVERY_TYPE = 0x22
    BAD_MEDIA_TRANSPORT_FORMAT = 0x23
    BAD_RECOVERY_FORMAT = 0x25
    BAD_ROHC_FORMAT = 0x26
    BAD_CP_FORMAT = 0x27
    BAD_MULTIPLEXING_FORMAT = 0x28
    UNSUPPORTED_CONFIGURATION = 0x29
    BAD_STATE = 0x31


class ErrorCategory(IntEnum):
    AVDTP = 0
    ERRNO = 1


# Basic capabilities are the ones a GET_CAPABILITIES (not GET_ALL) reply carries
BASIC_CATEGORIES = frozenset(
    {
        ServiceCategory.MEDIA_TRANSPORT,
        ServiceCategory.REPORTING,
        ServiceCategory.RECOVERY,
        ServiceCategory.CONTENT_PROTECTION,
        ServiceCategory.HEADER_COMPRESSION,
        ServiceCategory.MULTIPLEXING,
        ServiceCategory.MEDIA_CODEC,
    }
)


@dataclass(frozen=True)
class AvdtpError:
    """Error indicator delivered to callbacks: an AVDTP error code or an errno."""

    category: ErrorCategory
    code: int

    @classmethod
    def avdtp(cls, code: int) -> "AvdtpError":
        return cls(ErrorCategory.AVDTP, int(code))

    @classmethod
    def errno(cls, code: int) -> "AvdtpError":
        return cls(ErrorCategory.ERRNO, int(code))

    def __str__(self) -> str:
        if self.category == ErrorCategory.AVDTP:
            try:
                return f"avdtp:{ErrorCode(self.code).name}"
            except ValueError:
                return f"avdtp:0x{self.code:02x}"
        return f"errno:{self.code}"


@dataclass(frozen=True)
class ServiceCapability:
    """One service capability record: category plus opaque payload."""

    category: int
    payload: bytes = b""

    def encode(self) -> bytes:
        return bytes([self.category, len(self.payload)]) + self.payload


@dataclass(frozen=True)
class MediaCodecCapability:
    """Decoded view of a MEDIA_CODEC payload."""

    media_type: int
    codec_type: int
    data: bytes = b""

    def encode(self) -> bytes:
        return bytes([(self.media_type & 0x0F) << 4, self.codec_type]) + self.data

    @classmethod
    def decode(cls, payload: bytes) -> Optional["MediaCodecCapability"]:
        if len(payload) < 2:
            return None
        return cls(media_type=payload[0] >> 4, codec_type=payload[1], data=bytes(payload[2:]))
