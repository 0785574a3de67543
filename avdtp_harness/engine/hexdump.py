"""Hex-dump rendering for PDU traces."""
from typing import Callable, List, Optional

SENT = "<"
RECEIVED = ">"

_BYTES_PER_LINE = 16
_ASCII_COLUMN = 51


def hexdump_lines(direction: str, data: bytes) -> List[str]:
    """
    Render data as 16-byte lines: direction marker, hex octets, printable text.

    The first line starts with the direction marker, continuation lines
    with a space, e.g.

        < 00 01                                            ..
    """
    lines: List[str] = []
    marker = direction
    for start in range(0, len(data), _BYTES_PER_LINE):
        chunk = data[start:start + _BYTES_PER_LINE]
        hex_part = "".join(f" {octet:02x}" for octet in chunk)
        text_part = "".join(chr(octet) if 0x20 <= octet < 0x7f else "." for octet in chunk)
        line = f"{marker}{hex_part}".ljust(_ASCII_COLUMN) + text_part
        lines.append(line.ljust(_ASCII_COLUMN + _BYTES_PER_LINE))
        marker = " "
    return lines


def hexdump(
    direction: str,
    data: bytes,
    sink: Callable[[str], None],
    prefix: Optional[str] = None,
) -> None:
    """Feed every hexdump line, with prefix, to sink."""
    for line in hexdump_lines(direction, data):
        sink(f"{prefix or ''}{line}")
