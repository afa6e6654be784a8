#!/usr/bin/env python3
"""
MERGEDv3 Wire Format

This module owns the byte layout of a MERGEDv3 container. The layout is a
contract shared with every other implementation of the format (mobile app,
Go command line tool), so nothing here may depend on the host platform: all
integers are little-endian and every offset is derived arithmetically from the
size fields stored in the trailer.

================================================================================
CONTAINER LAYOUT
================================================================================

    Offset          Field                               Size
    0               carrier bytes                       V
    V               attachment bytes                    A
    V+A             name length (uint32 LE)             4
    V+A+4           name (UTF-8)                        L
    V+A+4+L         carrier size (uint64 LE)            8
    V+A+12+L        attachment size (uint64 LE)         8
    V+A+20+L        magic "MERGEDv3" (ASCII)            8

The trailer (everything after the attachment) is located from the end of the
file: the last 24 bytes always hold the two sizes and the magic, and the name
length field sits at V+A. No content scanning is ever needed.

Global invariant:
    S == V + A + 4 + L + 8 + 8 + 8

Author: Merger Development Team
Version: 3.0.0
"""

import struct
from dataclasses import dataclass
from typing import Dict

# =============================================================================
# WIRE CONSTANTS
# =============================================================================

MAGIC = b"MERGEDv3"
MAGIC_LENGTH = len(MAGIC)

NAME_LENGTH_SIZE = 4        # uint32
SIZE_FIELD_LENGTH = 8       # uint64
MAX_NAME_LENGTH = 255
MIN_NAME_LENGTH = 1

# Sizes + magic, always the final 24 bytes of a container
FIXED_TAIL_LENGTH = SIZE_FIELD_LENGTH * 2 + MAGIC_LENGTH

# Smallest possible trailer; detect() rejects anything shorter outright
MIN_CONTAINER_SIZE = NAME_LENGTH_SIZE + MIN_NAME_LENGTH + FIXED_TAIL_LENGTH

MAX_UINT64 = 2 ** 64 - 1

_NAME_LENGTH_STRUCT = struct.Struct("<I")
_SIZE_STRUCT = struct.Struct("<Q")
_TAIL_STRUCT = struct.Struct("<QQ8s")


def trailer_length(name_length: int) -> int:
    """Number of bytes the trailer occupies for a name of `name_length` bytes."""
    return NAME_LENGTH_SIZE + name_length + FIXED_TAIL_LENGTH


def container_size(carrier_size: int, attachment_size: int, name_length: int) -> int:
    """Total container size for the given component sizes."""
    return carrier_size + attachment_size + trailer_length(name_length)


def pack_name_length(name_length: int) -> bytes:
    return _NAME_LENGTH_STRUCT.pack(name_length)


def unpack_name_length(data: bytes) -> int:
    return _NAME_LENGTH_STRUCT.unpack(data)[0]


def unpack_size(data: bytes) -> int:
    return _SIZE_STRUCT.unpack(data)[0]


def pack_tail(carrier_size: int, attachment_size: int) -> bytes:
    """Pack the fixed 24-byte tail: carrier size, attachment size, magic."""
    return _TAIL_STRUCT.pack(carrier_size, attachment_size, MAGIC)


@dataclass(frozen=True)
class Trailer:
    """
    The metadata region appended after the attachment bytes.

    Attributes:
        name: Raw UTF-8 bytes of the sanitized attachment name
        carrier_size: Length of the carrier component in bytes
        attachment_size: Length of the attachment component in bytes
    """

    name: bytes
    carrier_size: int
    attachment_size: int

    @property
    def name_length(self) -> int:
        return len(self.name)

    @property
    def metadata_start(self) -> int:
        return self.carrier_size + self.attachment_size

    @property
    def size(self) -> int:
        return trailer_length(self.name_length)

    @property
    def container_size(self) -> int:
        return container_size(self.carrier_size, self.attachment_size, self.name_length)

    def to_bytes(self) -> bytes:
        """Serialize the trailer exactly as it appears on the wire."""
        return (
            pack_name_length(self.name_length)
            + self.name
            + pack_tail(self.carrier_size, self.attachment_size)
        )

    def positions(self) -> Dict[str, int]:
        """Absolute offset of every trailer field inside the container."""
        start = self.metadata_start
        return {
            'name_length': start,
            'name': start + NAME_LENGTH_SIZE,
            'carrier_size': start + NAME_LENGTH_SIZE + self.name_length,
            'attachment_size': start + NAME_LENGTH_SIZE + self.name_length + SIZE_FIELD_LENGTH,
            'magic': start + NAME_LENGTH_SIZE + self.name_length + SIZE_FIELD_LENGTH * 2,
        }


def format_file_size(size: int) -> str:
    """
    Render a byte count with a binary unit, e.g. ``1.50 MB``.

    Example:
        >>> format_file_size(1536)
        '1.50 KB'
    """
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.2f} {'KMGTPE'[exp]}B"
