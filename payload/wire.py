"""
Fixed-width signed integer codec for packet fields.

Big integers are written big-endian into an exact number of bytes. The
sign lives in the top bit of the first byte, so negative values (and
values whose minimal encoding starts with a set bit) survive the round
trip; parsing is plain two's-complement.
"""

import struct


LENGTH_FORMAT = '>I'  # 4-byte unsigned, used for total length and sequence number
LENGTH_SIZE = struct.calcsize(LENGTH_FORMAT)


class FieldOverflowError(ValueError):
    """A value does not fit the fixed width of its field."""


def byte_length(value: int) -> int:
    """Number of bytes needed for the unsigned magnitude of value."""
    return (value.bit_length() + 7) // 8


def pack_int(value: int, width: int) -> bytes:
    """
    Encode a signed integer into exactly `width` bytes.

    Args:
        value: Integer to encode
        width: Target field width in bytes

    Returns:
        Right-aligned two's-complement encoding, sign-extended to `width`

    Raises:
        FieldOverflowError: If the value needs more than `width` bytes
    """
    try:
        return value.to_bytes(width, 'big', signed=True)
    except OverflowError as e:
        raise FieldOverflowError(f"{value.bit_length()}-bit value does not fit {width} bytes") from e


def unpack_int(data: bytes) -> int:
    """Decode a two's-complement big-endian integer."""
    return int.from_bytes(data, 'big', signed=True)


def pack_uint32(value: int) -> bytes:
    try:
        return struct.pack(LENGTH_FORMAT, value)
    except struct.error as e:
        raise FieldOverflowError(f"{value} does not fit an unsigned 32-bit field") from e


def unpack_uint32(data: bytes) -> int:
    return struct.unpack(LENGTH_FORMAT, data)[0]
