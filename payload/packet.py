"""
Wire packet layout and decoder.

Packet fields (big-endian, contiguous, no padding):
    total length          4 bytes
    sequence number       4 bytes
    encrypted key share   byte length of n^2 + 1
    key digest            32 bytes
    encrypted channel id  16 bytes (one AES block)
    ciphertext chunk      the rest of the declared total length
"""

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from crypto.paillier import PrivateKey
from crypto.primitives import BLOCK_SIZE, DIGEST_SIZE

from .wire import LENGTH_SIZE, byte_length, unpack_int, unpack_uint32


logger = logging.getLogger('homoshare.payload.packet')


class IllegalPacketError(ValueError):
    """A packet is malformed or does not belong where it was offered."""


class PacketTruncatedError(EOFError):
    """The stream ended while a packet field was being read."""

    def __init__(self, field: str, expected: int, received: int):
        super().__init__(
            f"Reached end of stream while parsing {field} "
            f"({received} of {expected} bytes)"
        )
        self.field = field
        self.expected = expected
        self.received = received


@dataclass(frozen=True)
class PacketLayout:
    """Field widths of a packet for one Paillier modulus."""
    share_size: int
    digest_size: int = DIGEST_SIZE
    channel_id_size: int = BLOCK_SIZE
    length_size: int = LENGTH_SIZE
    sequence_size: int = LENGTH_SIZE

    @classmethod
    def for_modulus(cls, n: int) -> 'PacketLayout':
        # Key shares are ciphertexts modulo n^2, plus one byte for the sign
        return cls(share_size=byte_length(n * n) + 1)

    @property
    def header_size(self) -> int:
        return (self.length_size + self.sequence_size + self.share_size
                + self.digest_size + self.channel_id_size)


@dataclass(frozen=True)
class RawPacket:
    """A packet as parsed from the wire."""
    sequence_number: int
    part_key: int  # Paillier-encoded key share
    key_hash: int  # Digest of the full symmetric key, as a signed integer
    enc_channel_id: bytes
    block: bytes


def _read_field(stream: BinaryIO, size: int, field: str, head: bytes = b'') -> bytes:
    """
    Read exactly `size` bytes, tolerating short reads from the stream.

    `head` holds bytes of the field that were already read.
    """
    buf = bytearray(head)
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            raise PacketTruncatedError(field, size, len(buf))
        buf.extend(chunk)
    return bytes(buf)


def _read_body(layout: PacketLayout, stream: BinaryIO, total_length: int) -> RawPacket:
    if total_length < layout.header_size:
        raise IllegalPacketError(
            f"Declared packet length {total_length} is shorter than the "
            f"{layout.header_size}-byte header"
        )

    sequence_number = unpack_uint32(_read_field(stream, layout.sequence_size, 'packet sequence number'))
    part_key = unpack_int(_read_field(stream, layout.share_size, 'homomorphically encrypted key'))
    key_hash = unpack_int(_read_field(stream, layout.digest_size, 'key hash'))
    enc_channel_id = _read_field(stream, layout.channel_id_size, 'encrypted channel id')
    block = _read_field(stream, total_length - layout.header_size, 'encrypted data block')

    return RawPacket(sequence_number, part_key, key_hash, enc_channel_id, block)


def read_packet(private_key: PrivateKey, stream: BinaryIO) -> RawPacket:
    """
    Read a single packet from a stream.

    Args:
        private_key: Paillier private key of the receiver (fixes the share width)
        stream: Binary stream positioned at the start of a packet

    Returns:
        The parsed packet

    Raises:
        PacketTruncatedError: If the stream ends inside a field
        IllegalPacketError: If the declared length cannot hold the header
    """
    layout = PacketLayout.for_modulus(private_key.n)
    total_length = unpack_uint32(_read_field(stream, layout.length_size, 'packet size'))
    return _read_body(layout, stream, total_length)


def parse_packet(private_key: PrivateKey, data: bytes) -> RawPacket:
    """Parse one packet from a byte string."""
    return read_packet(private_key, io.BytesIO(data))


def iter_packets(private_key: PrivateKey, stream: BinaryIO) -> Iterator[RawPacket]:
    """
    Yield packets from a stream until it ends cleanly between packets.

    A stream that ends inside a packet raises PacketTruncatedError.
    """
    layout = PacketLayout.for_modulus(private_key.n)
    while True:
        head = stream.read(layout.length_size)
        if not head:
            return
        head = _read_field(stream, layout.length_size, 'packet size', head)
        packet = _read_body(layout, stream, unpack_uint32(head))
        logger.debug(f"Read packet for sequence {packet.sequence_number} "
                     f"({len(packet.block)} payload bytes)")
        yield packet
