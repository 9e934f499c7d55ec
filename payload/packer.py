"""
Packet Encoder.

Packs one data block into N self-contained packets:
1. Generate an ephemeral AES key and split it into N additive shares
2. Paillier-encode every share under the receiver's public key
3. Encrypt the block with AES and partition the ciphertext into N chunks
4. Frame each chunk with its key share, the key digest and its own
   AES-encrypted channel index
5. Shuffle the packets so output order says nothing about channel order
"""

import logging
import random
from typing import List, Optional

import numpy as np

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from crypto.paillier import PaillierPublicKey, encode
from crypto.partitioner import split_uniform
from crypto.primitives import (
    DEFAULT_KEY_BITS,
    generate_key,
    key_to_int,
    key_digest,
    encrypt
)
from crypto.splitters import PaillierSplitter

from .packet import PacketLayout
from .wire import FieldOverflowError, pack_int, pack_uint32, unpack_int


logger = logging.getLogger('homoshare.payload.packer')

MAX_UINT32 = 2 ** 32 - 1


class PacketSizeError(ValueError):
    """A packet would not fit the 4-byte total length field."""


class Packer:
    """
    Packs data blocks for one receiver.

    Attributes:
        public_key: Receiver's Paillier public key
        key_bits: Size of the ephemeral AES key
        layout: Field widths derived from the public modulus
    """

    def __init__(
        self,
        public_key: PaillierPublicKey,
        key_bits: int = DEFAULT_KEY_BITS,
        rng: Optional[random.Random] = None
    ):
        if public_key.n.bit_length() <= key_bits:
            raise ValueError(
                f"A {public_key.n.bit_length()}-bit Paillier modulus cannot carry "
                f"a {key_bits}-bit symmetric key"
            )
        self.public_key = public_key
        self.key_bits = key_bits
        self.rng = rng if rng is not None else random.SystemRandom()
        self.layout = PacketLayout.for_modulus(public_key.n)
        self.splitter = PaillierSplitter(public_key.n, public_key.bitspace, self.rng)

    def _frame(self, sequence_number: int, share: int, key_hash: int,
               enc_channel_id: bytes, block: bytes) -> bytes:
        size = self.layout.header_size + len(block)
        if size > MAX_UINT32:
            raise PacketSizeError(f"Packet of {size} bytes exceeds the 4-byte length field")
        return b''.join([
            pack_uint32(size),
            pack_uint32(sequence_number),
            pack_int(share, self.layout.share_size),
            pack_int(key_hash, self.layout.digest_size),
            enc_channel_id,
            block
        ])

    def pack(self, partitions: int, sequence_number: int, datablock: bytes) -> List[bytes]:
        """
        Pack and homomorphically partition a data block.

        Args:
            partitions: Number of channels (>= 2)
            sequence_number: Identifier of this data block (unsigned 32-bit)
            datablock: The message block

        Returns:
            `partitions` wire packets in shuffled order
        """
        if partitions < 2:
            raise ValueError(f"Need at least 2 partitions, got {partitions}")
        if not 0 <= sequence_number <= MAX_UINT32:
            raise FieldOverflowError(f"Sequence number {sequence_number} does not fit 4 bytes")
        if not isinstance(datablock, (bytes, bytearray, memoryview)):
            raise TypeError(f"Data block must be bytes-like, got {type(datablock).__name__}")

        # Block key, its homomorphic shares and its digest
        key = generate_key(self.key_bits, self.rng)
        key_int = key_to_int(key)
        shares = [
            encode(self.public_key, share, self.rng)
            for share in self.splitter.split(key_int, partitions)
        ]
        key_hash = unpack_int(key_digest(key_int, len(key)))

        # Encrypt and partition the data
        ciphertext = encrypt(key, datablock)
        np_rng = np.random.default_rng(self.rng.getrandbits(128))
        chunks = split_uniform(ciphertext, partitions, np_rng)

        packets = []
        for i in range(partitions):
            enc_channel_id = encrypt(key, pack_uint32(i))
            packets.append(self._frame(sequence_number, shares[i], key_hash, enc_channel_id, chunks[i]))

        # Reassembly must never depend on arrival order
        self.rng.shuffle(packets)

        logger.debug(f"Packed sequence {sequence_number}: {len(datablock)} bytes "
                     f"into {partitions} packets")
        return packets


def pack(
    public_key: PaillierPublicKey,
    partitions: int,
    sequence_number: int,
    datablock: bytes,
    rng: Optional[random.Random] = None
) -> List[bytes]:
    """Pack a data block with a one-off Packer."""
    return Packer(public_key, rng=rng).pack(partitions, sequence_number, datablock)
