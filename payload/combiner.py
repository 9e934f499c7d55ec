"""
Packet Reassembly.

A PacketCombiner collects the packets of one sequence number. Each
accepted packet's encrypted key share is multiplied into a running
product modulo n^2; after every packet the product is decoded and its
digest compared with the key digest the packets carry. Once they match
the symmetric key is whole, the channel indices can be decrypted, and
the chunks put back in order and decrypted.

The number of channels is never sent, so completion is detected purely
from the digest.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from crypto.paillier import PaillierDecoder, PrivateKey
from crypto.primitives import DEFAULT_KEY_BITS, key_from_int, key_digest, decrypt

from .packet import IllegalPacketError, RawPacket
from .wire import unpack_int, unpack_uint32


logger = logging.getLogger('homoshare.payload.combiner')


class ReassemblyState(Enum):
    """Lifecycle of a PacketCombiner."""
    EMPTY = 'empty'
    ACCUMULATING = 'accumulating'
    COMPLETE = 'complete'
    FINISHED = 'finished'


class ReassemblyStateError(RuntimeError):
    """An operation was called in a state that does not allow it."""


class PacketCombiner:
    """
    Combines the packets of one sequence number into the original block.

    Not safe for concurrent `read` calls; the running product and the
    packet list are mutated in place.
    """

    def __init__(self, private_key: PrivateKey, sequence_number: int, key_bits: int = DEFAULT_KEY_BITS):
        """
        Link this combiner to a sequence number.

        Args:
            private_key: Paillier private key (an extended key enables CRT)
            sequence_number: Sequence number the packets must carry
            key_bits: Size of the symmetric key the sender used
        """
        self.sequence_number = sequence_number
        self.key_size = key_bits // 8
        self.decoder = PaillierDecoder(private_key)
        self.n_sq = self.decoder.n_sq

        self.packets: List[RawPacket] = []
        self.state = ReassemblyState.EMPTY
        self._product = 1
        self._key_hash: Optional[int] = None
        self._key: Optional[int] = None

    @property
    def packet_count(self) -> int:
        return len(self.packets)

    def _candidate_key(self, product: int) -> Optional[int]:
        candidate = self.decoder.decode(product)
        if candidate.bit_length() > self.key_size * 8:
            return None
        if unpack_int(key_digest(candidate, self.key_size)) != self._key_hash:
            return None
        return candidate

    def read(self, packet: RawPacket) -> bool:
        """
        Combine another packet and check whether the key is now whole.

        Args:
            packet: The packet to add

        Returns:
            Whether the block of this sequence number is complete

        Raises:
            IllegalPacketError: If the packet belongs elsewhere or repeats a share
            ReassemblyStateError: If the sequence is already complete
        """
        if self.state in (ReassemblyState.COMPLETE, ReassemblyState.FINISHED):
            raise ReassemblyStateError(
                f"Sequence {self.sequence_number} is already {self.state.value}"
            )
        if packet.sequence_number != self.sequence_number:
            raise IllegalPacketError(
                f"Tried to combine packet with seq.no. {packet.sequence_number} "
                f"into {self.sequence_number}"
            )
        if self._key_hash is not None and packet.key_hash != self._key_hash:
            raise IllegalPacketError("Tried to combine packet with different key hash")
        if any(p.part_key == packet.part_key for p in self.packets):
            raise IllegalPacketError("Tried to combine a duplicate key share")

        if self._key_hash is None:
            self._key_hash = packet.key_hash
        self._product = self._product * packet.part_key % self.n_sq
        self.packets.append(packet)
        self.state = ReassemblyState.ACCUMULATING

        self._key = self._candidate_key(self._product)
        if self._key is None:
            logger.debug(f"Sequence {self.sequence_number}: {self.packet_count} packets, incomplete")
            return False

        self.state = ReassemblyState.COMPLETE
        logger.debug(f"Sequence {self.sequence_number} complete after {self.packet_count} packets")
        return True

    def finish(self) -> bytes:
        """
        Decrypt the message formed by all read packets.

        Returns:
            The original data block

        Raises:
            ReassemblyStateError: If the key is not complete yet
            IllegalPacketError: If the channel indices do not form 0..k-1
            ValueError: If the cipher layer rejects the key or ciphertext
        """
        if self.state != ReassemblyState.COMPLETE:
            raise ReassemblyStateError(
                f"Cannot finish sequence {self.sequence_number} while {self.state.value}"
            )

        key = key_from_int(self._key, self.key_size)

        # Reorder the encrypted message
        ordered: Dict[int, bytes] = {}
        for packet in self.packets:
            channel_id = decrypt(key, packet.enc_channel_id)
            if len(channel_id) != 4:
                raise IllegalPacketError(f"Channel id decrypted to {len(channel_id)} bytes")
            index = unpack_uint32(channel_id)
            if index >= len(self.packets) or index in ordered:
                raise IllegalPacketError(f"Invalid channel index {index} in sequence {self.sequence_number}")
            ordered[index] = packet.block

        ciphertext = b''.join(ordered[i] for i in range(len(self.packets)))
        message = decrypt(key, ciphertext)

        self.state = ReassemblyState.FINISHED
        logger.info(f"Reassembled sequence {self.sequence_number}: "
                    f"{len(message)} bytes from {self.packet_count} packets")
        return message


class SequenceRouter:
    """
    Routes packets to one PacketCombiner per sequence number.

    Combiners are created on the first packet of a sequence and dropped
    once their message has been reassembled. Stalled sequences are never
    evicted here; use `pending` and `discard` to bound memory.
    """

    def __init__(self, private_key: PrivateKey, key_bits: int = DEFAULT_KEY_BITS):
        self.private_key = private_key
        self.key_bits = key_bits
        self.combiners: Dict[int, PacketCombiner] = {}

    def read(self, packet: RawPacket) -> Optional[bytes]:
        """
        Feed a packet to its sequence's combiner.

        Returns:
            The reassembled message if this packet completed it, else None
        """
        combiner = self.combiners.get(packet.sequence_number)
        if combiner is None:
            combiner = PacketCombiner(self.private_key, packet.sequence_number, self.key_bits)
            self.combiners[packet.sequence_number] = combiner

        if not combiner.read(packet):
            return None
        try:
            return combiner.finish()
        finally:
            del self.combiners[packet.sequence_number]

    def pending(self) -> Dict[int, int]:
        """Packet counts of the sequences still being reassembled."""
        return {seq: c.packet_count for seq, c in self.combiners.items()}

    def discard(self, sequence_number: int) -> bool:
        """Drop a stalled sequence. Returns whether it existed."""
        return self.combiners.pop(sequence_number, None) is not None
