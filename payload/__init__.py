"""
Packet layer for homoshare.

Implements the transport protocol around the crypto primitives:
1. Packing a data block into N shuffled wire packets
2. Decoding packets from a byte stream
3. Reassembling packets of a sequence number into the original block
"""

from .wire import (
    FieldOverflowError,
    pack_int,
    unpack_int
)

from .packet import (
    IllegalPacketError,
    PacketTruncatedError,
    PacketLayout,
    RawPacket,
    read_packet,
    parse_packet,
    iter_packets
)

from .packer import (
    PacketSizeError,
    Packer,
    pack
)

from .combiner import (
    ReassemblyState,
    ReassemblyStateError,
    PacketCombiner,
    SequenceRouter
)

__all__ = [
    # Wire codec
    'FieldOverflowError',
    'pack_int',
    'unpack_int',
    # Decoding
    'IllegalPacketError',
    'PacketTruncatedError',
    'PacketLayout',
    'RawPacket',
    'read_packet',
    'parse_packet',
    'iter_packets',
    # Encoding
    'PacketSizeError',
    'Packer',
    'pack',
    # Reassembly
    'ReassemblyState',
    'ReassemblyStateError',
    'PacketCombiner',
    'SequenceRouter'
]
