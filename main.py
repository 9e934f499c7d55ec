"""
Demo runner for homoshare.

Executes the complete packing pipeline over an in-memory transport:
1. Paillier key pair generation
2. Packing each data block into shuffled packets
3. Streaming every packet of every block in one interleaved byte stream
4. Decoding and reassembling the blocks on the receiving side
"""

import io
import os
import sys
import time
import argparse
import logging
from typing import Dict, List, Optional

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import get_config, RunConfig
from crypto import force_generate_keypair, PaillierKeyPair
from payload import Packer, SequenceRouter, iter_packets
from utils import make_rng, setup_logging, MetricsTracker, format_time


class TransportDemo:
    """
    Round trip of one or more data blocks through the packet protocol.
    """

    def __init__(self, config: RunConfig, payload: Optional[bytes] = None):
        """
        Initialize demo.

        Args:
            config: Run configuration
            payload: Data to send as every block (random blocks if None)
        """
        self.config = config
        self.payload = payload
        self.rng = make_rng(config.seed)
        self.logger = setup_logging(
            config.log_dir,
            log_level=getattr(logging, config.log_level.upper()),
            name='homoshare_demo'
        )
        self.metrics = MetricsTracker()

    def _timed(self, name: str, fn, *args):
        start = time.perf_counter()
        result = fn(*args)
        self.metrics.add_scalar(name, time.perf_counter() - start)
        return result

    def run(self) -> bool:
        """
        Execute the round trip.

        Returns:
            Whether every block came back intact
        """
        crypto_cfg = self.config.crypto
        transport_cfg = self.config.transport

        self.logger.info("=" * 60)
        self.logger.info("Starting homoshare round trip")
        self.logger.info("=" * 60)
        self.logger.info(f"Prime bits: {crypto_cfg.prime_bits}, fast generator: {crypto_cfg.fast_generator}")
        self.logger.info(f"Partitions: {transport_cfg.partitions}, messages: {transport_cfg.messages}")

        self.logger.info("[Phase 1] Generating Paillier key pair...")
        keypair = self._timed('keygen', self._generate_keys)

        self.logger.info("[Phase 2] Packing data blocks...")
        blocks = self._make_blocks()
        stream = self._pack_all(keypair, blocks)

        self.logger.info("[Phase 3] Reassembling from stream...")
        received = self._receive_all(keypair, stream)

        ok = received == blocks
        for name, stats in self.metrics.summary().items():
            self.logger.info(f"  {name}: mean {format_time(stats['mean'])} over {stats['count']} runs")
        self.logger.info("=" * 60)
        self.logger.info("Round trip OK" if ok else "Round trip FAILED: reassembled data differs")
        self.logger.info("=" * 60)
        return ok

    def _generate_keys(self) -> PaillierKeyPair:
        crypto_cfg = self.config.crypto
        return force_generate_keypair(
            crypto_cfg.prime_bits,
            crypto_cfg.fast_generator,
            crypto_cfg.max_keygen_attempts,
            self.rng
        )

    def _make_blocks(self) -> Dict[int, bytes]:
        transport_cfg = self.config.transport
        blocks = {}
        for seq in range(transport_cfg.messages):
            if self.payload is not None:
                blocks[seq] = self.payload
            else:
                blocks[seq] = self.rng.getrandbits(transport_cfg.payload_size * 8).to_bytes(
                    transport_cfg.payload_size, 'big')
        return blocks

    def _pack_all(self, keypair: PaillierKeyPair, blocks: Dict[int, bytes]) -> io.BytesIO:
        packer = Packer(keypair.public, self.config.crypto.symmetric_key_bits, self.rng)
        packets: List[bytes] = []
        for seq, block in blocks.items():
            packets.extend(self._timed('pack', packer.pack, self.config.transport.partitions, seq, block))

        # Interleave the blocks as an unordered transport would
        self.rng.shuffle(packets)
        self.logger.info(f"  {len(packets)} packets, {sum(len(p) for p in packets)} bytes on the wire")
        return io.BytesIO(b''.join(packets))

    def _receive_all(self, keypair: PaillierKeyPair, stream: io.BytesIO) -> Dict[int, bytes]:
        router = SequenceRouter(keypair.extended_private, self.config.crypto.symmetric_key_bits)
        received = {}
        for packet in iter_packets(keypair.extended_private, stream):
            message = self._timed('combine', router.read, packet)
            if message is not None:
                received[packet.sequence_number] = message

        if router.pending():
            self.logger.warning(f"  Incomplete sequences: {router.pending()}")
        return received


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='homoshare: homomorphic secret-sharing transport demo'
    )

    # Key settings
    parser.add_argument('--prime-bits', type=int, default=1024,
                       help='Bit size of each Paillier prime')
    parser.add_argument('--slow-generator', action='store_true',
                       help='Sample g instead of using a small prime')

    # Transport settings
    parser.add_argument('--partitions', type=int, default=8,
                       help='Number of packets per data block')
    parser.add_argument('--payload-size', type=int, default=1024,
                       help='Bytes per generated data block')
    parser.add_argument('--messages', type=int, default=1,
                       help='Number of data blocks to send')
    parser.add_argument('--input', type=str, default=None,
                       help='Send the contents of this file instead of random data')

    # Other settings
    parser.add_argument('--seed', type=int, default=None,
                       help='Random seed (OS entropy if omitted)')
    parser.add_argument('--log-level', type=str, default='INFO',
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       help='Logging level')
    parser.add_argument('--log-dir', type=str, default=None,
                       help='Also write logs to this directory')

    args = parser.parse_args()

    config = get_config(
        prime_bits=args.prime_bits,
        partitions=args.partitions,
        payload_size=args.payload_size,
        messages=args.messages,
        seed=args.seed
    )
    config.crypto.fast_generator = not args.slow_generator
    config.log_level = args.log_level
    config.log_dir = args.log_dir

    payload = None
    if args.input:
        with open(args.input, 'rb') as f:
            payload = f.read()

    ok = TransportDemo(config, payload).run()
    sys.exit(0 if ok else 1)


if __name__ == '__main__':
    main()
