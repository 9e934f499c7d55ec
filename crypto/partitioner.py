"""
Channel Partitioner.

Splits an encrypted byte blob into contiguous chunks, one per channel.
Chunk sizes are drawn from a Gaussian centred on the remaining length
divided by the remaining partitions, with a standard deviation of a ninth
of that mean, clamped to +/- a third of it. The last chunk takes whatever
is left, so sizes always sum to the input length.
"""

from typing import List, Optional

import numpy as np


def _chunk_size(rng: np.random.Generator, mean: int, max_range: int) -> int:
    """Gaussian draw that lands in mean +/- max_range ~99% of the time, clamped otherwise."""
    draw = rng.normal(loc=mean, scale=max_range / 3)
    return int(np.clip(draw, mean - max_range, mean + max_range))


def split_uniform(
    data: bytes,
    partitions: int,
    rng: Optional[np.random.Generator] = None
) -> List[bytes]:
    """
    Split data into `partitions` contiguous, near-uniform chunks.

    Args:
        data: Bytes to split
        partitions: Number of chunks (>= 1)
        rng: numpy random generator (fresh OS-seeded one if not provided)

    Returns:
        Chunks in original order; concatenating them gives back `data`
    """
    if partitions < 1:
        raise ValueError(f"Need at least 1 partition, got {partitions}")
    if rng is None:
        rng = np.random.default_rng()

    data = bytes(data)
    chunks = []
    position = 0
    for i in range(partitions):
        remaining = len(data) - position
        wanted = remaining // (partitions - i)
        max_range = wanted // 3

        size = _chunk_size(rng, wanted, max_range)
        if i == partitions - 1 or position + size > len(data):
            size = remaining

        chunks.append(data[position:position + size])
        position += size

    return chunks
