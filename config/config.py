"""
Configuration settings for homoshare.
Key sizes and transport parameters for the packing pipeline.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class CryptoConfig:
    """Cryptographic parameters configuration."""
    # Bit size of each Paillier prime (n has twice as many bits)
    prime_bits: int = 1024
    # Use a small-prime generator g instead of sampling one
    fast_generator: bool = True
    # Attempt cap for forced key generation
    max_keygen_attempts: int = 64
    # Ephemeral AES key size
    symmetric_key_bits: int = 256


@dataclass
class TransportConfig:
    """Packing parameters."""
    # Number of channels (packets) per data block
    partitions: int = 8
    # Size of each generated data block in bytes
    payload_size: int = 1024
    # Number of data blocks (sequence numbers) per run
    messages: int = 1


@dataclass
class RunConfig:
    """Complete run configuration."""
    crypto: CryptoConfig = field(default_factory=CryptoConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)

    # Run settings
    seed: Optional[int] = None
    log_level: str = 'INFO'
    log_dir: Optional[str] = None

    def __post_init__(self):
        if self.transport.partitions < 2:
            raise ValueError("At least 2 partitions are required")
        if self.crypto.prime_bits * 2 <= self.crypto.symmetric_key_bits:
            raise ValueError(
                f"{self.crypto.prime_bits}-bit primes are too small for a "
                f"{self.crypto.symmetric_key_bits}-bit symmetric key"
            )


# Default configuration instance
DEFAULT_CONFIG = RunConfig()


def get_config(
    prime_bits: int = 1024,
    partitions: int = 8,
    payload_size: int = 1024,
    messages: int = 1,
    seed: Optional[int] = None
) -> RunConfig:
    """
    Get configuration for a specific run.

    Args:
        prime_bits: Bit size of each Paillier prime
        partitions: Number of channels per data block
        payload_size: Bytes per generated data block
        messages: Number of data blocks
        seed: Random seed (None for OS entropy)

    Returns:
        Configured RunConfig instance
    """
    return RunConfig(
        crypto=CryptoConfig(prime_bits=prime_bits),
        transport=TransportConfig(
            partitions=partitions,
            payload_size=payload_size,
            messages=messages
        ),
        seed=seed
    )
