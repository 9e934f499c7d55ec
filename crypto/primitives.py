"""
Symmetric cipher and digest capabilities.

Thin wrappers over the `cryptography` package:
- AES in ECB mode with PKCS7 padding (128-bit blocks), used both for the
  payload and for the 4-byte channel indices
- SHA-256 for the symmetric key digest

Invalid key sizes and corrupt ciphertexts surface as the ValueError the
cipher layer raises. A runtime without AES or SHA-256 is a fatal
misconfiguration and raises CryptoSupportError.
"""

import random
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes


BLOCK_SIZE = 16  # AES block size in bytes
DIGEST_SIZE = 32  # SHA-256 output size in bytes
DEFAULT_KEY_BITS = 256


class CryptoSupportError(RuntimeError):
    """The runtime does not provide a required cryptographic algorithm."""

    def __init__(self, algorithm: str):
        super().__init__(
            f"{algorithm} is not supported by this runtime; "
            "install a cryptography backend that provides it"
        )
        self.algorithm = algorithm


def generate_key(bits: int = DEFAULT_KEY_BITS, rng: Optional[random.Random] = None) -> bytes:
    """Generate a random AES key of 128, 192 or 256 bits."""
    if bits not in (128, 192, 256):
        raise ValueError(f"Invalid AES key size: {bits} bits")
    rng = rng if rng is not None else random.SystemRandom()
    return rng.getrandbits(bits).to_bytes(bits // 8, 'big')


def key_to_int(key: bytes) -> int:
    """Interpret a key as a non-negative big-endian integer."""
    return int.from_bytes(key, 'big')


def key_from_int(value: int, size: int = DEFAULT_KEY_BITS // 8) -> bytes:
    """
    Rebuild a key from its integer form.

    Short integers (leading zero bytes dropped) are left-padded back to
    `size` bytes.
    """
    if value < 0 or value.bit_length() > size * 8:
        raise ValueError(f"Integer does not fit a {size}-byte key")
    return value.to_bytes(size, 'big')


def _aes_ecb(key: bytes) -> Cipher:
    try:
        return Cipher(algorithms.AES(key), modes.ECB())
    except UnsupportedAlgorithm as e:
        raise CryptoSupportError('AES') from e


def encrypt(key: bytes, plaintext: bytes) -> bytes:
    """Encrypt with AES-ECB and PKCS7 padding."""
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(bytes(plaintext)) + padder.finalize()
    encryptor = _aes_ecb(key).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt(key: bytes, ciphertext: bytes) -> bytes:
    """
    Decrypt AES-ECB ciphertext and strip the PKCS7 padding.

    Raises:
        ValueError: If the key size is invalid, the ciphertext is not a
            whole number of blocks, or the padding is corrupt
    """
    decryptor = _aes_ecb(key).decryptor()
    padded = decryptor.update(bytes(ciphertext)) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def sha256(data: bytes) -> bytes:
    """Compute the SHA-256 digest of data."""
    try:
        digest = hashes.Hash(hashes.SHA256())
    except UnsupportedAlgorithm as e:
        raise CryptoSupportError('SHA-256') from e
    digest.update(bytes(data))
    return digest.finalize()


def key_digest(key_int: int, size: int = DEFAULT_KEY_BITS // 8) -> bytes:
    """Digest of a symmetric key given in integer form."""
    return sha256(key_from_int(key_int, size))
