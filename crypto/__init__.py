"""
Cryptographic primitives for homoshare.

Provides implementations of:
- Paillier encryption with CRT-accelerated decoding
- Additive, multiplicative and Paillier secret splitting
- Randomized channel partitioning of ciphertext
- AES and SHA-256 capabilities for the symmetric layer
"""

from .number_theory import (
    PaillierArithmeticError,
    is_probable_prime,
    generate_prime,
    lcm,
    L,
    mod_inverse,
    generate_g,
    generate_g_fast,
    generate_r
)

from .paillier import (
    KeyGenerationError,
    PaillierPublicKey,
    PaillierPrivateKey,
    PaillierExtendedPrivateKey,
    PaillierKeyPair,
    PaillierEncoder,
    PaillierDecoder,
    PaillierCipher,
    generate_keypair,
    force_generate_keypair,
    encode,
    decode,
    add
)

from .splitters import (
    AdditiveSplitter,
    MultiplicativeSplitter,
    PaillierSplitter,
    get_splitter
)

from .partitioner import split_uniform

from .primitives import (
    CryptoSupportError,
    BLOCK_SIZE,
    DIGEST_SIZE,
    generate_key,
    key_to_int,
    key_from_int,
    encrypt,
    decrypt,
    sha256,
    key_digest
)

__all__ = [
    # Number theory
    'PaillierArithmeticError',
    'is_probable_prime',
    'generate_prime',
    'lcm',
    'L',
    'mod_inverse',
    'generate_g',
    'generate_g_fast',
    'generate_r',
    # Paillier
    'KeyGenerationError',
    'PaillierPublicKey',
    'PaillierPrivateKey',
    'PaillierExtendedPrivateKey',
    'PaillierKeyPair',
    'PaillierEncoder',
    'PaillierDecoder',
    'PaillierCipher',
    'generate_keypair',
    'force_generate_keypair',
    'encode',
    'decode',
    'add',
    # Splitters
    'AdditiveSplitter',
    'MultiplicativeSplitter',
    'PaillierSplitter',
    'get_splitter',
    # Partitioning
    'split_uniform',
    # Symmetric layer
    'CryptoSupportError',
    'BLOCK_SIZE',
    'DIGEST_SIZE',
    'generate_key',
    'key_to_int',
    'key_from_int',
    'encrypt',
    'decrypt',
    'sha256',
    'key_digest'
]
