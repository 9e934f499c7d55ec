"""
Paillier Cryptosystem Implementation.

Implements the Paillier public-key cryptosystem supporting:
- Key pair generation (with a fast small-prime generator or a sampled one)
- Encoding and decoding, with an optional CRT-accelerated decode path
- Homomorphic addition of ciphertexts

Multiplying ciphertexts modulo n^2 and decoding the product yields the sum
of the plaintexts modulo n. The key splitting scheme relies on exactly this.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional, Union

from .number_theory import (
    PaillierArithmeticError,
    L,
    lcm,
    mod_inverse,
    generate_prime,
    generate_g,
    generate_g_fast,
    generate_r,
)


logger = logging.getLogger('homoshare.crypto.paillier')

DEFAULT_BITS = 1024


class KeyGenerationError(RuntimeError):
    """Forced key generation gave up after its attempt budget."""

    def __init__(self, attempts: int):
        super().__init__(f"Paillier key generation failed after {attempts} attempts")
        self.attempts = attempts


@dataclass(frozen=True)
class PaillierPublicKey:
    """Paillier public key for encoding."""
    bitspace: int  # Bit size of each prime factor
    n: int  # Modulus n = p * q
    g: int  # Generator g in Z*_{n^2}


@dataclass(frozen=True)
class PaillierPrivateKey:
    """Paillier private key for the standard decode path."""
    bitspace: int
    lam: int  # Lambda = lcm(p-1, q-1)
    mu: int  # Mu = L(g^lambda mod n^2)^{-1} mod n
    n: int


@dataclass(frozen=True)
class PaillierExtendedPrivateKey:
    """Private key that also carries the factorisation, enabling CRT decoding."""
    bitspace: int
    lam: int
    mu: int
    n: int
    p: int
    q: int
    g: int


PrivateKey = Union[PaillierPrivateKey, PaillierExtendedPrivateKey]


@dataclass(frozen=True)
class PaillierKeyPair:
    """Container for a Paillier key pair sharing one modulus."""
    public: PaillierPublicKey
    private: PaillierPrivateKey
    extended_private: PaillierExtendedPrivateKey


def generate_keypair(
    bits: int = DEFAULT_BITS,
    fast: bool = True,
    rng: Optional[random.Random] = None
) -> PaillierKeyPair:
    """
    Generate a new Paillier key pair.

    Args:
        bits: Bit length of each of the primes p and q
        fast: Use a small-prime generator g instead of sampling one
        rng: Random source (defaults to the OS entropy pool)

    Returns:
        PaillierKeyPair with public, private and extended private keys

    Raises:
        PaillierArithmeticError: If a required modular inverse does not exist
    """
    rng = rng if rng is not None else random.SystemRandom()

    # p == q is not guarded against; at real key sizes it is negligible
    p = generate_prime(bits, rng)
    q = generate_prime(bits, rng)

    n = p * q
    n_sq = n * n

    lam = lcm(p - 1, q - 1)
    g = generate_g_fast(n, rng) if fast else generate_g(n, rng)
    mu = mod_inverse(L(pow(g, lam, n_sq), n), n)

    return PaillierKeyPair(
        public=PaillierPublicKey(bits, n, g),
        private=PaillierPrivateKey(bits, lam, mu, n),
        extended_private=PaillierExtendedPrivateKey(bits, lam, mu, n, p, q, g)
    )


def force_generate_keypair(
    bits: int = DEFAULT_BITS,
    fast: bool = True,
    max_attempts: int = 64,
    rng: Optional[random.Random] = None
) -> PaillierKeyPair:
    """
    Regenerate with fresh randomness until a key pair comes out.

    Raises:
        KeyGenerationError: If every one of `max_attempts` attempts failed
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            return generate_keypair(bits, fast, rng)
        except PaillierArithmeticError as e:
            logger.debug(f"Key generation attempt {attempt}/{max_attempts} failed: {e}")
            last_error = e
    raise KeyGenerationError(max_attempts) from last_error


def encode(public_key: PaillierPublicKey, plaintext: int, rng: Optional[random.Random] = None) -> int:
    """
    Encode a plaintext with a freshly sampled blinding factor.

    Returns:
        Ciphertext c = g^m * r^n mod n^2
    """
    n = public_key.n
    n_sq = n * n
    r = generate_r(n, rng)
    return pow(public_key.g, plaintext % n, n_sq) * pow(r, n, n_sq) % n_sq


def decode(private_key: PrivateKey, ciphertext: int) -> int:
    """Decode a ciphertext: m = L(c^lambda mod n^2) * mu mod n."""
    n = private_key.n
    c_lam = pow(ciphertext, private_key.lam, n * n)
    return L(c_lam, n) * private_key.mu % n


def add(c1: int, c2: int, n: int) -> int:
    """
    Homomorphic addition: Dec(c1 * c2) = m1 + m2 mod n.

    Args:
        c1: First ciphertext
        c2: Second ciphertext
        n: Public modulus

    Returns:
        Encrypted sum
    """
    return c1 * c2 % (n * n)


class PaillierEncoder:
    """
    Encode-only context bound to one public key.

    Precomputes n^2 and the blinding term r^n mod n^2 once, so repeated
    encodings under the same key only pay for g^m.
    """

    def __init__(self, public_key: PaillierPublicKey, rng: Optional[random.Random] = None):
        self.public_key = public_key
        self.n = public_key.n
        self.n_sq = self.n * self.n
        r = generate_r(self.n, rng)
        self._blind = pow(r, self.n, self.n_sq)

    def encode(self, plaintext: int) -> int:
        return pow(self.public_key.g, plaintext % self.n, self.n_sq) * self._blind % self.n_sq

    def add(self, c1: int, c2: int) -> int:
        return c1 * c2 % self.n_sq


class PaillierDecoder:
    """
    Decode-only context bound to one private key.

    With an extended private key the Chinese Remainder Theorem path is
    used: partial decodings modulo p and q, recombined modulo n.
    """

    def __init__(self, private_key: PrivateKey):
        self.private_key = private_key
        self.n = private_key.n
        self.n_sq = self.n * self.n
        self._crt = isinstance(private_key, PaillierExtendedPrivateKey)
        if self._crt:
            self._precompute_crt(private_key)

    def _precompute_crt(self, key: PaillierExtendedPrivateKey):
        p, q = key.p, key.q
        self._p_sq = p * p
        self._q_sq = q * q
        self._hp = mod_inverse(L(pow(key.g, p - 1, self._p_sq), p), p)
        self._hq = mod_inverse(L(pow(key.g, q - 1, self._q_sq), q), q)
        self._p_inv = mod_inverse(p, q)

    @property
    def uses_crt(self) -> bool:
        return self._crt

    def decode(self, ciphertext: int) -> int:
        if not self._crt:
            return decode(self.private_key, ciphertext)

        key = self.private_key
        p, q = key.p, key.q
        m_p = L(pow(ciphertext, p - 1, self._p_sq), p) * self._hp % p
        m_q = L(pow(ciphertext, q - 1, self._q_sq), q) * self._hq % q
        # CRT recombination: the unique m mod n with m = m_p (p) and m = m_q (q)
        return (m_p + p * ((m_q - m_p) * self._p_inv % q)) % self.n


class PaillierCipher(PaillierEncoder, PaillierDecoder):
    """Encode and decode context for a full key pair (CRT decoding)."""

    def __init__(self, keypair: PaillierKeyPair, rng: Optional[random.Random] = None):
        PaillierEncoder.__init__(self, keypair.public, rng)
        PaillierDecoder.__init__(self, keypair.extended_private)
