"""
Number-theory helpers for the Paillier cryptosystem.

Provides:
- Miller-Rabin primality testing and prime sampling
- lcm and the Paillier L function
- Modular inverses that fail loudly
- Generator (g) and blinding factor (r) sampling

Every sampling routine takes an explicit random source so callers can
seed it; the default is the operating system's entropy pool.
"""

import math
import random
from typing import Optional


# Small primes tried as a cheap generator before falling back to sampling
FAST_GENERATORS = (2, 3, 5, 7, 11)


class PaillierArithmeticError(ArithmeticError):
    """A number-theoretic precondition failed (e.g. no modular inverse)."""


def _default_rng(rng: Optional[random.Random]) -> random.Random:
    return rng if rng is not None else random.SystemRandom()


def is_probable_prime(n: int, rounds: int = 25, rng: Optional[random.Random] = None) -> bool:
    """
    Miller-Rabin primality test.

    Args:
        n: Number to test for primality
        rounds: Number of witness rounds (higher = more accurate)
        rng: Random source for witnesses

    Returns:
        True if probably prime, False if composite
    """
    if n < 2:
        return False
    if n == 2 or n == 3:
        return True
    if n % 2 == 0:
        return False

    rng = _default_rng(rng)

    # Write n-1 as 2^r * d
    r, d = 0, n - 1
    while d % 2 == 0:
        r += 1
        d //= 2

    for _ in range(rounds):
        a = rng.randrange(2, n - 1)
        x = pow(a, d, n)

        if x == 1 or x == n - 1:
            continue

        for _ in range(r - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def generate_prime(bits: int, rng: Optional[random.Random] = None) -> int:
    """Generate a probable prime of exactly `bits` bits."""
    if bits < 2:
        raise ValueError(f"Cannot generate a {bits}-bit prime")
    rng = _default_rng(rng)
    while True:
        candidate = rng.getrandbits(bits)
        candidate |= (1 << bits - 1) | 1  # Ensure correct bit length and odd
        if is_probable_prime(candidate, rng=rng):
            return candidate


def lcm(a: int, b: int) -> int:
    """Compute least common multiple of a and b."""
    if a == 0 or b == 0:
        return 0
    return abs(a // math.gcd(a, b) * b)


def L(u: int, n: int) -> int:
    """L function: L(u) = (u - 1) / n."""
    return (u - 1) // n


def mod_inverse(a: int, m: int) -> int:
    """
    Compute the modular multiplicative inverse of a modulo m.

    Raises:
        PaillierArithmeticError: If a is not invertible modulo m
    """
    try:
        return pow(a, -1, m)
    except ValueError as e:
        raise PaillierArithmeticError(f"{a} is not invertible modulo {m}") from e


def generate_g(n: int, rng: Optional[random.Random] = None) -> int:
    """
    General generator sampling for g in Z*_{n^2}.

    Draws a random value a in the bit space of n and returns
    g = a^lcm(a, n^2) mod n^2 + 1.
    """
    rng = _default_rng(rng)
    n_sq = n * n
    a = rng.getrandbits(n.bit_length())
    return pow(a, lcm(a, n_sq), n_sq) + 1


def generate_g_fast(n: int, rng: Optional[random.Random] = None) -> int:
    """
    Pick the smallest candidate generator invertible modulo n^2.

    A small g makes g^m cheap. If none of the small primes qualify,
    fall back to the general method.
    """
    n_sq = n * n
    for candidate in FAST_GENERATORS:
        if math.gcd(candidate, n_sq) == 1:
            return candidate
    return generate_g(n, rng)


def generate_r(n: int, rng: Optional[random.Random] = None) -> int:
    """Sample a blinding factor r uniformly from Z*_n."""
    rng = _default_rng(rng)
    r = rng.randrange(1, n)
    while math.gcd(r, n) != 1:
        r = rng.randrange(1, n)
    return r
