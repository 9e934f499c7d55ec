"""
Secret Splitting Schemes.

Each splitter turns one integer into `share_count` shares and provides the
matching combine operation:
- Additive: shares sum to the value modulo n
- Multiplicative: shares multiply to the value modulo n
- Paillier: additive shares meant to be Paillier-encoded individually,
  combined on the ciphertext side by multiplication modulo n^2

None of these are threshold schemes: every share is required.
"""

import math
import random
from typing import List, Optional

from .number_theory import mod_inverse


class AdditiveSplitter:
    """
    Additive secret splitting modulo n.

    Attributes:
        n: Modulus
        bitspace: Bit size of the random shares
    """

    def __init__(self, n: int, bitspace: int, rng: Optional[random.Random] = None):
        if n < 2:
            raise ValueError(f"Modulus must be at least 2, got {n}")
        if bitspace < 1:
            raise ValueError(f"Bit space must be positive, got {bitspace}")
        self.n = n
        self.bitspace = bitspace
        self.rng = rng if rng is not None else random.SystemRandom()

    def _check_count(self, share_count: int):
        if share_count < 2:
            raise ValueError(f"Need at least 2 shares, got {share_count}")

    def split(self, value: int, share_count: int) -> List[int]:
        """
        Split a value into additive shares.

        The first share closes the sum: value - sum(others) mod n.
        """
        self._check_count(share_count)
        others = [self.rng.getrandbits(self.bitspace) for _ in range(share_count - 1)]
        first = (value - sum(others)) % self.n
        return [first] + others

    def combine(self, shares: List[int]) -> int:
        if not shares:
            raise ValueError("Cannot combine an empty share set")
        return sum(shares) % self.n


class MultiplicativeSplitter(AdditiveSplitter):
    """Multiplicative secret splitting modulo n."""

    def _random_unit(self) -> int:
        # Shares must be invertible for the closing share to exist
        while True:
            candidate = self.rng.getrandbits(self.bitspace) % self.n
            if candidate != 0 and math.gcd(candidate, self.n) == 1:
                return candidate

    def split(self, value: int, share_count: int) -> List[int]:
        self._check_count(share_count)
        others = [self._random_unit() for _ in range(share_count - 1)]
        product = 1
        for share in others:
            product = product * share % self.n
        first = value * mod_inverse(product, self.n) % self.n
        return [first] + others

    def combine(self, shares: List[int]) -> int:
        if not shares:
            raise ValueError("Cannot combine an empty share set")
        total = 1
        for share in shares:
            total = total * share % self.n
        return total


class PaillierSplitter(AdditiveSplitter):
    """
    Additive splitting for homomorphic reconstruction.

    The shares are Paillier-encoded one by one; `combine` multiplies the
    ciphertexts modulo n^2 so a single decode recovers the value.
    """

    def combine(self, ciphertexts: List[int]) -> int:
        if not ciphertexts:
            raise ValueError("Cannot combine an empty share set")
        n_sq = self.n * self.n
        total = 1
        for c in ciphertexts:
            total = total * c % n_sq
        return total

    def combine_plain(self, shares: List[int]) -> int:
        """Combine the shares before encoding (sum modulo n)."""
        return AdditiveSplitter.combine(self, shares)


_SPLITTERS = {
    'additive': AdditiveSplitter,
    'multiplicative': MultiplicativeSplitter,
    'paillier': PaillierSplitter,
}


def get_splitter(
    name: str,
    n: int,
    bitspace: int,
    rng: Optional[random.Random] = None
) -> AdditiveSplitter:
    """
    Factory function to create a splitter.

    Args:
        name: 'additive', 'multiplicative' or 'paillier'
        n: Modulus
        bitspace: Bit size of the random shares
        rng: Random source

    Returns:
        Configured splitter
    """
    if name not in _SPLITTERS:
        raise ValueError(f"Unknown splitter: {name}")
    return _SPLITTERS[name](n, bitspace, rng)
