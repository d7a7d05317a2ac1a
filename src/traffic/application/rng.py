"""
Deterministic 32-bit PRNG for seeded segment generation.
"""

_MASK32 = 0xFFFFFFFF

def _imul(a: int, b: int) -> int:
    # Low 32 bits of the product, unsigned
    return (a * b) & _MASK32

class Mulberry32:
    """
    Mulberry32 generator (xorshift-multiply family, 32-bit state).

    The bit operations mirror the reference algorithm exactly so that a given
    seed yields the same sequence on every platform.
    """

    def __init__(self, seed: int):
        self.state = int(seed) & _MASK32

    def next_uint32(self) -> int:
        self.state = (self.state + 0x6D2B79F5) & _MASK32
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return (t ^ (t >> 14)) & _MASK32

    def random(self) -> float:
        """Float in [0, 1)."""
        return self.next_uint32() / 4294967296

    __call__ = random
