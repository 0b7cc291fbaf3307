"""
Deterministic randomness for the weekly tick.

Every probabilistic decision in a tick draws from one Mulberry32 stream seeded with
'turn_seed XOR turn_index'. Replaying the same (seed, turn) against the same input
state therefore yields bit-identical output. Nothing in the tick may use the
'random' module or any other entropy source.
"""

_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply (low 32 bits of the product, unsigned)."""
    return (a * b) & _MASK32


def tick_seed(turn_seed: int, turn_index: int) -> int:
    """Per-tick seed as an unsigned 32-bit integer."""
    return (turn_seed ^ turn_index) & _MASK32


class Mulberry32:
    """
    Small, fast 32-bit PRNG. Each call returns a float in [0, 1).

    The state is a single 32-bit word, so two instances built from the same
    seed produce the same sequence on every platform.
    """

    def __init__(self, seed: int):
        self._state = seed & _MASK32
        self.draws = 0

    def __call__(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        a = self._state
        t = _imul(a ^ (a >> 15), 1 | a)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK32) ^ t
        self.draws += 1
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296


# Irwin-Hall: the sum of 12 uniforms has mean 6 and variance 1.
_NORMAL_TERMS = 12


def normal_approx(rng: Mulberry32, mean: float = 0.0, stdev: float = 1.0) -> float:
    """
    Approximately normal sample built from uniform draws.

    Matches the first two moments of N(mean, stdev^2); tails are bounded at
    +/- 6 stdev. Always consumes exactly 12 draws, which keeps the draw
    order of the tick easy to reason about.
    """
    total = 0.0
    for _ in range(_NORMAL_TERMS):
        total += rng()
    return mean + (total - _NORMAL_TERMS / 2) * stdev
