import math


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """
    Rounds .5 towards +infinity (2.5 -> 3, -2.5 -> -2).

    Python's round() uses banker's rounding, which would make ledger totals
    depend on the parity of the integer part.
    """
    return math.floor(value + 0.5)
