import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves upwards (2.5 -> 3, -2.5 -> -2) instead of to the nearest even digit.

    Marks and scores are published with this rounding, so every score in the
    system goes through here rather than the builtin ``round``.
    """
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor
