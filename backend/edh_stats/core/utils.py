"""
Utility functions for derived numbers.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float, Decimal]


def win_rate(wins: Optional[int], games: Optional[int], ndigits: int = 2) -> float:
    """wins / games as a percentage rounded to ``ndigits``; 0 when there are no games."""
    if not games:
        return 0.0
    return round((wins or 0) / games * 100, ndigits)


def whole_percent(wins: Optional[int], games: Optional[int]) -> int:
    """Win rate rounded half-up to a whole percentage, for display buckets."""
    if not games:
        return 0
    value = Decimal(wins or 0) * 100 / Decimal(games)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def round_average(value: Optional[Number], ndigits: int = 2) -> float:
    """Round an SQL average; NULL (no data) becomes 0."""
    if value is None:
        return 0.0
    return round(float(value), ndigits)
