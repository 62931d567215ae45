"""Score arithmetic shared by report cards and promotion candidates."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Hashable, Iterable, Mapping, Optional, TypeVar

K = TypeVar("K", bound=Hashable)

TWO_PLACES = Decimal("0.01")


def round_half_up(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 79.99 keep their printed value
    return Decimal(str(value))


def average_score(scores: Iterable) -> Optional[Decimal]:
    """Mean to 2 dp (half-up). None when there are no scores."""
    values = [as_decimal(s) for s in scores]
    if not values:
        return None
    return round_half_up(sum(values, Decimal("0")) / len(values))


def competition_ranks(averages: Mapping[K, Decimal]) -> Dict[K, int]:
    """
    Standard competition ranking, highest first: equal averages share a rank and the
    next rank skips ahead (1, 1, 3).
    """
    ordered = sorted(averages.items(), key=lambda item: item[1], reverse=True)
    ranks: Dict[K, int] = {}
    previous: Optional[Decimal] = None
    position = 0
    for index, (key, value) in enumerate(ordered, start=1):
        if value != previous:
            position = index
            previous = value
        ranks[key] = position
    return ranks
