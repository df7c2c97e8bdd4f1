"""Small reductions used when binning."""

import math
from typing import Any, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


def identity(value: T) -> T:
    """Return the value unchanged."""
    return value


def max_value(
    values: Iterable[T],
    transform: Callable[[T], Any] = identity
) -> Optional[Any]:
    """Return the largest transformed value, or None for no values."""
    result = None
    for value in values:
        tx = transform(value)
        if result is None or tx > result:
            result = tx
    return result


def min_value(
    values: Iterable[T],
    transform: Callable[[T], Any] = identity
) -> Optional[Any]:
    """Return the smallest transformed value, or None for no values."""
    result = None
    for value in values:
        tx = transform(value)
        if result is None or tx < result:
            result = tx
    return result


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded towards +inf.

    Python's ``round`` rounds halves to even, which would move some bin
    widths by half a step.
    """
    return int(math.floor(value + 0.5))


def safe_ratio(numerator: float, denominator: float) -> float:
    """Return numerator / denominator, or 0.0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator
