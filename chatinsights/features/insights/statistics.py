"""Small numeric helpers shared by the analyzers and the metric calculator."""

import math
from typing import Sequence


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_stddev(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    avg = mean(values)
    variance = sum((v - avg) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """stddev / mean; 0 when the mean is 0."""
    avg = mean(values)
    if avg == 0:
        return 0.0
    return population_stddev(values) / avg


def trend_slope(values: Sequence[float]) -> float:
    """Ordinary least squares slope with x = 0..n-1."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = n * (n - 1) / 2
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_x2 = n * (n - 1) * (2 * n - 1) / 6
    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def consistency_score(daily_messages: Sequence[float]) -> float:
    """
    0..100 predictability score derived from the coefficient of variation.

    Fewer than 3 days is trivially consistent (100).
    """
    if len(daily_messages) < 3:
        return 100.0
    cv = coefficient_of_variation(daily_messages)
    return max(0.0, min(100.0, 100.0 - cv * 60))


def percent_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100
