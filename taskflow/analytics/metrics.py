"""Metric calculators.

Pure functions over accumulator values. Every ratio is zero-safe: a zero
(or negative) denominator yields 0.0 rather than NaN, infinity or an error.
Rounding happens only through ``round2`` at report assembly.
"""
import math
from statistics import fmean, pstdev
from typing import Hashable, Iterable, Mapping, Optional, TypeVar

from taskflow.models.report import EfficiencyBand, InsightTrend

K = TypeVar("K", bound=Hashable)

WELL_ESTIMATED_MIN = 80.0
WELL_ESTIMATED_MAX = 120.0
POSITIVE_THRESHOLD = 80.0
NEUTRAL_THRESHOLD = 60.0


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def efficiency(actual_hours: float, estimated_hours: float) -> float:
    """
    Actual hours as a percentage of estimated hours.

    Examples:
        >>> efficiency(8, 10)
        80.0
        >>> efficiency(5, 0)
        0.0
    """
    if estimated_hours <= 0:
        return 0.0
    return _finite(actual_hours / estimated_hours * 100)


def productivity(completed_tasks: int, hours_worked: float) -> float:
    """
    Completed tasks per hour worked.

    Examples:
        >>> productivity(3, 6)
        0.5
        >>> productivity(3, 0)
        0.0
    """
    if hours_worked <= 0:
        return 0.0
    return _finite(completed_tasks / hours_worked)


def completion_rate(completed_tasks: int, total_tasks: int) -> float:
    """
    Completed tasks as a percentage of all tasks.

    Examples:
        >>> completion_rate(1, 4)
        25.0
        >>> completion_rate(0, 0)
        0.0
    """
    if total_tasks <= 0:
        return 0.0
    return _finite(completed_tasks / total_tasks * 100)


def consistency(daily_hours: Iterable[float]) -> float:
    """
    Inverse-normalized population standard deviation of daily hours.

    ``max(0, 100 - stddev / mean * 100)``. An empty series or a zero mean
    gives 0; a single day gives 100 since there is no variability to
    measure.

    Examples:
        >>> consistency([4, 4, 4])
        100.0
        >>> consistency([])
        0.0
        >>> consistency([1, 9])
        20.0
    """
    values = list(daily_hours)
    if not values:
        return 0.0
    mean = fmean(values)
    if mean <= 0:
        return 0.0
    if len(values) == 1:
        return 100.0
    score = 100 - (pstdev(values) / mean) * 100
    return min(100.0, max(0.0, _finite(score)))


def efficiency_band(value: float) -> EfficiencyBand:
    """
    Band an efficiency percentage.

    Both 80 and 120 fall in the well-estimated band.
    """
    if value < WELL_ESTIMATED_MIN:
        return EfficiencyBand.UNDER_ESTIMATED
    if value <= WELL_ESTIMATED_MAX:
        return EfficiencyBand.WELL_ESTIMATED
    return EfficiencyBand.OVER_ESTIMATED


def insight_trend(value: float) -> InsightTrend:
    """Tag a 0-100 score as positive (>=80), neutral (>=60) or negative."""
    if value >= POSITIVE_THRESHOLD:
        return InsightTrend.POSITIVE
    if value >= NEUTRAL_THRESHOLD:
        return InsightTrend.NEUTRAL
    return InsightTrend.NEGATIVE


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0 for an empty series."""
    values = list(values)
    if not values:
        return 0.0
    return fmean(values)


def safe_divide(numerator: float, denominator: float) -> float:
    """Plain ratio, 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return _finite(numerator / denominator)


def round2(value: float) -> float:
    """Round for presentation. Only called while assembling reports."""
    return round(_finite(value), 2) + 0.0


def peak_key(values: Mapping[K, float]) -> Optional[K]:
    """
    Key with the largest value. Ties go to the smallest key.

    Keys are visited in sorted order so the result never depends on
    mapping insertion order.

    Examples:
        >>> peak_key({11: 2.0, 9: 2.0, 10: 1.0})
        9
        >>> peak_key({}) is None
        True
    """
    best_key = None
    best_value = None
    for key in sorted(values):
        value = values[key]
        if best_value is None or value > best_value:
            best_key, best_value = key, value
    return best_key
