from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Sequence


def numeric_values(values: Iterable[Any]) -> List[float]:
    """Finite numbers only; bools, strings and None are dropped."""
    return [
        value for value in values
        if isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    ]


def mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def population_std(values: Sequence[float]) -> Optional[float]:
    avg = mean(values)
    if avg is None:
        return None
    variance = sum((value - avg) ** 2 for value in values) / len(values)
    return math.sqrt(variance)


def median(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def percentile(values: Sequence[float], p: float) -> Optional[float]:
    """Linear-interpolated percentile, p in [0, 1]."""
    if not values:
        return None
    ordered = sorted(values)
    idx = (len(ordered) - 1) * p
    lower = math.floor(idx)
    upper = math.ceil(idx)
    if lower == upper:
        return ordered[lower]
    weight = idx - lower
    return ordered[lower] * (1 - weight) + ordered[upper] * weight


def summary_stats(values: Sequence[float]) -> Dict[str, Optional[float]]:
    """count/mean/std/cv/median/p10/p90 for one metric."""
    count = len(values)
    if not count:
        return {
            "count": 0,
            "mean": None,
            "std": None,
            "cv": None,
            "median": None,
            "p10": None,
            "p90": None,
        }
    avg = mean(values)
    std = population_std(values)
    return {
        "count": count,
        "mean": avg,
        "std": std,
        "cv": abs(std / avg * 100) if avg else None,
        "median": median(values),
        "p10": percentile(values, 0.1),
        "p90": percentile(values, 0.9),
    }


def iqr_outlier_ratio(values: Sequence[float], min_count: int = 6) -> float:
    """Share of values outside [q1 - 1.5 iqr, q3 + 1.5 iqr]."""
    if len(values) < min_count:
        return 0.0
    q1 = percentile(values, 0.25)
    q3 = percentile(values, 0.75)
    iqr = q3 - q1
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr
    outliers = [value for value in values if value < lower or value > upper]
    return len(outliers) / len(values)


def pearson(pairs: Sequence[Sequence[float]]) -> float:
    """Correlation of (a, b) pairs rounded to 3 decimals; 0 when degenerate."""
    if not pairs:
        return 0.0
    mean_a = sum(a for a, _ in pairs) / len(pairs)
    mean_b = sum(b for _, b in pairs) / len(pairs)
    numerator = sum((a - mean_a) * (b - mean_b) for a, b in pairs)
    denom_a = sum((a - mean_a) ** 2 for a, _ in pairs)
    denom_b = sum((b - mean_b) ** 2 for _, b in pairs)
    if not denom_a or not denom_b:
        return 0.0
    return round(numerator / math.sqrt(denom_a * denom_b), 3)
