from .column_mapping import CANONICAL_ALIASES, build_column_map
from .engine import DEFAULT_RADAR_CONFIG, compute_analytics
from .stats import mean, median, percentile, population_std, summary_stats

__all__ = [
    "CANONICAL_ALIASES",
    "build_column_map",
    "DEFAULT_RADAR_CONFIG",
    "compute_analytics",
    "mean",
    "median",
    "percentile",
    "population_std",
    "summary_stats",
]
