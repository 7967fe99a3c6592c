from .clubs import (
    PGA_BENCHMARKS,
    find_pga_benchmark,
    normalize_club_label,
    resolve_club_from_analytics,
)
from .normalizer import (
    KNOWN_COLUMN_KEYS,
    build_key,
    dedupe_keys,
    normalize_token,
    parse_cell_value,
    to_mph,
    to_yards,
)

__all__ = [
    "PGA_BENCHMARKS",
    "find_pga_benchmark",
    "normalize_club_label",
    "resolve_club_from_analytics",
    "KNOWN_COLUMN_KEYS",
    "build_key",
    "dedupe_keys",
    "normalize_token",
    "parse_cell_value",
    "to_mph",
    "to_yards",
]
