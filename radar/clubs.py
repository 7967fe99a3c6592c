"""Club inference from free-text labels and session averages."""

import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from radar.normalizer import normalize_token, to_mph, to_yards

# Label-vs-inferred margin: the stated label wins unless the inferred club
# fits the evidence better by more than this.
LABEL_HYSTERESIS = 0.2
SPEED_SCALE_MPH = 12.0
CARRY_SCALE_YDS = 20.0


class PgaBenchmark(BaseModel):
    club: str
    club_speed_mph: float
    attack_angle_deg: float
    ball_speed_mph: float
    smash_factor: float
    launch_angle_deg: float
    spin_rate_rpm: float
    max_height_yds: float
    land_angle_deg: float
    carry_yds: float


def _bench(club, speed, aoa, ball, smash, launch, spin, height, land, carry) -> PgaBenchmark:
    return PgaBenchmark(
        club=club, club_speed_mph=speed, attack_angle_deg=aoa, ball_speed_mph=ball,
        smash_factor=smash, launch_angle_deg=launch, spin_rate_rpm=spin,
        max_height_yds=height, land_angle_deg=land, carry_yds=carry,
    )


PGA_BENCHMARKS: List[PgaBenchmark] = [
    _bench("Driver", 113, -1.3, 167, 1.48, 10.9, 2686, 32, 38, 275),
    _bench("3 Iron", 98, -3.1, 142, 1.45, 10.4, 4630, 27, 46, 212),
    _bench("4 Iron", 96, -3.4, 137, 1.43, 11.0, 4836, 28, 48, 203),
    _bench("5 Iron", 94, -3.7, 132, 1.41, 12.1, 5361, 31, 49, 194),
    _bench("6 Iron", 92, -4.1, 127, 1.38, 14.1, 6231, 30, 50, 183),
    _bench("7 Iron", 90, -4.3, 120, 1.33, 16.3, 7097, 32, 50, 172),
    _bench("8 Iron", 87, -4.5, 115, 1.32, 18.1, 7998, 31, 50, 160),
    _bench("9 Iron", 85, -4.7, 109, 1.28, 20.4, 8647, 30, 51, 148),
    _bench("PW", 83, -5.0, 102, 1.23, 24.2, 9304, 29, 52, 136),
]

_BENCHMARKS_BY_CLUB: Dict[str, PgaBenchmark] = {b.club: b for b in PGA_BENCHMARKS}

_DRIVER_ALIASES = ("driver", "1w", "w1", "bois 1", "1 bois", "wood 1", "1 wood")


def find_pga_benchmark(club_name: Optional[str]) -> Optional[PgaBenchmark]:
    """Benchmark row for a club label, tolerant of aliases."""
    normalized = normalize_token(club_name)
    if not normalized:
        return None
    for bench in PGA_BENCHMARKS:
        if normalize_token(bench.club) in normalized:
            return bench
    if "driver" in normalized or re.search(r"(bois|wood)\s*1|1\s*(bois|wood)", normalized):
        return _BENCHMARKS_BY_CLUB["Driver"]
    if "pw" in normalized or "pitch" in normalized:
        return _BENCHMARKS_BY_CLUB["PW"]
    iron = re.search(r"([3-9])\s?iron", normalized)
    if iron:
        return _BENCHMARKS_BY_CLUB.get(f"{iron.group(1)} Iron")
    return None


def normalize_club_label(value: Optional[str]) -> Optional[str]:
    """Map common club spellings to benchmark names ("bois 1" -> "Driver")."""
    trimmed = (value or "").strip()
    if not trimmed:
        return None
    normalized = normalize_token(trimmed)
    if not normalized:
        return trimmed
    if normalized in ("drive", "drv") or any(alias in normalized for alias in _DRIVER_ALIASES):
        return "Driver"
    if "pw" in normalized or "pitch" in normalized:
        return "PW"
    iron = re.search(r"(^| )([3-9])\s?i(ron)?($| )", normalized)
    if iron:
        return f"{iron.group(2)} Iron"
    return trimmed


def score_benchmark(
    benchmark: PgaBenchmark,
    club_speed_mph: Optional[float],
    carry_yds: Optional[float],
) -> Optional[float]:
    """Mean normalized distance to a benchmark; None without evidence."""
    terms: List[float] = []
    if club_speed_mph is not None:
        terms.append(abs(club_speed_mph - benchmark.club_speed_mph) / SPEED_SCALE_MPH)
    if carry_yds is not None:
        terms.append(abs(carry_yds - benchmark.carry_yds) / CARRY_SCALE_YDS)
    if not terms:
        return None
    return sum(terms) / len(terms)


def _stat_mean(global_stats: Mapping[str, Any], key: str) -> Optional[float]:
    entry = global_stats.get(key) or {}
    mean = entry.get("mean") if isinstance(entry, Mapping) else None
    return mean if isinstance(mean, (int, float)) else None


def resolve_club_from_analytics(
    raw_club: Optional[str],
    analytics: Optional[Mapping[str, Any]],
) -> Optional[str]:
    """Pick the club for a session from its label and mean speed/carry.

    The stated label is kept unless a benchmark fits the evidence better by
    more than LABEL_HYSTERESIS.
    """
    normalized_club = normalize_club_label(raw_club)
    analytics = analytics or {}
    global_stats = analytics.get("global_stats") or {}
    units = (analytics.get("meta") or {}).get("units") or {}

    club_speed_mph = to_mph(_stat_mean(global_stats, "club_speed"), units.get("club_speed"))
    carry_yds = to_yards(
        _stat_mean(global_stats, "carry"),
        units.get("carry") or units.get("total"),
    )
    if club_speed_mph is None and carry_yds is None:
        return normalized_club

    inferred: Optional[str] = None
    best_score: Optional[float] = None
    for bench in PGA_BENCHMARKS:
        score = score_benchmark(bench, club_speed_mph, carry_yds)
        if score is None:
            continue
        if best_score is None or score < best_score:
            best_score = score
            inferred = bench.club

    if not normalized_club:
        return inferred
    if not inferred:
        return normalized_club

    stated_bench = find_pga_benchmark(normalized_club)
    inferred_bench = find_pga_benchmark(inferred)
    if stated_bench is None or inferred_bench is None:
        return normalized_club

    stated_score = score_benchmark(stated_bench, club_speed_mph, carry_yds)
    inferred_score = score_benchmark(inferred_bench, club_speed_mph, carry_yds)
    if stated_score is None or inferred_score is None:
        return normalized_club
    return inferred if inferred_score + LABEL_HYSTERESIS < stated_score else normalized_club
