"""Session analytics over an assembled radar shot table.

compute_analytics() is what the tabular extraction hands its columns and
shots to; the result is stored verbatim on radar_files.analytics and read
back by the club resolver (global_stats/<metric>/mean, meta/units).
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from analytics.column_mapping import METRIC_KEYS, build_column_map
from analytics.stats import (
    iqr_outlier_ratio,
    mean,
    median,
    numeric_values,
    pearson,
    summary_stats,
)
from models.columns import SHOT_INDEX_KEY, NormalizedColumn
from radar.normalizer import is_number, parse_cell_value

ANALYTICS_VERSION = "radar-analytics-v1"

DEFAULT_RADAR_CONFIG: Dict[str, Any] = {
    "mode": "default",
    "show_summary": True,
    "show_table": True,
    "thresholds": {
        "lat_corridor": [5, 10],
        "dist_corridor": [5, 10],
        "impact_center_box": {"lat": 0.4, "vert": 0.4},
        "outlier_method": "iqr",
    },
}

STAT_KEYS: List[str] = [
    "carry", "total", "roll", "lateral", "curve", "club_speed", "ball_speed",
    "spin_rpm", "smash", "launch_v", "launch_h", "descent_v", "height", "time",
    "path", "ftp", "aoa", "low_point", "spin_axis", "spin_loft",
    "impact_lat", "impact_vert",
]

CORRELATION_KEYS: List[str] = [
    "carry", "total", "roll", "lateral", "club_speed", "ball_speed", "spin_rpm",
    "smash", "launch_v", "launch_h", "path", "ftp", "aoa", "spin_axis",
    "impact_lat", "impact_vert",
]


# --- Shot normalization ---

def _shot_index(raw: Any) -> Optional[int]:
    if is_number(raw):
        return int(raw)
    text = str(raw if raw is not None else "").strip().lower()
    if "avg" in text or "dev" in text:
        return None
    digits = "".join(ch for ch in text if ch.isdigit() or ch == "-")
    try:
        return int(digits)
    except ValueError:
        return None


def _canonical_shots(
    columns: List[NormalizedColumn],
    shots: Sequence[Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    """Re-key shots by canonical metric; summary rows and bad indexes dropped."""
    column_map = build_column_map(columns)
    result: List[Dict[str, Any]] = []
    for shot in shots:
        index = _shot_index(shot.get(SHOT_INDEX_KEY))
        if not index or index <= 0:
            continue
        canonical: Dict[str, Any] = {SHOT_INDEX_KEY: index}
        type_column = column_map.get("shot_type")
        raw_type = shot.get(type_column.key) if type_column else shot.get("shot_type")
        if isinstance(raw_type, str) and raw_type.strip():
            canonical["shot_type"] = raw_type.strip()
        for metric in METRIC_KEYS:
            column = column_map.get(metric)
            if column is None:
                continue
            value = parse_cell_value(shot.get(column.key))
            if is_number(value):
                canonical[metric] = value
        result.append(canonical)
    return result


def _values(shots: Sequence[Mapping[str, Any]], key: str) -> List[float]:
    return numeric_values(shot.get(key) for shot in shots)


# --- Derived metrics ---

def _carry_target(carry_values: List[float]) -> Optional[float]:
    """Median when more than 10% of carries are IQR outliers, else the mean."""
    if not carry_values:
        return None
    if iqr_outlier_ratio(carry_values) > 0.1:
        return median(carry_values)
    return mean(carry_values)


def _impact_zone(lat: Optional[float], vert: Optional[float], box: Mapping[str, float]) -> Optional[str]:
    if lat is None or vert is None:
        return None
    lat_zone = "center" if abs(lat) <= box["lat"] else ("toe" if lat > 0 else "heel")
    vert_zone = "center" if abs(vert) <= box["vert"] else ("high" if vert > 0 else "low")
    return f"{lat_zone}-{vert_zone}"


def _with_derived(
    shots: List[Dict[str, Any]],
    carry_target: Optional[float],
    impact_box: Mapping[str, float],
) -> List[Dict[str, Any]]:
    enriched = []
    for shot in shots:
        carry = shot.get("carry")
        lateral = shot.get("lateral")
        distance_from_target = carry - carry_target if carry is not None and carry_target is not None else None
        radial_miss = (
            math.hypot(lateral, distance_from_target)
            if lateral is not None and distance_from_target is not None
            else None
        )
        enriched.append({
            **shot,
            "distance_from_target": distance_from_target,
            "radial_miss": radial_miss,
            "abs_lateral": abs(lateral) if lateral is not None else None,
            "left_right": None if lateral is None else ("L" if lateral < 0 else "R"),
            "impact_zone": _impact_zone(shot.get("impact_lat"), shot.get("impact_vert"), impact_box),
        })
    return enriched


def _corridor_percent(values: List[float], threshold: float) -> Optional[float]:
    if not values:
        return None
    inside = [value for value in values if abs(value) <= threshold]
    return round(len(inside) / len(values) * 100, 1)


def _correlations(shots: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    variables = [key for key in CORRELATION_KEYS if _values(shots, key)]
    if len(variables) < 2:
        return None
    matrix: List[List[float]] = []
    for a in variables:
        row = []
        for b in variables:
            if a == b:
                row.append(1.0)
                continue
            pairs = [
                (shot[a], shot[b]) for shot in shots
                if is_number(shot.get(a)) and is_number(shot.get(b))
            ]
            row.append(pearson(pairs))
        matrix.append(row)
    return {"variables": variables, "matrix": matrix}


# --- Text ---

def _fmt(value: Optional[float], unit: Optional[str] = None, digits: int = 1) -> Optional[str]:
    if value is None or not math.isfinite(value):
        return None
    rounded = round(value, digits)
    if digits == 0:
        rounded = int(rounded)
    return f"{rounded} {unit}" if unit else f"{rounded}"


def build_summary(global_stats: Mapping[str, Any], carry_target: Optional[float]) -> Optional[str]:
    carry = global_stats.get("carry") or {}
    if not carry.get("count"):
        return None
    consistency = None
    if carry.get("mean") and carry.get("std"):
        consistency = round(carry["std"] / abs(carry["mean"]) * 100, 1)
    pieces = []
    if carry_target:
        pieces.append(f"Carry moyen cible {carry_target:.1f}.")
    if consistency:
        pieces.append(f"Regularite carry (CV) {consistency}% .")
    return " ".join(pieces)


def _join(parts: List[Optional[str]]) -> Optional[str]:
    kept = [part for part in parts if part]
    return " · ".join(kept) if kept else None


def build_insights(
    global_stats: Mapping[str, Any],
    units: Mapping[str, Optional[str]],
    within_lat: Optional[float],
    lat_threshold: float,
) -> Dict[str, str]:
    def stat(key: str, field: str = "mean") -> Optional[float]:
        return (global_stats.get(key) or {}).get(field)

    carry_mean = stat("carry")
    total_mean = stat("total")
    club_mean = stat("club_speed")
    ball_mean = stat("ball_speed")
    smash_mean = stat("smash")
    roll_mean = total_mean - carry_mean if carry_mean is not None and total_mean is not None else None
    speed_ratio = round(ball_mean / club_mean, 2) if club_mean and ball_mean else None
    lat_unit = units.get("lateral")

    candidates = {
        "dispersion": _join([
            f"Moyenne laterale {_fmt(stat('lateral'), lat_unit)}" if stat("lateral") is not None else None,
            f"ET {_fmt(stat('lateral', 'std'), lat_unit)}" if stat("lateral", "std") is not None else None,
            f"{within_lat}% des coups dans ±{lat_threshold} {lat_unit or 'm'}" if within_lat is not None else None,
        ]),
        "carry_total": _join([
            f"Carry moyen {_fmt(carry_mean, units.get('carry'))}" if carry_mean is not None else None,
            f"Total moyen {_fmt(total_mean, units.get('total') or units.get('carry'))}" if total_mean is not None else None,
            f"Roll moyen {_fmt(roll_mean, units.get('total') or units.get('carry'))}" if roll_mean is not None else None,
        ]),
        "speeds": _join([
            f"Club moy. {_fmt(club_mean, units.get('club_speed'))}" if club_mean is not None else None,
            f"Balle moy. {_fmt(ball_mean, units.get('ball_speed'))}" if ball_mean is not None else None,
            f"Smash moy. {_fmt(smash_mean, units.get('smash'), 2)}" if smash_mean is not None else None,
            f"Ratio {speed_ratio}" if speed_ratio is not None else None,
        ]),
        "spin_carry": _join([
            f"Spin moyen {_fmt(stat('spin_rpm'), units.get('spin_rpm'), 0)}" if stat("spin_rpm") is not None else None,
            f"Carry moyen {_fmt(carry_mean, units.get('carry'))}" if carry_mean is not None else None,
        ]),
        "smash": _join([
            f"Smash moyen {_fmt(smash_mean, units.get('smash'), 2)}" if smash_mean is not None else None,
            f"ET {_fmt(stat('smash', 'std'), units.get('smash'), 2)}" if stat("smash", "std") is not None else None,
            f"CV {_fmt(stat('smash', 'cv'), '%')}" if stat("smash", "cv") is not None else None,
        ]),
        "face_impact": _join([
            f"Lat. moy. {_fmt(stat('impact_lat'), units.get('impact_lat'))}" if stat("impact_lat") is not None else None,
            f"Vert. moy. {_fmt(stat('impact_vert'), units.get('impact_vert'))}" if stat("impact_vert") is not None else None,
        ]),
    }
    return {key: text for key, text in candidates.items() if text}


# --- Entry point ---

def compute_analytics(
    columns: List[NormalizedColumn],
    shots: Sequence[Mapping[str, Any]],
    config: Optional[Mapping[str, Any]] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Global stats, corridors, correlations, summary and insights for one session."""
    thresholds = (config or DEFAULT_RADAR_CONFIG).get("thresholds") or {}
    lat_corridor = thresholds.get("lat_corridor") or [5, 10]
    dist_corridor = thresholds.get("dist_corridor") or [5, 10]
    impact_box = thresholds.get("impact_center_box") or {"lat": 0.4, "vert": 0.4}

    column_map = build_column_map(columns)
    units: Dict[str, Optional[str]] = {key: column.unit for key, column in column_map.items()}

    canonical = _canonical_shots(columns, shots)
    carry_target = _carry_target(_values(canonical, "carry"))
    enriched = _with_derived(canonical, carry_target, impact_box)

    units["radial_miss"] = units.get("carry")
    units["distance_from_target"] = units.get("carry")
    units["abs_lateral"] = units.get("lateral")

    lat_values = _values(enriched, "lateral")
    dist_values = _values(enriched, "distance_from_target")
    global_stats = {key: summary_stats(_values(enriched, key)) for key in STAT_KEYS}
    within_lat10 = _corridor_percent(lat_values, lat_corridor[1])

    metadata = metadata or {}
    return {
        "version": ANALYTICS_VERSION,
        "meta": {
            "units": units,
            "club": metadata.get("club"),
            "ball": metadata.get("ball"),
            "shot_count": len(enriched),
            "missing_columns": [key for key in STAT_KEYS if key not in units],
        },
        "derived": {
            "carry_target": carry_target,
            "corridors": {
                "within_lat_5": _corridor_percent(lat_values, lat_corridor[0]),
                "within_lat_10": within_lat10,
                "within_dist_5": _corridor_percent(dist_values, dist_corridor[0]),
                "within_dist_10": _corridor_percent(dist_values, dist_corridor[1]),
            },
        },
        "global_stats": global_stats,
        "correlations": _correlations(enriched),
        "summary": build_summary(global_stats, carry_target),
        "insights": build_insights(global_stats, units, within_lat10, lat_corridor[1]),
    }
