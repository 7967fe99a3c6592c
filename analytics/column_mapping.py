"""Map extracted columns onto the canonical metrics the analytics use."""

from typing import Dict, List, Optional

from models.columns import NormalizedColumn
from radar.normalizer import normalize_token

# First matching column wins, in column order.
CANONICAL_ALIASES: Dict[str, List[str]] = {
    "shot_index": ["shot_index", "shot #", "shot", "shot number", "#"],
    "shot_type": ["shot_type", "shot type", "type"],
    "carry": ["distance_carry", "carry"],
    "total": ["distance_total", "total"],
    "roll": ["distance_roll", "roll"],
    "lateral": ["distance_lateral", "lateral", "side", "sideways"],
    "curve": ["distance_curve", "curve dist", "curve"],
    "club_speed": ["speed_club", "club speed", "club mph", "club"],
    "ball_speed": ["speed_ball", "ball speed", "ball mph", "ball"],
    "spin_rpm": ["spin_rpm", "rpm", "spin"],
    "spin_axis": ["spin_axis", "spin axis", "axis"],
    "spin_loft": ["spin_loft", "spin loft"],
    "smash": ["smash_factor", "smash", "factor"],
    "launch_v": ["ball_angle_vertical", "launch v", "launch vertical", "vertical"],
    "launch_h": ["ball_angle_horizontal", "launch h", "launch horizontal", "horizontal"],
    "descent_v": ["ball_angle_descent", "descent v", "descent"],
    "height": ["flight_height", "height"],
    "time": ["flight_time", "time"],
    "path": ["club_path", "path"],
    "ftp": ["club_face_to_path", "ftp", "face to path"],
    "ftt": ["club_face_to_target", "ftt", "face to target"],
    "dloft": ["club_dynamic_loft", "d loft", "dynamic loft"],
    "aoa": ["club_aoa", "aoa", "angle of attack"],
    "low_point": ["club_low_point", "low point"],
    "swing_plane_v": ["swing_plane_vertical", "swing plane vertical"],
    "swing_plane_h": ["swing_plane_horizontal", "swing plane horizontal"],
    "impact_lat": [
        "face_impact_lateral",
        "impact_face_lateral",
        "face impact lateral",
        "impact face lateral",
        "impact lateral",
        "impact x",
    ],
    "impact_vert": [
        "face_impact_vertical",
        "impact_face_vertical",
        "face impact vertical",
        "impact face vertical",
        "impact vertical",
        "impact y",
    ],
}

METRIC_KEYS: List[str] = [k for k in CANONICAL_ALIASES if k not in ("shot_index", "shot_type")]


def _column_tokens(column: NormalizedColumn) -> str:
    return " ".join(
        part for part in (
            normalize_token(column.key),
            normalize_token(column.group),
            normalize_token(column.label),
        ) if part
    )


def build_column_map(columns: List[NormalizedColumn]) -> Dict[str, NormalizedColumn]:
    """canonical metric -> the extracted column carrying it."""
    mapping: Dict[str, NormalizedColumn] = {}
    for column in columns:
        tokens = _column_tokens(column)
        for canonical, patterns in CANONICAL_ALIASES.items():
            if canonical in mapping:
                continue
            if any(normalize_token(p) in tokens for p in patterns if normalize_token(p)):
                mapping[canonical] = column
    return mapping


def get_unit(mapping: Dict[str, NormalizedColumn], canonical: str) -> Optional[str]:
    column = mapping.get(canonical)
    return column.unit if column else None
