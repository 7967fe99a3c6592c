"""Cell/label/unit normalization for radar exports.

Pure functions: raw cell text -> typed values, free-text headers -> canonical
column keys, and unit-aware speed/distance conversions.
"""

import math
import re
import unicodedata
from typing import Dict, Iterable, List, Mapping, Optional, Union

from models.columns import SHOT_INDEX_KEY

# Device column names ("group:label" after normalize_token) -> canonical key.
# Flightscope / Trackman export headers; keep in sync with the analytics aliases.
KNOWN_COLUMN_KEYS: Dict[str, str] = {
    "shot:": SHOT_INDEX_KEY,
    ":shot": SHOT_INDEX_KEY,
    "shot:shot": SHOT_INDEX_KEY,
    "distance:carry": "distance_carry",
    "distance:roll": "distance_roll",
    "distance:total": "distance_total",
    "distance:lateral": "distance_lateral",
    "distance:curve dist": "distance_curve",
    "speed:club": "speed_club",
    "speed:ball": "speed_ball",
    "spin:rpm": "spin_rpm",
    "spin:axis": "spin_axis",
    "spin:spin loft": "spin_loft",
    "smash:factor": "smash_factor",
    "ball angles:vertical": "ball_angle_vertical",
    "ball angles:horizontal": "ball_angle_horizontal",
    "ball angles:descent v": "ball_angle_descent",
    "club angles:club path": "club_path",
    "club angles:ftp": "club_face_to_path",
    "club angles:ftt": "club_face_to_target",
    "club angles:d loft": "club_dynamic_loft",
    "club angles:aoa": "club_aoa",
    "club angles:low point": "club_low_point",
    "swing plane:vertical": "swing_plane_vertical",
    "swing plane:horizontal": "swing_plane_horizontal",
    "flight:height": "flight_height",
    "flight:time": "flight_time",
    "shot type:shot type": "shot_type",
    "face impact:lateral": "face_impact_lateral",
    "face impact:vertical": "face_impact_vertical",
    "impact face:lateral": "face_impact_lateral",
    "impact face:vertical": "face_impact_vertical",
}

EMPTY_CELL_TOKENS = {"", "-", "—", "–"}

_DIRECTIONAL_RE = re.compile(r"^(-?\d+(?:[.,]\d+)?(?:[eE][-+]?\d+)?)([LR])$", re.IGNORECASE)
_NON_NUMERIC_RE = re.compile(r"[^\d.\-]")

KMH_PER_MPH = 1.60934
MPH_PER_MPS = 2.23694
YARDS_PER_METER = 1.09361

ParsedCell = Union[float, int, str, None]


def normalize_token(value: Optional[str]) -> str:
    """Lowercase, strip accents, collapse non-alphanumerics to single spaces."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value).lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]+", " ", stripped).strip()


def build_key(
    group: Optional[str],
    label: Optional[str],
    known: Mapping[str, str] = KNOWN_COLUMN_KEYS,
) -> str:
    """Canonical snake_case key for a column header."""
    group_token = normalize_token(group)
    label_token = normalize_token(label)
    lookup = re.sub(r":+", ":", f"{group_token}:{label_token}")
    direct = known.get(lookup)
    if direct:
        return direct
    fallback = re.sub(r"\s+", "_", f"{group_token or 'col'}_{label_token or 'value'}")
    return fallback or "col_value"


def dedupe_keys(keys: Iterable[str]) -> List[str]:
    """Suffix repeated keys with _2, _3, ... so every key is distinct."""
    seen: Dict[str, int] = {}
    taken = set()
    result: List[str] = []
    for base in keys:
        count = seen.get(base, 0) + 1
        seen[base] = count
        key = base if count == 1 else f"{base}_{count}"
        while key in taken:
            count += 1
            seen[base] = count
            key = f"{base}_{count}"
        taken.add(key)
        result.append(key)
    return result


def _parse_directional(text: str) -> Optional[float]:
    match = _DIRECTIONAL_RE.match(text)
    if not match:
        return None
    try:
        magnitude = abs(float(match.group(1).replace(",", ".")))
    except ValueError:
        return None
    if not math.isfinite(magnitude):
        return None
    return -magnitude if match.group(2).upper() == "L" else magnitude


def parse_cell_value(value: object) -> ParsedCell:
    """Parse one printout cell.

    "3.2L" -> -3.2, "3.2R" -> 3.2, "1,5 m" -> 1.5, "-"/""/None -> None.
    Text that holds no number comes back trimmed (e.g. shot type "Draw").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    text = str(value).strip()
    if text in EMPTY_CELL_TOKENS:
        return None
    directional = _parse_directional(text)
    if directional is not None:
        return directional
    cleaned = _NON_NUMERIC_RE.sub("", text.replace(",", "."))
    try:
        numeric = float(cleaned)
    except ValueError:
        return text
    return numeric if math.isfinite(numeric) else text


def is_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def normalize_unit(unit: Optional[str]) -> str:
    return re.sub(r"[^a-z0-9/]", "", (unit or "").lower())


def to_mph(value: Optional[float], unit: Optional[str]) -> Optional[float]:
    """Speed in mph; mph, empty and unknown units pass through."""
    if value is None or not is_number(value):
        return None
    normalized = normalize_unit(unit)
    if not normalized or "mph" in normalized:
        return value
    if "km" in normalized:
        return value / KMH_PER_MPH
    if "m/s" in normalized or "mps" in normalized:
        return value * MPH_PER_MPS
    return value


def to_yards(value: Optional[float], unit: Optional[str]) -> Optional[float]:
    """Distance in yards; yards, empty and unknown units pass through."""
    if value is None or not is_number(value):
        return None
    normalized = normalize_unit(unit)
    if not normalized or "yd" in normalized or "yard" in normalized:
        return value
    if "ft" in normalized or "feet" in normalized:
        return value / 3
    if "m" in normalized:
        return value * YARDS_PER_METER
    return value
