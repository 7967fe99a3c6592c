import pytest

from radar.clubs import (
    find_pga_benchmark,
    normalize_club_label,
    resolve_club_from_analytics,
)
from radar.normalizer import (
    build_key,
    dedupe_keys,
    normalize_token,
    parse_cell_value,
    to_mph,
    to_yards,
)


# ================================================================
# Tokens and keys
# ================================================================

def test_normalize_token_strips_accents_and_punctuation():
    assert normalize_token("  Intensité / Chronologie ") == "intensite chronologie"
    assert normalize_token(None) == ""


def test_build_key_known_and_fallback():
    assert build_key("Distance", "Carry") == "distance_carry"
    assert build_key("SPEED", "ball") == "speed_ball"
    assert build_key("Club Angles", "AoA") == "club_aoa"
    assert build_key(None, "Shot") == "shot_index"
    assert build_key("Shot", "#") == "shot_index"
    assert build_key(None, "#") == "col_value"
    assert build_key(None, "Launch Angle") == "col_launch_angle"
    assert build_key("Spin", None) == "spin_value"
    assert build_key(None, None) == "col_value"


def test_keys_unique_after_dedupe():
    headers = [
        ("Distance", "Carry"),
        ("Distance", "Carry"),
        (None, "Spin"),
        (None, "Spin"),
        (None, "Spin"),
        ("Speed", "Ball"),
    ]
    keys = dedupe_keys(build_key(g, l) for g, l in headers)
    assert len(set(keys)) == len(headers)
    assert keys[:2] == ["distance_carry", "distance_carry_2"]
    assert keys[2:5] == ["col_spin", "col_spin_2", "col_spin_3"]


def test_dedupe_avoids_collision_with_existing_suffix():
    keys = dedupe_keys(["a", "a_2", "a"])
    assert len(set(keys)) == 3


# ================================================================
# Cells
# ================================================================

@pytest.mark.parametrize("n", [0.5, 3, 12.25, 140])
def test_directional_suffix(n):
    assert parse_cell_value(f"{n}L") == -abs(n)
    assert parse_cell_value(f"{n}R") == abs(n)


def test_directional_suffix_ignores_sign():
    assert parse_cell_value("-4.1L") == -4.1
    assert parse_cell_value("-4.1R") == 4.1


@pytest.mark.parametrize("value", [None, "", "-", "  -  ", "—"])
def test_null_tokens(value):
    assert parse_cell_value(value) is None


def test_numeric_text():
    assert parse_cell_value("1,5 m") == 1.5
    assert parse_cell_value("2450 rpm") == 2450.0
    assert parse_cell_value(167.2) == 167.2
    assert parse_cell_value(float("nan")) is None
    assert parse_cell_value("Draw") == "Draw"


# ================================================================
# Units
# ================================================================

def test_to_mph_conversions():
    assert to_mph(160.934, "km/h") == pytest.approx(100.0)
    assert to_mph(10, "m/s") == pytest.approx(22.3694)
    assert to_mph(100, "mph") == 100
    assert to_mph(None, "mph") is None


@pytest.mark.parametrize("v", [0.0, 80.5, 160.9, 250.0])
def test_to_mph_idempotent(v):
    once = to_mph(v, "km/h")
    assert to_mph(once, "mph") == once


def test_to_yards_conversions():
    assert to_yards(100, "m") == pytest.approx(109.361)
    assert to_yards(30, "ft") == pytest.approx(10)
    assert to_yards(150, "yds") == 150


# ================================================================
# Clubs
# ================================================================

def test_normalize_club_label():
    assert normalize_club_label("Bois 1") == "Driver"
    assert normalize_club_label("7i") == "7 Iron"
    assert normalize_club_label("pitching wedge") == "PW"
    assert normalize_club_label("Hybride 4") == "Hybride 4"
    assert normalize_club_label("  ") is None


def test_find_pga_benchmark():
    assert find_pga_benchmark("7 Iron").carry_yds == 172
    assert find_pga_benchmark("1 wood").club == "Driver"
    assert find_pga_benchmark("putter") is None


def _analytics(club_speed=None, carry=None, units=None):
    return {
        "global_stats": {
            "club_speed": {"mean": club_speed},
            "carry": {"mean": carry},
        },
        "meta": {"units": units or {"club_speed": "mph", "carry": "yds"}},
    }


def test_club_inferred_without_label():
    assert resolve_club_from_analytics(None, _analytics(club_speed=112, carry=270)) == "Driver"


def test_club_label_kept_when_close():
    # 7 iron evidence, labelled 7 iron
    assert resolve_club_from_analytics("7i", _analytics(club_speed=90, carry=171)) == "7 Iron"


def test_club_label_overridden_by_strong_evidence():
    assert resolve_club_from_analytics("PW", _analytics(club_speed=112, carry=272)) == "Driver"


def test_club_speed_converted_from_kmh():
    # 181 km/h ~ 112.5 mph
    analytics = _analytics(club_speed=181, units={"club_speed": "km/h"})
    assert resolve_club_from_analytics(None, analytics) == "Driver"


def test_club_without_evidence_keeps_label():
    assert resolve_club_from_analytics("Bois 1", {}) == "Driver"
    assert resolve_club_from_analytics(None, {}) is None
