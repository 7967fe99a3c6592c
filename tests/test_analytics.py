import pytest

from analytics.column_mapping import build_column_map, get_unit
from analytics.engine import DEFAULT_RADAR_CONFIG, build_summary, compute_analytics
from analytics.stats import (
    iqr_outlier_ratio,
    mean,
    median,
    numeric_values,
    pearson,
    percentile,
    population_std,
    summary_stats,
)
from models import NormalizedColumn


def _build_columns():
    return [
        NormalizedColumn(label="Shot", key="shot_index"),
        NormalizedColumn(group="Distance", label="Carry", unit="yds", key="distance_carry"),
        NormalizedColumn(group="Distance", label="Lateral", unit="yds", key="distance_lateral"),
        NormalizedColumn(group="Speed", label="Club", unit="mph", key="speed_club"),
        NormalizedColumn(group="Speed", label="Ball", unit="mph", key="speed_ball"),
        NormalizedColumn(label="Shot Type", key="shot_type"),
    ]


def _build_shots():
    return [
        {"shot_index": 1, "distance_carry": 150.0, "distance_lateral": -3.0,
         "speed_club": 90.0, "speed_ball": 120.0, "shot_type": "Draw"},
        {"shot_index": 2, "distance_carry": 160.0, "distance_lateral": 4.0,
         "speed_club": 91.0, "speed_ball": 122.0, "shot_type": "Fade"},
        {"shot_index": 3, "distance_carry": 155.0, "distance_lateral": "12R",
         "speed_club": 89.0, "speed_ball": 118.0, "shot_type": None},
        # summary row printed under the table
        {"shot_index": "Avg", "distance_carry": 155.0},
    ]


# ================================================================
# Stats helpers
# ================================================================

def test_numeric_values_filters_non_numbers():
    assert numeric_values([1, 2.5, True, None, "3", float("nan"), float("inf")]) == [1, 2.5]


def test_mean_std_median():
    assert mean([]) is None
    assert mean([1, 2, 3]) == 2
    assert population_std([150, 160, 155]) == pytest.approx(4.0825, abs=1e-4)
    assert median([3, 1, 2]) == 2
    assert median([4, 1, 3, 2]) == 2.5


def test_percentile_interpolates():
    assert percentile([1, 2, 3, 4], 0.5) == 2.5
    assert percentile([30, 10, 20], 0.1) == pytest.approx(12.0)
    assert percentile([], 0.5) is None


def test_summary_stats():
    empty = summary_stats([])
    assert empty["count"] == 0 and empty["mean"] is None

    s = summary_stats([100.0, 110.0, 120.0])
    assert s["count"] == 3
    assert s["mean"] == 110.0
    assert s["median"] == 110.0
    assert s["cv"] == pytest.approx(s["std"] / 110.0 * 100)


def test_iqr_outlier_ratio():
    assert iqr_outlier_ratio([10, 10, 10, 10, 10, 10, 50]) == pytest.approx(1 / 7)
    assert iqr_outlier_ratio([10, 50]) == 0.0


def test_pearson():
    assert pearson([(1, 2), (2, 4), (3, 6)]) == 1.0
    assert pearson([(1, 5), (2, 5), (3, 5)]) == 0.0
    assert pearson([]) == 0.0


# ================================================================
# Column mapping
# ================================================================

def test_column_map_canonical_metrics():
    mapping = build_column_map(_build_columns())
    assert mapping["shot_index"].key == "shot_index"
    assert mapping["carry"].key == "distance_carry"
    assert mapping["lateral"].key == "distance_lateral"
    assert mapping["club_speed"].key == "speed_club"
    assert mapping["ball_speed"].key == "speed_ball"
    assert mapping["shot_type"].key == "shot_type"
    assert "spin_rpm" not in mapping
    assert get_unit(mapping, "carry") == "yds"
    assert get_unit(mapping, "spin_rpm") is None


def test_column_map_matches_label_aliases():
    mapping = build_column_map([
        NormalizedColumn(label="Spin Rate", unit="rpm", key="col_spin_rate"),
        NormalizedColumn(label="Smash Factor", key="col_smash_factor"),
    ])
    assert mapping["spin_rpm"].key == "col_spin_rate"
    assert mapping["smash"].key == "col_smash_factor"


# ================================================================
# compute_analytics
# ================================================================

def test_analytics_meta_and_global_stats():
    analytics = compute_analytics(_build_columns(), _build_shots(), metadata={"club": "7 Iron", "ball": None})
    meta = analytics["meta"]
    assert meta["shot_count"] == 3
    assert meta["club"] == "7 Iron"
    assert meta["units"]["carry"] == "yds"
    assert meta["units"]["radial_miss"] == "yds"
    assert "total" in meta["missing_columns"]
    assert "carry" not in meta["missing_columns"]

    carry = analytics["global_stats"]["carry"]
    assert carry["count"] == 3
    assert carry["mean"] == 155.0
    assert analytics["global_stats"]["lateral"]["mean"] == pytest.approx(13 / 3)
    assert analytics["global_stats"]["spin_rpm"]["count"] == 0


def test_analytics_corridors_and_target():
    analytics = compute_analytics(_build_columns(), _build_shots())
    derived = analytics["derived"]
    assert derived["carry_target"] == 155.0
    assert derived["corridors"]["within_lat_5"] == 66.7
    assert derived["corridors"]["within_lat_10"] == 66.7
    assert derived["corridors"]["within_dist_5"] == 100.0


def test_carry_target_uses_median_with_outliers():
    columns = [
        NormalizedColumn(label="Shot", key="shot_index"),
        NormalizedColumn(group="Distance", label="Carry", unit="m", key="distance_carry"),
    ]
    carries = [150, 151, 152, 150, 151, 152, 152, 151, 60, 250]
    shots = [{"shot_index": i, "distance_carry": c} for i, c in enumerate(carries, start=1)]
    analytics = compute_analytics(columns, shots, DEFAULT_RADAR_CONFIG)
    assert analytics["derived"]["carry_target"] == 151.0


def test_analytics_correlations():
    analytics = compute_analytics(_build_columns(), _build_shots())
    correlations = analytics["correlations"]
    assert correlations["variables"] == ["carry", "lateral", "club_speed", "ball_speed"]
    club, ball = correlations["variables"].index("club_speed"), correlations["variables"].index("ball_speed")
    assert correlations["matrix"][club][ball] == 1.0
    assert correlations["matrix"][0][0] == 1.0


def test_analytics_summary_and_insights():
    analytics = compute_analytics(_build_columns(), _build_shots())
    assert analytics["summary"] == "Carry moyen cible 155.0. Regularite carry (CV) 2.6% ."
    insights = analytics["insights"]
    assert insights["speeds"] == "Club moy. 90.0 mph · Balle moy. 120.0 mph · Ratio 1.33"
    assert insights["dispersion"].startswith("Moyenne laterale 4.3 yds")
    assert "smash" not in insights


def test_analytics_without_carry():
    columns = [NormalizedColumn(group="Speed", label="Ball", unit="mph", key="speed_ball")]
    analytics = compute_analytics(columns, [{"shot_index": 1, "speed_ball": 120.0}])
    assert analytics["summary"] is None
    assert analytics["correlations"] is None
    assert build_summary({}, None) is None
