import pytest

from analytics import DEFAULT_RADAR_CONFIG, compute_analytics
from llm.prompts import RawTabularExtraction
from models import RadarColumn
from radar.tabular import (
    REVIEW_NO_COLUMNS,
    REVIEW_NO_NUMERIC,
    REVIEW_NO_SHOTS,
    assemble_tabular,
    build_tabular_result,
    compute_tabular_review_reasons,
    derive_tabular_row_prefix_count,
    select_tabular_data_column_indexes,
)


def _raw(columns, rows, avg=None, dev=None, summary=None, club=None):
    """Helper: a RawTabularExtraction as the model would return it."""
    return RawTabularExtraction.model_validate({
        "source": "Flightscope",
        "metadata": {"club": club, "ball": None},
        "columns": [{"group": g, "label": l, "unit": u} for g, l, u in columns],
        "rows": [{"shot": shot, "values": values} for shot, values in rows],
        "avg": avg,
        "dev": dev,
        "summary": summary,
    })


# ================================================================
# Column selection
# ================================================================

def test_hash_and_shot_columns_dropped():
    indexes = select_tabular_data_column_indexes([
        RadarColumn(label="#"),
        RadarColumn(label="Shot"),
        RadarColumn(label="Ball Speed"),
        RadarColumn(label="Spin"),
    ])
    assert indexes == [2, 3]


def test_columns_kept_without_hash_pair():
    columns = [RadarColumn(label="Shot"), RadarColumn(label="Ball Speed")]
    assert select_tabular_data_column_indexes(columns) == [0, 1]


def test_avg_dev_filtered_in_lockstep():
    raw = _raw(
        [(None, "#", None), (None, "Shot", None), ("Speed", "Ball", "mph"), ("Spin", "RPM", "rpm")],
        [(1, [1, 1, 150.0, 2500]), (2, [2, 2, 152.0, 2600])],
        avg=["Avg", "", 151.0, 2550],
        dev=["Dev", "", 1.0, 50],
    )
    columns, shots, stats = assemble_tabular(raw)
    assert [c.key for c in columns] == ["speed_ball", "spin_rpm"]
    assert stats.avg == {"speed_ball": 151.0, "spin_rpm": 2550.0}
    assert stats.dev == {"speed_ball": 1.0, "spin_rpm": 50.0}
    assert shots[1] == {"shot_index": 2, "speed_ball": 152.0, "spin_rpm": 2600.0}


def test_merged_label_cell_right_aligned_after_pair_drop():
    raw = _raw(
        [(None, "#", None), (None, "Shot", None), ("Distance", "Carry", "yds"), ("Speed", "Ball", "mph")],
        [(1, [1, 1, 150.0, 200.0]), (2, [2, 2, 160.0, 210.0])],
        avg=["Avg", 151.0, 203.0],
    )
    _, _, stats = assemble_tabular(raw)
    assert stats.avg == {"distance_carry": 151.0, "speed_ball": 203.0}


def test_short_stats_row_discarded_after_pair_drop():
    raw = _raw(
        [(None, "#", None), (None, "Shot", None), ("Distance", "Carry", "yds"), ("Speed", "Ball", "mph")],
        [(1, [1, 1, 150.0, 200.0]), (2, [2, 2, 160.0, 210.0])],
        avg=[999.0],
    )
    _, _, stats = assemble_tabular(raw)
    assert stats.avg == {"distance_carry": 155.0, "speed_ball": 205.0}


# ================================================================
# Row prefix
# ================================================================

def test_two_prefix_values_when_row_repeats_shot():
    assert derive_tabular_row_prefix_count([1, 1, 167.2, 2450], 2, row_shot=1) == 2


def test_one_prefix_value_when_row_shot_missing():
    assert derive_tabular_row_prefix_count(["12", 165.1, 2380], 2, row_shot=None) == 1


def test_no_prefix_when_aligned():
    assert derive_tabular_row_prefix_count([165.1, 2380], 2) == 0


def test_trackman_row_consumes_shot_number():
    columns = [
        (None, "Club Speed", "mph"),
        (None, "Ball Speed", "mph"),
        (None, "Launch Angle", "deg"),
        (None, "Spin Rate", "rpm"),
        (None, "Carry", "yds"),
    ]
    raw = _raw(columns, [(None, [7, 90.1, 121.4, 16.2, 7050, 171.3])])
    cols, shots, _ = assemble_tabular(raw)
    assert shots == [{
        "shot_index": 7,
        cols[0].key: 90.1,
        cols[1].key: 121.4,
        cols[2].key: 16.2,
        cols[3].key: 7050.0,
        cols[4].key: 171.3,
    }]


# ================================================================
# Shot index
# ================================================================

@pytest.mark.parametrize("declared", [None, "", "n/a"])
def test_shot_index_falls_back_to_row_position(declared):
    raw = _raw(
        [("Distance", "Carry", "yds")],
        [(declared, [150.0]), (declared, [152.0]), (declared, [149.0])],
    )
    _, shots, _ = assemble_tabular(raw)
    assert [s["shot_index"] for s in shots] == [1, 2, 3]


def test_shot_index_uses_declared_value():
    raw = _raw([("Distance", "Carry", "yds")], [("Shot 4", [150.0]), (9, [151.0])])
    _, shots, _ = assemble_tabular(raw)
    assert [s["shot_index"] for s in shots] == [4, 9]


def test_cells_parsed_and_missing_cells_null():
    raw = _raw(
        [("Distance", "Lateral", "yds"), ("Distance", "Carry", "yds"), ("Shot Type", "Shot Type", None)],
        [(1, ["3.5L", "-", "Draw"]), (2, ["2R"])],
    )
    _, shots, _ = assemble_tabular(raw)
    assert shots[0] == {"shot_index": 1, "distance_lateral": -3.5, "distance_carry": None, "shot_type": "Draw"}
    assert shots[1] == {"shot_index": 2, "distance_lateral": 2.0, "distance_carry": None, "shot_type": None}


# ================================================================
# Stats
# ================================================================

def test_stats_fall_back_to_computed_values():
    raw = _raw(
        [("Distance", "Carry", "yds"), ("Speed", "Ball", "mph")],
        [(1, [150.0, 120.0]), (2, [160.0, 121.0]), (3, [155.0, 125.0])],
        avg=["n/a", 123.0],
        dev=None,
    )
    _, _, stats = assemble_tabular(raw)
    assert stats.avg["distance_carry"] == 155.0
    assert stats.avg["speed_ball"] == 123.0
    # population std of 150/160/155
    assert stats.dev["distance_carry"] == pytest.approx(4.08, abs=0.001)
    assert stats.dev["speed_ball"] == pytest.approx(2.16, abs=0.001)


def test_stats_null_for_non_numeric_column():
    raw = _raw([("Shot Type", "Shot Type", None)], [(1, ["Fade"])])
    _, _, stats = assemble_tabular(raw)
    assert stats.avg == {"shot_type": None}
    assert stats.dev == {"shot_type": None}


# ================================================================
# Review reasons
# ================================================================

def test_review_when_no_data_columns():
    assert REVIEW_NO_COLUMNS in compute_tabular_review_reasons([], [{"shot_index": 1}])


def test_review_when_no_shots():
    assert compute_tabular_review_reasons(["speed_ball"], []) == [REVIEW_NO_SHOTS]


def test_review_when_no_numeric_values():
    reasons = compute_tabular_review_reasons(
        ["shot_type"],
        [{"shot_index": 1, "shot_type": "draw"}, {"shot_index": 2, "shot_type": "fade"}],
    )
    assert REVIEW_NO_NUMERIC in reasons


def test_no_review_on_coherent_rows():
    reasons = compute_tabular_review_reasons(
        ["speed_ball", "spin_rpm"],
        [
            {"shot_index": 1, "speed_ball": 158.3, "spin_rpm": 2420},
            {"shot_index": 2, "speed_ball": 159.1, "spin_rpm": 2380},
            {"shot_index": 3, "speed_ball": 157.8, "spin_rpm": 2490},
        ],
    )
    assert reasons == []


# ================================================================
# Result
# ================================================================

def _driver_session(summary=None, club="Driver"):
    return _raw(
        [("Distance", "Carry", "yds"), ("Distance", "Lateral", "yds"), ("Speed", "Club", "mph")],
        [
            (1, [268.0, "4L", 112.0]),
            (2, [274.0, "2R", 113.5]),
            (3, [271.0, "6R", 112.8]),
        ],
        summary=summary,
        club=club,
    )


def test_tabular_result_uses_model_summary():
    result = build_tabular_result(_driver_session(summary="Session reguliere."), compute_analytics, DEFAULT_RADAR_CONFIG)
    assert result.summary == "Session reguliere."
    assert result.analytics["meta"]["club"] == "Driver"
    assert result.config == DEFAULT_RADAR_CONFIG
    assert result.review_reasons == []


def test_tabular_result_falls_back_to_analytics_summary():
    result = build_tabular_result(_driver_session(), compute_analytics, DEFAULT_RADAR_CONFIG)
    assert result.summary == result.analytics["summary"]
    assert result.summary.startswith("Carry moyen cible")


def test_tabular_result_passes_columns_to_analytics():
    seen = {}

    def fake_analyze(columns, shots, config=None, metadata=None):
        seen.update(columns=columns, shots=shots, config=config, metadata=metadata)
        return {"summary": "calc", "meta": {}, "global_stats": {}}

    result = build_tabular_result(_driver_session(club="Bois 1"), fake_analyze, {"mode": "default"})
    assert [c.key for c in seen["columns"]] == ["distance_carry", "distance_lateral", "speed_club"]
    assert seen["metadata"] == {"club": "Bois 1", "ball": None}
    assert seen["config"] == {"mode": "default"}
    assert result.analytics["meta"]["club"] == "Driver"
    assert result.summary == "calc"
