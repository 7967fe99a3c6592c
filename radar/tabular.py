"""Shot-table assembly for Flightscope/Trackman extractions.

Raw model output (columns, rows of positional values, optional avg/dev rows)
is turned into NormalizedColumns, shot records keyed by column key, and
per-column stats that prefer the model's reported aggregates.
"""

import re
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence

from models import (
    SHOT_INDEX_KEY,
    CellValue,
    NormalizedColumn,
    RadarColumn,
    RadarStats,
    ShotRecord,
    TabularResult,
    data_columns,
)
from radar.clubs import resolve_club_from_analytics
from radar.normalizer import build_key, dedupe_keys, is_number, normalize_token, parse_cell_value

if TYPE_CHECKING:
    from llm.prompts import RawTabularExtraction

AnalyticsEngine = Callable[..., Dict[str, Any]]

REVIEW_NO_COLUMNS = "Aucune colonne de donnees detectee."
REVIEW_NO_SHOTS = "Aucun coup detecte."
REVIEW_NO_NUMERIC = "Aucune valeur numerique fiable detectee."


# --- Columns ---

def _is_hash_column(column: RadarColumn) -> bool:
    return (column.label or "").strip() == "#" and not normalize_token(column.group)


def _is_shot_column(column: RadarColumn) -> bool:
    return normalize_token(column.label) == "shot" or (
        normalize_token(column.group) == "shot" and not normalize_token(column.label)
    )


def select_tabular_data_column_indexes(columns: Sequence[RadarColumn]) -> List[int]:
    """Indexes to keep; a leading "#" + "Shot" pair is dropped from the table."""
    indexes = list(range(len(columns)))
    if len(columns) >= 2 and _is_hash_column(columns[0]) and _is_shot_column(columns[1]):
        return indexes[2:]
    return indexes


def _pick(cells: Optional[Sequence[CellValue]], indexes: List[int], column_count: int) -> Optional[List[CellValue]]:
    """Filter an avg/dev row with the column indexes when it is column-aligned.

    Once the "#" + "Shot" pair is dropped, a row of any other length is
    right-aligned onto the kept columns, or discarded when too short.
    """
    if cells is None:
        return None
    if len(cells) == column_count:
        return [cells[i] for i in indexes]
    if len(indexes) == column_count:
        return list(cells)
    if len(cells) < len(indexes):
        return None
    return list(cells[len(cells) - len(indexes):])


def normalize_columns(columns: Sequence[RadarColumn]) -> List[NormalizedColumn]:
    keys = dedupe_keys(build_key(column.group, column.label) for column in columns)
    return [
        NormalizedColumn(group=column.group, label=column.label, unit=column.unit, key=key)
        for column, key in zip(columns, keys)
    ]


# --- Rows ---

def _parse_shot_number(value: CellValue) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if is_number(value):
        number = int(value)
    else:
        digits = re.sub(r"[^\d-]", "", str(value))
        try:
            number = int(digits)
        except ValueError:
            return None
    return number or None


def derive_tabular_row_prefix_count(
    values: Sequence[CellValue],
    data_column_count: int,
    row_shot: CellValue = None,
) -> int:
    """How many leading values of a row are shot numbers rather than data."""
    if len(values) == data_column_count + 1:
        return 1
    if len(values) == data_column_count + 2:
        first = _parse_shot_number(values[0])
        second = _parse_shot_number(values[1])
        declared = _parse_shot_number(row_shot)
        if first is not None and (first == second or (declared is not None and declared in (first, second))):
            return 2
    return 0


def build_shot(
    values: Sequence[CellValue],
    row_shot: CellValue,
    row_position: int,
    value_columns: List[NormalizedColumn],
) -> ShotRecord:
    """One shot record; row_position is 1-based."""
    prefix = derive_tabular_row_prefix_count(values, len(value_columns), row_shot)
    declared = _parse_shot_number(row_shot)
    if declared is None and prefix:
        declared = _parse_shot_number(values[0])
    shot: ShotRecord = {SHOT_INDEX_KEY: declared if declared is not None else row_position}
    remaining = list(values[prefix:])
    for position, column in enumerate(value_columns):
        raw = remaining[position] if position < len(remaining) else None
        shot[column.key] = parse_cell_value(raw)
    return shot


# --- Stats ---

def compute_stats(shots: Sequence[ShotRecord], keys: Sequence[str]) -> RadarStats:
    """Mean and population std-dev per key, rounded to 2 decimals."""
    avg: Dict[str, Optional[float]] = {}
    dev: Dict[str, Optional[float]] = {}
    for key in keys:
        values = [shot.get(key) for shot in shots]
        numbers = [value for value in values if is_number(value)]
        if not numbers:
            avg[key] = None
            dev[key] = None
            continue
        mean = sum(numbers) / len(numbers)
        variance = sum((value - mean) ** 2 for value in numbers) / len(numbers)
        avg[key] = round(mean, 2)
        dev[key] = round(variance ** 0.5, 2)
    return RadarStats(avg=avg, dev=dev)


def _model_stat(
    cells: Optional[Sequence[CellValue]],
    full_index: int,
    data_index: Optional[int],
    data_column_count: int,
) -> Optional[float]:
    if not cells:
        return None
    if data_index is not None and len(cells) == data_column_count:
        raw = cells[data_index]
    elif full_index < len(cells):
        raw = cells[full_index]
    else:
        return None
    parsed = parse_cell_value(raw)
    return parsed if is_number(parsed) else None


def reconcile_stats(
    columns: List[NormalizedColumn],
    model_avg: Optional[Sequence[CellValue]],
    model_dev: Optional[Sequence[CellValue]],
    computed: RadarStats,
) -> RadarStats:
    """Model-reported avg/dev where numeric, recomputed values otherwise."""
    value_columns = data_columns(columns)
    data_index = {column.key: i for i, column in enumerate(value_columns)}
    avg: Dict[str, Optional[float]] = {}
    dev: Dict[str, Optional[float]] = {}
    for full_index, column in enumerate(columns):
        if column.is_index:
            continue
        position = data_index[column.key]
        reported_avg = _model_stat(model_avg, full_index, position, len(value_columns))
        reported_dev = _model_stat(model_dev, full_index, position, len(value_columns))
        avg[column.key] = reported_avg if reported_avg is not None else computed.avg.get(column.key)
        dev[column.key] = reported_dev if reported_dev is not None else computed.dev.get(column.key)
    return RadarStats(avg=avg, dev=dev)


def compute_tabular_review_reasons(
    data_column_keys: Sequence[str],
    shots: Sequence[ShotRecord],
) -> List[str]:
    reasons: List[str] = []
    if not data_column_keys:
        reasons.append(REVIEW_NO_COLUMNS)
    if not shots:
        reasons.append(REVIEW_NO_SHOTS)
    if data_column_keys and shots:
        has_numeric = any(is_number(shot.get(key)) for shot in shots for key in data_column_keys)
        if not has_numeric:
            reasons.append(REVIEW_NO_NUMERIC)
    return reasons


# --- Assembly ---

def assemble_tabular(raw: "RawTabularExtraction"):
    """(columns, shots, stats) from the raw extraction."""
    raw_columns = [
        RadarColumn(group=c.group, label=(c.label or "").strip(), unit=c.unit)
        for c in raw.columns
    ]
    indexes = select_tabular_data_column_indexes(raw_columns)
    columns = normalize_columns([raw_columns[i] for i in indexes])
    avg_cells = _pick(raw.avg, indexes, len(raw_columns))
    dev_cells = _pick(raw.dev, indexes, len(raw_columns))

    value_columns = data_columns(columns)
    shots = [
        build_shot(row.values, row.shot, position, value_columns)
        for position, row in enumerate(raw.rows, start=1)
    ]
    computed = compute_stats(shots, [column.key for column in value_columns])
    stats = reconcile_stats(columns, avg_cells, dev_cells, computed)
    return columns, shots, stats


def build_tabular_result(
    raw: "RawTabularExtraction",
    analyze: AnalyticsEngine,
    config: Optional[Mapping[str, Any]] = None,
) -> TabularResult:
    columns, shots, stats = assemble_tabular(raw)
    metadata = raw.metadata.model_dump() if raw.metadata else {}
    analytics = analyze(columns=columns, shots=shots, config=config, metadata=metadata)

    meta = analytics.setdefault("meta", {})
    meta["club"] = resolve_club_from_analytics(metadata.get("club"), analytics)

    summary = (raw.summary or "").strip() or analytics.get("summary")
    value_keys = [column.key for column in data_columns(columns)]
    return TabularResult(
        columns=columns,
        shots=shots,
        stats=stats,
        summary=summary,
        config=dict(config or {}),
        analytics=analytics,
        review_reasons=compute_tabular_review_reasons(value_keys, shots),
    )
