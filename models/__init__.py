from .base import BaseRadarModel
from .columns import (
    SHOT_INDEX_KEY,
    CellValue,
    NormalizedColumn,
    RadarColumn,
    RadarStats,
    ShotRecord,
    data_columns,
)
from .radar_file import RadarFile, RadarStatus
from .results import (
    BUBBLE_ORDER,
    Anchor,
    BubbleKey,
    PeakWindow,
    RadarExtractionResult,
    Smart2MoveAnnotation,
    Smart2MoveMarkers,
    Smart2MoveResult,
    TabularResult,
)
from .usage import ActivityEvent, ActivityLevel, AiUsage, UsageRecord

__all__ = [
    "BaseRadarModel",
    "SHOT_INDEX_KEY",
    "CellValue",
    "NormalizedColumn",
    "RadarColumn",
    "RadarStats",
    "ShotRecord",
    "data_columns",
    "RadarFile",
    "RadarStatus",
    "BUBBLE_ORDER",
    "Anchor",
    "BubbleKey",
    "PeakWindow",
    "RadarExtractionResult",
    "Smart2MoveAnnotation",
    "Smart2MoveMarkers",
    "Smart2MoveResult",
    "TabularResult",
    "ActivityEvent",
    "ActivityLevel",
    "AiUsage",
    "UsageRecord",
]
