"""Persistence variants produced by one extraction.

Tabular and Smart2Move extractions write disjoint halves of the same
radar_files row; each variant builds the complete update payload so the
"exactly one mode populated" rule lives here and nowhere else.
"""

from datetime import datetime, timezone
from enum import Enum
from pydantic import Field
from typing import Any, Dict, List, Literal, Optional, Union

from .base import BaseRadarModel
from .columns import NormalizedColumn, RadarStats, ShotRecord
from .radar_file import RadarStatus


class BubbleKey(str, Enum):
    """The four callouts anchored on a Smart2Move force-time graph."""
    ADDRESS_BACKSWING = "address_backswing"
    TRANSITION_IMPACT = "transition_impact"
    PEAK_INTENSITY_TIMING = "peak_intensity_timing"
    SUMMARY = "summary"


BUBBLE_ORDER: List[BubbleKey] = [
    BubbleKey.ADDRESS_BACKSWING,
    BubbleKey.TRANSITION_IMPACT,
    BubbleKey.PEAK_INTENSITY_TIMING,
    BubbleKey.SUMMARY,
]


class Anchor(BaseRadarModel):
    x: float = Field(..., ge=0.0, le=1.0)
    y: float = Field(..., ge=0.0, le=1.0)


class Smart2MoveAnnotation(BaseRadarModel):
    bubble_key: BubbleKey
    id: str
    title: str
    detail: str = ""
    reasoning: Optional[str] = None
    solution: Optional[str] = None
    evidence: Optional[str] = None
    anchor: Anchor


class PeakWindow(BaseRadarModel):
    start: float = Field(..., ge=0.0, le=1.0)
    end: float = Field(..., ge=0.0, le=1.0)


class Smart2MoveMarkers(BaseRadarModel):
    impact_marker_x: float = Field(..., ge=0.0, le=1.0)
    transition_start_x: Optional[float] = Field(None, ge=0.0, le=1.0)
    peak_window: Optional[PeakWindow] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TabularResult(BaseRadarModel):
    """Shot table extracted from a Flightscope/Trackman export."""
    mode: Literal["tabular"] = "tabular"
    columns: List[NormalizedColumn]
    shots: List[ShotRecord]
    stats: RadarStats
    summary: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    analytics: Dict[str, Any] = Field(default_factory=dict)
    review_reasons: List[str] = Field(default_factory=list)

    @property
    def status(self) -> RadarStatus:
        return RadarStatus.REVIEW

    def to_update(self, warning: Optional[str] = None) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "columns": [c.model_dump() for c in self.columns],
            "shots": self.shots,
            "stats": self.stats.model_dump(),
            "summary": self.summary,
            "config": self.config,
            "analytics": self.analytics,
            "extracted_at": _now(),
            "error": warning,
        }


class Smart2MoveResult(BaseRadarModel):
    """Narrative annotations extracted from a Smart2Move force-plate graph."""
    mode: Literal["smart2move_graph"] = "smart2move_graph"
    graph_type: str
    graph_label: str
    annotations: List[Smart2MoveAnnotation] = Field(..., min_length=4, max_length=4)
    analysis: str = Field(..., min_length=1)
    summary: Optional[str] = None
    markers: Smart2MoveMarkers

    @property
    def status(self) -> RadarStatus:
        return RadarStatus.READY

    def to_config(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "smart2move": {
                "graph_type": self.graph_type,
                "graph_label": self.graph_label,
                "annotations": [a.model_dump(mode="json") for a in self.annotations],
                "mini_summary": self.summary,
                **self.markers.model_dump(mode="json"),
            },
        }

    def to_update(self, warning: Optional[str] = None) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "columns": [],
            "shots": [],
            "stats": None,
            "summary": self.analysis,
            "config": self.to_config(),
            "analytics": None,
            "extracted_at": _now(),
            "error": warning,
        }


RadarExtractionResult = Union[TabularResult, Smart2MoveResult]
