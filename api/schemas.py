"""Request/response bodies for the radar endpoints."""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from llm.prompt_config import SMART2MOVE_GRAPH_TYPES


class ExtractOrigin(str, Enum):
    UPLOAD = "upload"
    REPROCESS = "reprocess"
    REVIEW = "review"
    UNKNOWN = "unknown"


class RadarExtractRequest(BaseModel):
    """POST /api/radar/extract body (camelCase on the wire)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    radar_file_id: str = Field(..., alias="radarFileId", min_length=1)
    smart2move_graph_type: Optional[str] = Field(None, alias="smart2MoveGraphType")
    impact_marker_x: Optional[float] = Field(None, alias="impactMarkerX", ge=0.0, le=1.0)
    transition_start_x: Optional[float] = Field(None, alias="transitionStartX", ge=0.0, le=1.0)
    origin: ExtractOrigin = ExtractOrigin.UNKNOWN

    @field_validator("smart2move_graph_type")
    @classmethod
    def _known_graph_type(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in SMART2MOVE_GRAPH_TYPES:
            raise ValueError(f"Unknown Smart2Move graph type: {value}")
        return value


class RadarExtractResponse(BaseModel):
    status: str = "ok"
    warning: Optional[str] = None
