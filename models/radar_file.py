from datetime import datetime
from enum import Enum
from pydantic import Field
from typing import Any, Dict, List, Optional

from .base import BaseRadarModel


class RadarStatus(str, Enum):
    """Lifecycle of an uploaded radar export."""
    PENDING = "pending"
    REVIEW = "review"    # tabular extraction waiting for coach review
    READY = "ready"      # Smart2Move annotations, no review step
    ERROR = "error"


class RadarFile(BaseRadarModel):
    """An uploaded radar image and whatever the pipeline last wrote on it."""
    id: str
    org_id: str
    student_id: Optional[str] = None
    file_url: str
    file_mime: Optional[str] = None
    original_name: Optional[str] = None
    source: Optional[str] = None
    status: RadarStatus = RadarStatus.PENDING
    columns: List[Dict[str, Any]] = Field(default_factory=list)
    shots: List[Dict[str, Any]] = Field(default_factory=list)
    stats: Optional[Dict[str, Any]] = None
    summary: Optional[str] = None
    config: Optional[Dict[str, Any]] = None
    analytics: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    extracted_at: Optional[datetime] = None

    @property
    def mime_type(self) -> str:
        return self.file_mime or "image/png"
