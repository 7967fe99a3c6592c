from pydantic import Field
from typing import Dict, List, Optional, Union

from .base import BaseRadarModel

CellValue = Union[str, float, int, None]
ShotRecord = Dict[str, CellValue]

SHOT_INDEX_KEY = "shot_index"


class RadarColumn(BaseRadarModel):
    """One physical column header as read off the device printout."""
    group: Optional[str] = None
    label: str = ""
    unit: Optional[str] = None


class NormalizedColumn(RadarColumn):
    """A column header plus its canonical key, unique within one extraction."""
    key: str = Field(..., min_length=1)

    @property
    def is_index(self) -> bool:
        return self.key == SHOT_INDEX_KEY


class RadarStats(BaseRadarModel):
    """Per-column aggregates keyed by column key."""
    avg: Dict[str, Optional[float]] = Field(default_factory=dict)
    dev: Dict[str, Optional[float]] = Field(default_factory=dict)


def data_columns(columns: List[NormalizedColumn]) -> List[NormalizedColumn]:
    """Columns carrying shot measurements (everything but the index column)."""
    return [column for column in columns if not column.is_index]
