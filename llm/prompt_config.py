from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from radar.normalizer import normalize_token


class RadarSource(str, Enum):
    FLIGHTSCOPE = "flightscope"
    TRACKMAN = "trackman"
    SMART2MOVE = "smart2move"


class ExtractionMode(str, Enum):
    TABULAR = "tabular"
    SMART2MOVE_GRAPH = "smart2move_graph"


class Smart2MoveGraphOption(BaseModel):
    id: str
    label: str
    short_label: str
    extract_prompt_section: str


SMART2MOVE_GRAPH_OPTIONS: List[Smart2MoveGraphOption] = [
    Smart2MoveGraphOption(
        id="fz", label="Force verticale (Fz)", short_label="Fz",
        extract_prompt_section="radar_extract_smart2move_fz_system",
    ),
    Smart2MoveGraphOption(
        id="fx", label="Force antero-posterieure (Fx)", short_label="Fx",
        extract_prompt_section="radar_extract_smart2move_fx_system",
    ),
    Smart2MoveGraphOption(
        id="fy", label="Force laterale (Fy)", short_label="Fy",
        extract_prompt_section="radar_extract_smart2move_fy_system",
    ),
    Smart2MoveGraphOption(
        id="mz", label="Torque vertical (Mz)", short_label="Mz",
        extract_prompt_section="radar_extract_smart2move_mz_system",
    ),
    Smart2MoveGraphOption(
        id="cop", label="Centre de pression (CoP)", short_label="CoP",
        extract_prompt_section="radar_extract_smart2move_cop_system",
    ),
    Smart2MoveGraphOption(
        id="pressure_shift", label="Pressure Shift / Repartition gauche-droite (%)",
        short_label="Pressure Shift",
        extract_prompt_section="radar_extract_smart2move_pressure_shift_system",
    ),
    Smart2MoveGraphOption(
        id="stance_width", label="Stance / Largeur d appuis", short_label="Stance",
        extract_prompt_section="radar_extract_smart2move_stance_system",
    ),
    Smart2MoveGraphOption(
        id="foot_flare", label="Foot Flare (angle des pieds)", short_label="Foot Flare",
        extract_prompt_section="radar_extract_smart2move_foot_flare_system",
    ),
    Smart2MoveGraphOption(
        id="grf_3d", label="Force vectorielle 3D / GRF", short_label="GRF 3D",
        extract_prompt_section="radar_extract_smart2move_grf_system",
    ),
]

SMART2MOVE_GRAPH_TYPES: List[str] = [option.id for option in SMART2MOVE_GRAPH_OPTIONS]
DEFAULT_SMART2MOVE_GRAPH_TYPE = "fx"

RADAR_EXTRACT_SECTION = "radar_extract_system"
RADAR_VERIFY_SECTION = "radar_extract_verify_system"
TRACKMAN_EXTRACT_SECTION = "radar_extract_trackman_system"
TRACKMAN_VERIFY_SECTION = "radar_extract_trackman_verify_system"
SMART2MOVE_VERIFY_SECTION = "radar_extract_smart2move_verify_system"

SOURCE_LABELS = {
    RadarSource.FLIGHTSCOPE: "Flightscope",
    RadarSource.TRACKMAN: "Trackman",
    RadarSource.SMART2MOVE: "Smart2Move",
}


def is_smart2move_graph_type(value: Optional[str]) -> bool:
    return value in SMART2MOVE_GRAPH_TYPES


def get_smart2move_graph_meta(graph_type: str) -> Smart2MoveGraphOption:
    for option in SMART2MOVE_GRAPH_OPTIONS:
        if option.id == graph_type:
            return option
    raise ValueError(f"Unknown Smart2Move graph type: {graph_type}")



def normalize_radar_source(source: Optional[str]) -> RadarSource:
    token = normalize_token(source)
    if "trackman" in token:
        return RadarSource.TRACKMAN
    if "smart2move" in token or "smart 2 move" in token:
        return RadarSource.SMART2MOVE
    return RadarSource.FLIGHTSCOPE


class RadarPromptConfig(BaseModel):
    """Which prompt sections and output schema one extraction uses."""
    source: RadarSource
    source_label: str
    mode: ExtractionMode
    extract_system_section: str
    verify_system_section: str
    extract_fallback_section: Optional[str] = None
    verify_fallback_section: Optional[str] = None
    smart2move_graph_type: Optional[str] = None
    smart2move_graph_label: Optional[str] = None

    @property
    def is_smart2move(self) -> bool:
        return self.mode == ExtractionMode.SMART2MOVE_GRAPH


def resolve_radar_prompt_config(
    source: Optional[str],
    smart2move_graph_type: Optional[str] = None,
) -> RadarPromptConfig:
    """Pure source -> prompt/schema selection; never touches the network."""
    resolved = normalize_radar_source(source)

    if resolved == RadarSource.SMART2MOVE:
        graph_type = (
            smart2move_graph_type
            if is_smart2move_graph_type(smart2move_graph_type)
            else DEFAULT_SMART2MOVE_GRAPH_TYPE
        )
        meta = get_smart2move_graph_meta(graph_type)
        return RadarPromptConfig(
            source=resolved,
            source_label=SOURCE_LABELS[resolved],
            mode=ExtractionMode.SMART2MOVE_GRAPH,
            extract_system_section=meta.extract_prompt_section,
            verify_system_section=SMART2MOVE_VERIFY_SECTION,
            smart2move_graph_type=meta.id,
            smart2move_graph_label=meta.label,
        )

    if resolved == RadarSource.TRACKMAN:
        return RadarPromptConfig(
            source=resolved,
            source_label=SOURCE_LABELS[resolved],
            mode=ExtractionMode.TABULAR,
            extract_system_section=TRACKMAN_EXTRACT_SECTION,
            verify_system_section=TRACKMAN_VERIFY_SECTION,
            extract_fallback_section=RADAR_EXTRACT_SECTION,
            verify_fallback_section=RADAR_VERIFY_SECTION,
        )

    return RadarPromptConfig(
        source=resolved,
        source_label=SOURCE_LABELS[resolved],
        mode=ExtractionMode.TABULAR,
        extract_system_section=RADAR_EXTRACT_SECTION,
        verify_system_section=RADAR_VERIFY_SECTION,
    )
