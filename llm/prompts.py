import json
import re
from copy import deepcopy
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from models import (
    BubbleKey,
    NormalizedColumn,
    RadarStats,
    ShotRecord,
    Smart2MoveMarkers,
    Smart2MoveResult,
)


# ================================================================
# Shared prompt fragments
# ================================================================

_TABULAR_PREAMBLE = (
    "Tu es un expert en lecture d exports de radars de golf (Flightscope, Trackman). "
    "Tu lis une image de tableau de coups et tu la retranscris fidelement."
)

_TABULAR_RULES = """
REGLES DE LECTURE:
- Une entree dans columns par colonne visible, de gauche a droite: group (en-tete de groupe ou null), label, unit (ou null).
- Une entree dans rows par coup: shot (numero du coup tel qu imprime, ou null) et values (cellules dans l ordre des colonnes).
- Garde les suffixes directionnels tels quels ("3.2L", "4.1R").
- Utilise null pour les cellules vides ou "-". N invente jamais une valeur illisible.
- avg et dev reprennent les lignes de moyenne et d ecart type si elles sont imprimees, sinon null.
- metadata.club et metadata.ball: club et balle indiques sur l export, sinon null.
- summary: 2 phrases maximum en {language} sur la session, ou null."""

_SMART2MOVE_PREAMBLE = (
    "Tu es un coach de golf specialiste de biomecanique et des plateformes de force Smart2Move. "
    "Tu analyses une capture du graphe {graphLabel} et tu rediges en {language}."
)

_SMART2MOVE_RULES = """
STRUCTURE ATTENDUE:
- Exactement 4 annotations, bubble_key dans cet ordre: address_backswing, transition_impact, peak_intensity_timing, summary.
- Chaque annotation: title (1 phrase courte), detail (2 phrases max), reasoning, solution, evidence (2 phrases max chacun), anchor x/y entre 0 et 1 sur le graphe.
- analysis commence par la ligne "Analyse {graphLabel} - Smart2Move" puis 4 sections numerotees 1. a 4.
- summary: une phrase de synthese.

CONTEXTE JOUEUR:
{tpiContextBlock}"""

_SMART2MOVE_GRAPH_FOCUS: Dict[str, str] = {
    "fz": "Concentre-toi sur la charge verticale: appui initial, delestage au backswing, pic de poussee avant impact.",
    "fx": "Concentre-toi sur les forces antero-posterieures: cisaillement pied arriere/pied avant et leur chronologie.",
    "fy": "Concentre-toi sur les forces laterales: transfert cible/anti-cible et stabilite du pied avant.",
    "mz": "Concentre-toi sur le torque vertical: rotation generee par les appuis et son inversion avant impact.",
    "cop": "Concentre-toi sur la trajectoire du centre de pression: amplitude, vitesse et position a l impact.",
    "pressure_shift": "Concentre-toi sur la repartition gauche-droite en pourcentage et le moment du transfert.",
    "stance": "Concentre-toi sur la largeur d appuis et son influence sur la stabilite et la rotation.",
    "foot_flare": "Concentre-toi sur l ouverture des pieds et ses effets sur la rotation des hanches.",
    "grf": "Concentre-toi sur la force de reaction au sol 3D: orientation, intensite et sequence des vecteurs.",
}

_VERIFY_PREAMBLE = (
    "Tu verifies une extraction automatique faite a partir de l image jointe. "
    "Compare les donnees fournies a l image et reponds en {language}."
)

_VERIFY_RULES = """
VERDICT:
- is_valid: false seulement si une erreur de lecture importante est visible.
- confidence entre 0 et 1.
- issues: liste courte de problemes concrets (colonne, coup, valeur), vide si rien a signaler.
- matches_selected_graph_type: null pour les tableaux radar."""

_SMART2MOVE_VERIFY_RULES = """
VERDICT:
- is_valid: false si l analyse contredit le graphe ou si une annotation est mal placee.
- confidence entre 0 et 1.
- issues: liste courte de problemes concrets, vide si rien a signaler.
- matches_selected_graph_type: true si l image correspond au type de graphe annonce, false sinon."""


def _smart2move_section(graph_key: str) -> str:
    return "\n".join([_SMART2MOVE_PREAMBLE, _SMART2MOVE_GRAPH_FOCUS[graph_key], _SMART2MOVE_RULES])


PROMPT_SECTIONS: Dict[str, str] = {
    "radar_extract_system": _TABULAR_PREAMBLE + "\n" + _TABULAR_RULES,
    "radar_extract_verify_system": _VERIFY_PREAMBLE + "\n" + _VERIFY_RULES,
    "radar_extract_trackman_system": (
        _TABULAR_PREAMBLE
        + "\nL export vient d un Trackman: les en-tetes sont souvent sur une seule ligne "
        + "(Club Speed, Ball Speed, Launch Angle, Spin Rate, Carry, Total)."
        + "\n"
        + _TABULAR_RULES
    ),
    "radar_extract_trackman_verify_system": (
        _VERIFY_PREAMBLE
        + "\nL export vient d un Trackman."
        + "\n"
        + _VERIFY_RULES
    ),
    "radar_extract_smart2move_verify_system": _VERIFY_PREAMBLE + "\n" + _SMART2MOVE_VERIFY_RULES,
}
PROMPT_SECTIONS.update({
    f"radar_extract_smart2move_{graph_key}_system": _smart2move_section(graph_key)
    for graph_key in _SMART2MOVE_GRAPH_FOCUS
})


# ================================================================
# Prompt template store
# ================================================================

class PromptStore(Protocol):
    """Resolves a named prompt section to template text.

    An unknown or empty section returns "".
    """

    def load_section(self, name: str) -> str:
        ...


class BuiltinPromptStore:
    """Prompt sections shipped with the service."""

    def __init__(self, sections: Optional[Mapping[str, str]] = None):
        self._sections = dict(PROMPT_SECTIONS if sections is None else sections)

    def load_section(self, name: str) -> str:
        return self._sections.get(name, "")


_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def apply_template(template: str, values: Mapping[str, Optional[str]]) -> str:
    """Replace {placeholder} tokens; unknown placeholders are left as-is."""
    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in values and values[key] is not None:
            return str(values[key])
        return match.group(0)
    return _PLACEHOLDER_RE.sub(_replace, template)


def resolve_language(locale: Optional[str]) -> str:
    return "francais" if (locale or "fr-FR").lower().startswith("fr") else "anglais"


def build_tpi_context_block(tpi_context: Optional[str]) -> str:
    text = (tpi_context or "").strip()
    if not text:
        return "Aucun bilan TPI disponible pour ce joueur."
    return "Bilan TPI du joueur (a utiliser pour les solutions):\n" + text


# ================================================================
# User instructions
# ================================================================

LOW_CONFIDENCE_NUDGE = (
    "Si tu n es pas certain d une erreur, prefere is_valid=true avec une confiance basse "
    "plutot qu un rejet."
)


def build_tabular_user_instructions(source_label: str) -> str:
    return (
        f"Voici un export {source_label} en image. "
        "Retourne: source, metadata (club, ball), columns (group, label, unit), "
        "rows (shot, values[]), avg, dev, summary. "
        "Utilise null pour les cellules vides ou '-'."
    )


def build_smart2move_user_instructions(graph_label: str, markers: Smart2MoveMarkers) -> str:
    lines = [
        f"Voici un graphe Smart2Move {graph_label} en image.",
        f"Le coach a place l impact a x={markers.impact_marker_x:.3f} (0 = gauche, 1 = droite).",
    ]
    if markers.transition_start_x is not None:
        lines.append(f"La transition commence vers x={markers.transition_start_x:.3f}.")
    if markers.peak_window is not None:
        lines.append(
            f"Fenetre des pics a privilegier: x={markers.peak_window.start:.3f} "
            f"a x={markers.peak_window.end:.3f}."
        )
    lines.extend([
        "Retourne exactement 4 annotations et une analyse en 4 sections numerotees:",
        "1. Adresse -> Backswing",
        "2. Transition -> Impact",
        "3. Intensite des pics et chronologie",
        "4. Resume global",
        "Chaque section: 2 phrases maximum, 280 caracteres maximum.",
    ])
    return "\n".join(lines)


def build_verify_user_instructions(snapshot: Mapping[str, Any], retry: bool = False) -> str:
    text = (
        "Voici les donnees extraites de l image jointe. Verifie leur coherence avec l image.\n"
        + json.dumps(snapshot, ensure_ascii=False, default=str)
    )
    if retry:
        text += "\n" + LOW_CONFIDENCE_NUDGE
    return text


# ================================================================
# Verification snapshots
# ================================================================

SNAPSHOT_HEAD_ROWS = 6
SNAPSHOT_TAIL_ROWS = 6


def build_tabular_snapshot(
    source_label: str,
    metadata: Optional[Mapping[str, Any]],
    columns: Sequence[NormalizedColumn],
    shots: Sequence[ShotRecord],
    stats: RadarStats,
    summary: Optional[str],
) -> Dict[str, Any]:
    """Bounded view of a shot table: first and last rows only."""
    head = list(shots[:SNAPSHOT_HEAD_ROWS])
    tail = list(shots[SNAPSHOT_HEAD_ROWS:][-SNAPSHOT_TAIL_ROWS:])
    return {
        "source": source_label,
        "metadata": dict(metadata or {}),
        "columns": [column.model_dump() for column in columns],
        "head_rows": head,
        "tail_rows": tail,
        "row_count": len(shots),
        "avg": stats.avg,
        "dev": stats.dev,
        "summary": summary,
    }


def build_smart2move_snapshot(result: Smart2MoveResult) -> Dict[str, Any]:
    return {
        "graph_type": result.graph_type,
        "graph_label": result.graph_label,
        "annotations": [a.model_dump(mode="json") for a in result.annotations],
        "analysis": result.analysis,
        "markers": result.markers.model_dump(mode="json"),
    }


# ================================================================
# Pydantic models for parsing raw LLM JSON responses
# ================================================================

RawCell = Union[float, str, None]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


# --- Tabular ---

class RawRadarMetadata(_StrictModel):
    club: Optional[str]
    ball: Optional[str]


class RawRadarColumn(_StrictModel):
    group: Optional[str]
    label: Optional[str]
    unit: Optional[str]


class RawRadarRow(_StrictModel):
    shot: RawCell
    values: List[RawCell]


class RawTabularExtraction(_StrictModel):
    """Shot table as read off the printout, before normalization."""
    source: Optional[str]
    metadata: RawRadarMetadata
    columns: List[RawRadarColumn]
    rows: List[RawRadarRow]
    avg: Optional[List[RawCell]]
    dev: Optional[List[RawCell]]
    summary: Optional[str]


# --- Smart2Move ---

class RawAnchor(_StrictModel):
    x: float
    y: float


class RawSmart2MoveAnnotation(_StrictModel):
    bubble_key: BubbleKey
    id: str
    title: str
    detail: str
    reasoning: Optional[str]
    solution: Optional[str]
    evidence: Optional[str]
    anchor: RawAnchor


class RawSmart2MoveExtraction(_StrictModel):
    graph_type: str
    annotations: List[RawSmart2MoveAnnotation] = Field(..., min_length=4, max_length=4)
    analysis: str
    summary: Optional[str]


# --- Verification ---

class RawVerification(_StrictModel):
    is_valid: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    issues: List[str]
    matches_selected_graph_type: Optional[bool]


def _tighten(node: Any) -> None:
    if isinstance(node, dict):
        properties = node.get("properties")
        if node.get("type") == "object" and isinstance(properties, dict):
            node["additionalProperties"] = False
            node["required"] = list(properties.keys())
        for value in node.values():
            _tighten(value)
    elif isinstance(node, list):
        for item in node:
            _tighten(item)


def strict_json_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """JSON schema with additionalProperties false and every property required."""
    schema = deepcopy(model.model_json_schema())
    _tighten(schema)
    return schema
