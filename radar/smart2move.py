"""Smart2Move force-plate graph post-processing.

The model returns four free-text callouts and a narrative analysis. This
module pins the callouts to the four fixed bubble keys, bounds every text
field, rebuilds the analysis into a title plus four numbered sections and
derives the graph markers (transition start, peak window) from the coach's
impact marker.
"""

import math
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from models import (
    BUBBLE_ORDER,
    Anchor,
    BubbleKey,
    PeakWindow,
    Smart2MoveAnnotation,
    Smart2MoveMarkers,
    Smart2MoveResult,
)
from radar.normalizer import normalize_token

BUBBLE_LABELS: Dict[BubbleKey, str] = {
    BubbleKey.ADDRESS_BACKSWING: "Adresse -> Backswing",
    BubbleKey.TRANSITION_IMPACT: "Transition -> Impact",
    BubbleKey.PEAK_INTENSITY_TIMING: "Intensite des pics et chronologie",
    BubbleKey.SUMMARY: "Resume global",
}

DEFAULT_ANCHORS: Dict[BubbleKey, Tuple[float, float]] = {
    BubbleKey.ADDRESS_BACKSWING: (0.2, 0.3),
    BubbleKey.TRANSITION_IMPACT: (0.48, 0.42),
    BubbleKey.PEAK_INTENSITY_TIMING: (0.72, 0.38),
    BubbleKey.SUMMARY: (0.86, 0.7),
}

TRANSITION_FALLBACK_OFFSET = 0.18
TRANSITION_MIN_GAP = 0.02
PEAK_WINDOW_BEFORE = 0.05
PEAK_WINDOW_AFTER = 0.08

# (max_sentences, max_chars)
TITLE_LIMIT = (1, 90)
DETAIL_LIMIT = (2, 240)
NOTE_LIMIT = (2, 220)
SECTION_LIMIT = (2, 280)
UNSTRUCTURED_LIMIT = (8, 900)

ELLIPSIS = "…"

_BUBBLE_VALUES = {key.value for key in BubbleKey}

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?…])\s+")
_SECTION_HEADING_RE = re.compile(r"^\s*(?:#+\s*)?\**\s*([1-4])\s*[\.\)\-:](?!\d)\s*(.*)$")


# --- Markers ---

def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalize_axis_value(value: Any) -> Optional[float]:
    """Ratio clamped to [0, 1]; anything that is not a finite number -> None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return _clamp01(float(value))


def resolve_transition_start_x(
    impact_marker_x: Optional[float],
    transition_start_x: Optional[float],
) -> Optional[float]:
    impact = normalize_axis_value(impact_marker_x)
    if impact is None:
        return None
    fallback = _clamp01(impact - TRANSITION_FALLBACK_OFFSET)
    transition = normalize_axis_value(transition_start_x)
    if transition is None:
        transition = fallback
    max_allowed = max(0.0, impact - TRANSITION_MIN_GAP)
    return _clamp01(min(transition, max_allowed))


def resolve_peak_window(impact_marker_x: Optional[float]) -> Optional[PeakWindow]:
    impact = normalize_axis_value(impact_marker_x)
    if impact is None:
        return None
    return PeakWindow(
        start=_clamp01(impact - PEAK_WINDOW_BEFORE),
        end=_clamp01(impact + PEAK_WINDOW_AFTER),
    )


def resolve_markers(impact_marker_x: float, transition_start_x: Optional[float]) -> Smart2MoveMarkers:
    return Smart2MoveMarkers(
        impact_marker_x=normalize_axis_value(impact_marker_x),
        transition_start_x=resolve_transition_start_x(impact_marker_x, transition_start_x),
        peak_window=resolve_peak_window(impact_marker_x),
    )


# --- Text compaction ---

def compact_text(text: Optional[str], max_sentences: int, max_chars: int) -> str:
    """Collapse whitespace, keep max_sentences, cut to max_chars with an ellipsis."""
    collapsed = re.sub(r"\s+", " ", text or "").strip()
    if not collapsed:
        return ""
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(collapsed) if s]
    compacted = " ".join(sentences[:max_sentences])
    if len(compacted) <= max_chars:
        return compacted
    cut = compacted[: max_chars - len(ELLIPSIS)].rstrip()
    boundary = cut.rfind(" ")
    if boundary > (max_chars // 2):
        cut = cut[:boundary].rstrip()
    return cut.rstrip(" ,;:") + ELLIPSIS


def _compact_optional(text: Optional[str], limit: Tuple[int, int]) -> Optional[str]:
    return compact_text(text, *limit) or None


# --- Annotations ---

def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _bubble_key_from_token(token: str) -> Optional[BubbleKey]:
    if not token:
        return None
    if "adresse" in token or "address" in token or "backswing" in token:
        return BubbleKey.ADDRESS_BACKSWING
    if "transition" in token or ("impact" in token and "post impact" not in token):
        return BubbleKey.TRANSITION_IMPACT
    if "peak intensity" in token or "intensite" in token or "chronologie" in token or "timing" in token:
        return BubbleKey.PEAK_INTENSITY_TIMING
    if "summary" in token or "resume" in token or "post impact" in token:
        return BubbleKey.SUMMARY
    return None


def resolve_bubble_key(source: Mapping[str, Any]) -> Optional[BubbleKey]:
    """Bubble key from the first of bubble_key/bubbleKey/id/title that is set."""
    raw = (
        _text(source.get("bubble_key"))
        or _text(source.get("bubbleKey"))
        or _text(source.get("id"))
        or _text(source.get("title"))
    )
    if not raw:
        return None
    if raw in _BUBBLE_VALUES:
        return BubbleKey(raw)
    token = normalize_token(raw)
    for position, key in enumerate(BUBBLE_ORDER, start=1):
        if token in (str(position), f"a{position}", f"bulle {position}", f"bubble {position}"):
            return key
    if token.replace(" ", "_") in _BUBBLE_VALUES:
        return BubbleKey(token.replace(" ", "_"))
    return _bubble_key_from_token(token)


def _candidate(source: Any, index: int) -> Optional[Dict[str, Any]]:
    if hasattr(source, "model_dump"):
        source = source.model_dump()
    if not isinstance(source, Mapping):
        return None
    fields = {name: _text(source.get(name)) for name in ("title", "detail", "reasoning", "solution", "evidence")}
    if not any(fields.values()):
        return None
    anchor = source.get("anchor") if isinstance(source.get("anchor"), Mapping) else {}
    return {
        **fields,
        "bubble_key": resolve_bubble_key(source),
        "id": _text(source.get("id")) or f"a-{index + 1}",
        "x": normalize_axis_value(anchor.get("x")),
        "y": normalize_axis_value(anchor.get("y")),
    }


def _build_annotation(key: BubbleKey, candidate: Optional[Dict[str, Any]]) -> Smart2MoveAnnotation:
    default_x, default_y = DEFAULT_ANCHORS[key]
    if candidate is None:
        return Smart2MoveAnnotation(
            bubble_key=key,
            id=key.value,
            title=BUBBLE_LABELS[key],
            anchor=Anchor(x=default_x, y=default_y),
        )
    x = candidate["x"]
    y = candidate["y"]
    return Smart2MoveAnnotation(
        bubble_key=key,
        id=candidate["id"] or key.value,
        title=compact_text(candidate["title"], *TITLE_LIMIT) or BUBBLE_LABELS[key],
        detail=compact_text(candidate["detail"], *DETAIL_LIMIT),
        reasoning=_compact_optional(candidate["reasoning"], NOTE_LIMIT),
        solution=_compact_optional(candidate["solution"], NOTE_LIMIT),
        evidence=_compact_optional(candidate["evidence"], NOTE_LIMIT),
        anchor=Anchor(
            x=x if x is not None else default_x,
            y=y if y is not None else default_y,
        ),
    )


def sanitize_annotations(raw: Optional[Sequence[Any]]) -> List[Smart2MoveAnnotation]:
    """Exactly four annotations in bubble order.

    Keyed candidates claim their bubble first; unkeyed or duplicate ones fill
    the remaining bubbles in order; bubbles left empty get a labelled fallback.
    """
    candidates = [c for c in (_candidate(item, i) for i, item in enumerate(raw or [])) if c]
    keyed: Dict[BubbleKey, Dict[str, Any]] = {}
    spare: List[Dict[str, Any]] = []
    for candidate in candidates:
        key = candidate["bubble_key"]
        if key is not None and key not in keyed:
            keyed[key] = candidate
        else:
            spare.append(candidate)

    annotations = []
    for key in BUBBLE_ORDER:
        candidate = keyed.get(key)
        if candidate is None and spare:
            candidate = spare.pop(0)
        annotations.append(_build_annotation(key, candidate))
    return annotations


# --- Analysis ---

def analysis_title(graph_label: str) -> str:
    return f"Analyse {graph_label} - Smart2Move"


def section_heading(position: int, key: BubbleKey) -> str:
    return f"{position}. {BUBBLE_LABELS[key]}"


def _is_title_line(line: str) -> bool:
    token = normalize_token(line)
    return token.startswith("analyse") and _SECTION_HEADING_RE.match(line) is None


def _strip_heading_label(text: str, key: BubbleKey) -> str:
    """Body text carried on a heading line, without the heading label itself."""
    stripped = text.strip().strip("*").strip()
    if ":" in stripped:
        head, _, tail = stripped.partition(":")
        if _bubble_key_from_token(normalize_token(head)) is not None or not tail.strip():
            return tail.strip()
        return stripped
    label_token = normalize_token(BUBBLE_LABELS[key])
    if normalize_token(stripped) == label_token or _bubble_key_from_token(normalize_token(stripped)) == key:
        return ""
    return stripped


def split_analysis_sections(body_lines: Sequence[str]) -> Dict[int, str]:
    """Numbered section bodies (1..4) found in the analysis lines."""
    sections: Dict[int, List[str]] = {}
    current: Optional[int] = None
    for line in body_lines:
        match = _SECTION_HEADING_RE.match(line)
        if match:
            current = int(match.group(1))
            key = BUBBLE_ORDER[current - 1]
            first = _strip_heading_label(match.group(2), key)
            sections.setdefault(current, [])
            if first:
                sections[current].append(first)
            continue
        if current is not None and line.strip():
            sections[current].append(line.strip())
    return {position: " ".join(parts) for position, parts in sections.items()}


def format_smart2move_analysis(
    analysis: Optional[str],
    graph_label: str,
    annotations: Sequence[Smart2MoveAnnotation],
) -> str:
    """Title line plus four numbered sections; "" when there is no body."""
    lines = [line for line in (analysis or "").splitlines()]
    non_empty = [line for line in lines if line.strip()]
    if non_empty and _is_title_line(non_empty[0]):
        first = lines.index(non_empty[0])
        body_lines = lines[first + 1:]
    else:
        body_lines = lines

    title = analysis_title(graph_label)
    sections = split_analysis_sections(body_lines)
    if not sections:
        body = compact_text(" ".join(body_lines), *UNSTRUCTURED_LIMIT)
        return f"{title}\n{body}" if body else ""

    details = {annotation.bubble_key: annotation.detail for annotation in annotations}
    blocks = []
    for position, key in enumerate(BUBBLE_ORDER, start=1):
        text = compact_text(sections.get(position), *SECTION_LIMIT)
        if not text:
            text = compact_text(details.get(key), *SECTION_LIMIT)
        blocks.append(f"{section_heading(position, key)}\n{text}".rstrip())

    if not any(compact_text(sections.get(p), *SECTION_LIMIT) for p in range(1, 5)):
        return ""
    return "\n\n".join([title] + blocks)


def build_smart2move_result(
    graph_type: str,
    graph_label: str,
    raw_annotations: Optional[Sequence[Any]],
    raw_analysis: Optional[str],
    raw_summary: Optional[str],
    markers: Smart2MoveMarkers,
) -> Optional[Smart2MoveResult]:
    """Post-processed result, or None when the analysis has no body."""
    annotations = sanitize_annotations(raw_annotations)
    analysis = format_smart2move_analysis(raw_analysis, graph_label, annotations)
    if not analysis:
        return None
    return Smart2MoveResult(
        graph_type=graph_type,
        graph_label=graph_label,
        annotations=annotations,
        analysis=analysis,
        summary=compact_text(raw_summary, *DETAIL_LIMIT) or None,
        markers=markers,
    )
