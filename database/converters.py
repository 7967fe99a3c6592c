"""Conversion between asyncpg database rows and Pydantic domain models.

Centralizes all mapping logic between the radar schema and the models.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from models import RadarFile, UsageRecord, ActivityEvent


# Columns of public.radar_files this service is allowed to write.
RADAR_UPDATE_FIELDS = (
    "status", "columns", "shots", "stats", "summary",
    "config", "analytics", "extracted_at", "error",
)


# ================================================================
# Row -> Model (reads)
# ================================================================

def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


def radar_file_from_row(row) -> RadarFile:
    """public.radar_files row -> RadarFile model."""
    return RadarFile(
        id=str(row["id"]),
        org_id=str(row["org_id"]),
        student_id=_str_or_none(row["student_id"]),
        file_url=row["file_url"],
        file_mime=row["file_mime"],
        original_name=row["original_name"],
        source=row["source"],
        status=row["status"] or "pending",
        columns=row["columns"] or [],
        shots=row["shots"] or [],
        stats=row["stats"],
        summary=row["summary"],
        config=row["config"],
        analytics=row["analytics"],
        error=row["error"],
        extracted_at=row["extracted_at"],
    )


def org_settings_from_row(row) -> Dict[str, Any]:
    """public.organizations row -> plain settings dict used by the gates."""
    budget = row["ai_budget_cents"]
    return {
        "id": str(row["id"]),
        "locale": row["locale"] or "fr-FR",
        "radar_enabled": bool(row["radar_enabled"]),
        "plan_tier": row["plan_tier"],
        "ai_budget_cents": int(budget) if budget is not None else None,
    }


def tpi_context_from_rows(rows: Sequence[Any]) -> Optional[str]:
    """public.tpi_tests rows -> one line per test, or None when empty."""
    lines: List[str] = []
    for r in rows:
        name = (r["test_name"] or "").strip()
        if not name:
            continue
        line = f"- {name}"
        if r["result_color"]:
            line += f" ({r['result_color']})"
        if r["mini_summary"]:
            line += f": {r['mini_summary'].strip()}"
        lines.append(line)
    return "\n".join(lines) or None


# ================================================================
# Model -> Row (writes)
# ================================================================

def radar_update_to_row(payload: Dict[str, Any]) -> Tuple[List[str], List[Any]]:
    """Update payload -> (column names, values) restricted to writable fields."""
    names = [k for k in RADAR_UPDATE_FIELDS if k in payload]
    return names, [payload[k] for k in names]


def usage_to_row(record: UsageRecord) -> tuple:
    return (
        UUID(record.user_id), UUID(record.org_id), record.action, record.model,
        record.input_tokens, record.output_tokens, record.total_tokens,
        record.cost_eur_cents, record.duration_ms, record.error_type,
        record.entity_id,
    )


def activity_to_row(event: ActivityEvent) -> tuple:
    return (
        event.level.value, event.action, event.source,
        UUID(event.actor_user_id) if event.actor_user_id else None,
        UUID(event.org_id) if event.org_id else None,
        event.entity_type, event.entity_id, event.message,
        event.metadata,
    )
