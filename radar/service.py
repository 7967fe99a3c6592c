"""
End-to-end radar extraction for one uploaded file.

gate -> download -> extract -> assemble -> verify -> persist, strictly in
that order. The radar_files row is written once, at the end; ai_usage gets
one row per LLM phase (extract, verify) and app_activity_logs one event per
outcome (denied, failed, success).
"""

import time
from typing import Any, Dict, Optional, Protocol

import asyncpg
from pydantic import BaseModel

from analytics import DEFAULT_RADAR_CONFIG, compute_analytics
from billing import (
    budget_exhausted,
    can_extract_radar,
    compute_cost_eur_cents,
    month_window,
    quota_exceeded,
    quota_window_start,
    radar_quota,
    resolve_usage_tokens,
)
from database.db_manager import DatabaseManager
from database.exceptions import DatabaseError, StaleRadarFileError
from llm import (
    ExtractionError,
    PromptStore,
    RadarPromptConfig,
    VisionModelClient,
    is_smart2move_graph_type,
    resolve_radar_prompt_config,
    run_extraction,
    run_verification,
)
from llm.prompts import build_smart2move_snapshot, build_tabular_snapshot, resolve_language
from models import (
    ActivityEvent,
    ActivityLevel,
    AiUsage,
    RadarExtractionResult,
    RadarFile,
    Smart2MoveMarkers,
    UsageRecord,
)
from radar.smart2move import normalize_axis_value, resolve_markers
from radar.tabular import build_tabular_result
from utils.logging import get_logger

logger = get_logger(__name__)


# --- Messages ---

FILE_NOT_FOUND_MESSAGE = "Fichier datas introuvable."
STORAGE_MISSING_MESSAGE = "Fichier introuvable."
GRAPH_TYPE_REQUIRED_MESSAGE = "Type de graphe Smart2Move requis."
IMPACT_REQUIRED_MESSAGE = "Position d impact requise pour Smart2Move."
TRANSITION_ORDER_MESSAGE = "La transition doit preceder l impact."
ACCESS_DENIED_MESSAGE = "Acces refuse."
ADDON_REQUIRED_MESSAGE = "Add-on Datas requis."
QUOTA_REACHED_MESSAGE = "Quota d imports datas atteint."
BUDGET_REACHED_MESSAGE = "Budget IA mensuel atteint."
PERSIST_FAILED_MESSAGE = "Enregistrement impossible."
STALE_FILE_MESSAGE = "Extraction concurrente detectee."

EXTRACT_ACTION = "radar_extract"
VERIFY_ACTION = "radar_extract_verify"
ENTITY_TYPE = "radar_file"


class RadarPipelineError(Exception):
    """A request-level failure carrying the HTTP status it maps to."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class StorageError(Exception):
    """The stored object could not be downloaded."""


class ObjectStorage(Protocol):
    async def download(self, path: str) -> bytes:
        """Object bytes; raises StorageError when missing or unreadable."""
        ...


class ExtractionOutcome(BaseModel):
    radar_file_id: str
    mode: str
    status: str
    warning: Optional[str] = None


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _join_warnings(*parts: Optional[str]) -> Optional[str]:
    return " ".join(p.strip() for p in parts if p and p.strip()) or None


class RadarExtractionService:
    """Runs the pipeline against injected collaborators."""

    def __init__(
        self,
        db: DatabaseManager,
        storage: ObjectStorage,
        client: VisionModelClient,
        prompts: PromptStore,
    ):
        self._db = db
        self._storage = storage
        self._client = client
        self._prompts = prompts

    # ================================================================
    # Audit + usage
    # ================================================================

    async def _log_activity(
        self,
        action: str,
        level: ActivityLevel,
        user_id: str,
        radar_file: Optional[RadarFile],
        message: Optional[str] = None,
        **metadata: Any,
    ) -> None:
        await self._db.activity.log(ActivityEvent(
            action=action,
            level=level,
            actor_user_id=user_id,
            org_id=radar_file.org_id if radar_file else None,
            entity_type=ENTITY_TYPE,
            entity_id=radar_file.id if radar_file else None,
            message=message,
            metadata={k: v for k, v in metadata.items() if v is not None},
        ))

    async def _deny(
        self,
        status_code: int,
        message: str,
        user_id: str,
        radar_file: RadarFile,
        reason: str,
        **metadata: Any,
    ) -> RadarPipelineError:
        logger.warning("radar_import_denied", radar_file_id=radar_file.id, reason=reason)
        await self._log_activity(
            "radar.import.denied", ActivityLevel.WARN, user_id, radar_file,
            message, reason=reason, **metadata,
        )
        return RadarPipelineError(status_code, message)

    async def _record_usage(
        self,
        action: str,
        user_id: str,
        radar_file: RadarFile,
        usage: AiUsage,
        model: str,
        duration_ms: int,
        error_type: Optional[str] = None,
    ) -> None:
        input_tokens, output_tokens = resolve_usage_tokens(
            usage.input_tokens, usage.output_tokens, usage.total_tokens,
        )
        record = UsageRecord(
            user_id=user_id,
            org_id=radar_file.org_id,
            action=action,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=usage.total_tokens or input_tokens + output_tokens,
            cost_eur_cents=compute_cost_eur_cents(input_tokens, output_tokens, model),
            duration_ms=duration_ms,
            error_type=error_type,
            entity_id=radar_file.id,
        )
        try:
            await self._db.usage.record(record)
        except (DatabaseError, asyncpg.PostgresError, OSError) as e:
            logger.error("radar_usage_record_failed", action=action, error=str(e))

    # ================================================================
    # Gating
    # ================================================================

    def _validate_smart2move_inputs(
        self,
        config: RadarPromptConfig,
        graph_type: Optional[str],
        impact_marker_x: Optional[float],
        transition_start_x: Optional[float],
    ) -> Optional[Smart2MoveMarkers]:
        if not config.is_smart2move:
            return None
        if not is_smart2move_graph_type(graph_type):
            raise RadarPipelineError(422, GRAPH_TYPE_REQUIRED_MESSAGE)
        impact = normalize_axis_value(impact_marker_x)
        if impact is None:
            raise RadarPipelineError(422, IMPACT_REQUIRED_MESSAGE)
        transition = normalize_axis_value(transition_start_x)
        if transition is not None and transition >= impact:
            raise RadarPipelineError(422, TRANSITION_ORDER_MESSAGE)
        return resolve_markers(impact, transition)

    async def _check_access(
        self,
        user_id: str,
        is_admin: bool,
        radar_file: RadarFile,
        origin: str,
    ) -> Dict[str, Any]:
        """Org match, entitlement, quota, budget. Returns the org settings."""
        profile_org_id = await self._db.orgs.get_profile_org_id(user_id)
        if profile_org_id is None or profile_org_id != radar_file.org_id:
            raise await self._deny(
                403, ACCESS_DENIED_MESSAGE, user_id, radar_file, "org_mismatch", origin=origin,
            )

        org = await self._db.orgs.get_org_settings(radar_file.org_id) or {}
        tier = org.get("plan_tier")
        if not can_extract_radar(tier, radar_enabled=org.get("radar_enabled", False), is_admin=is_admin):
            raise await self._deny(
                403, ADDON_REQUIRED_MESSAGE, user_id, radar_file, "addon_required",
                origin=origin, planTier=tier,
            )
        if is_admin:
            return org

        quota = radar_quota(tier)
        if quota is not None:
            used = await self._db.radar_files.count_recent_extractions(
                radar_file.org_id, quota_window_start(),
            )
            if quota_exceeded(used, quota):
                raise await self._deny(
                    403, QUOTA_REACHED_MESSAGE, user_id, radar_file, "quota_reached",
                    origin=origin, used=used, quota=quota,
                )

        budget = org.get("ai_budget_cents")
        if budget is not None:
            month_start, _ = month_window()
            spent = await self._db.usage.spent_cents_since(radar_file.org_id, month_start)
            if budget_exhausted(budget, spent):
                raise await self._deny(
                    403, BUDGET_REACHED_MESSAGE, user_id, radar_file, "budget_reached",
                    origin=origin, spentCents=spent, budgetCents=budget,
                )
        return org

    # ================================================================
    # Pipeline
    # ================================================================

    async def _fail(
        self,
        user_id: str,
        radar_file: RadarFile,
        stage: str,
        message: str,
        origin: str,
        response_message: Optional[str] = None,
        status_code: int = 500,
    ) -> RadarPipelineError:
        await self._log_activity(
            "radar.import.failed", ActivityLevel.ERROR, user_id, radar_file,
            message, stage=stage, origin=origin,
        )
        return RadarPipelineError(status_code, response_message or message)

    async def extract(
        self,
        radar_file_id: str,
        user_id: str,
        *,
        is_admin: bool = False,
        smart2move_graph_type: Optional[str] = None,
        impact_marker_x: Optional[float] = None,
        transition_start_x: Optional[float] = None,
        origin: str = "unknown",
    ) -> ExtractionOutcome:
        """Run one extraction. Raises RadarPipelineError on any non-200 outcome."""
        radar_file = await self._db.radar_files.get_radar_file(radar_file_id)
        if radar_file is None:
            raise RadarPipelineError(404, FILE_NOT_FOUND_MESSAGE)

        config = resolve_radar_prompt_config(radar_file.source, smart2move_graph_type)
        markers = self._validate_smart2move_inputs(
            config, smart2move_graph_type, impact_marker_x, transition_start_x,
        )
        org = await self._check_access(user_id, is_admin, radar_file, origin)

        log = logger.bind(radar_file_id=radar_file.id, mode=config.mode.value, origin=origin)

        try:
            image = await self._storage.download(radar_file.file_url)
        except StorageError as e:
            log.error("radar_download_failed", error=str(e))
            await self._db.radar_files.mark_error(radar_file.id, STORAGE_MISSING_MESSAGE)
            raise await self._fail(
                user_id, radar_file, "download", STORAGE_MISSING_MESSAGE, origin,
                response_message=FILE_NOT_FOUND_MESSAGE,
            )

        language = resolve_language(org.get("locale"))
        tpi_context = None
        if config.is_smart2move:
            tpi_context = await self._db.orgs.get_tpi_context(radar_file.student_id)

        # --- Extract ---
        try:
            call = await run_extraction(
                self._client, self._prompts, config, image, radar_file.mime_type,
                language, tpi_context=tpi_context, markers=markers,
            )
        except ExtractionError as e:
            await self._record_usage(
                EXTRACT_ACTION, user_id, radar_file, e.usage or AiUsage(),
                self._client.model, e.duration_ms, error_type="exception",
            )
            await self._db.radar_files.mark_error(radar_file.id, e.message)
            raise await self._fail(user_id, radar_file, "extract", e.message, origin)

        await self._record_usage(
            EXTRACT_ACTION, user_id, radar_file, call.usage,
            call.model or self._client.model, call.duration_ms,
        )

        # --- Assemble ---
        result: RadarExtractionResult
        review_warning = None
        if config.is_smart2move:
            result = call.data
            snapshot = build_smart2move_snapshot(result)
        else:
            raw = call.data
            result = build_tabular_result(raw, compute_analytics, DEFAULT_RADAR_CONFIG)
            snapshot = build_tabular_snapshot(
                config.source_label,
                raw.metadata.model_dump() if raw.metadata else None,
                result.columns,
                result.shots,
                result.stats,
                result.summary,
            )
            review_warning = _join_warnings(*result.review_reasons)

        # --- Verify ---
        verification = await run_verification(
            self._client, self._prompts, config, image, radar_file.mime_type,
            language, snapshot,
        )
        await self._record_usage(
            VERIFY_ACTION, user_id, radar_file, verification.usage,
            verification.model or self._client.model, verification.duration_ms,
            error_type="exception" if verification.verdict is None else None,
        )
        warning = _join_warnings(review_warning, verification.warning)

        # --- Persist ---
        try:
            await self._db.radar_files.apply_update(
                radar_file.id, result.to_update(warning), radar_file.extracted_at,
            )
        except StaleRadarFileError as e:
            log.warning("radar_persist_stale", error=str(e))
            raise await self._fail(
                user_id, radar_file, "persist", STALE_FILE_MESSAGE, origin, status_code=409,
            )
        except (DatabaseError, asyncpg.PostgresError, OSError) as e:
            log.error("radar_persist_failed", error=str(e))
            raise await self._fail(user_id, radar_file, "persist", PERSIST_FAILED_MESSAGE, origin)

        await self._log_activity(
            "radar.import.success", ActivityLevel.INFO, user_id, radar_file,
            origin=origin,
            mode=config.mode.value,
            source=config.source_label,
            graphType=config.smart2move_graph_type,
            hasWarning=warning is not None,
        )
        log.info("radar_import_succeeded", status=result.status.value, has_warning=warning is not None)
        return ExtractionOutcome(
            radar_file_id=radar_file.id,
            mode=config.mode.value,
            status=result.status.value,
            warning=warning,
        )
