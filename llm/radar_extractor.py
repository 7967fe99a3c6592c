import asyncio
import time
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from llm.errors import ExtractionError, LLMResponseError, RadarLLMError, VerificationError
from llm.prompt_config import RadarPromptConfig
from llm.prompts import (
    PromptStore,
    RawSmart2MoveExtraction,
    RawTabularExtraction,
    RawVerification,
    apply_template,
    build_smart2move_user_instructions,
    build_tabular_user_instructions,
    build_tpi_context_block,
    build_verify_user_instructions,
    strict_json_schema,
)
from llm.vision_client import VisionModelClient, VisionResponse
from models import AiUsage, Smart2MoveMarkers, Smart2MoveResult
from radar.smart2move import build_smart2move_result
from utils.logging import get_logger

logger = get_logger(__name__)


# --- Configuration ---

VERIFY_RETRY_CONFIDENCE = 0.6
MAX_WARNING_ISSUES = 3

EMPTY_OUTPUT_MESSAGE = "Reponse OCR vide."
INVALID_OUTPUT_MESSAGE = "Reponse OCR invalide."
TIMEOUT_MESSAGE = "Delai d extraction depasse."
EXTRACTION_FAILED_MESSAGE = "Extraction datas impossible."
MISSING_PROMPT_MESSAGE = "Prompt d extraction introuvable."
EMPTY_ANALYSIS_MESSAGE = "Analyse Smart2Move vide."
VERIFY_UNAVAILABLE_MESSAGE = "Verification IA indisponible."

T = TypeVar("T", bound=BaseModel)


class ExtractionCall(BaseModel):
    """A successful extraction: parsed data plus what it cost."""
    data: Union[RawTabularExtraction, Smart2MoveResult]
    usage: AiUsage = AiUsage()
    duration_ms: int = 0
    model: str = ""


class VerificationOutcome(BaseModel):
    verdict: Optional[RawVerification] = None
    warning: Optional[str] = None
    usage: AiUsage = AiUsage()
    duration_ms: int = 0
    attempts: int = 0
    model: str = ""


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# --- Model call ---

async def _call_model(
    client: VisionModelClient,
    system_prompt: str,
    user_text: str,
    image: bytes,
    mime_type: str,
    response_model: Type[T],
    schema_name: str,
) -> Tuple[T, VisionResponse]:
    """Generic call: send prompt + image, parse into response_model.

    Empty output or a payload that does not satisfy the strict schema raises
    LLMResponseError carrying the call's usage.
    """
    response = await client.generate_json(
        system_prompt=system_prompt,
        user_text=user_text,
        image=image,
        mime_type=mime_type,
        schema=strict_json_schema(response_model),
        schema_name=schema_name,
    )
    if not response.text:
        raise LLMResponseError(EMPTY_OUTPUT_MESSAGE, usage=response.usage)
    try:
        parsed = response_model.model_validate_json(response.text)
    except ValidationError as e:
        logger.warning("radar_llm_invalid_output", schema=schema_name, errors=e.error_count())
        raise LLMResponseError(INVALID_OUTPUT_MESSAGE, usage=response.usage) from e
    return parsed, response


def _load_system_prompt(
    prompts: PromptStore,
    section: str,
    fallback: Optional[str],
    values: Mapping[str, Optional[str]],
) -> str:
    template = prompts.load_section(section).strip()
    if not template and fallback:
        template = prompts.load_section(fallback).strip()
    return apply_template(template, values) if template else ""


# ================================================================
# Extraction
# ================================================================

async def run_extraction(
    client: VisionModelClient,
    prompts: PromptStore,
    config: RadarPromptConfig,
    image: bytes,
    mime_type: str,
    language: str,
    tpi_context: Optional[str] = None,
    markers: Optional[Smart2MoveMarkers] = None,
) -> ExtractionCall:
    """Run the extraction call once; any failure raises ExtractionError."""
    started = time.monotonic()
    system_prompt = _load_system_prompt(
        prompts,
        config.extract_system_section,
        config.extract_fallback_section,
        {
            "language": language,
            "tpiContextBlock": build_tpi_context_block(tpi_context),
            "graphLabel": config.smart2move_graph_label,
        },
    )
    if not system_prompt:
        raise ExtractionError(MISSING_PROMPT_MESSAGE)

    if config.is_smart2move:
        if markers is None:
            raise ValueError("Smart2Move extraction needs the impact marker")
        response_model: Type[BaseModel] = RawSmart2MoveExtraction
        user_text = build_smart2move_user_instructions(config.smart2move_graph_label, markers)
        schema_name = "radar_extract_smart2move"
    else:
        response_model = RawTabularExtraction
        user_text = build_tabular_user_instructions(config.source_label)
        schema_name = "radar_extract"

    logger.info(
        "radar_extract_started",
        section=config.extract_system_section,
        mode=config.mode.value,
        model=getattr(client, "model", None),
    )
    try:
        raw, response = await _call_model(
            client, system_prompt, user_text, image, mime_type, response_model, schema_name,
        )
    except asyncio.TimeoutError as e:
        logger.error("radar_extract_timeout", duration_ms=_elapsed_ms(started))
        raise ExtractionError(TIMEOUT_MESSAGE, duration_ms=_elapsed_ms(started)) from e
    except RadarLLMError as e:
        logger.error("radar_extract_failed", reason=e.message, duration_ms=_elapsed_ms(started))
        raise ExtractionError(e.message, usage=e.usage, duration_ms=_elapsed_ms(started)) from e
    except Exception as e:
        logger.exception("radar_extract_provider_error")
        raise ExtractionError(
            str(e) or EXTRACTION_FAILED_MESSAGE, duration_ms=_elapsed_ms(started),
        ) from e

    data: Union[RawTabularExtraction, Smart2MoveResult] = raw
    if config.is_smart2move:
        result = build_smart2move_result(
            graph_type=config.smart2move_graph_type,
            graph_label=config.smart2move_graph_label,
            raw_annotations=raw.annotations,
            raw_analysis=raw.analysis,
            raw_summary=raw.summary,
            markers=markers,
        )
        if result is None:
            logger.error("radar_extract_empty_analysis", graph_type=config.smart2move_graph_type)
            raise ExtractionError(
                EMPTY_ANALYSIS_MESSAGE, usage=response.usage, duration_ms=_elapsed_ms(started),
            )
        data = result

    duration_ms = _elapsed_ms(started)
    logger.info(
        "radar_extract_succeeded",
        duration_ms=duration_ms,
        total_tokens=response.usage.total_tokens,
    )
    return ExtractionCall(
        data=data,
        usage=response.usage,
        duration_ms=duration_ms,
        model=response.model,
    )


# ================================================================
# Verification
# ================================================================

def compose_verification_warning(
    verdict: Optional[RawVerification],
    smart2move_graph_label: Optional[str] = None,
) -> Optional[str]:
    """Human-readable warning for a verdict, or None when there is nothing to flag."""
    if verdict is None:
        return None
    parts = []
    if not verdict.is_valid:
        issues = [issue.strip() for issue in verdict.issues if issue.strip()][:MAX_WARNING_ISSUES]
        parts.append("Verification IA: " + (" | ".join(issues) or "incoherences detectees."))
    if smart2move_graph_label and verdict.matches_selected_graph_type is False:
        parts.append(
            f"Le graphe importe ne semble pas correspondre au type selectionne ({smart2move_graph_label})."
        )
    return " ".join(parts) or None


def _needs_retry(verdict: RawVerification) -> bool:
    return not verdict.is_valid and verdict.confidence < VERIFY_RETRY_CONFIDENCE


async def run_verification(
    client: VisionModelClient,
    prompts: PromptStore,
    config: RadarPromptConfig,
    image: bytes,
    mime_type: str,
    language: str,
    snapshot: Dict[str, Any],
) -> VerificationOutcome:
    """Second opinion on an extraction. Never raises: failures become a warning."""
    started = time.monotonic()
    outcome = VerificationOutcome(model=getattr(client, "model", "") or "")
    system_prompt = _load_system_prompt(
        prompts,
        config.verify_system_section,
        config.verify_fallback_section,
        {"language": language, "graphLabel": config.smart2move_graph_label},
    )

    async def _attempt(retry: bool) -> RawVerification:
        outcome.attempts += 1
        try:
            verdict, response = await _call_model(
                client,
                system_prompt,
                build_verify_user_instructions(snapshot, retry=retry),
                image,
                mime_type,
                RawVerification,
                "radar_verify",
            )
        except RadarLLMError as e:
            outcome.usage = outcome.usage.merge(e.usage)
            raise
        outcome.usage = outcome.usage.merge(response.usage)
        return verdict

    try:
        if not system_prompt:
            raise VerificationError(MISSING_PROMPT_MESSAGE)
        verdict = await _attempt(retry=False)
    except Exception as e:
        logger.warning("radar_verify_failed", reason=str(e) or type(e).__name__)
        outcome.warning = VERIFY_UNAVAILABLE_MESSAGE
        outcome.duration_ms = _elapsed_ms(started)
        return outcome

    if not config.is_smart2move and _needs_retry(verdict):
        logger.info("radar_verify_retry", confidence=verdict.confidence, issues=len(verdict.issues))
        try:
            verdict = await _attempt(retry=True)
        except Exception as e:
            logger.warning("radar_verify_retry_failed", reason=str(e) or type(e).__name__)

    outcome.verdict = verdict
    outcome.warning = compose_verification_warning(
        verdict,
        config.smart2move_graph_label if config.is_smart2move else None,
    )
    outcome.duration_ms = _elapsed_ms(started)
    logger.info(
        "radar_verify_completed",
        is_valid=verdict.is_valid,
        confidence=verdict.confidence,
        attempts=outcome.attempts,
        has_warning=outcome.warning is not None,
    )
    return outcome
