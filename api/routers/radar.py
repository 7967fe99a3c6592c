"""Radar data extraction endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.auth import SessionResolver
from api.dependencies import (
    get_db,
    get_prompt_store,
    get_session_resolver,
    get_storage,
    get_vision_client,
)
from api.schemas import RadarExtractRequest, RadarExtractResponse
from config import Settings, get_settings
from database.db_manager import DatabaseManager
from llm import PromptStore, VisionModelClient
from radar.service import ObjectStorage, RadarExtractionService, RadarPipelineError
from utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

INVALID_PAYLOAD_MESSAGE = "Payload invalide."
INCOMPLETE_CONFIG_MESSAGE = "Configuration serveur incomplete."
INVALID_SESSION_MESSAGE = "Session invalide."


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/extract")
async def extract_radar(
    request: Request,
    db: DatabaseManager = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sessions: Optional[SessionResolver] = Depends(get_session_resolver),
    storage: Optional[ObjectStorage] = Depends(get_storage),
    client: Optional[VisionModelClient] = Depends(get_vision_client),
    prompts: PromptStore = Depends(get_prompt_store),
):
    """Extract a shot table or Smart2Move annotations from an uploaded radar file."""
    try:
        payload = RadarExtractRequest.model_validate(await request.json())
    except (ValidationError, ValueError):
        return _error(422, INVALID_PAYLOAD_MESSAGE)

    if sessions is None or storage is None or client is None:
        logger.error("radar_extract_misconfigured")
        return _error(500, INCOMPLETE_CONFIG_MESSAGE)

    session = await sessions.resolve(request.headers.get("authorization"))
    if session is None:
        return _error(401, INVALID_SESSION_MESSAGE)

    service = RadarExtractionService(db, storage, client, prompts)
    try:
        outcome = await service.extract(
            payload.radar_file_id,
            session.user_id,
            is_admin=settings.is_admin(session.email),
            smart2move_graph_type=payload.smart2move_graph_type,
            impact_marker_x=payload.impact_marker_x,
            transition_start_x=payload.transition_start_x,
            origin=payload.origin.value,
        )
    except RadarPipelineError as e:
        return _error(e.status_code, e.message)

    body = RadarExtractResponse(warning=outcome.warning)
    return body.model_dump(exclude_none=True)
