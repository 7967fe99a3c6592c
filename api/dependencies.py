from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request

from api.auth import SessionResolver, SupabaseSessionResolver
from api.storage import SupabaseStorage
from config import Settings, get_settings
from database.db_manager import DatabaseManager
from llm import BuiltinPromptStore, GeminiVisionClient, PromptStore, VisionModelClient
from radar.service import ObjectStorage


def get_db(request: Request) -> DatabaseManager:
    """FastAPI dependency that provides the DatabaseManager."""
    return request.app.state.db_manager


# Collaborators below resolve to None when their settings are missing;
# the router answers 500 "Configuration serveur incomplete." in that case.

def get_session_resolver(settings: Settings = Depends(get_settings)) -> Optional[SessionResolver]:
    if not settings.supabase_url or not settings.supabase_anon_key:
        return None
    return SupabaseSessionResolver(settings.supabase_url, settings.supabase_anon_key)


def get_storage(settings: Settings = Depends(get_settings)) -> Optional[ObjectStorage]:
    if not settings.supabase_url or not settings.supabase_service_role_key:
        return None
    return SupabaseStorage(
        settings.supabase_url, settings.supabase_service_role_key, settings.storage_bucket,
    )


@lru_cache
def _gemini_client() -> GeminiVisionClient:
    return GeminiVisionClient.from_settings(get_settings())


def get_vision_client(settings: Settings = Depends(get_settings)) -> Optional[VisionModelClient]:
    if not settings.google_api_key:
        return None
    return _gemini_client()


def get_prompt_store() -> PromptStore:
    return BuiltinPromptStore()
