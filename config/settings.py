"""Environment-driven settings for the radar extraction service."""

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


DEFAULT_LLM_MODEL = "gemini-3-pro-preview"


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Runtime configuration, read once from the environment."""
    database_url: Optional[str] = None

    google_api_key: Optional[str] = None
    llm_model: str = DEFAULT_LLM_MODEL
    llm_timeout_seconds: float = Field(120.0, gt=0)
    max_output_tokens: int = Field(6500, gt=0)

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    storage_bucket: str = "radar-files"

    admin_emails: List[str] = Field(default_factory=list)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL"),
            google_api_key=os.environ.get("GOOGLE_API_KEY"),
            llm_model=os.environ.get("RADAR_LLM_MODEL", DEFAULT_LLM_MODEL),
            llm_timeout_seconds=float(os.environ.get("RADAR_LLM_TIMEOUT_SECONDS", "120")),
            max_output_tokens=int(os.environ.get("RADAR_MAX_OUTPUT_TOKENS", "6500")),
            supabase_url=os.environ.get("SUPABASE_URL"),
            supabase_anon_key=os.environ.get("SUPABASE_ANON_KEY"),
            supabase_service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY"),
            storage_bucket=os.environ.get("RADAR_STORAGE_BUCKET", "radar-files"),
            admin_emails=[e.lower() for e in _split_csv(os.environ.get("ADMIN_EMAILS"))],
            cors_origins=_split_csv(os.environ.get("CORS_ORIGINS")) or ["http://localhost:3000"],
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_format=os.environ.get("LOG_FORMAT", "console"),
        )

    def is_admin(self, email: Optional[str]) -> bool:
        return bool(email) and email.lower() in self.admin_emails


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings.from_env()
