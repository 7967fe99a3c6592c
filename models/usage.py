from enum import Enum
from pydantic import Field
from typing import Any, Dict, Optional

from .base import BaseRadarModel


class AiUsage(BaseRadarModel):
    """Token counts reported by the provider for one or more calls."""
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    total_tokens: int = Field(0, ge=0)

    def merge(self, other: Optional["AiUsage"]) -> "AiUsage":
        if other is None:
            return self
        return AiUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    @property
    def is_empty(self) -> bool:
        return self.total_tokens == 0 and self.input_tokens == 0 and self.output_tokens == 0


class UsageRecord(BaseRadarModel):
    """One row of the ai_usage ledger."""
    user_id: str
    org_id: str
    action: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_eur_cents: int = 0
    duration_ms: int = 0
    error_type: Optional[str] = None
    entity_id: Optional[str] = None


class ActivityLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ActivityEvent(BaseRadarModel):
    """Append-only audit entry (app_activity_logs)."""
    action: str
    level: ActivityLevel = ActivityLevel.INFO
    source: str = "api"
    actor_user_id: Optional[str] = None
    org_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
