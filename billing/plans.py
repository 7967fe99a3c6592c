"""Plan tiers and what they entitle an organization to."""

from typing import Dict, Optional

from pydantic import BaseModel

PLAN_TIERS = ("free", "pro", "enterprise")
DEFAULT_PLAN_TIER = "free"
QUOTA_WINDOW_DAYS = 30

# Older orgs still carry pre-rename tier names.
_LEGACY_TIERS = {"standard": "pro", "premium": "pro", "entreprise": "enterprise"}


class PlanEntitlements(BaseModel):
    tier: str
    label: str
    data_extract_enabled: bool
    data_extracts_per_30d: Optional[int] = None   # None = unlimited


PLAN_ENTITLEMENTS: Dict[str, PlanEntitlements] = {
    "free": PlanEntitlements(
        tier="free", label="Free", data_extract_enabled=False,
    ),
    "pro": PlanEntitlements(
        tier="pro", label="Pro", data_extract_enabled=True, data_extracts_per_30d=100,
    ),
    "enterprise": PlanEntitlements(
        tier="enterprise", label="Entreprise", data_extract_enabled=True,
    ),
}


def resolve_plan_tier(value: Optional[str]) -> str:
    tier = (value or "").strip().lower()
    tier = _LEGACY_TIERS.get(tier, tier)
    return tier if tier in PLAN_TIERS else DEFAULT_PLAN_TIER


def get_plan_entitlements(tier: Optional[str]) -> PlanEntitlements:
    return PLAN_ENTITLEMENTS[resolve_plan_tier(tier)]


def can_extract_radar(tier: Optional[str], *, radar_enabled: bool = False, is_admin: bool = False) -> bool:
    """Admins, orgs with the Datas add-on, and plans that include it."""
    return is_admin or radar_enabled or get_plan_entitlements(tier).data_extract_enabled


def radar_quota(tier: Optional[str], *, is_admin: bool = False) -> Optional[int]:
    """Extractions allowed per rolling window; None means unlimited."""
    if is_admin:
        return None
    return get_plan_entitlements(tier).data_extracts_per_30d


def quota_exceeded(used: int, quota: Optional[int]) -> bool:
    return quota is not None and used >= quota
