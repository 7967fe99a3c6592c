from .plans import (
    PLAN_ENTITLEMENTS,
    PlanEntitlements,
    can_extract_radar,
    get_plan_entitlements,
    quota_exceeded,
    radar_quota,
    resolve_plan_tier,
)
from .pricing import compute_cost_eur_cents, resolve_usage_tokens
from .budget import budget_exhausted, month_window, quota_window_start, remaining_budget_cents

__all__ = [
    "PLAN_ENTITLEMENTS",
    "PlanEntitlements",
    "can_extract_radar",
    "get_plan_entitlements",
    "quota_exceeded",
    "radar_quota",
    "resolve_plan_tier",
    "compute_cost_eur_cents",
    "resolve_usage_tokens",
    "budget_exhausted",
    "month_window",
    "quota_window_start",
    "remaining_budget_cents",
]
