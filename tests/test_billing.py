from datetime import datetime, timedelta, timezone

import pytest

from billing.budget import budget_exhausted, month_window, quota_window_start, remaining_budget_cents
from billing.plans import (
    can_extract_radar,
    get_plan_entitlements,
    quota_exceeded,
    radar_quota,
    resolve_plan_tier,
)
from billing.pricing import (
    DEFAULT_PRICING,
    compute_cost_eur,
    compute_cost_eur_cents,
    get_model_pricing,
    resolve_usage_tokens,
)


# ================================================================
# Plans
# ================================================================

@pytest.mark.parametrize("value,expected", [
    ("pro", "pro"),
    (" Enterprise ", "enterprise"),
    ("standard", "pro"),
    ("premium", "pro"),
    ("entreprise", "enterprise"),
    ("gold", "free"),
    (None, "free"),
])
def test_resolve_plan_tier(value, expected):
    assert resolve_plan_tier(value) == expected


def test_free_plan_needs_addon():
    assert not can_extract_radar("free")
    assert can_extract_radar("free", radar_enabled=True)
    assert can_extract_radar("free", is_admin=True)
    assert can_extract_radar("pro")
    assert get_plan_entitlements(None).tier == "free"


def test_radar_quota():
    assert radar_quota("pro") == 100
    assert radar_quota("standard") == 100
    assert radar_quota("enterprise") is None
    assert radar_quota("pro", is_admin=True) is None


def test_quota_exceeded():
    assert not quota_exceeded(99, 100)
    assert quota_exceeded(100, 100)
    assert not quota_exceeded(10_000, None)


# ================================================================
# Pricing
# ================================================================

def test_model_pricing_falls_back_to_default():
    assert get_model_pricing("gemini-2.5-flash") == {"input": 0.28, "output": 2.30}
    assert get_model_pricing("unknown-model") == DEFAULT_PRICING
    assert get_model_pricing(None) == DEFAULT_PRICING


def test_resolve_usage_tokens():
    assert resolve_usage_tokens(120, 30, 150) == (120, 30)
    assert resolve_usage_tokens(0, 0, 151) == (75, 76)
    assert resolve_usage_tokens(0, 0, 0) == (0, 0)
    assert resolve_usage_tokens(-5, 10, 0) == (0, 10)


def test_compute_cost():
    assert compute_cost_eur(1_000_000, 0, "gemini-2.5-flash") == pytest.approx(0.28)
    assert compute_cost_eur_cents(1_000_000, 0, "gemini-2.5-flash") == 28
    # 0.115 + 0.184 EUR
    assert compute_cost_eur_cents(100_000, 20_000, "gemini-2.5-pro") == 30
    assert compute_cost_eur_cents(0, 0) == 0
    assert compute_cost_eur_cents(-100, -100) == 0


# ================================================================
# Budget
# ================================================================

def test_month_window():
    start, end = month_window(datetime(2026, 10, 18, 15, 30, tzinfo=timezone.utc))
    assert start == datetime(2026, 10, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 11, 1, tzinfo=timezone.utc)


def test_month_window_december_rollover():
    start, end = month_window(datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc))
    assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2027, 1, 1, tzinfo=timezone.utc)


def test_month_window_converts_to_utc():
    paris = timezone(timedelta(hours=2))
    start, _ = month_window(datetime(2026, 11, 1, 1, 0, tzinfo=paris))
    assert start == datetime(2026, 10, 1, tzinfo=timezone.utc)


def test_quota_window_start():
    now = datetime(2026, 10, 18, tzinfo=timezone.utc)
    assert quota_window_start(now) == datetime(2026, 9, 18, tzinfo=timezone.utc)


def test_budget():
    assert remaining_budget_cents(None, 500) is None
    assert remaining_budget_cents(1000, 250) == 750
    assert remaining_budget_cents(1000, 2500) == 0
    assert not budget_exhausted(None, 10_000)
    assert not budget_exhausted(1000, 999)
    assert budget_exhausted(1000, 1000)
    assert budget_exhausted(0, 0)
