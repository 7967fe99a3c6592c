"""Monthly AI budget window and check."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from billing.plans import QUOTA_WINDOW_DAYS


def month_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """[start, end) of the calendar month containing now, in UTC."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def quota_window_start(now: Optional[datetime] = None) -> datetime:
    """Start of the rolling extraction-quota window."""
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=QUOTA_WINDOW_DAYS)


def remaining_budget_cents(budget_cents: Optional[int], spent_cents: int) -> Optional[int]:
    """None when the org has no budget configured."""
    if budget_cents is None:
        return None
    return max(0, budget_cents - max(0, spent_cents))


def budget_exhausted(budget_cents: Optional[int], spent_cents: int) -> bool:
    remaining = remaining_budget_cents(budget_cents, spent_cents)
    return remaining is not None and remaining <= 0
