"""AI usage ledger (public.ai_usage)."""

import asyncpg
from datetime import datetime
from uuid import UUID

from models import UsageRecord
from database.converters import usage_to_row
from database.exceptions import IntegrityError


class UsageRepositoryDB:

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def record(self, record: UsageRecord) -> None:
        async with self._pool.acquire() as conn:
            try:
                await conn.execute(
                    """INSERT INTO public.ai_usage
                       (user_id, org_id, action, model, input_tokens, output_tokens,
                        total_tokens, cost_eur_cents, duration_ms, error_type, entity_id)
                       VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)""",
                    *usage_to_row(record),
                )
            except asyncpg.ForeignKeyViolationError as e:
                raise IntegrityError(str(e)) from e

    async def spent_cents_since(self, org_id: str, since: datetime) -> int:
        """Total AI cost recorded for an org since the given instant."""
        async with self._pool.acquire() as conn:
            spent = await conn.fetchval(
                """SELECT COALESCE(SUM(cost_eur_cents), 0) FROM public.ai_usage
                   WHERE org_id = $1 AND created_at >= $2""",
                UUID(org_id), since,
            )
            return int(spent or 0)
