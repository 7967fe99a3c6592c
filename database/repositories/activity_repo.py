"""Append-only activity log (public.app_activity_logs)."""

import asyncpg

from models import ActivityEvent
from database.converters import activity_to_row
from utils.logging import get_logger

logger = get_logger(__name__)


class ActivityRepositoryDB:
    """Audit sink. A failed write is logged and never reaches the caller."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def log(self, event: ActivityEvent) -> bool:
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    """INSERT INTO public.app_activity_logs
                       (level, action, source, actor_user_id, org_id,
                        entity_type, entity_id, message, metadata)
                       VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)""",
                    *activity_to_row(event),
                )
            return True
        except (asyncpg.PostgresError, OSError, ValueError) as e:
            logger.warning("activity_log_failed", action=event.action, error=str(e))
            return False
