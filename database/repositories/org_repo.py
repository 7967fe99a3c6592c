"""Organization membership, settings and coaching context lookups."""

import asyncpg
from typing import Any, Dict, Optional
from uuid import UUID

from database.converters import org_settings_from_row, tpi_context_from_rows


class OrgRepositoryDB:
    """Async reads across profiles, organizations, students and tpi_tests."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def get_profile_org_id(self, user_id: str) -> Optional[str]:
        """The org a user's profile belongs to, or None."""
        async with self._pool.acquire() as conn:
            org_id = await conn.fetchval(
                "SELECT org_id FROM public.profiles WHERE id = $1", UUID(user_id)
            )
            return str(org_id) if org_id is not None else None

    async def get_org_settings(self, org_id: str) -> Optional[Dict[str, Any]]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """SELECT id, locale, radar_enabled, plan_tier, ai_budget_cents
                   FROM public.organizations WHERE id = $1""",
                UUID(org_id),
            )
            return org_settings_from_row(row) if row else None

    async def get_tpi_context(self, student_id: Optional[str]) -> Optional[str]:
        """Summary lines of the student's latest TPI report, if any."""
        if not student_id:
            return None
        async with self._pool.acquire() as conn:
            report_id = await conn.fetchval(
                "SELECT tpi_report_id FROM public.students WHERE id = $1",
                UUID(student_id),
            )
            if report_id is None:
                return None
            rows = await conn.fetch(
                """SELECT test_name, result_color, mini_summary
                   FROM public.tpi_tests
                   WHERE report_id = $1
                   ORDER BY position""",
                report_id,
            )
            return tpi_context_from_rows(rows)
