"""Reads and the single extraction write for radar_files."""

import asyncpg
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from models import RadarFile, RadarStatus
from database.converters import radar_file_from_row, radar_update_to_row
from database.exceptions import NotFoundError, StaleRadarFileError


class RadarFileRepositoryDB:
    """Async access to public.radar_files."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    # ================================================================
    # Read
    # ================================================================

    async def get_radar_file(self, radar_file_id: str) -> Optional[RadarFile]:
        """Get a radar file by id; malformed ids read as missing."""
        try:
            file_uuid = UUID(radar_file_id)
        except (TypeError, ValueError):
            return None
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM public.radar_files WHERE id = $1", file_uuid
            )
            return radar_file_from_row(row) if row else None

    async def count_recent_extractions(self, org_id: str, since: datetime) -> int:
        """Extractions completed by an org since the given instant."""
        async with self._pool.acquire() as conn:
            count = await conn.fetchval(
                """SELECT COUNT(*) FROM public.radar_files
                   WHERE org_id = $1 AND extracted_at >= $2""",
                UUID(org_id), since,
            )
            return int(count or 0)

    # ================================================================
    # Update
    # ================================================================

    async def apply_update(
        self,
        radar_file_id: str,
        payload: Dict[str, Any],
        expected_extracted_at: Optional[datetime],
    ) -> None:
        """Write an extraction result.

        The update only lands when extracted_at still holds the value read
        before the pipeline ran; otherwise StaleRadarFileError.
        """
        names, values = radar_update_to_row(payload)
        if not names:
            return
        set_clause = ", ".join(f"{k} = ${i+2}" for i, k in enumerate(names))
        guard = len(names) + 2

        async with self._pool.acquire() as conn:
            result = await conn.execute(
                f"""UPDATE public.radar_files SET {set_clause}
                    WHERE id = $1 AND extracted_at IS NOT DISTINCT FROM ${guard}""",
                UUID(radar_file_id), *values, expected_extracted_at,
            )
            if result == "UPDATE 0":
                exists = await conn.fetchval(
                    "SELECT 1 FROM public.radar_files WHERE id = $1",
                    UUID(radar_file_id),
                )
                if not exists:
                    raise NotFoundError(f"Radar file {radar_file_id} not found")
                raise StaleRadarFileError(
                    f"Radar file {radar_file_id} changed during extraction"
                )

    async def mark_error(self, radar_file_id: str, message: str) -> None:
        """Set status=error with a message. Unconditional."""
        async with self._pool.acquire() as conn:
            await conn.execute(
                """UPDATE public.radar_files SET status = $2, error = $3
                   WHERE id = $1""",
                UUID(radar_file_id), RadarStatus.ERROR.value, message,
            )
