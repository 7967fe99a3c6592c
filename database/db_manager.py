"""Aggregates the async repositories around one connection pool."""

import asyncpg

from database.repositories import (
    ActivityRepositoryDB,
    OrgRepositoryDB,
    RadarFileRepositoryDB,
    UsageRepositoryDB,
)


class DatabaseManager:
    """Single entry point handed to request handlers."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool
        self.radar_files = RadarFileRepositoryDB(pool)
        self.orgs = OrgRepositoryDB(pool)
        self.usage = UsageRepositoryDB(pool)
        self.activity = ActivityRepositoryDB(pool)
