from database.connection import DatabasePool, db
from database.db_manager import DatabaseManager
from database.repositories import (
    ActivityRepositoryDB,
    OrgRepositoryDB,
    RadarFileRepositoryDB,
    UsageRepositoryDB,
)
from database.exceptions import (
    DatabaseError,
    NotFoundError,
    IntegrityError,
    StaleRadarFileError,
)

__all__ = [
    "DatabasePool",
    "db",
    "DatabaseManager",
    "ActivityRepositoryDB",
    "OrgRepositoryDB",
    "RadarFileRepositoryDB",
    "UsageRepositoryDB",
    "DatabaseError",
    "NotFoundError",
    "IntegrityError",
    "StaleRadarFileError",
]
