class DatabaseError(Exception):
    """Base for all database errors."""


class NotFoundError(DatabaseError):
    """Entity not found."""


class IntegrityError(DatabaseError):
    """Foreign key or check constraint violation."""


class StaleRadarFileError(DatabaseError):
    """Radar file was re-extracted by another request since it was read."""
