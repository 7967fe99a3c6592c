from .radar_file_repo import RadarFileRepositoryDB
from .org_repo import OrgRepositoryDB
from .usage_repo import UsageRepositoryDB
from .activity_repo import ActivityRepositoryDB

__all__ = [
    "RadarFileRepositoryDB",
    "OrgRepositoryDB",
    "UsageRepositoryDB",
    "ActivityRepositoryDB",
]
