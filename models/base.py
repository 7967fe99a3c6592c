from pydantic import BaseModel, ConfigDict


class BaseRadarModel(BaseModel):
    """Shared configuration: assignments are re-validated."""
    model_config = ConfigDict(validate_assignment=True)
