from typing import Optional

from models import AiUsage


class RadarLLMError(Exception):
    """Base error for model calls; carries whatever usage the call reported."""

    def __init__(self, message: str, usage: Optional[AiUsage] = None, duration_ms: int = 0):
        super().__init__(message)
        self.message = message
        self.usage = usage or AiUsage()
        self.duration_ms = duration_ms


class LLMResponseError(RadarLLMError):
    """Provider returned nothing usable (empty text, bad JSON, schema violation)."""
    pass


class ExtractionError(RadarLLMError):
    """Fatal failure of the extraction call."""
    pass


class VerificationError(RadarLLMError):
    """Verification call failed; callers downgrade this to a warning."""
    pass
