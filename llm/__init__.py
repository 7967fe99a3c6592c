from .errors import ExtractionError, LLMResponseError, RadarLLMError, VerificationError
from .prompt_config import (
    SMART2MOVE_GRAPH_OPTIONS,
    ExtractionMode,
    RadarPromptConfig,
    RadarSource,
    get_smart2move_graph_meta,
    is_smart2move_graph_type,
    resolve_radar_prompt_config,
)
from .prompts import BuiltinPromptStore, PromptStore, apply_template
from .radar_extractor import (
    ExtractionCall,
    VerificationOutcome,
    compose_verification_warning,
    run_extraction,
    run_verification,
)
from .vision_client import GeminiVisionClient, VisionModelClient, VisionResponse

__all__ = [
    "ExtractionError",
    "LLMResponseError",
    "RadarLLMError",
    "VerificationError",
    "SMART2MOVE_GRAPH_OPTIONS",
    "ExtractionMode",
    "RadarPromptConfig",
    "RadarSource",
    "get_smart2move_graph_meta",
    "is_smart2move_graph_type",
    "resolve_radar_prompt_config",
    "BuiltinPromptStore",
    "PromptStore",
    "apply_template",
    "ExtractionCall",
    "VerificationOutcome",
    "compose_verification_warning",
    "run_extraction",
    "run_verification",
    "GeminiVisionClient",
    "VisionModelClient",
    "VisionResponse",
]
