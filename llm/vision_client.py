import asyncio
from typing import Any, Dict, Optional, Protocol

from google import genai
from google.genai import types
from pydantic import BaseModel

from config import DEFAULT_LLM_MODEL, Settings
from models import AiUsage


# --- Contract ---

class VisionResponse(BaseModel):
    text: str = ""
    usage: AiUsage = AiUsage()
    model: str = ""


class VisionModelClient(Protocol):
    """A vision-capable model returning strict JSON.

    Implementors send one system prompt, one user text and one image, and
    return the raw output text plus token usage. Timeouts surface as
    asyncio.TimeoutError.
    """

    model: str

    async def generate_json(
        self,
        *,
        system_prompt: str,
        user_text: str,
        image: bytes,
        mime_type: str,
        schema: Dict[str, Any],
        schema_name: str,
    ) -> VisionResponse:
        ...



# --- Gemini ---

def _create_client(api_key: Optional[str]) -> genai.Client:
    if not api_key:
        raise EnvironmentError(
            "GOOGLE_API_KEY environment variable is not set. "
            "Get an API key at https://aistudio.google.com/apikey"
        )
    return genai.Client(api_key=api_key)


def _usage_from_metadata(metadata: Any) -> AiUsage:
    if metadata is None:
        return AiUsage()
    input_tokens = getattr(metadata, "prompt_token_count", None) or 0
    output_tokens = getattr(metadata, "candidates_token_count", None) or 0
    total_tokens = getattr(metadata, "total_token_count", None) or (input_tokens + output_tokens)
    return AiUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
    )


class GeminiVisionClient:
    """VisionModelClient backed by google-genai's async API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_LLM_MODEL,
        timeout_seconds: float = 120.0,
        max_output_tokens: int = 6500,
        client: Optional[genai.Client] = None,
    ):
        self._client = client or _create_client(api_key)
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiVisionClient":
        return cls(
            api_key=settings.google_api_key,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
            max_output_tokens=settings.max_output_tokens,
        )

    async def generate_json(
        self,
        *,
        system_prompt: str,
        user_text: str,
        image: bytes,
        mime_type: str,
        schema: Dict[str, Any],
        schema_name: str,
    ) -> VisionResponse:
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            response_mime_type="application/json",
            response_json_schema=schema,
            max_output_tokens=self.max_output_tokens,
            http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
        )
        response = await asyncio.wait_for(
            self._client.aio.models.generate_content(
                model=self.model,
                contents=[types.Part.from_bytes(data=image, mime_type=mime_type), user_text],
                config=config,
            ),
            timeout=self.timeout_seconds,
        )
        return VisionResponse(
            text=(response.text or "").strip(),
            usage=_usage_from_metadata(response.usage_metadata),
            model=self.model,
        )
