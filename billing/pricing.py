"""AI cost accounting in euro cents."""

from typing import Dict, Optional, Tuple

from config import DEFAULT_LLM_MODEL

# EUR per million tokens.
AI_MODEL_PRICING_EUR_PER_M_TOKEN: Dict[str, Dict[str, float]] = {
    "gemini-3-pro-preview": {"input": 1.84, "output": 11.04},
    "gemini-2.5-pro": {"input": 1.15, "output": 9.20},
    "gemini-2.5-flash": {"input": 0.28, "output": 2.30},
    "gpt-5.2": {"input": 1.61, "output": 12.88},
}

DEFAULT_PRICING = AI_MODEL_PRICING_EUR_PER_M_TOKEN[DEFAULT_LLM_MODEL]


def get_model_pricing(model: Optional[str]) -> Dict[str, float]:
    if not model:
        return DEFAULT_PRICING
    return AI_MODEL_PRICING_EUR_PER_M_TOKEN.get(model, DEFAULT_PRICING)


def resolve_usage_tokens(input_tokens: int, output_tokens: int, total_tokens: int) -> Tuple[int, int]:
    """(input, output); a provider that only reports a total gets it split in half."""
    if input_tokens > 0 or output_tokens > 0:
        return max(0, input_tokens), max(0, output_tokens)
    half = max(0, total_tokens) // 2
    return half, max(0, total_tokens - half)


def compute_cost_eur(input_tokens: int, output_tokens: int, model: Optional[str] = None) -> float:
    pricing = get_model_pricing(model)
    return (
        max(0, input_tokens) / 1_000_000 * pricing["input"]
        + max(0, output_tokens) / 1_000_000 * pricing["output"]
    )


def compute_cost_eur_cents(input_tokens: int, output_tokens: int, model: Optional[str] = None) -> int:
    return max(0, round(compute_cost_eur(input_tokens, output_tokens, model) * 100))
