from .settings import DEFAULT_LLM_MODEL, Settings, get_settings

__all__ = ["DEFAULT_LLM_MODEL", "Settings", "get_settings"]
