"""
AI provider detection.

Decides from settings whether the analysis pipeline can run. Each known flag
maps an environment variable name to its Settings attribute; a flag counts
as present when its value is non-empty.
"""

from typing import Dict, List

from src.core.config import Settings

# Environment variable -> Settings attribute
PROVIDER_FLAGS: Dict[str, str] = {
    "GROQ_API_KEY": "groq_api_key",
    "PERPLEXITY_API_KEY": "perplexity_api_key",
    "OPENAI_API_KEY": "openai_api_key",
    "TIGER_DATABASE_URL": "tiger_database_url",
}


def detect_providers(settings: Settings) -> Dict[str, bool]:
    """Return presence of every known provider flag, keyed by env var name."""
    return {
        env_var: bool(getattr(settings, attr, None))
        for env_var, attr in PROVIDER_FLAGS.items()
    }


def has_usable_provider(settings: Settings) -> bool:
    """True if at least one provider flag is set."""
    return any(detect_providers(settings).values())


def missing_providers(settings: Settings) -> List[str]:
    """Env var names of the provider flags that are not set."""
    return [name for name, present in detect_providers(settings).items() if not present]
