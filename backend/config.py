"""
Configuration module for the TrialSight operations core
Manages environment variables, model tiers and provider fallbacks
"""

from dataclasses import dataclass
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file='.env',
        case_sensitive=False,
        extra='ignore'  # Ignore extra fields in .env
    )

    # Application
    app_name: str = "TrialSight"
    debug: bool = False

    # API Keys - Optional, the tier resolver falls back to whatever is configured
    google_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Model tiers
    fast_provider: str = "google"
    fast_model: str = "gemini-2.5-flash-lite"
    deep_provider: str = "google"
    deep_model: str = "gemini-3-pro-preview"

    # Default models used when a tier falls back to another provider
    google_model_default: str = "gemini-2.5-pro"
    openai_model_default: str = "gpt-4o"
    anthropic_model_default: str = "claude-sonnet-4-5"

    # Generation call bounds
    generation_timeout_seconds: float = 60.0
    generation_retry_backoff_seconds: float = 1.0

    # Operations
    default_trial_id: Optional[str] = "trial_1"
    default_assignee: str = "CRA"
    task_due_days: int = 7
    greeting_task_limit: int = 5


# Global settings instance
settings = Settings()


FALLBACK_ORDER = ["google", "openai", "anthropic"]


def _api_key_for(provider: str) -> Optional[str]:
    return {
        "google": settings.google_api_key,
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
    }.get(provider)


def get_available_providers() -> dict[str, str]:
    """
    Check which AI providers are available based on API keys.
    Returns dict mapping provider name to its default model.
    """
    available = {}

    if settings.google_api_key:
        available["google"] = settings.google_model_default

    if settings.openai_api_key:
        available["openai"] = settings.openai_model_default

    if settings.anthropic_api_key:
        available["anthropic"] = settings.anthropic_model_default

    return available


def get_fallback_provider(preferred_provider: str, preferred_model: str) -> tuple[str, str]:
    """
    Get fallback provider if preferred is unavailable.
    Returns (provider_name, model_name).

    Priority chain:
    1. Preferred provider with the tier's own model (if its key is set)
    2. Google
    3. OpenAI
    4. Anthropic
    """
    if _api_key_for(preferred_provider):
        return preferred_provider, preferred_model

    available = get_available_providers()
    for provider in FALLBACK_ORDER:
        if provider in available:
            print(f"[config] {preferred_provider} not available, using {provider} instead")
            return provider, available[provider]

    raise RuntimeError(
        "No AI providers available! Please set at least one API key:\n"
        "  - GOOGLE_API_KEY (recommended)\n"
        "  - OPENAI_API_KEY\n"
        "  - ANTHROPIC_API_KEY"
    )


@dataclass
class TierConfig:
    """Configuration for one model tier with automatic provider fallback"""
    name: str
    ai_provider: str  # Preferred provider
    model: str  # Preferred model
    temperature: float = 0.7
    max_tokens: int = 4000

    def get_active_provider(self) -> tuple[str, str]:
        """Get the actual provider and model to use (with fallback)"""
        return get_fallback_provider(self.ai_provider, self.model)


# Fast tier: greetings, short suggestions, draft emails and replies.
# Deep tier: multi-turn chat and schema-constrained extraction.
TIER_CONFIGS = {
    "fast": TierConfig(
        name="fast",
        ai_provider=settings.fast_provider, model=settings.fast_model,
        temperature=0.7, max_tokens=1024,
    ),
    "deep": TierConfig(
        name="deep",
        ai_provider=settings.deep_provider, model=settings.deep_model,
        temperature=0.4, max_tokens=8192,
    ),
}


def get_ai_client(provider: str, model: str):
    """
    Get AI client and model for a given provider.
    Returns (provider_name, client, model_name) after fallback resolution.
    """
    actual_provider, actual_model = get_fallback_provider(provider, model)

    if actual_provider == "anthropic":
        import anthropic
        client = anthropic.Anthropic(api_key=settings.anthropic_api_key)
        return actual_provider, client, actual_model

    elif actual_provider == "openai":
        from openai import OpenAI
        client = OpenAI(api_key=settings.openai_api_key)
        return actual_provider, client, actual_model

    elif actual_provider == "google":
        import google.generativeai as genai
        genai.configure(api_key=settings.google_api_key)
        return actual_provider, genai, actual_model

    else:
        raise ValueError(f"Unknown provider: {actual_provider}")


def print_provider_status():
    """Print which AI providers are available"""
    available = get_available_providers()

    print("\n" + "="*60)
    print("AI Provider Status:")
    print("="*60)

    providers = [
        ("Google", "google", settings.google_api_key),
        ("OpenAI", "openai", settings.openai_api_key),
        ("Anthropic", "anthropic", settings.anthropic_api_key),
    ]

    for name, key, api_key in providers:
        if api_key:
            print(f"[ok]   {name:10} - Available ({available.get(key, 'N/A')})")
        else:
            print(f"[--]   {name:10} - Not configured (will fallback)")

    for tier in TIER_CONFIGS.values():
        print(f"       tier {tier.name:5} -> {tier.ai_provider}/{tier.model}")

    print("="*60)

    if not available:
        print("\nERROR: No AI providers configured!")
        print("   Please add GOOGLE_API_KEY (or OPENAI_API_KEY / ANTHROPIC_API_KEY) to .env")
        print("="*60 + "\n")
    else:
        print(f"\n{len(available)} provider(s) available - System ready!")
        print("="*60 + "\n")
