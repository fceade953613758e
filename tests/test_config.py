"""
Provider resolution for the model tiers.
"""

import pytest

from backend import config
from backend.config import TIER_CONFIGS, get_available_providers, get_fallback_provider


@pytest.fixture
def no_keys(monkeypatch):
    for name in ("google_api_key", "openai_api_key", "anthropic_api_key"):
        monkeypatch.setattr(config.settings, name, None)


class TestFallback:
    def test_preferred_provider_with_key(self, no_keys, monkeypatch):
        monkeypatch.setattr(config.settings, "google_api_key", "g-key")
        assert get_fallback_provider("google", "gemini-3-pro-preview") == ("google", "gemini-3-pro-preview")

    def test_falls_back_to_configured_provider(self, no_keys, monkeypatch):
        monkeypatch.setattr(config.settings, "anthropic_api_key", "a-key")
        provider, model = get_fallback_provider("google", "gemini-2.5-flash-lite")
        assert provider == "anthropic"
        assert model == config.settings.anthropic_model_default

    def test_no_keys(self, no_keys):
        assert get_available_providers() == {}
        with pytest.raises(RuntimeError):
            TIER_CONFIGS["deep"].get_active_provider()


class TestTiers:
    def test_both_tiers_defined(self):
        assert set(TIER_CONFIGS) == {"fast", "deep"}
        assert TIER_CONFIGS["fast"].max_tokens < TIER_CONFIGS["deep"].max_tokens
