"""
Pytest Configuration and Shared Fixtures

Provides common fixtures and configuration for all test modules.
"""

import pytest
import structlog

from visibility.config import DEFAULT_MODELS, AnalysisConfig, ApiKeys, Provider


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def api_keys() -> ApiKeys:
    """Credentials for every provider."""
    return ApiKeys(
        gemini="gm-test-key",
        openai="sk-test-key",
        perplexity="pplx-test-key",
        copilot_key="az-test-key",
        copilot_endpoint="https://acme.openai.azure.com/",
    )


@pytest.fixture
def make_config(api_keys):
    """Factory for analysis configs with sensible defaults."""

    def _make(**overrides) -> AnalysisConfig:
        values = {
            "providers": [Provider.OPENAI],
            "client_name": "Acme",
            "competitors": ["Globex", "Initech"],
            "prompts": ["What are the best CRM tools for small businesses?"],
            "additional_questions": [],
            "models": dict(DEFAULT_MODELS),
            "api_keys": api_keys,
            "request_timeout": None,
            "log_level": "INFO",
        }
        values.update(overrides)
        return AnalysisConfig(**values)

    return _make


@pytest.fixture
def config(make_config) -> AnalysisConfig:
    return make_config()


# ============================================================================
# Logging
# ============================================================================

@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test applied."""
    yield
    structlog.reset_defaults()
