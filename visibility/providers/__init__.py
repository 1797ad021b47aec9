"""
LLM Providers
=============

One adapter per supported provider, all sharing the BaseProvider contract:
- Google Gemini
- OpenAI
- Perplexity
- Copilot / Azure OpenAI
"""

from typing import assert_never

from .azure import AzureOpenAIProvider
from .base import BaseProvider
from .gemini import GeminiProvider
from .openai import OpenAIProvider
from .perplexity import PerplexityProvider
from ..config import AnalysisConfig, Provider


def create_provider(provider: Provider, config: AnalysisConfig) -> BaseProvider:
    """Bind the adapter for `provider` from the analysis configuration.

    Raises:
        ConfigurationError: If the provider's credentials or model are missing
    """
    if provider is Provider.GEMINI:
        return GeminiProvider.from_config(config)
    elif provider is Provider.OPENAI:
        return OpenAIProvider.from_config(config)
    elif provider is Provider.PERPLEXITY:
        return PerplexityProvider.from_config(config)
    elif provider is Provider.COPILOT:
        return AzureOpenAIProvider.from_config(config)
    else:
        assert_never(provider)


__all__ = [
    "BaseProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "PerplexityProvider",
    "AzureOpenAIProvider",
    "create_provider",
]
