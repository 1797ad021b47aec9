"""
OpenAI Provider
===============

Chat completions against the OpenAI API with JSON mode for the brand
analysis stage.

Required environment variables:
- OPENAI_API_KEY

Documentation: https://platform.openai.com/docs/api-reference/chat
"""

from .chat import ChatCompletionsProvider
from ..config import AnalysisConfig, Provider
from .base import require


class OpenAIProvider(ChatCompletionsProvider):
    """Provider for the OpenAI chat completions API"""

    provider = Provider.OPENAI
    API_URL = "https://api.openai.com/v1/chat/completions"

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "OpenAIProvider":
        return cls(
            api_key=require(config.api_keys.openai, "OpenAI API key is missing"),
            model=require(config.model_for(Provider.OPENAI), "OpenAI model is missing"),
            request_timeout=config.request_timeout,
        )
