"""
Perplexity Provider
===================

Perplexity speaks the OpenAI chat format but has no JSON mode, so the
brand analysis is requested inside a ```json fenced block and pulled out
of the free-text reply.

Required environment variables:
- PERPLEXITY_API_KEY

Documentation: https://docs.perplexity.ai/api-reference/chat-completions
"""

from .base import require
from .chat import ChatCompletionsProvider
from ..config import AnalysisConfig, Provider
from ..models import BrandAnalysis
from ..parsing import extract_fenced_json, parse_brand_object
from ..prompts import FENCED_JSON_FORMAT, build_analysis_prompt


class PerplexityProvider(ChatCompletionsProvider):
    """Provider for the Perplexity chat completions API"""

    provider = Provider.PERPLEXITY
    API_URL = "https://api.perplexity.ai/chat/completions"

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "PerplexityProvider":
        return cls(
            api_key=require(config.api_keys.perplexity, "Perplexity API key is missing"),
            model=require(config.model_for(Provider.PERPLEXITY), "Perplexity model is missing"),
            request_timeout=config.request_timeout,
        )

    async def extract_brands(self, text: str, brands: list[str]) -> list[BrandAnalysis]:
        prompt = build_analysis_prompt(text, brands, FENCED_JSON_FORMAT)
        reply = await self._chat(prompt)
        return parse_brand_object(extract_fenced_json(reply))
