"""
Google Gemini Provider
======================

Calls the Gemini `generateContent` REST endpoint. The brand analysis stage
uses Gemini's native structured output: the reply is constrained to a JSON
array matching BRAND_ANALYSIS_SCHEMA.

Required environment variables:
- GEMINI_API_KEY

Documentation: https://ai.google.dev/api/generate-content
"""

from typing import Any, Optional

from .base import BaseProvider, require
from ..config import AnalysisConfig, Provider
from ..exceptions import ResponseParseError
from ..models import BrandAnalysis, Sentiment
from ..parsing import parse_brand_array
from ..prompts import SCHEMA_FORMAT, build_analysis_prompt

BRAND_ANALYSIS_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "brandName": {"type": "STRING"},
            "mentions": {"type": "INTEGER"},
            "sentiment": {"type": "STRING", "enum": [s.value for s in Sentiment]},
        },
        "required": ["brandName", "mentions", "sentiment"],
    },
}


def candidate_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        candidates = data.get("candidates") or []
    except AttributeError as e:
        raise ResponseParseError("Gemini reply was not a JSON object") from e

    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason")
        if reason:
            raise ResponseParseError(f"Gemini returned no candidates (blocked: {reason})")
        raise ResponseParseError("Gemini returned no candidates")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class GeminiProvider(BaseProvider):
    """Provider for the Google Gemini API"""

    provider = Provider.GEMINI
    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "GeminiProvider":
        return cls(
            api_key=require(config.api_keys.gemini, "Google Gemini API key is missing"),
            model=require(config.model_for(Provider.GEMINI), "Google Gemini model is missing"),
            request_timeout=config.request_timeout,
        )

    def _get_headers(self) -> dict:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    async def _generate(self, content: str, generation_config: Optional[dict] = None) -> str:
        payload = {"contents": [{"role": "user", "parts": [{"text": content}]}]}
        if generation_config:
            payload["generationConfig"] = generation_config

        data = await self._post_json(
            f"{self.BASE_URL}/models/{self.model}:generateContent",
            payload,
        )
        return candidate_text(data)

    async def complete(self, prompt: str) -> str:
        return await self._generate(prompt)

    async def extract_brands(self, text: str, brands: list[str]) -> list[BrandAnalysis]:
        prompt = build_analysis_prompt(text, brands, SCHEMA_FORMAT)
        reply = await self._generate(
            prompt,
            generation_config={
                "responseMimeType": "application/json",
                "responseSchema": BRAND_ANALYSIS_SCHEMA,
            },
        )
        return parse_brand_array(reply)
