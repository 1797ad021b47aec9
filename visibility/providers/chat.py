"""
OpenAI-compatible chat completions
==================================

Shared request/response handling for providers that speak the
`/chat/completions` format (OpenAI, Perplexity, Azure OpenAI).
"""

from typing import Any

from .base import BaseProvider
from ..exceptions import ResponseParseError
from ..models import BrandAnalysis
from ..parsing import parse_brand_object
from ..prompts import JSON_OBJECT_FORMAT, build_analysis_prompt


def message_content(data: Any) -> str:
    """Extract choices[0].message.content from a chat completions reply."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ResponseParseError("Chat completion reply had no message content") from e

    if content is None:
        return ""
    if not isinstance(content, str):
        raise ResponseParseError("Chat completion message content was not text")
    return content


class ChatCompletionsProvider(BaseProvider):
    """Base for providers with an OpenAI-compatible chat endpoint"""

    API_URL: str

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _chat_url(self) -> str:
        return self.API_URL

    def _chat_payload(self, content: str, **options) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": content}],
            **options,
        }

    async def _chat(self, content: str, **options) -> str:
        data = await self._post_json(self._chat_url(), self._chat_payload(content, **options))
        return message_content(data)

    async def complete(self, prompt: str) -> str:
        return await self._chat(prompt)

    async def extract_brands(self, text: str, brands: list[str]) -> list[BrandAnalysis]:
        """JSON mode: the whole reply is a {"brands": [...]} object"""
        prompt = build_analysis_prompt(text, brands, JSON_OBJECT_FORMAT)
        reply = await self._chat(prompt, response_format={"type": "json_object"})
        return parse_brand_object(reply)
