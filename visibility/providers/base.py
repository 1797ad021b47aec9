"""
Base provider class for all LLM integrations
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional
import aiohttp
import structlog

from ..config import AnalysisConfig, Provider
from ..exceptions import ConfigurationError, ProviderAPIError, ResponseParseError
from ..models import AdditionalQuestionAnswer, BrandAnalysis, ProviderResponse
from ..prompts import build_question_prompt

logger = structlog.get_logger(__name__)


def require(value: Optional[str], message: str) -> str:
    """Return `value` or raise ConfigurationError with `message` if it is blank."""
    if not value or not value.strip():
        raise ConfigurationError(message)
    return value.strip()


async def api_error_message(response: aiohttp.ClientResponse) -> str:
    """Build an error message from a non-2xx reply, preferring error.message from the body."""
    detail = None
    try:
        data = await response.json(content_type=None)
    except (aiohttp.ClientError, ValueError):
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            detail = error.get("message")
        elif isinstance(error, str):
            detail = error

    return f"API Error ({response.status}): {detail or response.reason or 'Unknown error'}"


class BaseProvider(ABC):
    """Base class for all LLM providers.

    A provider runs the three-stage chain for one prompt: raw completion,
    structured brand extraction, then auxiliary question answering. Stage
    failures come back as an error-shaped ProviderResponse, never as an
    exception.
    """

    provider: Provider

    def __init__(self, api_key: str, model: str, request_timeout: Optional[float] = None):
        self.api_key = api_key
        self.model = model
        self.request_timeout = request_timeout
        self.logger = logger.bind(provider=self.provider.value, model=model)

    @classmethod
    @abstractmethod
    def from_config(cls, config: AnalysisConfig) -> "BaseProvider":
        """Bind credentials and model from the analysis configuration.

        Raises:
            ConfigurationError: If a required credential or model is missing
        """
        pass

    @property
    def display_name(self) -> str:
        return self.provider.display_name

    @abstractmethod
    def _get_headers(self) -> dict:
        """Get headers for API requests"""
        pass

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send `prompt` as a single user message and return the reply text"""
        pass

    @abstractmethod
    async def extract_brands(self, text: str, brands: list[str]) -> list[BrandAnalysis]:
        """Ask the provider for the brand analysis of `text`"""
        pass

    def check_credentials(self):
        require(self.api_key, f"{self.display_name} API key is missing")
        require(self.model, f"{self.display_name} model is missing")

    async def answer_questions(
        self,
        text: str,
        questions: list[str]
    ) -> list[AdditionalQuestionAnswer]:
        """Answer every question from `text` alone, concurrently.

        Answers keep the order of `questions`. Any failing question fails
        the whole call.
        """
        answers = await asyncio.gather(
            *(self.complete(build_question_prompt(text, question)) for question in questions)
        )
        return [
            AdditionalQuestionAnswer(question=question, answer=answer or "")
            for question, answer in zip(questions, answers)
        ]

    async def execute_for_prompt(self, prompt: str, config: AnalysisConfig) -> ProviderResponse:
        """Run the full request chain for one prompt.

        Raises:
            ConfigurationError: If credentials are missing (checked before any call)
        """
        self.check_credentials()

        try:
            self.logger.info("provider_analysis_started", prompt_preview=prompt[:40])

            response = await self.complete(prompt)
            if not response.strip():
                raise ResponseParseError(f"{self.display_name} returned an empty reply")

            brand_analyses = await self.extract_brands(response, config.all_brands)

            additional_answers = []
            if config.additional_questions:
                additional_answers = await self.answer_questions(
                    response, config.additional_questions
                )

        except Exception as e:
            error = str(e) or f"An unknown {self.display_name} error occurred."
            self.logger.error(
                "provider_analysis_failed",
                error=error,
                error_type=type(e).__name__,
            )
            return ProviderResponse.failure(self.provider, error)

        self.logger.info(
            "provider_analysis_completed",
            brands=len(brand_analyses),
            answers=len(additional_answers),
        )
        return ProviderResponse(
            provider=self.provider,
            response=response,
            brand_analyses=brand_analyses,
            additional_answers=additional_answers,
        )

    async def _post_json(self, url: str, payload: dict) -> Any:
        """POST `payload` and return the decoded JSON reply.

        Raises:
            ProviderAPIError: On network failure or a non-2xx status
        """
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, headers=self._get_headers(), json=payload) as response:
                    if not 200 <= response.status < 300:
                        message = await api_error_message(response)
                        self.logger.error("provider_api_error", status=response.status, error=message)
                        raise ProviderAPIError(message, status=response.status)

                    return await response.json(content_type=None)

        except asyncio.TimeoutError as e:
            raise ProviderAPIError(f"{self.display_name} request timed out") from e
        except aiohttp.ClientError as e:
            raise ProviderAPIError(f"{self.display_name} request failed: {e}") from e
