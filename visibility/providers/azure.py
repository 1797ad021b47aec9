"""
Copilot / Azure OpenAI Provider
===============================

Chat completions against an Azure OpenAI deployment. The model is chosen
by the deployment name in the URL rather than in the request body.

Required environment variables:
- AZURE_OPENAI_API_KEY
- AZURE_OPENAI_ENDPOINT (e.g. https://my-resource.openai.azure.com)

Documentation: https://learn.microsoft.com/azure/ai-services/openai/reference
"""

from typing import Optional

from .base import require
from .chat import ChatCompletionsProvider
from ..config import AnalysisConfig, Provider


class AzureOpenAIProvider(ChatCompletionsProvider):
    """Provider for Azure OpenAI deployments (Copilot / Azure)"""

    provider = Provider.COPILOT
    API_VERSION = "2024-02-01"

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        deployment: str,
        request_timeout: Optional[float] = None,
    ):
        super().__init__(api_key=api_key, model=deployment, request_timeout=request_timeout)
        self.endpoint = endpoint.rstrip("/") if endpoint else endpoint

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "AzureOpenAIProvider":
        keys = config.api_keys
        return cls(
            api_key=require(keys.copilot_key, "Copilot / Azure API key is missing"),
            endpoint=require(keys.copilot_endpoint, "Copilot / Azure endpoint is missing"),
            deployment=require(
                config.model_for(Provider.COPILOT), "Copilot / Azure deployment name is missing"
            ),
            request_timeout=config.request_timeout,
        )

    @property
    def deployment(self) -> str:
        return self.model

    def check_credentials(self):
        super().check_credentials()
        require(self.endpoint, "Copilot / Azure endpoint is missing")

    def _get_headers(self) -> dict:
        return {
            "api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _chat_url(self) -> str:
        return (
            f"{self.endpoint}/openai/deployments/{self.deployment}"
            f"/chat/completions?api-version={self.API_VERSION}"
        )

    def _chat_payload(self, content: str, **options) -> dict:
        return {
            "messages": [{"role": "user", "content": content}],
            **options,
        }
