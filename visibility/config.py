"""
Analysis Configuration
======================

Configuration for a brand visibility analysis run.
Provider credentials are read from environment variables or .env file;
the analysis itself (brands, prompts, questions) comes from a JSON file.

Required environment variables (per selected provider):
- GEMINI_API_KEY
- OPENAI_API_KEY
- PERPLEXITY_API_KEY
- AZURE_OPENAI_API_KEY and AZURE_OPENAI_ENDPOINT (Copilot / Azure)
"""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union
from dotenv import load_dotenv
import structlog

from .exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

load_dotenv()


class Provider(str, Enum):
    """Supported LLM providers"""
    GEMINI = "gemini"
    OPENAI = "openai"
    PERPLEXITY = "perplexity"
    COPILOT = "copilot"

    @property
    def display_name(self) -> str:
        return PROVIDER_NAMES[self]


PROVIDER_NAMES = {
    Provider.GEMINI: "Google Gemini",
    Provider.OPENAI: "OpenAI",
    Provider.PERPLEXITY: "Perplexity",
    Provider.COPILOT: "Copilot / Azure",
}

# For Copilot / Azure this is the deployment name
DEFAULT_MODELS = {
    Provider.GEMINI: "gemini-2.5-flash",
    Provider.OPENAI: "gpt-4o-mini",
    Provider.PERPLEXITY: "llama-3-sonar-large-32k-online",
    Provider.COPILOT: "gpt-4o",
}


def _parse_timeout(value, source: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid request timeout {value!r} in {source}")
    if timeout <= 0:
        raise ConfigurationError(f"Request timeout in {source} must be positive")
    return timeout


def _env_timeout() -> Optional[float]:
    return _parse_timeout(
        os.getenv("LLM_VISIBILITY_REQUEST_TIMEOUT", ""),
        "LLM_VISIBILITY_REQUEST_TIMEOUT",
    )


def mask_secret(value: str) -> str:
    """Mask secret values for logging (first 4 chars + ***)."""
    if not value:
        return ""
    if len(value) <= 4:
        return "***"
    return f"{value[:4]}***"


@dataclass(frozen=True)
class ApiKeys:
    """Provider credentials"""
    gemini: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))
    openai: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    perplexity: str = field(default_factory=lambda: os.getenv("PERPLEXITY_API_KEY", ""))

    # Copilot / Azure OpenAI needs both the key and the resource endpoint
    copilot_key: str = field(default_factory=lambda: os.getenv("AZURE_OPENAI_API_KEY", ""))
    copilot_endpoint: str = field(default_factory=lambda: os.getenv("AZURE_OPENAI_ENDPOINT", ""))

    def is_configured(self, provider: Provider) -> bool:
        if provider is Provider.GEMINI:
            return bool(self.gemini)
        if provider is Provider.OPENAI:
            return bool(self.openai)
        if provider is Provider.PERPLEXITY:
            return bool(self.perplexity)
        return bool(self.copilot_key and self.copilot_endpoint)

    def masked(self) -> dict:
        return {
            "gemini": mask_secret(self.gemini),
            "openai": mask_secret(self.openai),
            "perplexity": mask_secret(self.perplexity),
            "copilot_key": mask_secret(self.copilot_key),
            "copilot_endpoint": self.copilot_endpoint,
        }


@dataclass(frozen=True)
class AnalysisConfig:
    """Immutable input for one analysis run."""

    providers: list[Provider]
    client_name: str
    prompts: list[str]
    competitors: list[str] = field(default_factory=list)
    additional_questions: list[str] = field(default_factory=list)
    models: dict[Provider, str] = field(default_factory=dict)
    api_keys: ApiKeys = field(default_factory=ApiKeys)

    # None leaves provider calls unbounded
    request_timeout: Optional[float] = field(default_factory=_env_timeout)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def all_brands(self) -> list[str]:
        return [self.client_name, *self.competitors]

    def model_for(self, provider: Provider) -> Optional[str]:
        return self.models.get(provider) or None

    def validate(self) -> list[str]:
        """Validate configuration.

        Returns:
            List of problems, empty when the configuration is usable
        """
        errors = []

        if not self.client_name.strip():
            errors.append("Client brand name is required")

        if not self.providers:
            errors.append("At least one provider must be selected")
        elif len(set(self.providers)) != len(self.providers):
            errors.append("Providers must not be selected more than once")

        if not [p for p in self.prompts if p.strip()]:
            errors.append("At least one prompt is required")

        for provider in dict.fromkeys(self.providers):
            if not self.model_for(provider):
                errors.append(f"{provider.display_name} model is missing")
            if not self.api_keys.is_configured(provider):
                if provider is Provider.COPILOT:
                    errors.append("Copilot / Azure API key and endpoint are required")
                else:
                    errors.append(f"{provider.display_name} API key is missing")

        for error in errors:
            logger.error("config_validation_error", error=error)

        return errors

    def log_configuration(self):
        """Log configuration (with secrets masked)."""
        logger.info(
            "configuration_loaded",
            providers=[p.value for p in self.providers],
            models={p.value: m for p, m in self.models.items()},
            api_keys=self.api_keys.masked(),
            client_name=self.client_name,
            competitors=self.competitors,
            prompt_count=len(self.prompts),
            question_count=len(self.additional_questions),
            request_timeout=self.request_timeout,
            log_level=self.log_level,
        )


def _clean_lines(values, name: str, path: Path) -> list[str]:
    if isinstance(values, str):
        values = values.splitlines()
    elif values is not None and not isinstance(values, list):
        raise ConfigurationError(f"'{name}' in {path} must be a list or a newline-separated string")
    return [v.strip() for v in values or [] if isinstance(v, str) and v.strip()]


def _parse_provider(value: str) -> Provider:
    try:
        return Provider(value.strip().lower())
    except (AttributeError, ValueError):
        choices = ", ".join(p.value for p in Provider)
        raise ConfigurationError(f"Unknown provider {value!r} (expected one of: {choices})")


def load_config(path: Union[str, Path], api_keys: Optional[ApiKeys] = None) -> AnalysisConfig:
    """Load an analysis configuration from a JSON file.

    Prompts, competitors and questions may be given as lists or as
    newline-separated strings; blank entries are dropped. Models default to
    DEFAULT_MODELS. Credentials come from the environment unless passed in.

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

    raw_providers = data.get("providers") or []
    if not isinstance(raw_providers, list):
        raise ConfigurationError(f"'providers' in {path} must be a list")
    providers = [_parse_provider(p) for p in raw_providers]

    raw_models = data.get("models") or {}
    if not isinstance(raw_models, dict):
        raise ConfigurationError(f"'models' in {path} must be an object mapping provider to model")

    models = {p: DEFAULT_MODELS[p] for p in providers}
    for key, model in raw_models.items():
        if model:
            models[_parse_provider(key)] = str(model).strip()

    timeout = _parse_timeout(data.get("request_timeout"), str(path))

    config = AnalysisConfig(
        providers=providers,
        client_name=str(data.get("client_name", "")).strip(),
        prompts=_clean_lines(data.get("prompts"), "prompts", path),
        competitors=_clean_lines(data.get("competitors"), "competitors", path),
        additional_questions=_clean_lines(data.get("additional_questions"), "additional_questions", path),
        models=models,
        api_keys=api_keys or ApiKeys(),
        **({"request_timeout": timeout} if timeout is not None else {}),
    )

    logger.info("config_file_loaded", path=str(path), providers=[p.value for p in providers])
    return config
