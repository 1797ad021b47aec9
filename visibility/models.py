"""Data models for analysis runs: tasks, provider responses and results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import Provider


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.ERROR)


# pending -> error closes out a unit that failed before it started
ALLOWED_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.ERROR},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.ERROR},
    TaskStatus.COMPLETED: set(),
    TaskStatus.ERROR: set(),
}


@dataclass
class Task:
    """One (prompt, provider) unit of tracked work."""

    prompt_index: int
    provider: Provider
    description: str
    status: TaskStatus = TaskStatus.PENDING
    error: Optional[str] = None

    @property
    def task_id(self) -> str:
        return make_task_id(self.prompt_index, self.provider)

    def to_dict(self) -> dict:
        data = {
            "id": self.task_id,
            "description": self.description,
            "status": self.status.value,
        }
        if self.error:
            data["error"] = self.error
        return data


def make_task_id(prompt_index: int, provider: Provider) -> str:
    return f"prompt-{prompt_index}-{provider.value}"


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"
    NOT_MENTIONED = "Not Mentioned"


class BrandAnalysis(BaseModel):
    """Mention count and sentiment for one brand, as extracted by a provider."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    brand_name: str = Field(..., alias="brandName", min_length=1)
    mentions: int = Field(..., ge=0)
    sentiment: Sentiment

    def to_dict(self) -> dict:
        return {
            "brandName": self.brand_name,
            "mentions": self.mentions,
            "sentiment": self.sentiment.value,
        }


class BrandExtraction(BaseModel):
    """JSON object form of the extraction reply: {"brands": [...]}."""

    brands: list[BrandAnalysis]


@dataclass(frozen=True)
class AdditionalQuestionAnswer:
    question: str
    answer: str

    def to_dict(self) -> dict:
        return {"question": self.question, "answer": self.answer}


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized result of one provider's request chain for one prompt.

    Either a success (response text, brand analyses, answers) or a failure
    (error set, data fields empty), never a mix of both. Sequences are
    stored as tuples.
    """

    provider: Provider
    response: str = ""
    brand_analyses: tuple[BrandAnalysis, ...] = ()
    additional_answers: tuple[AdditionalQuestionAnswer, ...] = ()
    error: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "brand_analyses", tuple(self.brand_analyses))
        object.__setattr__(self, "additional_answers", tuple(self.additional_answers))

    @classmethod
    def failure(cls, provider: Provider, error: str) -> ProviderResponse:
        return cls(provider=provider, error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        data = {
            "provider": self.provider.value,
            "response": self.response,
            "brandAnalyses": [b.to_dict() for b in self.brand_analyses],
            "additionalAnswers": [a.to_dict() for a in self.additional_answers],
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class AnalysisResult:
    """All provider responses for one prompt, in provider-selection order."""

    prompt: str
    provider_responses: tuple[ProviderResponse, ...]

    def __post_init__(self):
        object.__setattr__(self, "provider_responses", tuple(self.provider_responses))

    def response_for(self, provider: Provider) -> Optional[ProviderResponse]:
        for response in self.provider_responses:
            if response.provider is provider:
                return response
        return None

    def to_dict(self) -> dict:
        return {
            "prompt": self.prompt,
            "providerResponses": [r.to_dict() for r in self.provider_responses],
        }
