"""
LLM Brand Visibility
====================

Track how a brand appears in answers from several LLM providers:
- Google Gemini
- OpenAI
- Perplexity AI
- Copilot / Azure OpenAI

Each prompt is sent to every selected provider; the reply is then analyzed
by the same provider for brand mentions and sentiment, and optional
follow-up questions are answered from it.
"""

from .config import AnalysisConfig, ApiKeys, Provider, load_config
from .exceptions import ConfigurationError, VisibilityError
from .models import (
    AdditionalQuestionAnswer,
    AnalysisResult,
    BrandAnalysis,
    ProviderResponse,
    Sentiment,
    Task,
    TaskStatus,
)
from .orchestrator import AnalysisOrchestrator, run_analysis
from .tasks import TaskTracker

__version__ = "1.0.0"

__all__ = [
    "AnalysisConfig",
    "ApiKeys",
    "Provider",
    "load_config",
    "ConfigurationError",
    "VisibilityError",
    "AdditionalQuestionAnswer",
    "AnalysisResult",
    "BrandAnalysis",
    "ProviderResponse",
    "Sentiment",
    "Task",
    "TaskStatus",
    "AnalysisOrchestrator",
    "run_analysis",
    "TaskTracker",
]
