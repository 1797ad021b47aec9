"""
Analysis Orchestrator
=====================

Runs every prompt against every selected provider:
- prompts one after another, in input order
- providers for the same prompt concurrently
- one tracked task per (prompt, provider)

Provider failures are isolated: they become error-shaped responses and
`error` tasks. Only a configuration problem found before the first call
aborts a run.
"""

import asyncio
import time
from typing import Callable, Optional
import structlog

from .config import AnalysisConfig, Provider
from .models import AnalysisResult, ProviderResponse, TaskStatus
from .providers import BaseProvider, create_provider
from .tasks import ProgressCallback, TaskTracker

logger = structlog.get_logger(__name__)

ProviderFactory = Callable[[Provider, AnalysisConfig], BaseProvider]


class AnalysisOrchestrator:
    """Coordinates provider adapters and task tracking for a run."""

    def __init__(self, provider_factory: ProviderFactory = create_provider):
        """Initialize orchestrator.

        Args:
            provider_factory: Builds the adapter for a provider; raises
                ConfigurationError when credentials are missing
        """
        self.provider_factory = provider_factory
        self.logger = logger.bind(component="AnalysisOrchestrator")

    def bind_providers(self, config: AnalysisConfig) -> dict[Provider, BaseProvider]:
        """Build one adapter per selected provider.

        Raises:
            ConfigurationError: If any selected provider is not usable
        """
        return {provider: self.provider_factory(provider, config) for provider in config.providers}

    async def run(
        self,
        config: AnalysisConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[AnalysisResult]:
        """Run the analysis.

        Args:
            config: Validated analysis configuration
            on_progress: Called with the full task list after every status change

        Returns:
            One AnalysisResult per prompt, in prompt order

        Raises:
            ConfigurationError: If a selected provider lacks credentials or a model
        """
        adapters = self.bind_providers(config)

        tracker = TaskTracker(on_progress)
        tracker.initialize(config.prompts, config.providers, config.models)

        start_time = time.time()
        self.logger.info(
            "analysis_started",
            prompts=len(config.prompts),
            providers=[p.value for p in config.providers],
        )

        results = []
        for p_index, prompt in enumerate(config.prompts):
            provider_responses = await asyncio.gather(
                *(
                    self._run_provider(
                        tracker, p_index, prompt, provider, adapters[provider], config
                    )
                    for provider in config.providers
                )
            )
            results.append(AnalysisResult(prompt=prompt, provider_responses=tuple(provider_responses)))

            self.logger.info(
                "prompt_completed",
                prompt_index=p_index,
                failed=sum(1 for r in provider_responses if not r.succeeded),
            )

        self.logger.info(
            "analysis_completed",
            prompts=len(results),
            duration=time.time() - start_time,
        )
        return results

    async def _run_provider(
        self,
        tracker: TaskTracker,
        prompt_index: int,
        prompt: str,
        provider: Provider,
        adapter: BaseProvider,
        config: AnalysisConfig,
    ) -> ProviderResponse:
        tracker.set_status(prompt_index, provider, TaskStatus.IN_PROGRESS)

        try:
            response = await adapter.execute_for_prompt(prompt, config)
        except Exception as e:
            error_message = str(e) or "An unknown error occurred."
            self.logger.error(
                "provider_task_failed",
                prompt_index=prompt_index,
                provider=provider.value,
                error=error_message,
                error_type=type(e).__name__,
            )
            tracker.set_status(prompt_index, provider, TaskStatus.ERROR, error_message)
            return ProviderResponse.failure(provider, error_message)

        if response.error:
            tracker.set_status(prompt_index, provider, TaskStatus.ERROR, response.error)
        else:
            tracker.set_status(prompt_index, provider, TaskStatus.COMPLETED)
        return response


async def run_analysis(
    config: AnalysisConfig,
    on_progress: Optional[ProgressCallback] = None,
) -> list[AnalysisResult]:
    """Run an analysis with the default provider adapters."""
    return await AnalysisOrchestrator().run(config, on_progress)
