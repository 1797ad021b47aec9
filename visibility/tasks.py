"""Task tracking with full-snapshot progress notifications."""

from dataclasses import replace
from typing import Callable, Optional
import structlog

from .config import Provider
from .exceptions import TaskStateError
from .models import ALLOWED_TRANSITIONS, Task, TaskStatus, make_task_id

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[list[Task]], None]

PREVIEW_LENGTH = 40


def describe_task(prompt: str, provider: Provider, model: Optional[str]) -> str:
    """Human-readable task description with a truncated prompt preview."""
    preview = prompt if len(prompt) <= PREVIEW_LENGTH else prompt[:PREVIEW_LENGTH] + "..."
    return f'Analyzing "{preview}" with {provider.display_name} ({model or "default"})'


def progress(tasks: list[Task]) -> float:
    """Fraction of tasks in a terminal state (0.0 for an empty list)."""
    if not tasks:
        return 0.0
    return sum(1 for t in tasks if t.status.is_terminal) / len(tasks)


class TaskTracker:
    """Owns the task list for one run.

    Every status change is followed by a call to the observer with a copy of
    the whole list, so observers never see a half-updated list and never need
    to track history themselves.
    """

    def __init__(self, on_progress: Optional[ProgressCallback] = None):
        self.on_progress = on_progress
        self._tasks: list[Task] = []
        self._index: dict[str, int] = {}

    def initialize(
        self,
        prompts: list[str],
        providers: list[Provider],
        models: Optional[dict[Provider, str]] = None,
    ) -> list[Task]:
        """Create one pending task per (prompt, provider), prompt-major.

        Emits the initial all-pending snapshot.
        """
        models = models or {}
        self._tasks = [
            Task(
                prompt_index=p_index,
                provider=provider,
                description=describe_task(prompt, provider, models.get(provider)),
            )
            for p_index, prompt in enumerate(prompts)
            for provider in providers
        ]
        self._index = {task.task_id: i for i, task in enumerate(self._tasks)}

        logger.info("tasks_initialized", total=len(self._tasks))
        self._notify()
        return self.snapshot()

    def set_status(
        self,
        prompt_index: int,
        provider: Provider,
        status: TaskStatus,
        error: Optional[str] = None,
    ):
        """Transition one task in place and emit the full snapshot.

        Raises:
            KeyError: If no task exists for (prompt_index, provider)
            TaskStateError: If the transition is not allowed
        """
        task_id = make_task_id(prompt_index, provider)
        task = self._tasks[self._index[task_id]]

        if status not in ALLOWED_TRANSITIONS[task.status]:
            raise TaskStateError(
                f"Task {task_id} cannot move from {task.status.value} to {status.value}"
            )

        task.status = status
        if error:
            task.error = error

        logger.debug("task_status_changed", task_id=task_id, status=status.value, error=error)
        self._notify()

    def snapshot(self) -> list[Task]:
        return [replace(task) for task in self._tasks]

    def _notify(self):
        if self.on_progress is None:
            return

        # A failing observer must not abort the run
        try:
            self.on_progress(self.snapshot())
        except Exception as e:
            logger.error(
                "progress_callback_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
