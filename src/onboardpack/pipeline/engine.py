"""Sequential step engine.

The engine owns the step records of one run. Steps execute strictly in
definition order; the first failure marks its step failed and aborts the
run with :class:`PipelineRunError`, which carries the step history.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from onboardpack.pipeline.progress import ProgressCallback, ProgressTracker
from onboardpack.pipeline.steps import STEP_DEFINITIONS, Step, StepDefinition, StepStatus

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PipelineRunError(Exception):
    """Raised when a step fails and the run is aborted.

    Attributes:
        step_id: The step that failed.
        message: The failure message recorded on the step.
        steps: Snapshot of every step record at the time of failure.
    """

    def __init__(self, step_id: str, message: str, steps: list[Step]):
        self.step_id = step_id
        self.message = message
        self.steps = steps
        super().__init__(f"Step {step_id} failed: {message}")


class PipelineEngine:
    """Runs a fixed, ordered list of steps with progress reporting.

    Example:
        >>> engine = PipelineEngine(on_progress=print)
        >>> status = await engine.execute("check-provider", provider.check_status)
    """

    def __init__(
        self,
        definitions: Sequence[StepDefinition] = STEP_DEFINITIONS,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._steps = [Step(id=d.id, name=d.name) for d in definitions]
        self._index = -1
        self.progress = ProgressTracker(len(self._steps), on_progress)

    @property
    def steps(self) -> list[Step]:
        """Copies of the step records, in order."""
        return [step.model_copy() for step in self._steps]

    @property
    def current_step(self) -> Step | None:
        if 0 <= self._index < len(self._steps):
            return self._steps[self._index]
        return None

    @property
    def finished(self) -> bool:
        return all(step.status == StepStatus.completed for step in self._steps)

    def _report(self, step: Step, detail: str | None = None) -> None:
        self.progress.report(self._index + 1, step.id, step.name, step.status, detail)

    def detail(self, text: str) -> None:
        """Report sub-step detail for the running step."""
        step = self.current_step
        if step is None or step.status != StepStatus.running:
            return
        logger.debug("pipeline_step_detail", step_id=step.id, detail=text)
        self._report(step, text)

    async def execute(self, step_id: str, action: Callable[[], Awaitable[T]]) -> T:
        """Run the next step.

        Args:
            step_id: Identifier of the step; must be the next one in order
            action: Coroutine function producing the step result

        Returns:
            The action's result, also recorded on the step

        Raises:
            ValueError: If ``step_id`` is not the next step
            PipelineRunError: If the action raised
        """
        next_index = self._index + 1
        if next_index >= len(self._steps) or self._steps[next_index].id != step_id:
            expected = self._steps[next_index].id if next_index < len(self._steps) else None
            raise ValueError(f"Step {step_id} is out of order; expected {expected}")

        self._index = next_index
        step = self._steps[next_index]
        step.transition(StepStatus.running)
        logger.info(
            "pipeline_step_started",
            step_id=step.id,
            step_number=next_index + 1,
            total_steps=len(self._steps),
        )
        self._report(step)

        try:
            result = await action()
        except Exception as e:
            step.error = str(e) or type(e).__name__
            step.transition(StepStatus.failed)
            logger.error(
                "pipeline_step_failed",
                step_id=step.id,
                error=step.error,
                error_type=type(e).__name__,
            )
            self._report(step, step.error)
            raise PipelineRunError(step.id, step.error, self.steps) from e

        step.result = result
        step.transition(StepStatus.completed)
        logger.info("pipeline_step_completed", step_id=step.id)
        self._report(step)
        return result
