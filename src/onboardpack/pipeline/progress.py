"""Progress reporting for pipeline runs.

Progress is an integer percentage. While step ``k`` of ``n`` runs, the
value sits halfway into the step's share, kept strictly below the next
step's base; completing step ``k`` reports ``round(k / n * 100)``. A high
water mark keeps the emitted sequence non-decreasing, so 100 is reached
only when the last step completes.
"""

from __future__ import annotations

import math
from collections.abc import Callable

import structlog
from pydantic import BaseModel, Field

from onboardpack.pipeline.steps import StepStatus

logger = structlog.get_logger(__name__)


class ProgressInfo(BaseModel):
    """A progress notification delivered to observers."""

    step_number: int = Field(ge=1)
    total_steps: int = Field(ge=1)
    step_id: str
    step_name: str
    step_status: StepStatus
    detail: str | None = None
    progress: int = Field(ge=0, le=100)

    model_config = {"frozen": True}


ProgressCallback = Callable[[ProgressInfo], None]


def running_progress(step_number: int, total_steps: int) -> int:
    """Percentage reported while step ``step_number`` (1-based) runs."""
    share = 100 / total_steps
    base = (step_number - 1) * share
    next_base = step_number * share
    return min(math.floor(base + share / 2), math.ceil(next_base) - 1)


def completed_progress(step_number: int, total_steps: int) -> int:
    """Percentage reported once step ``step_number`` (1-based) completes."""
    return round(step_number / total_steps * 100)


class ProgressTracker:
    """Computes progress values and forwards them to an observer.

    Attributes:
        total_steps: Number of steps in the run
        history: Every notification emitted so far
    """

    def __init__(self, total_steps: int, callback: ProgressCallback | None = None) -> None:
        self.total_steps = total_steps
        self.history: list[ProgressInfo] = []
        self._callback = callback
        self._high_water = 0

    def report(
        self,
        step_number: int,
        step_id: str,
        step_name: str,
        status: StepStatus,
        detail: str | None = None,
    ) -> ProgressInfo:
        if status == StepStatus.completed:
            value = completed_progress(step_number, self.total_steps)
        else:
            value = running_progress(step_number, self.total_steps)
        self._high_water = max(self._high_water, value)

        info = ProgressInfo(
            step_number=step_number,
            total_steps=self.total_steps,
            step_id=step_id,
            step_name=step_name,
            step_status=status,
            detail=detail,
            progress=self._high_water,
        )
        self.history.append(info)

        if self._callback is not None:
            try:
                self._callback(info)
            except Exception as e:
                logger.warning(
                    "progress_callback_failed",
                    step_id=step_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return info

    @property
    def current(self) -> int:
        return self._high_water
