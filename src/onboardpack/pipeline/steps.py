"""Pipeline step records and their lifecycle.

A step moves pending -> running -> completed | failed and never back.
The nine step definitions and their order are fixed for every run.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, NamedTuple

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class StepStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class InvalidTransitionError(Exception):
    """Raised when a step status change breaks the lifecycle.

    Attributes:
        current: The step's current status.
        target: The attempted target status.
        step_id: The step that failed to transition.
    """

    def __init__(self, current: StepStatus, target: StepStatus, step_id: str | None = None):
        self.current = current
        self.target = target
        self.step_id = step_id
        msg = f"Invalid transition from {current.value} to {target.value}"
        if step_id:
            msg += f" for step {step_id}"
        super().__init__(msg)


VALID_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.pending: {StepStatus.running},
    StepStatus.running: {StepStatus.completed, StepStatus.failed},
    StepStatus.completed: set(),
    StepStatus.failed: set(),
}


def validate_transition(current: StepStatus, target: StepStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


class StepDefinition(NamedTuple):
    id: str
    name: str


STEP_DEFINITIONS: tuple[StepDefinition, ...] = (
    StepDefinition("check-provider", "Checking LLM provider"),
    StepDefinition("scan-repo", "Scanning repository"),
    StepDefinition("analyze-files", "Analyzing key files"),
    StepDefinition("gen-architecture", "Generating architecture overview"),
    StepDefinition("gen-tasks", "Generating starter tasks"),
    StepDefinition("gen-diagram", "Generating component diagram"),
    StepDefinition("compile-pack", "Compiling onboarding pack"),
    StepDefinition("validate-tech", "Validating detected technologies"),
    StepDefinition("write-files", "Writing output files"),
)

STEP_IDS: tuple[str, ...] = tuple(d.id for d in STEP_DEFINITIONS)


class Step(BaseModel):
    """One unit of pipeline work.

    Attributes:
        id: Stable step identifier
        name: Human-readable step name
        status: Lifecycle status
        result: Value returned by the step action, once completed
        error: Failure message, once failed
    """

    id: str
    name: str
    status: StepStatus = StepStatus.pending
    result: Any = None
    error: str | None = None

    def transition(self, target: StepStatus) -> None:
        """Move to ``target``.

        Raises:
            InvalidTransitionError: If the lifecycle does not allow it.
        """
        if not validate_transition(self.status, target):
            raise InvalidTransitionError(self.status, target, self.id)
        logger.debug(
            "step_transition",
            step_id=self.id,
            from_status=self.status.value,
            to_status=target.value,
        )
        self.status = target

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self.status]
