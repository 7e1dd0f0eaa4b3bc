"""Pipeline engine, onboarding artifacts and technology detection.

The nine-step run itself lives in :mod:`onboardpack.pipeline.orchestrator`.
"""

from onboardpack.pipeline.artifacts import OnboardingPack, compile_pack, fallback_architecture
from onboardpack.pipeline.engine import PipelineEngine, PipelineRunError
from onboardpack.pipeline.progress import (
    ProgressCallback,
    ProgressInfo,
    ProgressTracker,
    completed_progress,
    running_progress,
)
from onboardpack.pipeline.steps import (
    STEP_DEFINITIONS,
    STEP_IDS,
    InvalidTransitionError,
    Step,
    StepDefinition,
    StepStatus,
)
from onboardpack.pipeline.technology import TechnologyDetection, detect_technologies

__all__ = [
    # Engine
    "PipelineEngine",
    "PipelineRunError",
    # Steps
    "Step",
    "StepStatus",
    "StepDefinition",
    "STEP_DEFINITIONS",
    "STEP_IDS",
    "InvalidTransitionError",
    # Progress
    "ProgressInfo",
    "ProgressCallback",
    "ProgressTracker",
    "running_progress",
    "completed_progress",
    # Artifacts
    "OnboardingPack",
    "compile_pack",
    "fallback_architecture",
    "TechnologyDetection",
    "detect_technologies",
]
