"""Interpretation of free-text model output into typed results."""

from onboardpack.interpret.diagram import fallback_diagram, sanitize_diagram
from onboardpack.interpret.tasks import (
    Difficulty,
    StarterTask,
    assemble_tasks,
    fallback_tasks,
    parse_tasks,
)

__all__ = [
    "Difficulty",
    "StarterTask",
    "assemble_tasks",
    "fallback_tasks",
    "parse_tasks",
    "fallback_diagram",
    "sanitize_diagram",
]
