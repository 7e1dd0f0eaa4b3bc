"""Starter task parsing.

Models are asked to emit tasks as a numbered list with labelled fields::

    1. Trace a request through the router
    Description: Follow a request from src/server.ts to the handler
    Difficulty: easy
    Time: 30 minutes
    Learning: How routing is wired
    Criteria: Write down the call chain; Note each middleware
    Hints: Start at createServer; Use the debugger
    Files: src/server.ts, src/routes.ts
    Skills: debugging, navigation

Parsing is best-effort. Every field except the title is optional and is
synthesized when missing, and a response that yields fewer than
:data:`MIN_PARSED_TASKS` tasks is replaced wholesale by the fallback set.

Labelled fields are delimited by the next line that starts with a capital
letter. When a model runs several fields together on one line, the later
labels end up inside the earlier field's text. That leakage is accepted.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from enum import Enum

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

TASK_COUNT = 10
MIN_PARSED_TASKS = 5

_BLOCK_BOUNDARY = re.compile(r"(?=(?:^|\n)\s*(?:###?\s*)?\d+[.):]\s)", re.MULTILINE)
_TITLE = re.compile(r"(?:###?\s*)?\d+[.):]\s*(.+?)(?:\n|$)")
_DESCRIPTION = re.compile(r"Description:\s*(.+?)(?:\n(?=[A-Z])|\Z)", re.DOTALL)
_DIFFICULTY = re.compile(r"Difficulty:\s*(easy|medium|hard)", re.IGNORECASE)
_TIME = re.compile(r"Time:\s*(.+?)(?:\n|$)")
_LEARNING = re.compile(r"Learning:\s*(.+?)(?:\n(?=[A-Z])|\Z)", re.DOTALL)
_CRITERIA = re.compile(r"Criteria:\s*(.+?)(?:\n(?=[A-Z])|\Z)", re.DOTALL)
_HINTS = re.compile(r"Hints:\s*(.+?)(?:\n(?=[A-Z])|\Z)", re.DOTALL)
_FILES = re.compile(r"Files:\s*(.+?)(?:\n(?=[A-Z])|\Z)", re.DOTALL)
_SKILLS = re.compile(r"Skills:\s*(.+?)(?:\n|$)")

_LIST_SPLIT = re.compile(r";|\n-")
_ITEM_SPLIT = re.compile(r"[,;]")


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class StarterTask(BaseModel):
    """A starter task for a new contributor.

    Attributes:
        id: 1-based position in the final task list
        title: Short imperative title
        description: What to do
        difficulty: Easy, medium or hard
        estimated_time: Free-text time estimate
        learning_objective: What the contributor learns, if stated
        acceptance_criteria: How to tell the task is done
        hints: Pointers to get started
        related_files: Repository files the task touches
        skills: Skills the task exercises
    """

    id: int = Field(ge=1)
    title: str
    description: str
    difficulty: Difficulty
    estimated_time: str
    learning_objective: str | None = None
    acceptance_criteria: list[str] = Field(default_factory=list)
    hints: list[str] = Field(default_factory=list)
    related_files: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)


def _default_difficulty(index: int) -> Difficulty:
    if index < 3:
        return Difficulty.EASY
    if index < 7:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def _default_time(index: int) -> str:
    if index < 3:
        return "30 minutes"
    if index < 7:
        return "1-2 hours"
    return "2-4 hours"


def _split(pattern: re.Pattern[str], text: str, strip_backticks: bool = False) -> list[str]:
    items = (part.strip() for part in pattern.split(text))
    if strip_backticks:
        items = (item.replace("`", "") for item in items)
    return [item for item in items if item]


def _parse_block(block: str, index: int) -> StarterTask | None:
    title_match = _TITLE.search(block)
    if not title_match:
        return None
    title = title_match.group(1).strip().replace("**", "")
    if len(title) < 3:
        return None

    description = _DESCRIPTION.search(block)
    difficulty = _DIFFICULTY.search(block)
    time = _TIME.search(block)
    learning = _LEARNING.search(block)
    criteria = _CRITERIA.search(block)
    hints = _HINTS.search(block)
    files = _FILES.search(block)
    skills = _SKILLS.search(block)

    return StarterTask(
        id=index + 1,
        title=title[:80],
        description=description.group(1).strip()[:300] if description else block[:300],
        difficulty=(
            Difficulty(difficulty.group(1).lower()) if difficulty else _default_difficulty(index)
        ),
        estimated_time=time.group(1).strip() if time else _default_time(index),
        learning_objective=learning.group(1).strip()[:200] if learning else None,
        acceptance_criteria=(
            _split(_LIST_SPLIT, criteria.group(1)) if criteria else [f"Complete {title.lower()}"]
        )[:3],
        hints=(
            _split(_LIST_SPLIT, hints.group(1))
            if hints
            else ["Check the related files for context"]
        )[:2],
        related_files=_split(_ITEM_SPLIT, files.group(1), strip_backticks=True)[:3] if files else [],
        skills=_split(_ITEM_SPLIT, skills.group(1), strip_backticks=True)[:3] if skills else [],
    )


def parse_tasks(text: str) -> list[StarterTask]:
    """Parse a model's numbered task list.

    Args:
        text: Raw model output

    Returns:
        Up to :data:`TASK_COUNT` parsed tasks numbered from 1, or the full
        fallback set when fewer than :data:`MIN_PARSED_TASKS` could be parsed.
    """
    tasks: list[StarterTask] = []

    for block in _BLOCK_BOUNDARY.split(text):
        if len(tasks) >= TASK_COUNT:
            break
        if not block.strip():
            continue
        task = _parse_block(block, len(tasks))
        if task is not None:
            tasks.append(task)

    if len(tasks) < MIN_PARSED_TASKS:
        logger.info("task_parse_insufficient", parsed=len(tasks), minimum=MIN_PARSED_TASKS)
        return fallback_tasks()

    logger.debug("tasks_parsed", count=len(tasks))
    return tasks


def assemble_tasks(
    first_batch: Sequence[StarterTask], second_batch: Sequence[StarterTask] = ()
) -> list[StarterTask]:
    """Combine two generated batches into exactly :data:`TASK_COUNT` tasks.

    Missing slots are filled from the end of the fallback set, so a short
    result is topped up with the harder fallback tasks.

    Returns:
        Exactly ten tasks numbered 1..10
    """
    tasks = [*first_batch, *second_batch]
    missing = TASK_COUNT - len(tasks)
    if missing > 0:
        logger.info("tasks_padded_from_fallback", parsed=len(tasks), padded=missing)
        tasks.extend(fallback_tasks()[-missing:])
    return [task.model_copy(update={"id": i}) for i, task in enumerate(tasks[:TASK_COUNT], 1)]


def fallback_tasks() -> list[StarterTask]:
    """Return a fresh copy of the fixed ten-task fallback set."""
    return [
        StarterTask(
            id=1,
            title="Review README and documentation",
            description="Read through the README and any documentation to understand the project",
            difficulty=Difficulty.EASY,
            estimated_time="30 minutes",
            learning_objective=(
                "Learn to navigate project documentation and understand project purpose "
                "at a high level"
            ),
            acceptance_criteria=["Summarize the project purpose"],
            hints=["Start with README.md"],
            related_files=["README.md"],
            skills=["documentation"],
        ),
        StarterTask(
            id=2,
            title="Set up local development environment",
            description="Install dependencies and verify you can run the project",
            difficulty=Difficulty.EASY,
            estimated_time="30 minutes",
            learning_objective=(
                "Learn to set up development environments and manage project dependencies"
            ),
            acceptance_criteria=["Project runs locally"],
            hints=["Follow the runbook setup steps"],
            related_files=["package.json"],
            skills=["setup"],
        ),
        StarterTask(
            id=3,
            title="Run the test suite",
            description="Execute all tests and understand the testing strategy",
            difficulty=Difficulty.EASY,
            estimated_time="30 minutes",
            learning_objective="Learn how automated testing works and how to interpret test results",
            acceptance_criteria=["All tests pass"],
            hints=["Check for test commands in package.json"],
            skills=["testing"],
        ),
        StarterTask(
            id=4,
            title="Add a missing unit test",
            description="Find an untested function and add test coverage",
            difficulty=Difficulty.MEDIUM,
            estimated_time="1 hour",
            learning_objective="Learn to write unit tests and understand code coverage principles",
            acceptance_criteria=["New test passes", "Coverage increases"],
            hints=["Look for complex functions without tests"],
            skills=["testing"],
        ),
        StarterTask(
            id=5,
            title="Fix a typo or improve documentation",
            description="Find and fix documentation issues",
            difficulty=Difficulty.EASY,
            estimated_time="30 minutes",
            learning_objective=(
                "Learn the PR workflow: branch, commit, push, and submit a pull request"
            ),
            acceptance_criteria=["PR submitted with fix"],
            hints=["Check code comments and README"],
            skills=["documentation"],
        ),
        StarterTask(
            id=6,
            title="Add input validation",
            description="Add validation to a function that accepts user input",
            difficulty=Difficulty.MEDIUM,
            estimated_time="1-2 hours",
            learning_objective=(
                "Learn defensive programming and input validation patterns for security"
            ),
            acceptance_criteria=["Invalid inputs are rejected", "Tests cover new validation"],
            hints=["Look for functions handling external data"],
            skills=["security", "validation"],
        ),
        StarterTask(
            id=7,
            title="Improve error handling",
            description="Find a place where errors could be handled better",
            difficulty=Difficulty.MEDIUM,
            estimated_time="1-2 hours",
            learning_objective=(
                "Learn error handling patterns and how to write user-friendly error messages"
            ),
            acceptance_criteria=["Errors provide useful messages"],
            hints=["Look for generic catch blocks"],
            skills=["error-handling"],
        ),
        StarterTask(
            id=8,
            title="Add TypeScript types or JSDoc",
            description="Improve type safety in a module",
            difficulty=Difficulty.MEDIUM,
            estimated_time="1-2 hours",
            learning_objective=(
                "Learn how static typing improves code quality and catches bugs early"
            ),
            acceptance_criteria=["Types are accurate", "No type errors"],
            hints=["Start with any types or missing annotations"],
            skills=["typescript"],
        ),
        StarterTask(
            id=9,
            title="Refactor a complex function",
            description="Break down a long function into smaller pieces",
            difficulty=Difficulty.HARD,
            estimated_time="2-4 hours",
            learning_objective=(
                "Learn refactoring techniques: extract method, single responsibility, "
                "and clean code principles"
            ),
            acceptance_criteria=["Function is easier to understand", "Tests still pass"],
            hints=["Look for functions over 50 lines"],
            skills=["refactoring"],
        ),
        StarterTask(
            id=10,
            title="Add a small feature",
            description="Implement a minor enhancement from the issue tracker",
            difficulty=Difficulty.HARD,
            estimated_time="2-4 hours",
            learning_objective=(
                "Learn end-to-end feature development: spec reading, implementation, "
                "testing, and documentation"
            ),
            acceptance_criteria=["Feature works as specified", "Tests added"],
            hints=["Check issues labeled good-first-issue"],
            skills=["feature-development"],
        ),
    ]
