"""Unit tests for starter task parsing and assembly."""

from __future__ import annotations

import pytest

from onboardpack.interpret.tasks import (
    MIN_PARSED_TASKS,
    TASK_COUNT,
    Difficulty,
    StarterTask,
    assemble_tasks,
    fallback_tasks,
    parse_tasks,
)


def _numbered(count: int, start: int = 1) -> str:
    blocks = []
    for n in range(start, start + count):
        blocks.append(
            f"{n}. Generated task number {n}\n"
            f"Description: Do the thing for task {n}\n"
            "Difficulty: medium\n"
            "Time: 45 minutes\n"
            "Learning: How the module fits together\n"
            "Criteria: Tests pass; Code reviewed\n"
            "Hints: Read the router; Use the debugger\n"
            "Files: `src/app.ts`, src/routes.ts\n"
            "Skills: typescript, testing\n"
        )
    return "\n".join(blocks)


class TestParseTasks:
    def test_parses_labelled_fields(self) -> None:
        tasks = parse_tasks(_numbered(5))

        assert len(tasks) == 5
        first = tasks[0]
        assert first.id == 1
        assert first.title == "Generated task number 1"
        assert first.description == "Do the thing for task 1"
        assert first.difficulty == Difficulty.MEDIUM
        assert first.estimated_time == "45 minutes"
        assert first.learning_objective == "How the module fits together"
        assert first.acceptance_criteria == ["Tests pass", "Code reviewed"]
        assert first.hints == ["Read the router", "Use the debugger"]
        assert first.related_files == ["src/app.ts", "src/routes.ts"]
        assert first.skills == ["typescript", "testing"]

    def test_unstructured_text_returns_fallback(self) -> None:
        assert parse_tasks("no structured content here") == fallback_tasks()

    def test_too_few_tasks_returns_fallback(self) -> None:
        assert parse_tasks(_numbered(MIN_PARSED_TASKS - 1)) == fallback_tasks()

    def test_caps_at_ten(self) -> None:
        tasks = parse_tasks(_numbered(12))
        assert len(tasks) == TASK_COUNT
        assert [t.id for t in tasks] == list(range(1, 11))

    def test_markdown_headings_and_bold_titles(self) -> None:
        text = "\n".join(f"### {n}) **Heading task {n}**\nDescription: d{n}" for n in range(1, 6))
        tasks = parse_tasks(text)
        assert [t.title for t in tasks] == [f"Heading task {n}" for n in range(1, 6)]

    def test_defaults_for_missing_fields(self) -> None:
        text = "\n".join(f"{n}. Bare task title {n}" for n in range(1, 9))
        tasks = parse_tasks(text)

        assert [t.difficulty for t in tasks[:3]] == [Difficulty.EASY] * 3
        assert tasks[3].difficulty == Difficulty.MEDIUM
        assert tasks[7].difficulty == Difficulty.HARD
        assert tasks[0].estimated_time == "30 minutes"
        assert tasks[0].acceptance_criteria == ["Complete bare task title 1"]
        assert tasks[0].hints == ["Check the related files for context"]
        assert tasks[0].learning_objective is None

    def test_short_titles_are_skipped(self) -> None:
        text = "1. ab\n" + _numbered(5, start=2)
        tasks = parse_tasks(text)
        assert len(tasks) == 5
        assert tasks[0].title == "Generated task number 2"
        assert tasks[0].id == 1


class TestAssembleTasks:
    @pytest.mark.parametrize(
        "first,second",
        [
            ("", ""),
            ("no structure", "1. Lonely task here"),
            (_numbered(5), ""),
            (_numbered(5), _numbered(5, start=6)),
            (_numbered(10), _numbered(10)),
            (_numbered(7), _numbered(2, start=8)),
        ],
    )
    def test_always_ten_numbered(self, first: str, second: str) -> None:
        tasks = assemble_tasks(parse_tasks(first), parse_tasks(second))
        assert len(tasks) == TASK_COUNT
        assert [t.id for t in tasks] == list(range(1, 11))

    def test_pads_with_last_fallback_tasks(self) -> None:
        batch = parse_tasks(_numbered(5))
        tasks = assemble_tasks(batch)

        fallback_titles = [t.title for t in fallback_tasks()]
        assert [t.title for t in tasks[:5]] == [t.title for t in batch]
        assert [t.title for t in tasks[5:]] == fallback_titles[5:]

    def test_does_not_mutate_inputs(self) -> None:
        batch = [t.model_copy(update={"id": 9}) for t in parse_tasks(_numbered(5))]
        assemble_tasks(batch, [])
        assert all(t.id == 9 for t in batch)


class TestFallbackTasks:
    def test_fixed_set(self) -> None:
        tasks = fallback_tasks()
        assert len(tasks) == TASK_COUNT
        assert [t.id for t in tasks] == list(range(1, 11))
        assert tasks[0].title == "Review README and documentation"
        assert all(isinstance(t, StarterTask) for t in tasks)

    def test_returns_fresh_copies(self) -> None:
        first = fallback_tasks()
        first[0].title = "changed"
        assert fallback_tasks()[0].title == "Review README and documentation"
