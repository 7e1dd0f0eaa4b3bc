"""Unit tests for progress computation and reporting."""

from __future__ import annotations

import pytest

from onboardpack.pipeline.progress import (
    ProgressInfo,
    ProgressTracker,
    completed_progress,
    running_progress,
)
from onboardpack.pipeline.steps import StepStatus


@pytest.mark.parametrize("total", [1, 2, 3, 7, 9, 12])
def test_running_stays_below_next_completion(total: int) -> None:
    for k in range(1, total + 1):
        assert completed_progress(k - 1, total) <= running_progress(k, total) < completed_progress(k, total)


def test_nine_step_values() -> None:
    assert running_progress(1, 9) == 5
    assert running_progress(9, 9) == 94
    assert [completed_progress(k, 9) for k in range(1, 10)] == [11, 22, 33, 44, 56, 67, 78, 89, 100]


@pytest.mark.parametrize("fail_at", [None, 1, 5, 9])
def test_reported_sequence_is_monotonic(fail_at: int | None) -> None:
    tracker = ProgressTracker(9)
    for k in range(1, 10):
        tracker.report(k, f"s{k}", f"Step {k}", StepStatus.running)
        tracker.report(k, f"s{k}", f"Step {k}", StepStatus.running, detail="working")
        if k == fail_at:
            tracker.report(k, f"s{k}", f"Step {k}", StepStatus.failed, detail="boom")
            break
        tracker.report(k, f"s{k}", f"Step {k}", StepStatus.completed)

    values = [info.progress for info in tracker.history]
    assert values == sorted(values)
    if fail_at is None:
        assert values[-1] == 100
        assert values.count(100) == 1
    else:
        assert 100 not in values


def test_callback_receives_every_report() -> None:
    received: list[ProgressInfo] = []
    tracker = ProgressTracker(2, received.append)

    tracker.report(1, "a", "A", StepStatus.running)
    tracker.report(1, "a", "A", StepStatus.completed)

    assert [(i.step_id, i.step_status, i.progress) for i in received] == [
        ("a", StepStatus.running, 25),
        ("a", StepStatus.completed, 50),
    ]
    assert received[0].total_steps == 2
    assert tracker.current == 50


def test_callback_errors_do_not_propagate() -> None:
    def broken(info: ProgressInfo) -> None:
        raise RuntimeError("observer crashed")

    tracker = ProgressTracker(1, broken)
    info = tracker.report(1, "a", "A", StepStatus.completed)

    assert info.progress == 100
