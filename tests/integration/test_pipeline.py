"""Integration tests for the nine-step onboarding run.

Tests cover:
- Fallback runs that make no inference calls
- Model-backed runs routed through a fake provider
- Partial failures: skipped file summaries and a failed second task batch
- Run aborts carrying the step history
- Provider ownership and closing
"""

from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import patch

import pytest

from onboardpack.config import GenerationRequest, OnboardpackConfig
from onboardpack.interpret.tasks import fallback_tasks
from onboardpack.pipeline.artifacts import fallback_architecture
from onboardpack.pipeline.engine import PipelineRunError
from onboardpack.pipeline.orchestrator import FALLBACK_FILE_SUMMARY, OnboardingOrchestrator
from onboardpack.pipeline.progress import ProgressInfo
from onboardpack.pipeline.steps import STEP_IDS, StepStatus
from onboardpack.providers.base import InferenceRequest, UpstreamError
from onboardpack.render.renderer import VALIDATION_FILE
from onboardpack.scanner.scanner import RepoScanner

from conftest import FakeProvider


def task_batch(start: int, end: int, prefix: str) -> str:
    return "\n".join(
        f"{n}. {prefix} task {n}\n"
        f"Description: Work through item {n} in src/index.ts\n"
        f"Difficulty: medium\n"
        f"Time: 1 hour\n"
        f"Criteria: Change compiles; Tests pass\n"
        f"Hints: Read the module first\n"
        f"Files: src/index.ts\n"
        f"Skills: reading\n"
        for n in range(start, end + 1)
    )


def model_responder(request: InferenceRequest) -> str:
    prompt = request.prompt
    if prompt.startswith("File: "):
        path = prompt.splitlines()[0].removeprefix("File: ")
        return f"Summary of {path}"
    if prompt.startswith("Directory Structure"):
        return "### Pattern: Monolith\nA single Express service."
    if prompt.startswith("Repository Context"):
        batch = re.search(r"Generate tasks (\d+) through (\d+)", request.system_prompt or "")
        start, end = int(batch.group(1)), int(batch.group(2))
        return task_batch(start, end, "Model")
    if prompt.startswith("Components:"):
        return "Here is the diagram:\n```mermaid\ngraph TD\n    A[src] --> B[tests]\n```\nEnjoy!"
    raise AssertionError(f"unexpected prompt: {prompt[:40]}")


def _orchestrator(
    config: OnboardpackConfig,
    repo: Path,
    provider: FakeProvider,
    skip_local_model: bool | None = None,
    events: list[ProgressInfo] | None = None,
) -> OnboardingOrchestrator:
    request = GenerationRequest(
        repo_path=repo, output_dir=repo.parent / "out", skip_local_model=skip_local_model
    )
    return OnboardingOrchestrator(
        config,
        request,
        provider=provider,
        on_progress=events.append if events is not None else None,
    )


@pytest.mark.integration
class TestFallbackRun:
    @pytest.mark.asyncio
    async def test_skip_model_makes_no_requests(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        provider = FakeProvider(ready=False)
        events: list[ProgressInfo] = []
        orchestrator = _orchestrator(test_config, node_repo, provider, True, events)

        pack = await orchestrator.run()

        assert provider.requests == []
        assert provider.status_checks == 1
        assert [s.id for s in orchestrator.steps] == list(STEP_IDS)
        assert all(s.status == StepStatus.completed for s in orchestrator.steps)

        assert [t.title for t in pack.tasks] == [t.title for t in fallback_tasks()]
        assert pack.diagram.startswith("graph TD")
        assert "Root[sample-service]" in pack.diagram
        assert pack.onboarding.architecture == fallback_architecture(orchestrator.metadata)
        assert set(pack.onboarding.key_files.values()) == {FALLBACK_FILE_SUMMARY}
        assert list(pack.onboarding.key_files) == [
            "src/index.ts",
            "README.md",
            "package.json",
            ".github/workflows/ci.yml",
        ]
        assert [t.name for t in pack.technologies] == [
            "TypeScript",
            "Azure SDK: @azure/storage-blob",
        ]

        assert events[0].step_number == 1
        assert events[0].step_status == StepStatus.running
        assert events[-1].progress == 100
        assert events[-1].step_id == "write-files"

    @pytest.mark.asyncio
    async def test_unavailable_provider_falls_back(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        provider = FakeProvider(ready=False)
        events: list[ProgressInfo] = []
        orchestrator = _orchestrator(test_config, node_repo, provider, events=events)

        pack = await orchestrator.run()

        assert provider.requests == []
        assert len(pack.tasks) == 10
        details = [e.detail for e in events if e.detail]
        assert "LLM provider unavailable - using fallback" in details
        assert all(detail.isascii() for detail in details)

    @pytest.mark.asyncio
    async def test_writes_output_files(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        orchestrator = _orchestrator(test_config, node_repo, FakeProvider(ready=False), True)

        await orchestrator.run()

        out = node_repo.parent / "out"
        assert [p.name for p in orchestrator.written_files] == [
            "ONBOARDING.md",
            "RUNBOOK.md",
            "TASKS.md",
            "AGENTS.md",
            "diagram.mmd",
            VALIDATION_FILE,
        ]
        assert all(p.parent == out and p.is_file() for p in orchestrator.written_files)
        assert (out / "diagram.mmd").read_text(encoding="utf-8").startswith("graph TD")


@pytest.mark.integration
class TestModelRun:
    @pytest.mark.asyncio
    async def test_generated_content(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        provider = FakeProvider(responder=model_responder)
        orchestrator = _orchestrator(test_config, node_repo, provider)

        pack = await orchestrator.run()

        assert len(provider.requests) == 8
        assert pack.onboarding.key_files["README.md"] == "Summary of README.md"
        assert pack.onboarding.architecture.startswith("### Pattern: Monolith")
        assert [t.id for t in pack.tasks] == list(range(1, 11))
        assert pack.tasks[0].title == "Model task 1"
        assert pack.tasks[9].title == "Model task 10"
        assert pack.diagram == "graph TD\n    A[src] --> B[tests]"

    @pytest.mark.asyncio
    async def test_skip_model_overrides_ready_provider(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        provider = FakeProvider(responder=model_responder)
        orchestrator = _orchestrator(test_config, node_repo, provider, skip_local_model=True)

        await orchestrator.run()

        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_failed_file_summary_is_skipped(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        def responder(request: InferenceRequest) -> str:
            if request.prompt.startswith("File: README.md"):
                raise UpstreamError("rate limited", status_code=429)
            return model_responder(request)

        orchestrator = _orchestrator(test_config, node_repo, FakeProvider(responder=responder))

        pack = await orchestrator.run()

        assert "README.md" not in pack.onboarding.key_files
        assert pack.onboarding.key_files["package.json"] == "Summary of package.json"

    @pytest.mark.asyncio
    async def test_second_task_batch_failure_pads_from_fallback(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        def responder(request: InferenceRequest) -> str:
            if "Generate tasks 6 through 10" in (request.system_prompt or ""):
                raise UpstreamError("timeout")
            return model_responder(request)

        orchestrator = _orchestrator(test_config, node_repo, FakeProvider(responder=responder))

        pack = await orchestrator.run()

        titles = [t.title for t in pack.tasks]
        assert titles[:5] == [f"Model task {n}" for n in range(1, 6)]
        assert titles[5:] == [t.title for t in fallback_tasks()[5:]]
        assert [t.id for t in pack.tasks] == list(range(1, 11))

    @pytest.mark.asyncio
    async def test_first_task_batch_failure_aborts(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        def responder(request: InferenceRequest) -> str:
            if request.prompt.startswith("Repository Context"):
                raise UpstreamError("model crashed", status_code=500)
            return model_responder(request)

        provider = FakeProvider(responder=responder)
        orchestrator = _orchestrator(test_config, node_repo, provider)

        with pytest.raises(PipelineRunError) as exc_info:
            await orchestrator.run()

        error = exc_info.value
        assert error.step_id == "gen-tasks"
        assert error.message == "model crashed"
        statuses = [s.status for s in error.steps]
        assert statuses == [StepStatus.completed] * 4 + [StepStatus.failed] + [StepStatus.pending] * 4
        assert orchestrator.written_files == []
        assert provider.closed is False


@pytest.mark.integration
class TestProviderOwnership:
    @pytest.mark.asyncio
    async def test_created_provider_is_closed(
        self, test_config: OnboardpackConfig, node_repo: Path
    ) -> None:
        provider = FakeProvider(ready=False)
        request = GenerationRequest(repo_path=node_repo, skip_local_model=True)

        with patch("onboardpack.pipeline.orchestrator.create_provider", return_value=provider):
            orchestrator = OnboardingOrchestrator(test_config, request)
            await orchestrator.run()

        assert provider.closed is True
        assert (node_repo / "docs" / "ONBOARDING.md").is_file()

    @pytest.mark.asyncio
    async def test_created_provider_closed_after_failure(
        self, test_config: OnboardpackConfig, tmp_path: Path
    ) -> None:
        provider = FakeProvider(ready=False)
        request = GenerationRequest(repo_path=tmp_path / "missing")

        with patch("onboardpack.pipeline.orchestrator.create_provider", return_value=provider):
            orchestrator = OnboardingOrchestrator(test_config, request)
            with pytest.raises(PipelineRunError) as exc_info:
                await orchestrator.run()

        assert exc_info.value.step_id == "scan-repo"
        assert provider.closed is True

    @pytest.mark.asyncio
    async def test_injected_scanner_is_used(
        self, test_config: OnboardpackConfig, node_repo: Path, tmp_path: Path
    ) -> None:
        request = GenerationRequest(
            repo_path=tmp_path / "elsewhere", output_dir=tmp_path / "out", skip_local_model=True
        )
        orchestrator = OnboardingOrchestrator(
            test_config, request, provider=FakeProvider(), scanner=RepoScanner(node_repo)
        )

        pack = await orchestrator.run()

        assert pack.onboarding.project_name == "sample-service"
