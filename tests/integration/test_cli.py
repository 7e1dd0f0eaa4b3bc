"""Integration tests for CLI commands.

This module tests the Typer-based CLI: pack generation, the provider status
check and the version command. Providers are replaced by an in-memory fake.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from onboardpack import __version__
from onboardpack.main import app
from onboardpack.providers.base import InferenceRequest, UpstreamError

from conftest import FakeProvider


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.mark.integration
class TestGenerateCLI:
    def test_generate_skip_local(self, cli_runner: CliRunner, node_repo: Path, tmp_path: Path) -> None:
        out = tmp_path / "pack"
        provider = FakeProvider(ready=False)

        with patch("onboardpack.pipeline.orchestrator.create_provider", return_value=provider):
            result = cli_runner.invoke(
                app, ["generate", str(node_repo), "--skip-local", "-o", str(out)]
            )

        assert result.exit_code == 0, result.output
        assert "Onboarding pack written to" in result.output
        assert "TASKS.md" in result.output
        assert "TypeScript" in result.output
        assert (out / "ONBOARDING.md").is_file()
        assert (out / "VALIDATION.md").is_file()
        assert provider.requests == []
        assert provider.closed is True

    def test_generate_default_output_dir(self, cli_runner: CliRunner, node_repo: Path) -> None:
        with patch(
            "onboardpack.pipeline.orchestrator.create_provider",
            return_value=FakeProvider(ready=False),
        ):
            result = cli_runner.invoke(app, ["generate", str(node_repo), "--skip-local"])

        assert result.exit_code == 0, result.output
        assert (node_repo / "docs" / "RUNBOOK.md").is_file()

    def test_generate_step_failure(self, cli_runner: CliRunner, node_repo: Path, tmp_path: Path) -> None:
        def responder(request: InferenceRequest) -> str:
            raise UpstreamError("model offline")

        with patch(
            "onboardpack.pipeline.orchestrator.create_provider",
            return_value=FakeProvider(responder=responder),
        ):
            result = cli_runner.invoke(
                app, ["generate", str(node_repo), "-o", str(tmp_path / "out")]
            )

        assert result.exit_code == 1
        assert "Generation failed at step gen-architecture" in result.output
        assert not (tmp_path / "out").exists()

    def test_generate_missing_repository(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(app, ["generate", str(tmp_path / "nope")])

        assert result.exit_code != 0

    def test_generate_invalid_config(self, cli_runner: CliRunner, node_repo: Path, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.toml"
        config_file.write_text("[retry]\nmax_retries = 99\n", encoding="utf-8")

        result = cli_runner.invoke(
            app, ["generate", str(node_repo), "--skip-local", "-c", str(config_file)]
        )

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output


@pytest.mark.integration
class TestStatusCLI:
    def test_status_online(self, cli_runner: CliRunner) -> None:
        provider = FakeProvider(ready=True)

        with patch("onboardpack.main.create_provider", return_value=provider):
            result = cli_runner.invoke(app, ["status"])

        assert result.exit_code == 0, result.output
        assert "Fake Provider" in result.output
        assert "online" in result.output
        assert "fake-model" in result.output
        assert provider.closed is True

    def test_status_unavailable(self, cli_runner: CliRunner) -> None:
        provider = FakeProvider(ready=False)

        with patch("onboardpack.main.create_provider", return_value=provider):
            result = cli_runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "unavailable" in result.output
        assert provider.closed is True


def test_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
