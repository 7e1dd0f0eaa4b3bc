"""Shared fixtures for onboardpack tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

from onboardpack.config import OnboardpackConfig, RetryConfig
from onboardpack.providers.base import (
    InferenceRequest,
    InferenceResponse,
    ProviderStatus,
)
from onboardpack.scanner.models import DirectoryNode, RepoMetadata


class FakeProvider:
    """In-memory InferenceProvider that records every request.

    ``responder`` maps a request to reply text; raising from it simulates a
    provider failure.
    """

    def __init__(
        self,
        ready: bool = True,
        responder: Callable[[InferenceRequest], str] | None = None,
    ) -> None:
        self.ready = ready
        self.responder = responder or (lambda request: "")
        self.requests: list[InferenceRequest] = []
        self.status_checks = 0
        self.closed = False
        self._available = False

    async def check_status(self) -> ProviderStatus:
        self.status_checks += 1
        self._available = self.ready
        return ProviderStatus(
            available=self.ready,
            endpoint="http://fake",
            models=["fake-model"] if self.ready else [],
            active_model="fake-model" if self.ready else None,
        )

    async def complete(self, request: InferenceRequest) -> InferenceResponse:
        self.requests.append(request)
        return InferenceResponse(content=self.responder(request))

    async def close(self) -> None:
        self.closed = True

    @property
    def is_ready(self) -> bool:
        return self._available

    @property
    def is_cloud_mode(self) -> bool:
        return False

    @property
    def current_model(self) -> str:
        return "fake-model"

    @property
    def current_endpoint(self) -> str:
        return "http://fake"

    @property
    def display_name(self) -> str:
        return "Fake Provider"


def write_files(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def reset_structlog() -> None:
    """Keep structlog configuration from leaking between tests."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def fast_retry() -> RetryConfig:
    return RetryConfig(max_retries=2, backoff_seconds=0.0, request_timeout_seconds=5.0)


@pytest.fixture
def test_config(fast_retry: RetryConfig) -> OnboardpackConfig:
    """Configuration with no retries delay and no cloud settings."""
    config = OnboardpackConfig()
    config.retry = fast_retry
    config.cloud.endpoint = None
    config.cloud.api_key = None
    return config


@pytest.fixture
def node_repo(tmp_path: Path) -> Path:
    """A small TypeScript service repository."""
    repo = tmp_path / "sample-service"
    package_json = {
        "name": "sample-service",
        "main": "src/index.ts",
        "scripts": {"build": "tsc", "test": "jest", "start": "node dist/index.js"},
        "dependencies": {"express": "^4.18.0", "@azure/storage-blob": "^12.0.0"},
        "devDependencies": {"jest": "^29.0.0", "typescript": "^5.0.0"},
    }
    return write_files(
        repo,
        {
            "package.json": json.dumps(package_json),
            "README.md": "# Sample service\n",
            "tsconfig.json": "{}",
            "src/index.ts": "import express from 'express';\n",
            "src/routes/users.ts": "export const users = [];\n",
            "src/util.js": "module.exports = {};\n",
            "tests/index.test.ts": "test('x', () => {});\n",
            ".github/workflows/ci.yml": "name: ci\n",
            "node_modules/express/index.js": "ignored\n",
        },
    )


@pytest.fixture
def bare_metadata() -> RepoMetadata:
    return RepoMetadata(
        name="empty",
        path="/nonexistent/empty",
        structure=DirectoryNode(name="empty", is_dir=True),
    )
