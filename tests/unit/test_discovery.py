"""Unit tests for local service discovery and model alias resolution."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from onboardpack.providers.aliases import resolve_model_id, synthesize_cached_models
from onboardpack.providers.base import CachedModel
from onboardpack.providers.discovery import (
    discover_endpoint,
    extract_endpoint,
    list_cached_models,
    parse_model_listing,
)

STATUS_OUTPUT = "🟢 Model management service is running on http://127.0.0.1:58243/openai/status\n"

MODEL_LISTING = """\
Alias                          Device     Task           File Size    License      Model ID
-----------------------------------------------------------------------------------------------
phi-4-mini                     GPU        chat, tools    3.72 GB      MIT          Phi-4-mini-instruct-cuda-gpu:5
                               CPU        chat, tools    4.80 GB      MIT          Phi-4-mini-instruct-generic-cpu:5
qwen2.5-0.5b                   CPU        chat           0.80 GB      apache-2.0   qwen2.5-0.5b-instruct-generic-cpu:4
"""


class TestExtractEndpoint:
    def test_extracts_base_url(self) -> None:
        assert extract_endpoint(STATUS_OUTPUT) == "http://127.0.0.1:58243"

    def test_no_match(self) -> None:
        assert extract_endpoint("Model management service is not running") is None


class TestDiscoverEndpoint:
    @pytest.mark.asyncio
    async def test_returns_discovered_address(self) -> None:
        with patch(
            "onboardpack.providers.discovery._run_command",
            AsyncMock(return_value=(0, STATUS_OUTPUT)),
        ):
            assert await discover_endpoint() == "http://127.0.0.1:58243"

    @pytest.mark.asyncio
    async def test_timeout_yields_none(self) -> None:
        with patch(
            "onboardpack.providers.discovery._run_command",
            AsyncMock(side_effect=asyncio.TimeoutError()),
        ):
            assert await discover_endpoint(timeout=0.1) is None

    @pytest.mark.asyncio
    async def test_missing_executable_yields_none(self) -> None:
        assert await discover_endpoint("definitely-not-a-real-command-xyz status") is None


class TestParseModelListing:
    def test_parses_rows_and_variants(self) -> None:
        models = parse_model_listing(MODEL_LISTING)

        assert [m.model_id for m in models] == [
            "Phi-4-mini-instruct-cuda-gpu:5",
            "Phi-4-mini-instruct-generic-cpu:5",
            "qwen2.5-0.5b-instruct-generic-cpu:4",
        ]
        assert models[0].alias == "phi-4-mini"
        assert models[1].alias == "phi-4-mini"
        assert models[1].device == "CPU"
        assert models[0].file_size == "3.72 GB"
        assert models[0].task == "chat, tools"

    def test_empty_output(self) -> None:
        assert parse_model_listing("") == []

    @pytest.mark.asyncio
    async def test_listing_failure_is_empty(self) -> None:
        with patch(
            "onboardpack.providers.discovery._run_command",
            AsyncMock(return_value=(1, "error")),
        ):
            assert await list_cached_models() == []


class TestResolveModelId:
    CACHED = [
        CachedModel(alias="phi-4-mini", model_id="A"),
        CachedModel(alias="phi-4-mini-reasoning", model_id="B"),
    ]

    def test_exact_alias_wins_over_prefix(self) -> None:
        assert resolve_model_id("phi-4-mini", self.CACHED) == "A"

    def test_exact_alias_independent_of_listing_order(self) -> None:
        assert resolve_model_id("phi-4-mini", list(reversed(self.CACHED))) == "A"

    def test_alias_match_is_case_insensitive(self) -> None:
        assert resolve_model_id("PHI-4-MINI-REASONING", self.CACHED) == "B"

    def test_full_identifier_passes_through(self) -> None:
        assert resolve_model_id("Phi-4-cuda-gpu:1", self.CACHED) == "Phi-4-cuda-gpu:1"

    def test_prefix_match_on_identifier(self) -> None:
        cached = [CachedModel(alias="x", model_id="Phi-4-cuda-gpu:1")]
        assert resolve_model_id("phi-4", cached) == "Phi-4-cuda-gpu:1"

    def test_unknown_name_unchanged(self) -> None:
        assert resolve_model_id("mistral", self.CACHED) == "mistral"

    def test_synthesized_models(self) -> None:
        models = synthesize_cached_models(["Phi-4-cuda-gpu:1"])
        assert models[0].alias == "phi"
        assert models[0].model_id == "Phi-4-cuda-gpu:1"
