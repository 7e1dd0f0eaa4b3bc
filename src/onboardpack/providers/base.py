"""Inference provider contract, records and error taxonomy.

Every backend (local, cloud, agentic session) implements
:class:`InferenceProvider`. The pipeline only ever talks to this protocol;
which concrete variant it holds is decided once by
:func:`onboardpack.providers.factory.create_provider`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field


class ProviderError(Exception):
    """Base exception for inference provider errors."""

    pass


class ProviderConnectionError(ProviderError):
    """Raised when the provider cannot be reached after all retries."""

    pass


class ProviderUnavailableError(ProviderError):
    """Raised when a completion is requested before a successful status check."""

    pass


class UpstreamError(ProviderError):
    """Raised when the provider answers with an error or an unusable body.

    Attributes:
        status_code: HTTP status code, when the failure came with one
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class CachedModel(BaseModel):
    """A model present in the local model cache.

    Attributes:
        alias: Short human-facing name (e.g. "phi-4")
        model_id: Backend-specific full identifier (e.g. "Phi-4-cuda-gpu:1")
        device: Execution device (GPU or CPU)
        task: Model task (usually "chat")
        file_size: Human readable size on disk
    """

    alias: str
    model_id: str
    device: str = "GPU"
    task: str = "chat"
    file_size: str = "Unknown"


class ProviderStatus(BaseModel):
    """Snapshot produced by a provider status check."""

    available: bool
    endpoint: str
    models: list[str] = Field(default_factory=list)
    active_model: str | None = None
    cached_models: list[CachedModel] | None = None

    model_config = {"frozen": True}


class InferenceRequest(BaseModel):
    """A single chat-completion request."""

    prompt: str
    system_prompt: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


class TokenUsage(BaseModel):
    """Token accounting reported by the backend."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class InferenceResponse(BaseModel):
    """Text returned by a completion request."""

    content: str
    usage: TokenUsage | None = None


@runtime_checkable
class InferenceProvider(Protocol):
    """Uniform contract over every inference backend."""

    async def check_status(self) -> ProviderStatus:
        """Probe the backend and record whether it is usable.

        Never raises for an unreachable backend; returns an unavailable
        status instead.
        """
        ...

    async def complete(self, request: InferenceRequest) -> InferenceResponse:
        """Run one completion.

        Raises:
            ProviderUnavailableError: No successful status check yet
            ProviderConnectionError: Backend unreachable after retries
            UpstreamError: Backend rejected the request
        """
        ...

    async def close(self) -> None:
        """Release transports and sessions. Idempotent."""
        ...

    @property
    def is_ready(self) -> bool: ...

    @property
    def is_cloud_mode(self) -> bool: ...

    @property
    def current_model(self) -> str: ...

    @property
    def current_endpoint(self) -> str: ...

    @property
    def display_name(self) -> str: ...
