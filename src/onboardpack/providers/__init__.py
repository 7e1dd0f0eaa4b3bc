"""Inference providers for onboardpack.

Three interchangeable backends behind one :class:`InferenceProvider`
contract: a discovered local service, a static cloud endpoint, and an
agentic session.
"""

from onboardpack.providers.agent import AgentProvider, AgentSDK, AgentSession, CopilotAgentSDK
from onboardpack.providers.aliases import resolve_model_id
from onboardpack.providers.base import (
    CachedModel,
    InferenceProvider,
    InferenceRequest,
    InferenceResponse,
    ProviderConnectionError,
    ProviderError,
    ProviderStatus,
    ProviderUnavailableError,
    TokenUsage,
    UpstreamError,
)
from onboardpack.providers.cloud import CloudProvider
from onboardpack.providers.discovery import discover_endpoint, list_cached_models
from onboardpack.providers.factory import create_provider
from onboardpack.providers.local import LocalProvider

__all__ = [
    # Contract
    "InferenceProvider",
    "InferenceRequest",
    "InferenceResponse",
    "ProviderStatus",
    "CachedModel",
    "TokenUsage",
    # Errors
    "ProviderError",
    "ProviderConnectionError",
    "ProviderUnavailableError",
    "UpstreamError",
    # Variants
    "LocalProvider",
    "CloudProvider",
    "AgentProvider",
    "AgentSDK",
    "AgentSession",
    "CopilotAgentSDK",
    "create_provider",
    # Discovery
    "discover_endpoint",
    "list_cached_models",
    "resolve_model_id",
]
