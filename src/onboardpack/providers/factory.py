"""Provider selection.

The variant is chosen once per run from the request and configuration:
an agentic session when requested, the cloud endpoint when both an endpoint
and a key are known, and the local service otherwise.
"""

from __future__ import annotations

import structlog

from onboardpack.config import GenerationRequest, OnboardpackConfig
from onboardpack.providers.agent import AgentProvider, AgentSDK
from onboardpack.providers.base import InferenceProvider
from onboardpack.providers.cloud import CloudProvider
from onboardpack.providers.local import LocalProvider

logger = structlog.get_logger(__name__)


def create_provider(
    config: OnboardpackConfig,
    request: GenerationRequest,
    agent_sdk: AgentSDK | None = None,
) -> InferenceProvider:
    """Construct the inference provider for one run.

    Args:
        config: Loaded configuration
        request: Per-run overrides
        agent_sdk: SDK to use for agentic sessions (defaults to the Copilot SDK)

    Returns:
        A fresh provider instance owned by the caller
    """
    max_tokens = config.pipeline.max_tokens
    temperature = config.pipeline.temperature

    if request.use_agent:
        agent_config = config.agent
        if request.agent_model:
            agent_config = agent_config.model_copy(update={"model": request.agent_model})
        logger.info("provider_selected", provider="agent", model=agent_config.model)
        return AgentProvider(agent_config, sdk=agent_sdk)

    cloud_endpoint = request.cloud_endpoint or config.cloud.endpoint
    cloud_api_key = request.cloud_api_key or config.cloud.api_key
    if cloud_endpoint and cloud_api_key:
        logger.info("provider_selected", provider="cloud", endpoint=cloud_endpoint)
        return CloudProvider(
            config.cloud,
            config.retry,
            endpoint=cloud_endpoint,
            api_key=cloud_api_key,
            model=request.cloud_model,
            default_max_tokens=max_tokens,
            default_temperature=temperature,
        )
    if cloud_endpoint or request.cloud_api_key:
        logger.warning(
            "cloud_config_incomplete",
            has_endpoint=bool(cloud_endpoint),
            has_api_key=bool(cloud_api_key),
            fallback="local",
        )

    logger.info("provider_selected", provider="local")
    return LocalProvider(
        config.local,
        config.retry,
        endpoint=request.endpoint,
        model=request.model,
        default_max_tokens=max_tokens,
        default_temperature=temperature,
    )
