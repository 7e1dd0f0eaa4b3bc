"""Agentic session inference provider.

Completions go through a long-lived session held by an agent SDK rather
than a raw HTTP endpoint. The SDK is reached through the :class:`AgentSDK`
protocol so the provider can be exercised without the real SDK installed;
:class:`CopilotAgentSDK` adapts the GitHub Copilot SDK (``github-copilot-sdk``,
installed with the ``agent`` extra) to that protocol.
"""

from __future__ import annotations

import os
from typing import Any, Protocol, runtime_checkable

import structlog

from onboardpack.config import AgentProviderConfig
from onboardpack.providers.base import (
    InferenceRequest,
    InferenceResponse,
    ProviderConnectionError,
    ProviderError,
    ProviderStatus,
    ProviderUnavailableError,
    UpstreamError,
)

logger = structlog.get_logger(__name__)

AGENT_ENDPOINT = "copilot-sdk"


@runtime_checkable
class AgentSession(Protocol):
    """An open conversation with the agent backend."""

    async def send_and_wait(self, prompt: str) -> str:
        """Send one prompt and wait for the final reply text.

        Args:
            prompt: Full prompt text, system framing included

        Returns:
            Reply text (empty when the backend returned none)
        """
        ...

    async def destroy(self) -> None:
        """End the session."""
        ...


@runtime_checkable
class AgentSDK(Protocol):
    """Client side of an agent backend."""

    async def start(self) -> None:
        """Start the backend client.

        Raises:
            Exception: Any failure means the backend is unavailable
        """
        ...

    async def create_session(
        self, model: str, provider: dict[str, Any] | None = None
    ) -> AgentSession:
        """Open a session for ``model``, optionally on a bring-your-own-key provider."""
        ...

    async def stop(self) -> None:
        """Stop the backend client."""
        ...


class _CopilotSession:
    def __init__(self, session: Any) -> None:
        self._session = session

    async def send_and_wait(self, prompt: str) -> str:
        result = await self._session.send_and_wait({"prompt": prompt})
        data = getattr(result, "data", None)
        return getattr(data, "content", None) or ""

    async def destroy(self) -> None:
        await self._session.destroy()


class CopilotAgentSDK:
    """:class:`AgentSDK` backed by the GitHub Copilot SDK.

    The SDK drives the Copilot CLI, which must be installed separately.
    The import happens in :meth:`start` so the package works without the
    ``agent`` extra as long as no agentic session is requested.
    """

    def __init__(self, github_token: str | None = None) -> None:
        self._github_token = (
            github_token or os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN")
        )
        self._client: Any = None

    async def start(self) -> None:
        from copilot import CopilotClient

        options: dict[str, Any] = {"auto_start": True}
        if self._github_token:
            options["github_token"] = self._github_token
        self._client = CopilotClient(options)
        await self._client.start()

    async def create_session(
        self, model: str, provider: dict[str, Any] | None = None
    ) -> AgentSession:
        if self._client is None:
            raise RuntimeError("Copilot client not started. Call start() first.")
        session_config: dict[str, Any] = {"model": model}
        if provider:
            session_config["provider"] = provider
        return _CopilotSession(await self._client.create_session(session_config))

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.stop()
            self._client = None


def frame_prompt(prompt: str, system_prompt: str | None) -> str:
    """Prepend the system prompt in a ``<system>`` block, if there is one."""
    if not system_prompt:
        return prompt
    return f"<system>\n{system_prompt}\n</system>\n\n{prompt}"


class AgentProvider:
    """Inference provider running completions through an agent session.

    The session is created lazily on the first completion and reused for
    the rest of the run. Failures are not retried.

    Attributes:
        config: Agent backend configuration
    """

    def __init__(self, config: AgentProviderConfig, sdk: AgentSDK | None = None) -> None:
        self.config = config
        self._sdk: AgentSDK = sdk or CopilotAgentSDK(config.github_token)
        self._session: AgentSession | None = None
        self._started = False
        self._available = False
        logger.info("agent_provider_initialized", model=config.model, byok=self._byok is not None)

    @property
    def _byok(self) -> dict[str, Any] | None:
        if not self.config.provider_type or not self.config.provider_base_url:
            return None
        return {
            "type": self.config.provider_type,
            "base_url": self.config.provider_base_url,
            "api_key": self.config.provider_api_key,
        }

    async def check_status(self) -> ProviderStatus:
        try:
            await self._sdk.start()
        except Exception as e:
            self._available = False
            logger.warning(
                "agent_start_failed", error=str(e), error_type=type(e).__name__
            )
            return ProviderStatus(available=False, endpoint=self.current_endpoint, models=[])

        self._started = True
        self._available = True
        logger.info("provider_status_checked", provider="agent", available=True, model=self.current_model)
        return ProviderStatus(
            available=True,
            endpoint=self.current_endpoint,
            models=[self.current_model],
            active_model=self.current_model,
        )

    async def _get_session(self) -> AgentSession:
        if self._session is None:
            self._session = await self._sdk.create_session(self.current_model, self._byok)
            logger.debug("agent_session_created", model=self.current_model)
        return self._session

    async def complete(self, request: InferenceRequest) -> InferenceResponse:
        """Send the request through the agent session.

        The session backend has no separate system role, so a system prompt
        is folded into the prompt text. No token usage is reported.

        Raises:
            ProviderUnavailableError: If the backend was never started
            ProviderConnectionError: If the backend process went away
            UpstreamError: For any other backend failure
        """
        if not self._available:
            raise ProviderUnavailableError(
                "Agent backend is not available. Ensure the Copilot CLI is installed."
            )

        prompt = frame_prompt(request.prompt, request.system_prompt)
        try:
            session = await self._get_session()
            content = await session.send_and_wait(prompt)
        except ProviderError:
            raise
        except (ConnectionError, ProcessLookupError) as e:
            raise ProviderConnectionError(f"Agent backend connection lost: {e}") from e
        except Exception as e:
            raise UpstreamError(f"Agent backend error: {e}") from e

        logger.info("inference_completed", model=self.current_model, content_length=len(content))
        return InferenceResponse(content=content, usage=None)

    async def close(self) -> None:
        """Tear down the session and the SDK client.

        Teardown failures are logged, not raised, so the SDK is always stopped.
        """
        self._available = False
        if self._session is not None:
            session, self._session = self._session, None
            try:
                await session.destroy()
            except Exception as e:
                logger.warning("agent_session_destroy_failed", error=str(e), error_type=type(e).__name__)
        if self._started:
            self._started = False
            try:
                await self._sdk.stop()
            except Exception as e:
                logger.warning("agent_sdk_stop_failed", error=str(e), error_type=type(e).__name__)

    @property
    def is_ready(self) -> bool:
        return self._available

    @property
    def is_cloud_mode(self) -> bool:
        return self._byok is None

    @property
    def current_model(self) -> str:
        return self.config.model

    @property
    def current_endpoint(self) -> str:
        return self.config.provider_base_url or AGENT_ENDPOINT

    @property
    def display_name(self) -> str:
        return "GitHub Copilot SDK"
