"""Foundry Local inference provider.

Foundry Local serves an OpenAI-compatible API on a port that changes
across restarts. The endpoint is resolved from, in order: an explicit
override, the FOUNDRY_LOCAL_ENDPOINT setting, ``foundry service status``
discovery, and finally :data:`DEFAULT_ENDPOINT`. Connection failures
trigger rediscovery, since the service may have come back on a new port.

Example usage:
    >>> provider = LocalProvider(LocalProviderConfig(), RetryConfig())
    >>> status = await provider.check_status()
    >>> if status.available:
    ...     reply = await provider.complete(InferenceRequest(prompt="Hello"))
"""

from __future__ import annotations

import httpx
import structlog

from onboardpack.config import LocalProviderConfig, RetryConfig
from onboardpack.providers.aliases import resolve_model_id, synthesize_cached_models
from onboardpack.providers.base import CachedModel, ProviderStatus
from onboardpack.providers.discovery import discover_endpoint, list_cached_models
from onboardpack.providers.http import HttpInferenceProvider

logger = structlog.get_logger(__name__)

DEFAULT_ENDPOINT = "http://localhost:5273"
LOCAL_API_KEY = "foundry-local"


class LocalProvider(HttpInferenceProvider):
    """Provider for a dynamically addressed local inference service.

    Attributes:
        config: Local provider configuration (commands, timeouts)
    """

    unavailable_message = "Foundry Local is not available. Please start it first."

    def __init__(
        self,
        config: LocalProviderConfig,
        retry: RetryConfig,
        endpoint: str | None = None,
        model: str | None = None,
        default_max_tokens: int = 2048,
        default_temperature: float = 0.3,
    ) -> None:
        self.config = config
        configured = endpoint or config.endpoint
        super().__init__(
            endpoint=(configured or DEFAULT_ENDPOINT).rstrip("/"),
            model=model or config.model,
            retry=retry,
            default_max_tokens=default_max_tokens,
            default_temperature=default_temperature,
        )
        self._endpoint_resolved = configured is not None
        logger.info(
            "local_provider_initialized",
            endpoint=self._endpoint if self._endpoint_resolved else None,
            model=self._model,
        )

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._endpoint,
            timeout=httpx.Timeout(self.retry.request_timeout_seconds),
            headers={"Authorization": f"Bearer {LOCAL_API_KEY}"},
        )

    def _completion_path(self) -> str:
        return "/v1/chat/completions"

    async def _discover(self) -> str | None:
        return await discover_endpoint(
            self.config.discovery_command, self.config.discovery_timeout_seconds
        )

    async def _rediscover(self) -> bool:
        """Look the endpoint up again; True if it moved."""
        discovered = await self._discover()
        if discovered and discovered != self._endpoint:
            logger.info(
                "local_endpoint_rediscovered",
                previous=self._endpoint,
                endpoint=discovered,
            )
            self._endpoint = discovered
            return True
        return False

    async def _resolve_initial_endpoint(self) -> None:
        if self._endpoint_resolved:
            return
        discovered = await self._discover()
        if discovered:
            self._endpoint = discovered
        self._endpoint_resolved = True

    async def _before_retry(self) -> None:
        if await self._rediscover():
            await self._rebuild_client()

    async def _probe(self, path: str) -> httpx.Response | None:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.status_timeout_seconds)
            ) as probe:
                return await probe.get(f"{self._endpoint}{path}")
        except httpx.HTTPError as e:
            logger.warning(
                "local_probe_failed", endpoint=self._endpoint, path=path, error=str(e)
            )
            return None

    async def _mark_available(
        self, models: list[str], cached: list[CachedModel]
    ) -> ProviderStatus:
        self._model = resolve_model_id(self._model, cached or synthesize_cached_models(models))
        self._available = True
        await self._rebuild_client()
        logger.info(
            "provider_status_checked",
            provider="local",
            available=True,
            endpoint=self._endpoint,
            model=self._model,
        )
        return ProviderStatus(
            available=True,
            endpoint=self._endpoint,
            models=models or [self._model],
            active_model=self._model,
            cached_models=cached,
        )

    async def check_status(self) -> ProviderStatus:
        """Check that the service answers and resolve the model identifier.

        Tries the models listing; if that fails, rediscovers the endpoint
        once and retries the listing. If the listing path still fails, the
        secondary ``/openai/status`` probe decides availability.
        """
        await self._resolve_initial_endpoint()
        cached = await list_cached_models(
            self.config.model_list_command, self.config.model_list_timeout_seconds
        )

        for attempt in range(2):
            response = await self._probe("/v1/models")
            if response is not None and response.is_success:
                try:
                    data = response.json().get("data") or []
                    models = [m["id"] for m in data if isinstance(m, dict) and "id" in m]
                except (ValueError, AttributeError):
                    models = []
                return await self._mark_available(models, cached)

            if attempt == 0 and await self._rediscover():
                continue
            break

        response = await self._probe("/openai/status")
        if response is not None and response.is_success:
            return await self._mark_available([], cached)

        self._available = False
        logger.warning(
            "provider_status_checked",
            provider="local",
            available=False,
            endpoint=self._endpoint,
        )
        return ProviderStatus(
            available=False, endpoint=self._endpoint, models=[], cached_models=cached
        )

    @property
    def is_cloud_mode(self) -> bool:
        return False

    @property
    def display_name(self) -> str:
        return "Foundry Local"
