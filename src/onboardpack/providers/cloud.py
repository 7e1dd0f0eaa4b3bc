"""Cloud inference provider (Microsoft Foundry / Azure OpenAI / OpenAI-compatible).

The endpoint and key are static. Azure-hosted endpoints are recognised by
hostname and use deployment-based routing with an ``api-key`` header and an
``api-version`` query parameter; every other endpoint uses the plain
``/v1/chat/completions`` route with a bearer token.
"""

from __future__ import annotations

import re

import httpx
import structlog

from onboardpack.config import CloudProviderConfig, RetryConfig
from onboardpack.providers.base import ProviderStatus
from onboardpack.providers.http import HttpInferenceProvider

logger = structlog.get_logger(__name__)

AZURE_HOST_PATTERN = re.compile(
    r"\.(cognitiveservices\.azure\.com|openai\.azure\.com"
    r"|services\.ai\.azure\.com|services\.foundry\.microsoft\.com)"
)


def is_azure_endpoint(endpoint: str) -> bool:
    """Return True for Azure-style deployment endpoints."""
    return AZURE_HOST_PATTERN.search(endpoint) is not None


class CloudProvider(HttpInferenceProvider):
    """Provider for a statically addressed cloud deployment.

    Attributes:
        config: Cloud provider configuration
        api_key: Credential sent with every request
        is_azure: Whether Azure request conventions are in use
    """

    token_limit_field = "max_completion_tokens"
    unavailable_message = (
        "Cloud endpoint is not available. Check your endpoint URL and API key."
    )

    def __init__(
        self,
        config: CloudProviderConfig,
        retry: RetryConfig,
        endpoint: str,
        api_key: str,
        model: str | None = None,
        default_max_tokens: int = 2048,
        default_temperature: float = 0.3,
    ) -> None:
        self.config = config
        self.api_key = api_key
        super().__init__(
            endpoint=endpoint.rstrip("/"),
            model=model or config.model,
            retry=retry,
            default_max_tokens=default_max_tokens,
            default_temperature=default_temperature,
        )
        self.is_azure = is_azure_endpoint(self._endpoint)
        logger.info(
            "cloud_provider_initialized",
            endpoint=self._endpoint,
            model=self._model,
            azure=self.is_azure,
        )

    def _headers(self) -> dict[str, str]:
        if self.is_azure:
            return {"api-key": self.api_key}
        return {"Authorization": f"Bearer {self.api_key}", "api-key": self.api_key}

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._endpoint,
            timeout=httpx.Timeout(self.retry.request_timeout_seconds),
            headers=self._headers(),
        )

    def _completion_path(self) -> str:
        if self.is_azure:
            return (
                f"/openai/deployments/{self._model}/chat/completions"
                f"?api-version={self.config.api_version}"
            )
        return "/v1/chat/completions"

    def _models_path(self) -> str:
        if self.is_azure:
            return f"/openai/models?api-version={self.config.api_version}"
        return "/v1/models"

    def _status(self, available: bool, models: list[str] | None = None) -> ProviderStatus:
        logger.info(
            "provider_status_checked",
            provider="cloud",
            available=available,
            endpoint=self._endpoint,
            model=self._model if available else None,
        )
        if not available:
            return ProviderStatus(available=False, endpoint=self._endpoint, models=[])
        return ProviderStatus(
            available=True,
            endpoint=self._endpoint,
            models=models or [self._model],
            active_model=self._model,
        )

    async def check_status(self) -> ProviderStatus:
        """Verify the endpoint is reachable.

        A deployment that does not support model listing is still treated
        as available once the client has been constructed; only transport
        failures or an unusable endpoint mark it unavailable.
        """
        try:
            await self._rebuild_client()
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError, TypeError) as e:
            logger.error("cloud_client_construction_failed", endpoint=self._endpoint, error=str(e))
            self._available = False
            return self._status(False)

        self._available = True
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.status_timeout_seconds),
                headers=self._headers(),
            ) as probe:
                response = await probe.get(f"{self._endpoint}{self._models_path()}")
        except httpx.HTTPError as e:
            logger.warning("cloud_status_probe_failed", endpoint=self._endpoint, error=str(e))
            self._available = False
            return self._status(False)

        if response.is_success:
            try:
                data = response.json().get("data") or []
                models = [m["id"] for m in data if isinstance(m, dict) and "id" in m]
            except (ValueError, AttributeError):
                models = []
            return self._status(True, models)

        logger.info(
            "cloud_model_listing_unsupported",
            endpoint=self._endpoint,
            status_code=response.status_code,
        )
        return self._status(True)

    @property
    def is_cloud_mode(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return "Microsoft Foundry"
