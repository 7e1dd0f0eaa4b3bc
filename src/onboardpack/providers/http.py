"""Shared machinery for OpenAI-style chat-completion providers.

The local and cloud variants differ only in addressing, authentication and
the token-limit field name; the request/response shape and the retry policy
live here.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from onboardpack.config import RetryConfig
from onboardpack.providers.base import (
    InferenceRequest,
    InferenceResponse,
    ProviderConnectionError,
    ProviderError,
    ProviderUnavailableError,
    TokenUsage,
    UpstreamError,
)

logger = structlog.get_logger(__name__)

#: Transport failures that trigger backoff, and rediscovery for local endpoints.
CONNECTION_ERRORS: tuple[type[Exception], ...] = (
    httpx.NetworkError,
    httpx.TimeoutException,
    httpx.RemoteProtocolError,
)


class HttpInferenceProvider:
    """Abstract base for providers speaking the chat-completions protocol.

    Not usable on its own: subclasses must supply the transport
    (``_build_client``) and the completion path (``_completion_path``), and
    may override the token-limit field and the pre-retry hook.

    Attributes:
        retry: Retry policy for completion requests
        default_max_tokens: Token limit used when a request sets none
        default_temperature: Temperature used when a request sets none
    """

    token_limit_field = "max_tokens"
    unavailable_message = "Inference provider is not available."

    def __init__(
        self,
        endpoint: str,
        model: str,
        retry: RetryConfig,
        default_max_tokens: int = 2048,
        default_temperature: float = 0.3,
    ) -> None:
        self.retry = retry
        self.default_max_tokens = default_max_tokens
        self.default_temperature = default_temperature
        self._endpoint = endpoint
        self._model = model
        self._available = False
        self._client: httpx.AsyncClient | None = None

    def _build_client(self) -> httpx.AsyncClient:
        raise NotImplementedError(f"{type(self).__name__} must implement _build_client")

    def _completion_path(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} must implement _completion_path")

    async def _before_retry(self) -> None:
        """Hook run after the backoff wait and before the next attempt."""

    async def _rebuild_client(self) -> None:
        """Replace the underlying transport, e.g. after the endpoint moved."""
        if self._client is not None:
            await self._client.aclose()
        self._client = self._build_client()

    def _build_payload(self, request: InferenceRequest) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})

        return {
            "model": self._model,
            "messages": messages,
            self.token_limit_field: request.max_tokens or self.default_max_tokens,
            "temperature": (
                request.temperature
                if request.temperature is not None
                else self.default_temperature
            ),
        }

    @staticmethod
    def _parse_completion(response: httpx.Response) -> InferenceResponse:
        if not response.is_success:
            error_msg = f"API error: HTTP {response.status_code}"
            try:
                error_msg = f"{error_msg}: {response.json()}"
            except ValueError:
                error_msg = f"{error_msg}: {response.text[:500]}"
            raise UpstreamError(error_msg, status_code=response.status_code)

        try:
            data = response.json()
            choices = data.get("choices") or [{}]
            message = choices[0].get("message") or {}
        except (ValueError, AttributeError) as e:
            raise UpstreamError(f"Invalid completion response: {e}") from e

        usage = data.get("usage")
        return InferenceResponse(
            content=message.get("content") or "",
            usage=(
                TokenUsage(
                    prompt_tokens=usage.get("prompt_tokens", 0),
                    completion_tokens=usage.get("completion_tokens", 0),
                    total_tokens=usage.get("total_tokens", 0),
                )
                if isinstance(usage, dict)
                else None
            ),
        )

    async def complete(self, request: InferenceRequest) -> InferenceResponse:
        """Send a completion request, retrying on connection errors.

        A connection-class failure waits ``retry.backoff_seconds``, runs the
        pre-retry hook, and tries again, up to ``retry.max_retries`` extra
        attempts. Any other failure propagates at once.

        Raises:
            ProviderUnavailableError: If no status check has succeeded
            ProviderConnectionError: If every attempt failed to connect
            UpstreamError: If the provider rejected the request
        """
        if not self._available or self._client is None:
            raise ProviderUnavailableError(self.unavailable_message)

        payload = self._build_payload(request)
        max_retries = self.retry.max_retries

        for attempt in range(max_retries + 1):
            try:
                logger.debug(
                    "inference_request",
                    endpoint=self._endpoint,
                    model=self._model,
                    attempt=attempt + 1,
                    prompt_length=len(request.prompt),
                )
                response = await self._client.post(self._completion_path(), json=payload)
            except CONNECTION_ERRORS as e:
                if attempt < max_retries:
                    logger.warning(
                        "inference_connection_retry",
                        endpoint=self._endpoint,
                        attempt=attempt + 1,
                        backoff_seconds=self.retry.backoff_seconds,
                        error=str(e),
                    )
                    await asyncio.sleep(self.retry.backoff_seconds)
                    await self._before_retry()
                    continue
                logger.error(
                    "inference_connection_exhausted",
                    endpoint=self._endpoint,
                    attempts=attempt + 1,
                )
                raise ProviderConnectionError(
                    f"Failed to reach {self._endpoint} after {attempt + 1} attempts: {e}"
                ) from e
            except httpx.HTTPError as e:
                logger.error(
                    "inference_transport_error",
                    endpoint=self._endpoint,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise UpstreamError(f"Request to {self._endpoint} failed: {e}") from e

            result = self._parse_completion(response)
            self._available = True
            logger.info(
                "inference_completed",
                model=self._model,
                attempt=attempt + 1,
                content_length=len(result.content),
                total_tokens=result.usage.total_tokens if result.usage else None,
            )
            return result

        raise ProviderError("Unexpected retry loop exit")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_ready(self) -> bool:
        return self._available

    @property
    def current_model(self) -> str:
        return self._model

    @property
    def current_endpoint(self) -> str:
        return self._endpoint
