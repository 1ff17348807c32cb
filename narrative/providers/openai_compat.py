"""
OpenAI-Compatible Provider
==========================

Chat-completions provider for any endpoint speaking the OpenAI wire format.

GUARANTEES:
- One HTTP request per invocation, bounded by params.timeout_seconds
- No retries
- Schema-constrained output (response_format=json_schema) when a schema is given
- Never raises: transport and envelope failures become error responses
"""

from __future__ import annotations
import time
from datetime import datetime, timezone
from typing import Optional

import httpx

from .base import (
    InvocationParams,
    NarrativeProvider,
    ProviderErrorCode,
    ProviderResponse,
    ProviderVersion,
)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


class OpenAICompatibleProvider(NarrativeProvider):
    """
    Provider backed by a /chat/completions endpoint.

    Args:
        api_key: Bearer token. Without one every call fails NOT_CONFIGURED.
        base_url: API root, e.g. https://api.openai.com/v1
        model: Model id sent with every request
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._transport = transport
        self._version = ProviderVersion(
            provider_id="openai-compatible",
            model_id=model,
            api_version="v1",
        )

    @property
    def provider_id(self) -> str:
        return "openai-compatible"

    def get_version(self) -> ProviderVersion:
        return self._version

    def invoke(
        self,
        prompt: str,
        params: InvocationParams,
        system_prompt: Optional[str] = None,
        response_schema: Optional[dict] = None,
    ) -> ProviderResponse:
        invoked_at = datetime.now(timezone.utc)
        start = time.time()

        if not self._api_key:
            return self._failure(ProviderErrorCode.NOT_CONFIGURED, "No API key configured", invoked_at, start, params)

        try:
            with httpx.Client(timeout=params.timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    f"{self._base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=self._payload(prompt, params, system_prompt, response_schema),
                )
        except httpx.TimeoutException:
            return self._failure(
                ProviderErrorCode.TIMEOUT, f"No response within {params.timeout_seconds}s", invoked_at, start, params
            )
        except httpx.HTTPError as e:
            return self._failure(ProviderErrorCode.NETWORK_ERROR, str(e), invoked_at, start, params)

        if response.status_code == 429:
            return self._failure(ProviderErrorCode.RATE_LIMITED, "Rate limited", invoked_at, start, params)
        if response.status_code >= 400:
            return self._failure(
                ProviderErrorCode.API_ERROR, f"HTTP {response.status_code}", invoked_at, start, params
            )

        try:
            choice = response.json()["choices"][0]
            content = choice["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return self._failure(
                ProviderErrorCode.INVALID_RESPONSE, f"Unexpected response envelope: {e}", invoked_at, start, params
            )

        if choice.get("finish_reason") == "content_filter":
            return self._failure(ProviderErrorCode.CONTENT_FILTERED, "Blocked by content filter", invoked_at, start, params)
        if not isinstance(content, str):
            return self._failure(ProviderErrorCode.INVALID_RESPONSE, "Message content is not text", invoked_at, start, params)

        return ProviderResponse(
            success=True,
            content=content,
            provider_version=self._version,
            invoked_at=invoked_at,
            latency_ms=(time.time() - start) * 1000,
            temperature_used=params.temperature,
        )

    def _payload(
        self,
        prompt: str,
        params: InvocationParams,
        system_prompt: Optional[str],
        response_schema: Optional[dict],
    ) -> dict:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self._model,
            "messages": messages,
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
        }
        if params.seed is not None:
            payload["seed"] = params.seed
        if response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "core_truth", "strict": True, "schema": response_schema},
            }
        return payload

    def _failure(
        self,
        code: ProviderErrorCode,
        message: str,
        invoked_at: datetime,
        start: float,
        params: InvocationParams,
    ) -> ProviderResponse:
        return ProviderResponse(
            success=False,
            error_code=code,
            error_message=message,
            provider_version=self._version,
            invoked_at=invoked_at,
            latency_ms=(time.time() - start) * 1000,
            temperature_used=params.temperature,
        )
