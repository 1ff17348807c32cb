"""
Mock Narrative Provider
=======================

Scripted provider for tests and offline runs.

GUARANTEES:
- Returns the scripted content verbatim, or fails with the forced code
- Records every prompt it receives
- No network, no sleeping
"""

from __future__ import annotations
import json
from datetime import datetime, timezone
from typing import List, Optional

from .base import (
    InvocationParams,
    NarrativeProvider,
    ProviderErrorCode,
    ProviderResponse,
    ProviderVersion,
)

DEFAULT_SENTENCE = (
    "Slow approval processes are driving release delays because teams wait on "
    "sign-off, which erodes confidence in delivering the future the organisation wants."
)


class MockProvider(NarrativeProvider):
    """
    Deterministic mock provider.

    Args:
        content: Raw content to return. Defaults to a valid coreTruth payload.
        failure_mode: If set, all invocations fail with this error.
    """

    def __init__(
        self,
        content: Optional[str] = None,
        failure_mode: Optional[ProviderErrorCode] = None,
    ):
        self._content = content if content is not None else json.dumps({"coreTruth": DEFAULT_SENTENCE})
        self._failure_mode = failure_mode
        self._version = ProviderVersion(
            provider_id="mock",
            model_id="mock-scripted-v1",
            api_version="1.0.0",
        )
        self.prompts: List[str] = []

    @property
    def provider_id(self) -> str:
        return "mock"

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
        self.prompts.append(prompt)

        if self._failure_mode is not None:
            return ProviderResponse(
                success=False,
                error_code=self._failure_mode,
                error_message=f"Mock provider configured to fail: {self._failure_mode.value}",
                provider_version=self._version,
                invoked_at=invoked_at,
                temperature_used=params.temperature,
            )

        return ProviderResponse(
            success=True,
            content=self._content,
            provider_version=self._version,
            invoked_at=invoked_at,
            temperature_used=params.temperature,
        )
