"""
Narrative Provider Abstraction Layer
====================================

Abstract interface for chat-completion style text providers.

BOUNDARY ENFORCEMENT:
- Providers are stateless invocation handlers
- Every call is bounded by timeout_seconds and never retried
- Failures are explicit, never silent
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from enum import Enum


class ProviderErrorCode(Enum):
    """Explicit failure codes for provider invocations."""
    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    INVALID_RESPONSE = "invalid_response"
    CONTENT_FILTERED = "content_filtered"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class ProviderVersion:
    """Immutable provider version info, recorded with every invocation."""
    provider_id: str       # "openai-compatible" | "mock"
    model_id: str
    api_version: str


@dataclass(frozen=True)
class ProviderResponse:
    """
    Raw text returned by one provider call, or the reason there is none.

    content is untrusted: the executor parses it.
    """
    success: bool
    content: Optional[str] = None
    error_code: Optional[ProviderErrorCode] = None
    error_message: Optional[str] = None

    provider_version: Optional[ProviderVersion] = None
    invoked_at: Optional[datetime] = None
    latency_ms: float = 0.0
    temperature_used: float = 0.0

    def __post_init__(self):
        if self.success and self.content is None:
            raise ValueError("A successful provider call returns content")
        if not self.success and self.error_code is None:
            raise ValueError("A failed provider call needs an error code")


@dataclass(frozen=True)
class InvocationParams:
    """Frozen invocation parameters."""
    temperature: float = 0.2
    max_tokens: int = 200
    timeout_seconds: float = 20.0
    seed: Optional[int] = None


class NarrativeProvider(ABC):
    """
    One text-generation backend.

    Implementations answer every call with a ProviderResponse; transport
    and envelope problems are reported through error_code.

    FAILURE CODES:
    - NOT_CONFIGURED: No credentials, nothing was sent
    - TIMEOUT: Invocation exceeded timeout_seconds
    - RATE_LIMITED: Provider rejected due to rate limits
    - INVALID_RESPONSE: Response envelope couldn't be parsed
    - CONTENT_FILTERED: Response blocked by a safety filter
    - API_ERROR: Provider returned an error status
    - NETWORK_ERROR: Connection failed
    """

    @abstractmethod
    def invoke(
        self,
        prompt: str,
        params: InvocationParams,
        system_prompt: Optional[str] = None,
        response_schema: Optional[dict] = None,
    ) -> ProviderResponse:
        """
        Invoke the provider with the given prompt and parameters.

        MUST return ProviderResponse, never raise exceptions.
        """
        pass

    @abstractmethod
    def get_version(self) -> ProviderVersion:
        pass

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique provider identifier."""
        pass
