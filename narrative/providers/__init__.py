"""
Narrative Providers Package
===========================

Available providers:
- MockProvider: Scripted responses for testing
- OpenAICompatibleProvider: httpx client for /chat/completions endpoints
"""

from typing import Optional

from .base import (
    NarrativeProvider,
    ProviderVersion,
    ProviderResponse,
    ProviderErrorCode,
    InvocationParams,
)
from .mock import MockProvider
from .openai_compat import DEFAULT_BASE_URL, DEFAULT_MODEL, OpenAICompatibleProvider


def provider_for_endpoint(
    api_key: Optional[str],
    base_url: str = DEFAULT_BASE_URL,
    model: str = DEFAULT_MODEL,
) -> NarrativeProvider:
    """The provider serving a configured endpoint. Callers see only the ABC."""
    return OpenAICompatibleProvider(api_key=api_key, base_url=base_url, model=model)


__all__ = [
    'NarrativeProvider',
    'ProviderVersion',
    'ProviderResponse',
    'ProviderErrorCode',
    'InvocationParams',
    'MockProvider',
    'OpenAICompatibleProvider',
    'provider_for_endpoint',
    'DEFAULT_BASE_URL',
    'DEFAULT_MODEL',
]
