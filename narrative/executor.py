"""
Core Truth Executor
===================

Runs one core truth invocation: canonical prompt -> provider -> parse.

GUARANTEES:
===========
1. Prompt derived only from the request (same request -> same prompt_hash)
2. Exactly one provider call, no retries
3. Never raises: every failure is an explicit NarrativeOutcome
4. Output is parsed as untrusted JSON; only a string coreTruth survives
"""

from __future__ import annotations
import json
import logging
import re
import time
from typing import Optional

from .contracts import CoreTruthRequest, NarrativeErrorCode, NarrativeOutcome
from .prompts import CORE_TRUTH_SCHEMA, CanonicalPrompt
from .providers.base import InvocationParams, NarrativeProvider, ProviderErrorCode

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")

PROVIDER_ERROR_MAP = {
    ProviderErrorCode.NOT_CONFIGURED: NarrativeErrorCode.DISABLED,
    ProviderErrorCode.TIMEOUT: NarrativeErrorCode.TIMEOUT,
    ProviderErrorCode.RATE_LIMITED: NarrativeErrorCode.UNREACHABLE,
    ProviderErrorCode.INVALID_RESPONSE: NarrativeErrorCode.INVALID_OUTPUT,
    ProviderErrorCode.CONTENT_FILTERED: NarrativeErrorCode.INVALID_OUTPUT,
    ProviderErrorCode.API_ERROR: NarrativeErrorCode.UNREACHABLE,
    ProviderErrorCode.NETWORK_ERROR: NarrativeErrorCode.UNREACHABLE,
}


def parse_core_truth(content: str) -> str:
    """
    Extract the coreTruth string from a provider payload.

    Raises ValueError if the payload is not the expected JSON object.
    """
    stripped = _FENCE_RE.sub("", content.strip())
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ValueError(f"Response is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise ValueError("Response is not a JSON object")
    sentence = data.get("coreTruth")
    if sentence is None:
        raise ValueError("Response has no coreTruth field")
    if not isinstance(sentence, str):
        raise ValueError("coreTruth is not a string")
    return sentence


class CoreTruthExecutor:
    """
    Provider-backed core truth invocation.

    Args:
        provider: Narrative provider implementation
        temperature: Sampling temperature
        max_tokens: Maximum response tokens
        timeout_seconds: Hard bound on the single call
    """

    def __init__(
        self,
        provider: NarrativeProvider,
        temperature: float = 0.2,
        max_tokens: int = 200,
        timeout_seconds: float = 20.0,
        seed: Optional[int] = None,
    ):
        self._provider = provider
        self._params = InvocationParams(
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=timeout_seconds,
            seed=seed,
        )

    @property
    def provider_id(self) -> str:
        return self._provider.provider_id

    def execute(self, request: CoreTruthRequest) -> NarrativeOutcome:
        start = time.time()
        prompt = CanonicalPrompt.create(request)
        meta = {'prompt_hash': prompt.prompt_hash, 'provider_id': self._provider.provider_id}

        response = self._provider.invoke(
            prompt=prompt.prompt_text,
            params=self._params,
            system_prompt=prompt.system_text,
            response_schema=CORE_TRUTH_SCHEMA,
        )
        meta['latency_ms'] = (time.time() - start) * 1000

        if not response.success:
            code = PROVIDER_ERROR_MAP.get(response.error_code, NarrativeErrorCode.UNREACHABLE)
            logger.debug("Provider %s failed: %s", self._provider.provider_id, response.error_message)
            return NarrativeOutcome.failed(code, response.error_message or "Provider error", **meta)

        try:
            sentence = parse_core_truth(response.content)
        except ValueError as e:
            return NarrativeOutcome.failed(NarrativeErrorCode.INVALID_OUTPUT, str(e), **meta)

        if not sentence.strip():
            return NarrativeOutcome.failed(NarrativeErrorCode.EMPTY_OUTPUT, "coreTruth is empty", **meta)

        return NarrativeOutcome.ok(sentence, **meta)
