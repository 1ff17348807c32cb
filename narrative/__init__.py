"""
Narrative Adapter Package

ARCHITECTURAL BOUNDARY:
=======================
This package is the ONLY interface between the hemisphere engine and the
external narrative service. All calls MUST flow through this adapter.

DIRECTION OF DEPENDENCY:
========================
hemisphere -> narrative -> provider

NEVER:
- narrative importing from hemisphere
- hemisphere constructing or invoking a concrete provider
  (it gets one from provider_for_endpoint and hands it to the executor)

DESIGN PRINCIPLES:
==================
1. Typed request/outcome schemas only
2. Canonical prompts: same request, same prompt hash
3. Service output is UNTRUSTED and is parsed before use
4. Failures are values, never exceptions
"""

from .contracts import (
    CoreTruthRequest,
    DriverDescriptor,
    NarrativeErrorCode,
    NarrativeOutcome,
)
from .executor import CoreTruthExecutor, parse_core_truth
from .prompts import CanonicalPrompt
from .providers import DEFAULT_BASE_URL, DEFAULT_MODEL, NarrativeProvider, provider_for_endpoint

__all__ = [
    # Contracts
    'CoreTruthRequest', 'DriverDescriptor', 'NarrativeErrorCode', 'NarrativeOutcome',
    # Execution
    'CoreTruthExecutor', 'parse_core_truth', 'CanonicalPrompt',
    # Providers (constructed here, invoked only by the executor)
    'NarrativeProvider', 'provider_for_endpoint', 'DEFAULT_BASE_URL', 'DEFAULT_MODEL',
]
