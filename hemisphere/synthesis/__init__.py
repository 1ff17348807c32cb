"""
Synthesis Layer

One causal sentence from the ranked drivers, with a deterministic fallback.
"""

from .core_truth import (
    CoreTruth,
    CoreTruthSynthesizer,
    contract_problems,
    fallback_sentence,
    sanitize,
)

__all__ = [
    'CoreTruth',
    'CoreTruthSynthesizer',
    'contract_problems',
    'fallback_sentence',
    'sanitize',
]
