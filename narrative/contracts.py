"""
Narrative Adapter Contracts

Typed request/outcome schemas between the hemisphere engine and the
external narrative service.

BOUNDARY ENFORCEMENT:
=====================
- All types are FROZEN (immutable)
- The request is a pure function of the ranked drivers and quotes
- Outcomes are explicit: a sentence OR an error code, never both

The service is treated as untrusted: its text is parsed and sanitized
here before anything downstream sees it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import hashlib
import json

MAX_EVIDENCE_QUOTES = 10


@dataclass(frozen=True)
class DriverDescriptor:
    """One ranked driver, as described to the narrative service."""
    type: str
    label: str
    summary: str
    weight: float
    severity: Optional[float]
    cross_domain: int
    centrality: float

    def to_dict(self) -> dict:
        return {
            'type': self.type,
            'label': self.label,
            'summary': self.summary,
            'weight': round(self.weight, 4),
            'severity': round(self.severity, 4) if self.severity is not None else None,
            'crossDomain': self.cross_domain,
            'centrality': round(self.centrality, 4),
        }


@dataclass(frozen=True)
class CoreTruthRequest:
    """
    Everything the service sees.

    INVARIANT: evidence_quotes has at most MAX_EVIDENCE_QUOTES entries.
    """
    drivers: Tuple[DriverDescriptor, ...] = field(default_factory=tuple)
    evidence_quotes: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.evidence_quotes) > MAX_EVIDENCE_QUOTES:
            raise ValueError(f"At most {MAX_EVIDENCE_QUOTES} evidence quotes allowed")

    @staticmethod
    def create(drivers, evidence_quotes) -> CoreTruthRequest:
        """Factory that truncates quotes to the allowed count."""
        return CoreTruthRequest(
            drivers=tuple(drivers),
            evidence_quotes=tuple(evidence_quotes)[:MAX_EVIDENCE_QUOTES],
        )

    def to_dict(self) -> dict:
        return {
            'drivers': [d.to_dict() for d in self.drivers],
            'evidence': list(self.evidence_quotes),
        }

    def content_hash(self) -> str:
        payload = json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(payload.encode('utf-8')).hexdigest()


class NarrativeErrorCode(Enum):
    """Why a core truth could not be obtained from the service."""
    DISABLED = "disabled"
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    INVALID_OUTPUT = "invalid_output"
    EMPTY_OUTPUT = "empty_output"
    CONTRACT_VIOLATION = "contract_violation"


@dataclass(frozen=True)
class NarrativeOutcome:
    """
    Result of one core truth invocation.

    INVARIANT: Either (success=True, sentence set) or (success=False, error_code set)
    """
    success: bool
    sentence: Optional[str] = None
    error_code: Optional[NarrativeErrorCode] = None
    error_message: Optional[str] = None
    prompt_hash: Optional[str] = None
    provider_id: Optional[str] = None
    latency_ms: float = 0.0

    def __post_init__(self):
        if self.success and not self.sentence:
            raise ValueError("Successful outcome must have a sentence")
        if not self.success and self.error_code is None:
            raise ValueError("Failed outcome must have error_code")

    @staticmethod
    def ok(sentence: str, **meta) -> NarrativeOutcome:
        return NarrativeOutcome(success=True, sentence=sentence, **meta)

    @staticmethod
    def failed(code: NarrativeErrorCode, message: str, **meta) -> NarrativeOutcome:
        return NarrativeOutcome(success=False, error_code=code, error_message=message, **meta)
