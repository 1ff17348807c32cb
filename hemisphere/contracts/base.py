"""
Base Contracts and Shared Types

Foundational types used across all layers of the hemisphere engine.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All value types are frozen dataclasses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto
import hashlib


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every degraded path is enumerated.
    """
    # Data source errors (fatal)
    SOURCE_UNREACHABLE = auto()
    SOURCE_CORRUPT = auto()

    # Ingestion errors (per record, recovered by skipping)
    EMPTY_TEXT = auto()
    MALFORMED_RECORD = auto()
    UNSUPPORTED_TYPE = auto()

    # Narrative service errors (recovered by fallback)
    NARRATIVE_DISABLED = auto()
    NARRATIVE_UNREACHABLE = auto()
    NARRATIVE_TIMEOUT = auto()
    NARRATIVE_INVALID_OUTPUT = auto()
    NARRATIVE_EMPTY_OUTPUT = auto()
    NARRATIVE_CONTRACT_VIOLATION = auto()

    # Assembly errors
    INVALID_STATE_TRANSITION = auto()
    ASSEMBLY_FAILED = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be logged and audited.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str) -> Error:
        return Error(code=code, message=message, timestamp=datetime.now(timezone.utc))

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# EXCEPTIONS (Only at the data source and build boundaries)
# =============================================================================

class HemisphereError(Exception):
    """Base exception for the hemisphere engine."""


class SourceUnavailableError(HemisphereError):
    """The upstream data source could not be read. Fatal for a build."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.error = Error.create(ErrorCode.SOURCE_UNREACHABLE, message)
        self.cause = cause


class InvalidRecordError(HemisphereError):
    """A single source record failed validation at the ingestion edge."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code


class AssemblyFailedError(HemisphereError):
    """A build could not be completed. No partial graph is returned."""

    def __init__(self, error: Error):
        super().__init__(error.message)
        self.error = error


# =============================================================================
# RUN TYPES
# =============================================================================

class RunType(Enum):
    """Which interview run a graph is built for."""
    BASELINE = "BASELINE"
    FOLLOWUP = "FOLLOWUP"

    @staticmethod
    def parse(value: Optional[str]) -> RunType:
        """Lenient parse: anything other than FOLLOWUP is BASELINE."""
        v = (value or "").strip().upper()
        if v == "FOLLOWUP":
            return RunType.FOLLOWUP
        return RunType.BASELINE


# =============================================================================
# IDENTITY HELPERS
# =============================================================================

def stable_digest(*parts: str, length: int = 16) -> str:
    """Deterministic short digest of the given parts."""
    content = "|".join(parts)
    return hashlib.sha256(content.encode('utf-8')).hexdigest()[:length]


@dataclass(frozen=True, order=True)
class SourceRef:
    """
    Who contributed to a node.
    Ordered so that source lists can be kept sorted (order-independent merges).
    """
    session_id: str
    participant_name: str

    def to_dict(self) -> dict:
        return {
            'sessionId': self.session_id,
            'participantName': self.participant_name,
        }
