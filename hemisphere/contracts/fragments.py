"""
Insight Fragment Contracts
==========================

One raw, source-tagged piece of text awaiting merge into a node.

Fragments are a CLOSED tagged union with one variant per source kind.
Every variant is built through its validating ``create`` factory, so
anything downstream of the ingestion boundary can rely on:

GUARANTEES:
- text is a non-empty, whitespace-collapsed string
- severity is None or a number in [1, 5]
- confidence is None or a number in [0, 1]
- node_type is one of the six thematic types, or EVIDENCE for excerpts
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, FrozenSet, Optional, Tuple, Union

from .base import ErrorCode, InvalidRecordError, SourceRef
from .graph import NodeType


class SourceKind(Enum):
    STRUCTURED_INSIGHT = "structured-insight"
    KEY_INSIGHT = "key-insight"
    PHASE_NOTE = "phase-note"
    EVIDENCE_EXCERPT = "evidence-excerpt"


THEMATIC_TYPES: FrozenSet[NodeType] = frozenset({
    NodeType.VISION,
    NodeType.BELIEF,
    NodeType.CHALLENGE,
    NodeType.FRICTION,
    NodeType.CONSTRAINT,
    NodeType.ENABLER,
})


# =============================================================================
# VALIDATION
# =============================================================================

def _clean_text(value: object) -> str:
    if not isinstance(value, str):
        raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, f"text must be a string, got {type(value).__name__}")
    text = " ".join(value.split())
    if not text:
        raise InvalidRecordError(ErrorCode.EMPTY_TEXT, "text is empty")
    return text


def _number_in_range(value: object, name: str, lo: float, hi: float) -> Optional[float]:
    if value is None:
        return None
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, f"{name} must be numeric")
    if not lo <= value <= hi:
        raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, f"{name} {value} outside [{lo}, {hi}]")
    return float(value)


def _clean_quotes(quotes: Tuple[object, ...]) -> Tuple[str, ...]:
    out = []
    for q in quotes:
        if isinstance(q, str):
            q = " ".join(q.split())
            if q:
                out.append(q)
    return tuple(out)


# =============================================================================
# VARIANTS
# =============================================================================

@dataclass(frozen=True)
class _Fragment:
    fragment_id: str
    text: str
    phase_or_category: Optional[str]
    session_id: str
    participant_name: str
    node_type: NodeType
    severity: Optional[float] = None
    confidence: Optional[float] = None
    quotes: Tuple[str, ...] = field(default_factory=tuple)
    title: Optional[str] = None

    source_kind: ClassVar[SourceKind]

    @property
    def source(self) -> SourceRef:
        return SourceRef(self.session_id, self.participant_name)

    @property
    def headline(self) -> str:
        """Text the node label (and so its identity) is derived from."""
        return self.title or self.text

    @classmethod
    def create(
        cls,
        fragment_id: str,
        text: object,
        session_id: str,
        participant_name: str,
        node_type: NodeType,
        phase_or_category: Optional[str] = None,
        severity: object = None,
        confidence: object = None,
        quotes: Tuple[object, ...] = (),
        title: object = None,
    ):
        """Validating factory. Raises InvalidRecordError."""
        if not fragment_id or not session_id:
            raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, "fragment and session ids are required")
        cls._check_type(node_type)
        tag = phase_or_category.strip() if isinstance(phase_or_category, str) else None
        clean_title = " ".join(title.split()) if isinstance(title, str) else None
        return cls(
            title=clean_title or None,
            fragment_id=fragment_id,
            text=_clean_text(text),
            phase_or_category=tag or None,
            session_id=session_id,
            participant_name=participant_name or "",
            node_type=node_type,
            severity=_number_in_range(severity, "severity", 1, 5),
            confidence=_number_in_range(confidence, "confidence", 0, 1),
            quotes=_clean_quotes(tuple(quotes)),
        )

    @classmethod
    def _check_type(cls, node_type: NodeType) -> None:
        if node_type not in THEMATIC_TYPES:
            raise InvalidRecordError(
                ErrorCode.UNSUPPORTED_TYPE,
                f"{cls.source_kind.value} cannot carry node type {node_type.value}",
            )


@dataclass(frozen=True)
class StructuredInsightFragment(_Fragment):
    """Typed insight from the per-session assessment; category is the tag."""
    source_kind: ClassVar[SourceKind] = SourceKind.STRUCTURED_INSIGHT


@dataclass(frozen=True)
class KeyInsightFragment(_Fragment):
    """Titled key insight from a session report, with its evidence quotes."""
    source_kind: ClassVar[SourceKind] = SourceKind.KEY_INSIGHT


@dataclass(frozen=True)
class PhaseNoteFragment(_Fragment):
    """One bullet from a report's phase narrative; the phase is the tag."""
    source_kind: ClassVar[SourceKind] = SourceKind.PHASE_NOTE


@dataclass(frozen=True)
class EvidenceExcerptFragment(_Fragment):
    """Long free-text answer kept verbatim as evidence."""
    source_kind: ClassVar[SourceKind] = SourceKind.EVIDENCE_EXCERPT

    @classmethod
    def _check_type(cls, node_type: NodeType) -> None:
        if node_type != NodeType.EVIDENCE:
            raise InvalidRecordError(ErrorCode.UNSUPPORTED_TYPE, "evidence excerpts must be EVIDENCE nodes")


InsightFragment = Union[
    StructuredInsightFragment,
    KeyInsightFragment,
    PhaseNoteFragment,
    EvidenceExcerptFragment,
]
