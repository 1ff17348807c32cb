"""
Source Record Contracts

Raw records as supplied by the data source, per workshop and run.

These are deliberately loosely typed: report payloads arrive as decoded
JSON and structured insight columns may hold anything the upstream
writer produced. Validation happens ONCE, at the ingestion boundary
(see hemisphere.ingestion), which turns records into fragments.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, List

from .base import RunType


@dataclass(frozen=True)
class ParticipantRecord:
    """Interview participant."""
    participant_id: str
    name: str
    email: Optional[str] = None


@dataclass(frozen=True)
class InsightRecord:
    """Structured insight row produced by the per-session assessment."""
    record_id: str
    session_id: str
    insight_type: object
    category: object
    text: object
    severity: object = None
    confidence: object = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReportRecord:
    """
    Per-session report payloads, decoded from JSON.

    key_insights: expected list of {title, insight, confidence, evidence[]}
    phase_notes:  expected mapping phase -> {future: [...], frictions: [...], ...}
                  or a list of {phase, ...lists}
    """
    session_id: str
    key_insights: object = None
    phase_notes: object = None


@dataclass(frozen=True)
class AnswerRecord:
    """Free-text answer keyed by 'phase:tag:index'."""
    session_id: str
    key: str
    text: object


@dataclass(frozen=True)
class SessionRecord:
    """A completed interview session with everything recorded against it."""
    session_id: str
    participant: ParticipantRecord
    run_type: RunType
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    question_set_version: Optional[str] = None
    insights: Tuple[InsightRecord, ...] = field(default_factory=tuple)
    report: Optional[ReportRecord] = None
    answers: Tuple[AnswerRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class WorkshopSnapshot:
    """
    Everything needed to build one hemisphere graph.

    Sessions are already filtered to COMPLETED and to the requested run type.
    """
    workshop_id: str
    run_type: RunType
    sessions: Tuple[SessionRecord, ...] = field(default_factory=tuple)

    @property
    def session_count(self) -> int:
        return len(self.sessions)

    @property
    def participant_count(self) -> int:
        return len({s.participant.participant_id for s in self.sessions})

    def participants(self) -> List[dict]:
        """Participant listing for the response envelope."""
        out = []
        for s in self.sessions:
            out.append({
                'participantId': s.participant.participant_id,
                'name': s.participant.name,
                'baselineSessionId': s.session_id if self.run_type == RunType.BASELINE else None,
                'followupSessionIds': [s.session_id] if self.run_type == RunType.FOLLOWUP else [],
                'questionSetVersion': s.question_set_version,
            })
        return out
