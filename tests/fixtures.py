"""
Test Fixtures

Explicit, deterministic workshop records for engine tests.
No random generation here; property tests build their own inputs.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from hemisphere.contracts.base import RunType
from hemisphere.contracts.fragments import StructuredInsightFragment
from hemisphere.contracts.graph import NodeType
from hemisphere.contracts.records import (
    AnswerRecord,
    InsightRecord,
    ParticipantRecord,
    ReportRecord,
    SessionRecord,
    WorkshopSnapshot,
)


# =============================================================================
# FIXED TIMESTAMPS
# =============================================================================

T1 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 3, 2, 10, 0, 0, tzinfo=timezone.utc)

LONG_ANSWER = (
    "Every release waits for a sign-off meeting that happens once a fortnight, "
    "so finished work sits idle and the team loses momentum before customers see anything."
)


# =============================================================================
# BUILDERS
# =============================================================================

def insight(
    record_id: str,
    session_id: str,
    insight_type: object,
    text: object,
    category: object = None,
    severity: object = None,
    confidence: object = None,
) -> InsightRecord:
    return InsightRecord(
        record_id=record_id,
        session_id=session_id,
        insight_type=insight_type,
        category=category,
        text=text,
        severity=severity,
        confidence=confidence,
        created_at=T1,
    )


def session(
    session_id: str,
    name: str,
    insights: Iterable[InsightRecord] = (),
    report: Optional[ReportRecord] = None,
    answers: Iterable[AnswerRecord] = (),
    run_type: RunType = RunType.BASELINE,
    participant_id: Optional[str] = None,
) -> SessionRecord:
    return SessionRecord(
        session_id=session_id,
        participant=ParticipantRecord(participant_id=participant_id or f"p-{name.lower()}", name=name),
        run_type=run_type,
        created_at=T1,
        completed_at=T2,
        question_set_version="v2",
        insights=tuple(insights),
        report=report,
        answers=tuple(answers),
    )


def snapshot(*sessions: SessionRecord, workshop_id: str = "ws-1", run_type: RunType = RunType.BASELINE) -> WorkshopSnapshot:
    return WorkshopSnapshot(workshop_id=workshop_id, run_type=run_type, sessions=tuple(sessions))


def fragment(
    fragment_id: str,
    text: str,
    node_type: NodeType = NodeType.CONSTRAINT,
    session_id: str = "S1",
    participant_name: str = "Ana",
    category: Optional[str] = None,
    severity: Optional[float] = None,
    confidence: Optional[float] = None,
) -> StructuredInsightFragment:
    return StructuredInsightFragment.create(
        fragment_id=fragment_id,
        text=text,
        session_id=session_id,
        participant_name=participant_name,
        node_type=node_type,
        phase_or_category=category,
        severity=severity,
        confidence=confidence,
    )


# =============================================================================
# SCENARIOS
# =============================================================================

def approval_snapshot() -> WorkshopSnapshot:
    """Two sessions that agree on one constraint; S1 also names an enabler."""
    return snapshot(
        session("S1", "Ana", insights=[
            insight("i1", "S1", "CONSTRAINT", "approval process blocks releases", severity=5),
            insight("i2", "S1", "WHAT_WORKS", "automated testing works well"),
        ]),
        session("S2", "Ben", insights=[
            insight("i3", "S2", "CONSTRAINT", "approval process blocks releases", severity=3),
        ]),
    )


def rich_snapshot() -> WorkshopSnapshot:
    """Every source kind, plus records that must be ignored or skipped."""
    report_s1 = ReportRecord(
        session_id="S1",
        key_insights=[
            {
                "title": "Approval bottleneck delays every release",
                "insight": "Manual approval steps add two weeks to each release cycle.",
                "confidence": "high",
                "evidence": ["We wait on sign-off for everything."],
            },
            {"title": "", "insight": "No title here"},
        ],
        phase_notes={
            "people": {"future": ["Teams owning releases end to end"], "frictions": ["Handoffs between teams"]},
            "technology": {"constraints": ["Legacy deployment tooling"], "strengths": "not a list"},
        },
    )
    report_s2 = ReportRecord(
        session_id="S2",
        key_insights="not a list",
        phase_notes=[{"phase": "process", "gaps": ["No shared release calendar"]}],
    )
    return snapshot(
        session("S1", "Ana", insights=[
            insight("i1", "S1", "CONSTRAINT", "Approval process blocks releases", category="process", severity=5),
            insight("i2", "S1", "RATING", "7", category="process"),
            insight("i3", "S1", "MYSTERY", "Unknown type", category="process"),
            insight("i4", "S1", "FRICTION", "   ", category="people"),
        ], report=report_s1, answers=[
            AnswerRecord("S1", "process:blockers:0", LONG_ANSWER),
            AnswerRecord("S1", "process:triple_rating:0", LONG_ANSWER + " rated"),
            AnswerRecord("S1", "people:short:0", "Too short to quote."),
        ]),
        session("S2", "Ben", insights=[
            insight("i5", "S2", "CONSTRAINT", "Approval process blocks releases", category="technology", severity=3),
            insight("i6", "S2", "VISION", "Ship weekly with confidence", category="strategy", severity=2, confidence=0.9),
            insight("i7", "S2", "BELIEF", "Quality needs a gatekeeper", category="culture", severity=7),
        ], report=report_s2),
    )


def fixture_dict(workshop_id: str = "ws-1") -> dict:
    """JSON-shaped fixture for the SQLite store."""
    return {
        "workshopId": workshop_id,
        "participants": [
            {"id": "p-ana", "name": "Ana", "email": "ana@example.org"},
            {"id": "p-ben", "name": "Ben"},
            {"id": "p-cho", "name": "Cho"},
        ],
        "sessions": [
            {
                "id": "S1",
                "participantId": "p-ana",
                "status": "COMPLETED",
                "runType": "BASELINE",
                "questionSetVersion": "v2",
                "createdAt": "2026-03-02T09:00:00Z",
                "completedAt": "2026-03-02T10:00:00Z",
                "insights": [
                    {"id": "i1", "type": "CONSTRAINT", "category": "process",
                     "text": "approval process blocks releases", "severity": 5, "confidence": 0.8},
                    {"id": "i2", "type": "WHAT_WORKS", "category": "technology",
                     "text": "automated testing works well"},
                ],
                "report": {
                    "keyInsights": [{"title": "Approval bottleneck delays every release",
                                     "insight": "Manual approval adds two weeks.", "confidence": "medium",
                                     "evidence": ["We wait on sign-off."]}],
                    "phaseNotes": {"people": {"frictions": ["Handoffs between teams"]}},
                },
                "answers": {"process:blockers:0": LONG_ANSWER},
            },
            {
                "id": "S2",
                "participantId": "p-ben",
                "status": "COMPLETED",
                "runType": None,
                "createdAt": "2026-03-03T09:00:00Z",
                "insights": [
                    {"id": "i3", "type": "CONSTRAINT", "category": "process",
                     "text": "approval process blocks releases", "severity": 3},
                ],
            },
            {
                "id": "S3",
                "participantId": "p-cho",
                "status": "IN_PROGRESS",
                "runType": "BASELINE",
                "insights": [{"id": "i4", "type": "VISION", "text": "never counted"}],
            },
            {
                "id": "S4",
                "participantId": "p-cho",
                "status": "COMPLETED",
                "runType": "FOLLOWUP",
                "insights": [{"id": "i5", "type": "VISION", "text": "follow-up vision"}],
            },
        ],
    }
