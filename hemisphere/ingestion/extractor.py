"""
Fragment Extractor
==================

The ingestion boundary: turns loosely typed source records into the
closed InsightFragment union.

GUARANTEES:
- Every record is either extracted, ignored (a type that carries no
  theme, e.g. RATING) or skipped as malformed with an explicit code
- One malformed record never aborts the build
- Extraction is deterministic for a given snapshot
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple
import functools
import logging
import re

from hemisphere.contracts.base import ErrorCode, InvalidRecordError, stable_digest
from hemisphere.contracts.fragments import (
    EvidenceExcerptFragment,
    InsightFragment,
    KeyInsightFragment,
    PhaseNoteFragment,
    StructuredInsightFragment,
)
from hemisphere.contracts.graph import NodeType
from hemisphere.contracts.records import (
    AnswerRecord,
    InsightRecord,
    ReportRecord,
    SessionRecord,
    WorkshopSnapshot,
)

from .text import normalize, word_count

logger = logging.getLogger(__name__)


# =============================================================================
# MAPPINGS
# =============================================================================

INSIGHT_TYPE_MAP: Dict[str, NodeType] = {
    "VISION": NodeType.VISION,
    "BELIEF": NodeType.BELIEF,
    "CHALLENGE": NodeType.CHALLENGE,
    "CONSTRAINT": NodeType.CONSTRAINT,
    "FRICTION": NodeType.FRICTION,
    "WHAT_WORKS": NodeType.ENABLER,
    "ENABLER": NodeType.ENABLER,
}

# Insight types that describe the job or a score, not a theme.
IGNORED_INSIGHT_TYPES = frozenset({"ACTUAL_JOB", "RATING"})

PHASE_LIST_MAP: Dict[str, NodeType] = {
    "future": NodeType.VISION,
    "frictions": NodeType.FRICTION,
    "painPoints": NodeType.FRICTION,
    "gaps": NodeType.CHALLENGE,
    "constraints": NodeType.CONSTRAINT,
    "barriers": NodeType.CONSTRAINT,
    "strengths": NodeType.ENABLER,
    "working": NodeType.ENABLER,
    "support": NodeType.ENABLER,
}

CONFIDENCE_LABELS: Dict[str, float] = {
    "high": 0.85,
    "medium": 0.6,
    "low": 0.35,
}

# Checked in order; first hit wins. Falls through to CHALLENGE.
# A trailing "*" matches any word starting with the stem; matches always
# start on a word boundary, so "unsuccessful" is not "success".
KEYWORD_RULES: Tuple[Tuple[NodeType, Tuple[str, ...]], ...] = (
    (NodeType.VISION, ("vision*", "future*", "aspir*", "ambition*", "imagin*", "want to become", "north star")),
    (NodeType.BELIEF, ("believ*", "belief*", "assum*", "perception*", "perceiv*", "mindset*", "culture*")),
    (NodeType.FRICTION, (
        "friction*", "frustrat*", "pain", "pains", "painful", "bottleneck*", "delay*", "rework*",
        "manual*", "handoff*", "hand-off*",
    )),
    (NodeType.CONSTRAINT, (
        "constrain*", "regulat*", "complian*", "budget*", "legacy", "approval*", "policy", "policies", "barrier*",
    )),
    (NodeType.ENABLER, ("enabl*", "strength*", "works well", "working well", "effective*", "success*", "support*")),
)

# An enabler keyword in text carrying one of these describes a missing enabler.
NEGATION_CUES = ("lack*", "no", "not", "never", "without", "missing", "absen*", "insufficient*")


def _keyword_pattern(keywords: Tuple[str, ...]) -> "re.Pattern[str]":
    parts = [
        re.escape(k[:-1]) + r"\w*" if k.endswith("*") else re.escape(k)
        for k in keywords
    ]
    return re.compile(r"\b(?:" + "|".join(parts) + r")\b")


_RULE_PATTERNS = tuple((node_type, _keyword_pattern(keywords)) for node_type, keywords in KEYWORD_RULES)
_NEGATION_RE = _keyword_pattern(NEGATION_CUES)

RATING_TAGS = frozenset({"triple_rating", "target_score", "projected_score", "optimism"})
EVIDENCE_MIN_WORDS = 18
EVIDENCE_LIMIT = 45


def classify_key_insight(text: str) -> NodeType:
    """Deterministic keyword classification of a key insight."""
    haystack = normalize(text)
    for node_type, pattern in _RULE_PATTERNS:
        if not pattern.search(haystack):
            continue
        if node_type is NodeType.ENABLER and _NEGATION_RE.search(haystack):
            return NodeType.CHALLENGE
        return node_type
    return NodeType.CHALLENGE


def confidence_from_label(value: object) -> Optional[float]:
    """Map a high/medium/low label (or a plain 0-1 number) to a confidence."""
    if isinstance(value, str):
        return CONFIDENCE_LABELS.get(value.strip().lower())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def answer_tag(key: str) -> str:
    """Tag part of a 'phase:tag:index' answer key."""
    parts = key.split(":")
    return parts[1] if len(parts) > 1 else parts[0]


# =============================================================================
# REPORT
# =============================================================================

@dataclass(frozen=True)
class SkippedRecord:
    """A record rejected at the boundary."""
    record_ref: str
    code: ErrorCode
    reason: str

    def to_dict(self) -> dict:
        return {
            'record_ref': self.record_ref,
            'code': self.code.name,
            'reason': self.reason,
        }


@dataclass
class ExtractionReport:
    """
    Outcome of extracting one snapshot.

    TRACEABLE:
    Every input record results in exactly one of:
    - A fragment in `fragments`
    - An increment of `ignored_count`
    - An entry in `skipped`
    """
    fragments: List[InsightFragment] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)
    ignored_count: int = 0

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def evidence_quotes(self) -> List[str]:
        return [f.text for f in self.fragments if isinstance(f, EvidenceExcerptFragment)]

    def count_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for f in self.fragments:
            counts[f.source_kind.value] = counts.get(f.source_kind.value, 0) + 1
        return counts


# =============================================================================
# EXTRACTOR
# =============================================================================

class FragmentExtractor:
    """
    Extracts fragments from a workshop snapshot.

    Stateless: one instance can serve many builds.
    """

    def __init__(self, evidence_limit: int = EVIDENCE_LIMIT, evidence_min_words: int = EVIDENCE_MIN_WORDS):
        self._evidence_limit = evidence_limit
        self._evidence_min_words = evidence_min_words

    def extract(self, snapshot: WorkshopSnapshot) -> ExtractionReport:
        report = ExtractionReport()
        for session in snapshot.sessions:
            for record in session.insights:
                self._collect(report, record.record_id, functools.partial(self._from_insight, record, session))
            if session.report is not None:
                for ref, build in self._report_builders(session.report, session):
                    self._collect(report, ref, build)

        for session, answer in self._select_evidence(snapshot, report):
            ref = f"{answer.session_id}:{answer.key}"
            self._collect(report, ref, functools.partial(self._from_answer, answer, session))

        logger.debug(
            "Extracted %d fragments from %d sessions (%d ignored, %d skipped)",
            len(report.fragments), snapshot.session_count, report.ignored_count, report.skipped_count,
        )
        return report

    def _collect(self, report: ExtractionReport, ref: str, build) -> None:
        try:
            fragment = build()
        except InvalidRecordError as exc:
            report.skipped.append(SkippedRecord(record_ref=ref, code=exc.code, reason=str(exc)))
            return
        if fragment is None:
            report.ignored_count += 1
        else:
            report.fragments.append(fragment)

    # -------------------------------------------------------------------------
    # Structured insights
    # -------------------------------------------------------------------------

    def _from_insight(self, record: InsightRecord, session: SessionRecord) -> Optional[StructuredInsightFragment]:
        if not isinstance(record.insight_type, str) or not record.insight_type.strip():
            raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, "insight type missing")
        insight_type = record.insight_type.strip().upper()
        if insight_type in IGNORED_INSIGHT_TYPES:
            return None
        node_type = INSIGHT_TYPE_MAP.get(insight_type)
        if node_type is None:
            raise InvalidRecordError(ErrorCode.UNSUPPORTED_TYPE, f"unknown insight type {insight_type}")
        return StructuredInsightFragment.create(
            fragment_id=record.record_id,
            text=record.text,
            session_id=session.session_id,
            participant_name=session.participant.name,
            node_type=node_type,
            phase_or_category=record.category if isinstance(record.category, str) else None,
            severity=record.severity,
            confidence=record.confidence,
        )

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def _report_builders(self, report: ReportRecord, session: SessionRecord) -> Iterator[tuple]:
        key_insights = report.key_insights if report.key_insights is not None else []
        if not isinstance(key_insights, list):
            yield (f"{session.session_id}:keyInsights", _malformed("keyInsights is not a list"))
        else:
            for i, item in enumerate(key_insights):
                ref = f"{session.session_id}:key:{i}"
                yield (ref, functools.partial(self._from_key_insight, item, ref, session))

        for phase, lists, ref in _iter_phase_notes(report.phase_notes, session.session_id):
            if lists is None:
                yield (ref, _malformed("phase note entry is not an object"))
                continue
            for list_name, node_type in PHASE_LIST_MAP.items():
                items = lists.get(list_name)
                if items is None:
                    continue
                if not isinstance(items, list):
                    yield (f"{ref}:{list_name}", _malformed(f"{list_name} is not a list"))
                    continue
                for i, item in enumerate(items):
                    item_ref = f"{ref}:{list_name}:{i}"
                    yield (item_ref, functools.partial(
                        PhaseNoteFragment.create,
                        fragment_id=item_ref,
                        text=item,
                        session_id=session.session_id,
                        participant_name=session.participant.name,
                        node_type=node_type,
                        phase_or_category=phase,
                    ))

    def _from_key_insight(self, item: object, ref: str, session: SessionRecord) -> KeyInsightFragment:
        if not isinstance(item, dict):
            raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, "key insight is not an object")
        title = item.get("title")
        insight = item.get("insight")
        if not isinstance(title, str) or not title.strip():
            raise InvalidRecordError(ErrorCode.EMPTY_TEXT, "key insight has no title")
        text = insight if isinstance(insight, str) and insight.strip() else title
        evidence = item.get("evidence")
        return KeyInsightFragment.create(
            fragment_id=ref,
            text=text,
            title=title,
            session_id=session.session_id,
            participant_name=session.participant.name,
            node_type=classify_key_insight(f"{title} {text}"),
            confidence=confidence_from_label(item.get("confidence")),
            quotes=tuple(evidence) if isinstance(evidence, list) else (),
        )

    # -------------------------------------------------------------------------
    # Evidence
    # -------------------------------------------------------------------------

    def _select_evidence(
        self, snapshot: WorkshopSnapshot, report: ExtractionReport
    ) -> List[Tuple[SessionRecord, AnswerRecord]]:
        """Longest non-rating answers across the workshop, ties by key."""
        candidates = []
        for session in snapshot.sessions:
            for answer in session.answers:
                if not isinstance(answer.text, str):
                    report.skipped.append(SkippedRecord(
                        record_ref=f"{answer.session_id}:{answer.key}",
                        code=ErrorCode.MALFORMED_RECORD,
                        reason="answer text is not a string",
                    ))
                    continue
                if answer_tag(answer.key) in RATING_TAGS:
                    continue
                words = word_count(answer.text)
                if words < self._evidence_min_words:
                    continue
                candidates.append((words, session, answer))
        candidates.sort(key=lambda c: (-c[0], c[2].key, c[2].session_id))
        return [(s, a) for _, s, a in candidates[:self._evidence_limit]]

    def _from_answer(self, answer: AnswerRecord, session: SessionRecord) -> EvidenceExcerptFragment:
        return EvidenceExcerptFragment.create(
            fragment_id=stable_digest(answer.session_id, answer.key),
            text=answer.text,
            session_id=session.session_id,
            participant_name=session.participant.name,
            node_type=NodeType.EVIDENCE,
            phase_or_category=answer.key.split(":")[0],
        )


def _malformed(reason: str):
    def build():
        raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, reason)
    return build


def _iter_phase_notes(phase_notes: object, session_id: str) -> Iterator[Tuple[str, Optional[dict], str]]:
    """
    Yield (phase, lists, ref) from either accepted shape:
    {phase: {lists}} or [{phase: ..., lists}].
    """
    if phase_notes is None:
        return
    if isinstance(phase_notes, dict):
        for phase in sorted(phase_notes):
            lists = phase_notes[phase]
            yield phase, lists if isinstance(lists, dict) else None, f"{session_id}:phase:{phase}"
    elif isinstance(phase_notes, list):
        for i, entry in enumerate(phase_notes):
            ref = f"{session_id}:phase:{i}"
            if not isinstance(entry, dict) or not isinstance(entry.get("phase"), str):
                yield "", None, ref
                continue
            yield entry["phase"], entry, ref
    else:
        yield "", None, f"{session_id}:phaseNotes"
