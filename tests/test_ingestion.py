"""
Ingestion Boundary Tests
========================

Every record ends up extracted, ignored or skipped with a code.
"""

import pytest

from hemisphere.contracts.base import ErrorCode
from hemisphere.contracts.fragments import (
    EvidenceExcerptFragment,
    KeyInsightFragment,
    PhaseNoteFragment,
    SourceKind,
    StructuredInsightFragment,
)
from hemisphere.contracts.graph import NodeType
from hemisphere.contracts.records import AnswerRecord, ReportRecord
from hemisphere.ingestion import FragmentExtractor
from hemisphere.ingestion.extractor import answer_tag, classify_key_insight, confidence_from_label
from hemisphere.ingestion.text import jaccard, label_key, make_label, normalize, tokenize

from tests.fixtures import LONG_ANSWER, insight, rich_snapshot, session, snapshot


class TestText:

    def test_normalize_is_idempotent(self):
        once = normalize("Approval,  Process!! blocks -- releases")
        assert normalize(once) == once
        assert once == "approval process blocks -- releases"

    def test_label_takes_first_words(self):
        text = "one two three four five six seven eight nine ten"
        assert make_label(text) == "one two three four five six seven eight"

    def test_label_strips_trailing_punctuation(self):
        assert make_label("Approval blocks releases.") == "Approval blocks releases"

    def test_label_key_ignores_case_and_punctuation(self):
        assert label_key("Approval process blocks releases.") == label_key("approval process BLOCKS releases")

    def test_tokenize_drops_stopwords_and_short_tokens(self):
        assert tokenize("The approval of an IT process") == frozenset({"approval", "process"})

    def test_jaccard(self):
        assert jaccard(frozenset({"a", "b"}), frozenset({"b", "c"})) == pytest.approx(1 / 3)
        assert jaccard(frozenset(), frozenset({"a"})) == 0.0

    def test_non_latin_text_keeps_its_identity(self):
        assert label_key("审批流程阻碍发布") == "审批流程阻碍发布"
        greek = "Προϋπολογισμός περιορίζει προσλήψεις"
        assert label_key(greek) == greek.casefold()
        assert label_key("审批流程阻碍发布") != label_key("Προϋπολογισμός περιορίζει προσλήψεις")

    def test_accented_words_stay_whole(self):
        assert normalize("Qualitätssicherung bremst Releases") == "qualitätssicherung bremst releases"
        assert tokenize("Qualitätssicherung bremst Releases") == frozenset({"qualitätssicherung", "bremst", "releases"})

    def test_german_overlap_strength(self):
        a = tokenize("Qualitätssicherung bremst Veröffentlichung")
        b = tokenize("Qualitätssicherung verzögert Veröffentlichung")
        assert jaccard(a, b) == pytest.approx(0.5)

    def test_symbol_only_text_never_collapses_to_empty(self):
        assert normalize("🚀🚀") == "🚀🚀"
        assert label_key("!!!") == "!!!"
        assert label_key("🚀🚀") != label_key("🔥🔥")


class TestHelpers:

    @pytest.mark.parametrize("text,expected", [
        ("Our vision for the future", NodeType.VISION),
        ("A blame culture", NodeType.BELIEF),
        ("Manual handoff between teams", NodeType.FRICTION),
        ("Regulatory approval", NodeType.CONSTRAINT),
        ("Pairing works well", NodeType.ENABLER),
        ("Nobody owns onboarding", NodeType.CHALLENGE),
        ("Unsuccessful cloud migration stalled delivery", NodeType.CHALLENGE),
        ("Lack of support from leadership", NodeType.CHALLENGE),
        ("Releases ship without effective review", NodeType.CHALLENGE),
        ("Expanding the team into Spain", NodeType.CHALLENGE),
        ("Painting a clear picture for stakeholders", NodeType.CHALLENGE),
        ("Constant pain around deployments", NodeType.FRICTION),
        ("Successful pilots build support", NodeType.ENABLER),
    ])
    def test_classify_key_insight(self, text, expected):
        assert classify_key_insight(text) == expected

    def test_confidence_labels(self):
        assert confidence_from_label("High") == 0.85
        assert confidence_from_label("medium") == 0.6
        assert confidence_from_label(0.4) == 0.4
        assert confidence_from_label("unsure") is None
        assert confidence_from_label(True) is None

    def test_answer_tag(self):
        assert answer_tag("process:triple_rating:0") == "triple_rating"
        assert answer_tag("loose") == "loose"


class TestFragmentExtractor:

    def test_rich_snapshot_accounting(self):
        report = FragmentExtractor().extract(rich_snapshot())

        assert len(report.fragments) == 9
        assert report.ignored_count == 1
        assert report.skipped_count == 6
        assert report.count_by_kind() == {
            SourceKind.STRUCTURED_INSIGHT.value: 3,
            SourceKind.KEY_INSIGHT.value: 1,
            SourceKind.PHASE_NOTE.value: 4,
            SourceKind.EVIDENCE_EXCERPT.value: 1,
        }

    def test_skip_codes(self):
        report = FragmentExtractor().extract(rich_snapshot())
        codes = {s.record_ref: s.code for s in report.skipped}

        assert codes["i3"] == ErrorCode.UNSUPPORTED_TYPE
        assert codes["i4"] == ErrorCode.EMPTY_TEXT
        assert codes["i7"] == ErrorCode.MALFORMED_RECORD
        assert codes["S1:key:1"] == ErrorCode.EMPTY_TEXT
        assert codes["S2:keyInsights"] == ErrorCode.MALFORMED_RECORD
        assert codes["S1:phase:technology:strengths"] == ErrorCode.MALFORMED_RECORD

    def test_structured_insight_mapping(self):
        snap = snapshot(session("S1", "Ana", insights=[
            insight("i1", "S1", "what_works", "Pairing sessions", category=" delivery "),
        ]))
        [f] = FragmentExtractor().extract(snap).fragments
        assert isinstance(f, StructuredInsightFragment)
        assert f.node_type == NodeType.ENABLER
        assert f.phase_or_category == "delivery"

    def test_missing_insight_type_is_malformed(self):
        snap = snapshot(session("S1", "Ana", insights=[insight("i1", "S1", None, "text")]))
        report = FragmentExtractor().extract(snap)
        assert report.skipped[0].code == ErrorCode.MALFORMED_RECORD

    def test_key_insight_carries_quotes_and_confidence(self):
        report = FragmentExtractor().extract(rich_snapshot())
        [key] = [f for f in report.fragments if isinstance(f, KeyInsightFragment)]
        assert key.title == "Approval bottleneck delays every release"
        assert key.node_type == NodeType.FRICTION
        assert key.confidence == 0.85
        assert key.quotes == ("We wait on sign-off for everything.",)

    def test_phase_notes_both_shapes(self):
        report = FragmentExtractor().extract(rich_snapshot())
        notes = {(f.phase_or_category, f.node_type) for f in report.fragments if isinstance(f, PhaseNoteFragment)}
        assert notes == {
            ("people", NodeType.VISION),
            ("people", NodeType.FRICTION),
            ("technology", NodeType.CONSTRAINT),
            ("process", NodeType.CHALLENGE),
        }

    def test_phase_note_list_entry_without_phase_skipped(self):
        rep = ReportRecord(session_id="S1", phase_notes=[{"future": ["x"]}])
        report = FragmentExtractor().extract(snapshot(session("S1", "Ana", report=rep)))
        assert report.fragments == []
        assert report.skipped[0].code == ErrorCode.MALFORMED_RECORD

    def test_evidence_excludes_ratings_and_short_answers(self):
        report = FragmentExtractor().extract(rich_snapshot())
        assert report.evidence_quotes == [" ".join(LONG_ANSWER.split())]
        [ev] = [f for f in report.fragments if isinstance(f, EvidenceExcerptFragment)]
        assert ev.node_type == NodeType.EVIDENCE
        assert ev.phase_or_category == "process"

    def test_evidence_limit_keeps_longest(self):
        answers = [AnswerRecord("S1", f"p:tag:{i}", " ".join(["word"] * (20 + i))) for i in range(5)]
        snap = snapshot(session("S1", "Ana", answers=answers))
        report = FragmentExtractor(evidence_limit=2).extract(snap)
        assert [len(q.split()) for q in report.evidence_quotes] == [24, 23]

    def test_non_string_answer_skipped(self):
        snap = snapshot(session("S1", "Ana", answers=[AnswerRecord("S1", "p:tag:0", None)]))
        report = FragmentExtractor().extract(snap)
        assert report.skipped_count == 1
        assert report.fragments == []

    def test_extraction_is_deterministic(self):
        a = FragmentExtractor().extract(rich_snapshot())
        b = FragmentExtractor().extract(rich_snapshot())
        assert a.fragments == b.fragments
        assert a.skipped == b.skipped
