"""
Core Truth Synthesis Tests
==========================

The synthesizer never raises and always returns a sentence.
"""

import json

import pytest

from narrative import CoreTruthExecutor
from narrative.providers import MockProvider, ProviderErrorCode

from hemisphere.contracts.base import ErrorCode, SourceRef
from hemisphere.contracts.graph import Node, NodeType
from hemisphere.core.centrality import RankedNode
from hemisphere.synthesis import CoreTruthSynthesizer
from hemisphere.synthesis.core_truth import (
    GENERIC_SENTENCE,
    MODE_STRICT,
    SOURCE_FALLBACK,
    SOURCE_NARRATIVE,
    contract_problems,
    fallback_labels,
    fallback_sentence,
    sanitize,
)

STRICT_OK = (
    "Slow approval processes are driving release delays because teams wait on "
    "sign-off, which erodes confidence in delivering the future."
)


def ranked(label, rank=0, node_type=NodeType.CONSTRAINT):
    node = Node.create(
        node_id=f"{node_type.value.lower()}:{label}",
        node_type=node_type,
        label=label,
        summary=f"{label} summary",
        severity=4,
        sources=(SourceRef("S1", "Ana"),),
    )
    return RankedNode(node=node, score=10.0 - rank, degree=1.0, cross_domain=1, rank=rank)


def synthesizer(content=None, failure_mode=None, mode="permissive"):
    provider = MockProvider(content=content, failure_mode=failure_mode)
    return CoreTruthSynthesizer(CoreTruthExecutor(provider), mode=mode), provider


class TestSanitize:

    def test_strips_fences_bullets_and_quotes(self):
        assert sanitize('```text\n- "Approval drives delay."\n```') == "Approval drives delay."

    def test_numbered_bullet(self):
        assert sanitize("1. Approval drives delay") == "Approval drives delay"

    def test_collapses_whitespace(self):
        assert sanitize("  a \n\n b  ") == "a b"


class TestContract:

    def test_compliant_sentence(self):
        assert contract_problems(STRICT_OK) == []

    def test_too_short(self):
        assert any("words" in p for p in contract_problems("Approval causes delay."))

    def test_no_connective(self):
        sentence = " ".join(["word"] * 20)
        assert "no causal connective" in contract_problems(sentence)

    def test_meta_reference(self):
        sentence = STRICT_OK.replace("teams", "participants")
        assert any(p.startswith("meta reference") for p in contract_problems(sentence))


class TestFallback:

    def test_three_labels(self):
        assert fallback_sentence(["A", "B", "C", "D"]) == "A is driving B, amplifying C."

    def test_two_labels(self):
        assert fallback_sentence(["A", "B"]) == "A is driving B."

    def test_one_label(self):
        assert fallback_sentence(["A"]) == "A is driving the organisation's current condition."

    def test_no_labels(self):
        assert fallback_sentence([]) == GENERIC_SENTENCE
        assert fallback_sentence(["", "  "]) == GENERIC_SENTENCE

    def test_labels_prefer_drivers_then_central(self):
        drivers = [ranked("A", 0)]
        central = [ranked("A", 0), ranked("B", 1)]
        assert fallback_labels(drivers, central) == ["A", "B"]


class TestCoreTruthSynthesizer:

    def test_disabled_uses_fallback(self):
        truth = CoreTruthSynthesizer().synthesize([ranked("Approval bottleneck")], [])
        assert truth.source == SOURCE_FALLBACK
        assert truth.error.code == ErrorCode.NARRATIVE_DISABLED
        assert truth.sentence == "Approval bottleneck is driving the organisation's current condition."

    def test_no_drivers_uses_central_labels(self):
        truth = CoreTruthSynthesizer().synthesize([], [], central=[ranked("A"), ranked("B", 1)])
        assert truth.sentence == "A is driving B."

    def test_nothing_at_all_uses_generic(self):
        truth = CoreTruthSynthesizer().synthesize([], [])
        assert truth.sentence == GENERIC_SENTENCE
        assert truth.is_fallback

    def test_service_sentence_accepted(self):
        synth, provider = synthesizer()
        truth = synth.synthesize([ranked("A")], ["quote one"])
        assert truth.source == SOURCE_NARRATIVE
        assert "because" in truth.sentence
        assert truth.prompt_hash is not None
        assert "quote one" in provider.prompts[0]

    @pytest.mark.parametrize("failure,code", [
        (ProviderErrorCode.TIMEOUT, ErrorCode.NARRATIVE_TIMEOUT),
        (ProviderErrorCode.NETWORK_ERROR, ErrorCode.NARRATIVE_UNREACHABLE),
        (ProviderErrorCode.INVALID_RESPONSE, ErrorCode.NARRATIVE_INVALID_OUTPUT),
    ])
    def test_provider_failure_falls_back(self, failure, code):
        synth, _ = synthesizer(failure_mode=failure)
        truth = synth.synthesize([ranked("A"), ranked("B", 1)], [])
        assert truth.is_fallback
        assert truth.error.code == code
        assert truth.sentence == "A is driving B."

    def test_malformed_json_falls_back(self):
        synth, _ = synthesizer(content="not json at all")
        truth = synth.synthesize([ranked("A")], [])
        assert truth.error.code == ErrorCode.NARRATIVE_INVALID_OUTPUT

    def test_blank_sentence_falls_back(self):
        synth, _ = synthesizer(content=json.dumps({"coreTruth": "   "}))
        truth = synth.synthesize([ranked("A")], [])
        assert truth.error.code == ErrorCode.NARRATIVE_EMPTY_OUTPUT

    def test_sanitized_to_empty_falls_back(self):
        synth, _ = synthesizer(content=json.dumps({"coreTruth": '""'}))
        truth = synth.synthesize([ranked("A")], [])
        assert truth.error.code == ErrorCode.NARRATIVE_EMPTY_OUTPUT

    def test_permissive_accepts_short_sentence(self):
        synth, _ = synthesizer(content=json.dumps({"coreTruth": "- Approval slows everything."}))
        truth = synth.synthesize([ranked("A")], [])
        assert truth.source == SOURCE_NARRATIVE
        assert truth.sentence == "Approval slows everything."

    def test_strict_rejects_short_sentence(self):
        synth, _ = synthesizer(content=json.dumps({"coreTruth": "Approval slows everything."}), mode=MODE_STRICT)
        truth = synth.synthesize([ranked("A")], [])
        assert truth.error.code == ErrorCode.NARRATIVE_CONTRACT_VIOLATION
        assert truth.is_fallback

    def test_strict_accepts_compliant_sentence(self):
        synth, _ = synthesizer(content=json.dumps({"coreTruth": STRICT_OK}), mode=MODE_STRICT)
        assert synth.synthesize([ranked("A")], []).sentence == STRICT_OK

    def test_executor_exception_is_contained(self):
        class Exploding:
            def execute(self, request):
                raise RuntimeError("boom")

        truth = CoreTruthSynthesizer(executor=Exploding()).synthesize([ranked("A")], [])
        assert truth.error.code == ErrorCode.NARRATIVE_UNREACHABLE
        assert truth.is_fallback

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            CoreTruthSynthesizer(mode="lenient")
