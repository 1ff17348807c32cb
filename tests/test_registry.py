"""
Node Registry Tests
===================

Identity, merge arithmetic and order independence of the registry.
"""

import pytest
from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from hemisphere.contracts.base import SourceRef
from hemisphere.contracts.fragments import EvidenceExcerptFragment, KeyInsightFragment
from hemisphere.contracts.graph import NodeType
from hemisphere.core.registry import NodeRegistry, node_from_fragment

from tests.fixtures import fragment


# =============================================================================
# STRATEGIES
# =============================================================================

LABELS = ["approval process blocks releases", "Approval process blocks releases.", "legacy tooling", "weekly shipping"]
TYPES = [NodeType.CONSTRAINT, NodeType.FRICTION, NodeType.VISION]
GREEK_LABEL = "Προϋπολογισμός περιορίζει προσλήψεις"


@composite
def fragments(draw, index):
    return fragment(
        fragment_id=f"f{index}",
        text=draw(st.sampled_from(LABELS)),
        node_type=draw(st.sampled_from(TYPES)),
        session_id=draw(st.sampled_from(["S1", "S2", "S3"])),
        participant_name=draw(st.sampled_from(["Ana", "Ben"])),
        category=draw(st.one_of(st.none(), st.sampled_from(["process", "people"]))),
        severity=draw(st.one_of(st.none(), st.integers(min_value=1, max_value=5))),
        confidence=draw(st.one_of(st.none(), st.sampled_from([0.2, 0.5, 0.9]))),
    )


@composite
def fragment_lists(draw):
    size = draw(st.integers(min_value=1, max_value=12))
    return [draw(fragments(i)) for i in range(size)]


def _state(registry: NodeRegistry) -> dict:
    return {
        n.id: (
            n.weight,
            round(n.severity, 9) if n.severity is not None else None,
            round(n.confidence, 9) if n.confidence is not None else None,
            n.phase_tags,
            n.sources,
            n.summary,
        )
        for n in registry.nodes()
    }


def _registry(frags) -> NodeRegistry:
    registry = NodeRegistry()
    for f in frags:
        registry.upsert_fragment(f)
    return registry


# =============================================================================
# TESTS
# =============================================================================

class TestNodeRegistry:

    def test_same_label_and_type_merge(self):
        registry = _registry([
            fragment("a", "Approval process blocks releases", session_id="S1", severity=5),
            fragment("b", "approval process blocks releases.", session_id="S2", severity=3),
        ])
        [node] = registry.nodes()
        assert node.weight == 2.0
        assert node.severity == pytest.approx(4.0)
        assert node.session_ids == frozenset({"S1", "S2"})

    def test_same_label_different_type_stay_apart(self):
        registry = _registry([
            fragment("a", "legacy tooling", node_type=NodeType.CONSTRAINT),
            fragment("b", "legacy tooling", node_type=NodeType.FRICTION),
        ])
        assert len(registry) == 2

    def test_phase_tags_union(self):
        registry = _registry([
            fragment("a", "legacy tooling", category="technology"),
            fragment("b", "legacy tooling", category="process"),
            fragment("c", "legacy tooling"),
        ])
        [node] = registry.nodes()
        assert node.phase_tags == frozenset({"technology", "process"})

    def test_evidence_nodes_never_merge(self):
        ev = [
            EvidenceExcerptFragment.create(
                fragment_id=fid, text="same quote text", session_id="S1",
                participant_name="Ana", node_type=NodeType.EVIDENCE,
            )
            for fid in ("e1", "e2")
        ]
        registry = _registry(ev)
        assert len(registry.evidence_nodes()) == 2
        assert registry.non_evidence_nodes() == []
        assert registry.get("evidence:e1").evidence == ("same quote text",)

    def test_node_from_fragment_label_and_source(self):
        node = node_from_fragment(fragment("a", "one two three four five six seven eight nine", participant_name="Ana"))
        assert node.label == "one two three four five six seven eight"
        assert node.sources == (SourceRef("S1", "Ana"),)

    def test_identical_fragment_twice(self):
        registry = NodeRegistry()
        f = KeyInsightFragment.create(
            fragment_id="k1", text="Approval adds two weeks", title="Approval bottleneck",
            session_id="S1", participant_name="Ana", node_type=NodeType.FRICTION,
            quotes=("We wait on sign-off.",),
        )
        registry.upsert_fragment(f)
        node = registry.upsert_fragment(f)
        assert node.weight == 2.0
        assert node.sources == (SourceRef("S1", "Ana"),)
        assert node.evidence == ("We wait on sign-off.",)

    def test_non_latin_labels_stay_apart(self):
        registry = _registry([
            fragment("a", "审批流程阻碍发布", node_type=NodeType.CONSTRAINT, session_id="S1", severity=5),
            fragment("b", "Προϋπολογισμός περιορίζει προσλήψεις", node_type=NodeType.CONSTRAINT,
                     session_id="S2", severity=1),
        ])
        assert len(registry) == 2
        assert sorted(n.severity for n in registry.nodes()) == [1.0, 5.0]
        assert all(n.weight == 1.0 for n in registry.nodes())

    def test_non_latin_case_variants_merge(self):
        registry = _registry([
            fragment("a", GREEK_LABEL),
            fragment("b", GREEK_LABEL.upper() + "."),
        ])
        assert len(registry) == 1

    def test_upsert_returns_merged_node(self):
        registry = NodeRegistry()
        registry.upsert_fragment(fragment("a", "legacy tooling"))
        merged = registry.upsert_fragment(fragment("b", "legacy tooling"))
        assert merged.weight == 2.0
        assert merged.id in registry

    @settings(max_examples=60, deadline=None)
    @given(frags=fragment_lists(), seed=st.randoms(use_true_random=False))
    def test_merge_is_order_independent(self, frags, seed):
        shuffled = list(frags)
        seed.shuffle(shuffled)
        assert _state(_registry(frags)) == _state(_registry(shuffled))

    @settings(max_examples=40, deadline=None)
    @given(frags=fragment_lists())
    def test_total_weight_is_fragment_count(self, frags):
        registry = _registry(frags)
        assert sum(n.weight for n in registry) == pytest.approx(len(frags))
