"""
Centrality Scorer Tests
=======================

Composite scoring, tie-breaking and driver selection.
"""

import pytest

from hemisphere.contracts.base import SourceRef
from hemisphere.contracts.graph import Edge, EdgeKind, Node, NodeType
from hemisphere.core.centrality import (
    CentralityScorer,
    composite_score,
    cross_domain_count,
    severity_norm,
)


def make_node(node_id, node_type=NodeType.FRICTION, weight=1.0, severity=None, tags=()):
    return Node.create(
        node_id=node_id,
        node_type=node_type,
        label=node_id,
        summary=node_id,
        phase_tags=frozenset(tags),
        weight=weight,
        severity=severity,
        sources=(SourceRef("S1", "Ana"),),
    )


class TestScoreComponents:

    @pytest.mark.parametrize("severity,expected", [(None, 0.5), (1, 0.0), (3, 0.5), (5, 1.0)])
    def test_severity_norm(self, severity, expected):
        assert severity_norm(severity) == pytest.approx(expected)

    def test_cross_domain_is_case_insensitive(self):
        node = make_node("a", tags=("Process", "process", "people"))
        assert cross_domain_count(node) == 2

    def test_composite_score_formula(self):
        node = make_node("a", weight=2.0, severity=5, tags=("a", "b", "c"))
        # 2 * (1 + 1.6) * (1 + 0.45 * 2) + 1.5 * 2.5
        assert composite_score(node, 1.5) == pytest.approx(2 * 2.6 * 1.9 + 3.75)

    def test_breadth_bonus_is_capped(self):
        wide = make_node("a", tags=tuple(f"t{i}" for i in range(10)))
        four = make_node("b", tags=("t1", "t2", "t3", "t4"))
        assert composite_score(wide, 0) == pytest.approx(composite_score(four, 0))


class TestCentralityScorer:

    def test_weighted_degree_counts_each_kind(self):
        a, b = make_node("a"), make_node("b")
        edges = [
            Edge.create("a", "b", EdgeKind.SIMILAR, 0.5),
            Edge.create("a", "b", EdgeKind.COOCCUR, 0.25),
        ]
        degrees = CentralityScorer().degrees([a, b], edges)
        assert degrees == {"a": pytest.approx(0.75), "b": pytest.approx(0.75)}

    def test_edges_to_unknown_nodes_ignored(self):
        degrees = CentralityScorer().degrees([make_node("a")], [Edge.create("a", "z", EdgeKind.COOCCUR, 0.25)])
        assert degrees == {"a": 0.0}

    def test_ranking_excludes_evidence_and_root(self):
        nodes = [
            make_node("a"),
            make_node("evidence:e1", node_type=NodeType.EVIDENCE, weight=9),
            make_node("core_truth:x", node_type=NodeType.CORE_TRUTH, weight=10),
        ]
        selection = CentralityScorer().rank(nodes, [])
        assert [r.node.id for r in selection.ranking] == ["a"]

    def test_heavier_node_ranks_first(self):
        selection = CentralityScorer().rank([make_node("a"), make_node("b", weight=3)], [])
        assert [r.node.id for r in selection.ranking] == ["b", "a"]
        assert [r.rank for r in selection.ranking] == [0, 1]

    def test_ties_break_by_id(self):
        selection = CentralityScorer().rank([make_node("b"), make_node("a"), make_node("c")], [])
        assert [r.node.id for r in selection.ranking] == ["a", "b", "c"]

    def test_driver_and_central_counts(self):
        nodes = [make_node(f"n{i:02d}", weight=20 - i) for i in range(15)]
        selection = CentralityScorer(driver_count=6, central_count=10).rank(nodes, [])
        assert len(selection.drivers) == 6
        assert len(selection.central) == 10
        assert selection.drivers == selection.central[:6]

    def test_empty_input(self):
        selection = CentralityScorer().rank([], [])
        assert selection.ranking == ()
        assert selection.drivers == ()
