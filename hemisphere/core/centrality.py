"""
Centrality Scorer
=================

Ranks thematic nodes by a composite of weight, severity, cross-domain
breadth and weighted degree, then selects drivers and central nodes.

Wraps NetworkX for the degree computation. EVIDENCE nodes are raw
material and are never ranked.

SCORE:
    weight * (1 + 1.6 * severity_norm)
           * (1 + 0.45 * min(3, max(0, cross_domain - 1)))
    + degree * 2.5

ORDER:
    score desc, degree desc, weight desc, id asc
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple
import networkx as nx

from hemisphere.contracts.graph import Edge, Node, NodeType

DRIVER_COUNT = 6
CENTRAL_COUNT = 10
DEFAULT_SEVERITY_NORM = 0.5


@dataclass(frozen=True)
class RankedNode:
    """A node with its score components."""
    node: Node
    score: float
    degree: float
    cross_domain: int
    rank: int

    def to_dict(self) -> dict:
        return {
            'id': self.node.id,
            'score': self.score,
            'degree': self.degree,
            'crossDomain': self.cross_domain,
            'rank': self.rank,
        }


@dataclass(frozen=True)
class DriverSelection:
    """Ranked output: drivers feed synthesis, central nodes get CAUSE_HINT edges."""
    ranking: Tuple[RankedNode, ...]
    drivers: Tuple[RankedNode, ...]
    central: Tuple[RankedNode, ...]


def severity_norm(severity: Optional[float]) -> float:
    if severity is None:
        return DEFAULT_SEVERITY_NORM
    return max(0.0, min(1.0, (severity - 1.0) / 4.0))


def cross_domain_count(node: Node) -> int:
    return len({t.lower() for t in node.phase_tags})


def composite_score(node: Node, degree: float) -> float:
    cross = cross_domain_count(node)
    breadth = 1 + 0.45 * min(3, max(0, cross - 1))
    return node.weight * (1 + 1.6 * severity_norm(node.severity)) * breadth + degree * 2.5


class CentralityScorer:
    """
    Builds a weighted multigraph over the thematic nodes and ranks them.

    A MultiGraph keeps SIMILAR and COOCCUR edges on the same pair apart,
    so both contribute to degree.
    """

    def __init__(self, driver_count: int = DRIVER_COUNT, central_count: int = CENTRAL_COUNT):
        self._driver_count = driver_count
        self._central_count = central_count

    def degrees(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, float]:
        graph = nx.MultiGraph()
        graph.add_nodes_from(n.id for n in nodes)
        for edge in edges:
            if edge.source in graph and edge.target in graph:
                graph.add_edge(edge.source, edge.target, key=edge.kind.value, weight=edge.strength)
        return {node_id: float(d) for node_id, d in graph.degree(weight='weight')}

    def rank(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> DriverSelection:
        thematic = [n for n in nodes if n.type not in (NodeType.EVIDENCE, NodeType.CORE_TRUTH)]
        degree = self.degrees(thematic, edges)

        scored = [
            (composite_score(n, degree.get(n.id, 0.0)), degree.get(n.id, 0.0), n)
            for n in thematic
        ]
        scored.sort(key=lambda s: (-s[0], -s[1], -s[2].weight, s[2].id))

        ranking = tuple(
            RankedNode(node=n, score=score, degree=deg, cross_domain=cross_domain_count(n), rank=i)
            for i, (score, deg, n) in enumerate(scored)
        )
        return DriverSelection(
            ranking=ranking,
            drivers=ranking[:self._driver_count],
            central=ranking[:self._central_count],
        )

