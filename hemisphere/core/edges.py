"""
Edge Builders
=============

Similarity and co-occurrence links between thematic nodes.

Both builders are pure functions of the node list: they return candidate
edges and do not write anywhere. EdgeSet is the single writer that merges
candidates, keeping the strongest edge per id. Since max is commutative
the merged result does not depend on builder or candidate order.

EVIDENCE nodes are never linked here.
"""

from __future__ import annotations
from collections import defaultdict
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Sequence

from hemisphere.contracts.graph import Edge, EdgeKind, Layer, Node, NodeType
from hemisphere.ingestion.text import jaccard, tokenize

SIMILARITY_NODE_CAP = 140
SIMILARITY_THRESHOLD = 0.22
COOCCUR_SESSION_CAP = 18
COOCCUR_STRENGTH = 0.25

# The only cross-layer pair allowed a SIMILAR edge.
BRIDGED_LAYERS = frozenset({Layer.H2, Layer.H3})


class EdgeSet:
    """At most one edge per id; a stronger candidate replaces a weaker one."""

    def __init__(self):
        self._edges: Dict[str, Edge] = {}

    def add(self, edge: Edge) -> None:
        existing = self._edges.get(edge.id)
        if existing is None or edge.strength > existing.strength:
            self._edges[edge.id] = edge

    def add_all(self, edges: Iterable[Edge]) -> None:
        for edge in edges:
            self.add(edge)

    def edges(self) -> List[Edge]:
        """Edges in id order."""
        return [self._edges[k] for k in sorted(self._edges)]

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, edge_id: object) -> bool:
        return edge_id in self._edges


def _thematic(nodes: Iterable[Node]) -> List[Node]:
    return [n for n in nodes if n.type != NodeType.EVIDENCE]


def _by_weight(nodes: Iterable[Node]) -> List[Node]:
    return sorted(nodes, key=lambda n: (-n.weight, n.id))


def layers_may_link(a: Layer, b: Layer) -> bool:
    return a == b or frozenset({a, b}) == BRIDGED_LAYERS


def node_tokens(node: Node) -> FrozenSet[str]:
    return tokenize(f"{node.label} {node.summary}")


def similarity_edges(
    nodes: Sequence[Node],
    cap: int = SIMILARITY_NODE_CAP,
    threshold: float = SIMILARITY_THRESHOLD,
) -> List[Edge]:
    """SIMILAR candidates from token overlap among the heaviest nodes."""
    pool = _by_weight(_thematic(nodes))[:cap]
    tokens = {n.id: node_tokens(n) for n in pool}

    out = []
    for a, b in combinations(pool, 2):
        if not layers_may_link(a.layer, b.layer):
            continue
        ta, tb = tokens[a.id], tokens[b.id]
        if not ta or not tb:
            continue
        score = jaccard(ta, tb)
        if score < threshold:
            continue
        out.append(Edge.create(a.id, b.id, EdgeKind.SIMILAR, min(1.0, score)))
    return out


def cooccurrence_edges(
    nodes: Sequence[Node],
    cap: int = COOCCUR_SESSION_CAP,
    strength: float = COOCCUR_STRENGTH,
) -> List[Edge]:
    """COOCCUR candidates between nodes sharing a session."""
    by_session: Dict[str, List[Node]] = defaultdict(list)
    for node in _thematic(nodes):
        for session_id in node.session_ids:
            by_session[session_id].append(node)

    out = []
    for session_id in sorted(by_session):
        members = _by_weight(by_session[session_id])[:cap]
        for a, b in combinations(members, 2):
            out.append(Edge.create(a.id, b.id, EdgeKind.COOCCUR, strength))
    return out


def build_edges(
    nodes: Sequence[Node],
    similarity_cap: int = SIMILARITY_NODE_CAP,
    similarity_threshold: float = SIMILARITY_THRESHOLD,
    cooccur_cap: int = COOCCUR_SESSION_CAP,
    cooccur_strength: float = COOCCUR_STRENGTH,
) -> EdgeSet:
    """Run both builders and merge their candidates."""
    edge_set = EdgeSet()
    edge_set.add_all(similarity_edges(nodes, similarity_cap, similarity_threshold))
    edge_set.add_all(cooccurrence_edges(nodes, cooccur_cap, cooccur_strength))
    return edge_set
