"""
Graph Contracts
===============

Nodes, edges and the assembled hemisphere graph.

INVARIANTS:
- Node identity is a pure function of (type, normalized label) for
  non-evidence nodes; evidence nodes are keyed by their fragment id.
- Layer is a pure function of node type.
- At most one edge per (unordered endpoint pair, kind).
- Merging two nodes is commutative in weight, severity, confidence,
  phase tags and sources.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from .base import SourceRef, stable_digest


EVIDENCE_CAP = 12
CORE_TRUTH_WEIGHT = 10.0


class NodeType(Enum):
    VISION = "VISION"
    BELIEF = "BELIEF"
    CHALLENGE = "CHALLENGE"
    FRICTION = "FRICTION"
    CONSTRAINT = "CONSTRAINT"
    ENABLER = "ENABLER"
    EVIDENCE = "EVIDENCE"
    CORE_TRUTH = "CORE_TRUTH"


class Layer(Enum):
    """Depth of a node, from the core truth (H0) to raw evidence (H4)."""
    H0 = "H0"
    H1 = "H1"
    H2 = "H2"
    H3 = "H3"
    H4 = "H4"


LAYER_BY_TYPE: Dict[NodeType, Layer] = {
    NodeType.VISION: Layer.H1,
    NodeType.BELIEF: Layer.H1,
    NodeType.CHALLENGE: Layer.H2,
    NodeType.FRICTION: Layer.H2,
    NodeType.CONSTRAINT: Layer.H3,
    NodeType.ENABLER: Layer.H3,
    NodeType.EVIDENCE: Layer.H4,
    NodeType.CORE_TRUTH: Layer.H0,
}


class EdgeKind(Enum):
    SIMILAR = "SIMILAR"
    COOCCUR = "COOCCUR"
    CAUSE_HINT = "CAUSE_HINT"


def node_id_for(node_type: NodeType, normalized_label: str) -> str:
    """Deterministic id for a non-evidence node."""
    return f"{node_type.value.lower()}:{stable_digest(node_type.value, normalized_label)}"


def evidence_node_id(fragment_id: str) -> str:
    """Evidence nodes never merge: their id is their fragment id."""
    return f"evidence:{fragment_id}"


def edge_id_for(a: str, b: str, kind: EdgeKind) -> str:
    """Order-independent edge id."""
    lo, hi = (a, b) if a <= b else (b, a)
    return f"{kind.value.lower()}:{lo}|{hi}"


# =============================================================================
# NODE
# =============================================================================

@dataclass(frozen=True)
class Node:
    """
    Immutable graph node.

    Severity and confidence are carried as weighted sums so that their
    averages do not depend on the order contributions arrive in. A
    contribution without a value adds weight but no value.
    """
    id: str
    type: NodeType
    label: str
    summary: str
    phase_tags: FrozenSet[str] = field(default_factory=frozenset)
    weight: float = 1.0
    severity_sum: float = 0.0
    severity_weight: float = 0.0
    confidence_sum: float = 0.0
    confidence_weight: float = 0.0
    sources: Tuple[SourceRef, ...] = field(default_factory=tuple)
    evidence: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Node id must be non-empty")
        if self.weight < 0:
            raise ValueError("Node weight must be non-negative")
        if len(self.evidence) > EVIDENCE_CAP:
            raise ValueError(f"Node evidence is capped at {EVIDENCE_CAP}")

    @staticmethod
    def create(
        node_id: str,
        node_type: NodeType,
        label: str,
        summary: str,
        phase_tags: FrozenSet[str] = frozenset(),
        weight: float = 1.0,
        severity: Optional[float] = None,
        confidence: Optional[float] = None,
        sources: Tuple[SourceRef, ...] = (),
        evidence: Tuple[str, ...] = (),
    ) -> Node:
        """Build a single-contribution node from plain values."""
        return Node(
            id=node_id,
            type=node_type,
            label=label,
            summary=summary,
            phase_tags=frozenset(phase_tags),
            weight=weight,
            severity_sum=severity * weight if severity is not None else 0.0,
            severity_weight=weight if severity is not None else 0.0,
            confidence_sum=confidence * weight if confidence is not None else 0.0,
            confidence_weight=weight if confidence is not None else 0.0,
            sources=tuple(sorted(set(sources))),
            evidence=_dedupe_capped((), evidence),
        )

    @property
    def layer(self) -> Layer:
        return LAYER_BY_TYPE[self.type]

    @property
    def severity(self) -> Optional[float]:
        if self.severity_weight <= 0:
            return None
        return self.severity_sum / self.severity_weight

    @property
    def confidence(self) -> Optional[float]:
        if self.confidence_weight <= 0:
            return None
        return self.confidence_sum / self.confidence_weight

    @property
    def session_ids(self) -> FrozenSet[str]:
        return frozenset(s.session_id for s in self.sources)

    def merge(self, incoming: Node) -> Node:
        """
        Return the merged node (immutable).

        Label and summary come from whichever side has the longer summary
        (lexicographic tie-break) so the choice is order independent too.
        """
        if incoming.id != self.id:
            raise ValueError(f"Cannot merge node {incoming.id} into {self.id}")

        preferred = _preferred_text(self, incoming)
        return Node(
            id=self.id,
            type=self.type,
            label=preferred.label,
            summary=preferred.summary,
            phase_tags=self.phase_tags | incoming.phase_tags,
            weight=self.weight + incoming.weight,
            severity_sum=self.severity_sum + incoming.severity_sum,
            severity_weight=self.severity_weight + incoming.severity_weight,
            confidence_sum=self.confidence_sum + incoming.confidence_sum,
            confidence_weight=self.confidence_weight + incoming.confidence_weight,
            sources=tuple(sorted(set(self.sources) | set(incoming.sources))),
            evidence=_dedupe_capped(self.evidence, incoming.evidence),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'type': self.type.value,
            'label': self.label,
            'summary': self.summary,
            'phaseTags': sorted(self.phase_tags),
            'layer': self.layer.value,
            'weight': self.weight,
            'severity': self.severity,
            'confidence': self.confidence,
            'sources': [s.to_dict() for s in self.sources],
            'evidence': list(self.evidence),
        }


def _preferred_text(a: Node, b: Node) -> Node:
    if len(a.summary) != len(b.summary):
        return a if len(a.summary) > len(b.summary) else b
    return a if a.summary <= b.summary else b


def _dedupe_capped(existing: Tuple[str, ...], incoming: Tuple[str, ...]) -> Tuple[str, ...]:
    out = list(existing)
    seen = set(existing)
    for quote in incoming:
        if len(out) >= EVIDENCE_CAP:
            break
        if not quote or quote in seen:
            continue
        seen.add(quote)
        out.append(quote)
    return tuple(out)


# =============================================================================
# EDGE
# =============================================================================

@dataclass(frozen=True)
class Edge:
    """
    Immutable edge.

    SIMILAR and COOCCUR are undirected: endpoints are stored in id order.
    CAUSE_HINT keeps its direction (root -> central node).
    """
    id: str
    source: str
    target: str
    strength: float
    kind: EdgeKind

    def __post_init__(self):
        if not 0.0 <= self.strength <= 1.0:
            raise ValueError("Edge strength must be between 0.0 and 1.0")
        if self.source == self.target:
            raise ValueError("Self loops are not allowed")

    @staticmethod
    def create(source: str, target: str, kind: EdgeKind, strength: float) -> Edge:
        if kind != EdgeKind.CAUSE_HINT and target < source:
            source, target = target, source
        return Edge(
            id=edge_id_for(source, target, kind),
            source=source,
            target=target,
            strength=strength,
            kind=kind,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'source': self.source,
            'target': self.target,
            'strength': self.strength,
            'kind': self.kind.value,
        }


# =============================================================================
# GRAPH
# =============================================================================

@dataclass(frozen=True)
class HemisphereGraph:
    """Finished graph: nodes, edges and the synthetic core-truth root."""
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]
    core_truth_node_id: str

    def node(self, node_id: str) -> Optional[Node]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    @property
    def core_truth(self) -> str:
        root = self.node(self.core_truth_node_id)
        return root.summary if root else ""

    def to_dict(self) -> dict:
        return {
            'nodes': [n.to_dict() for n in self.nodes],
            'edges': [e.to_dict() for e in self.edges],
            'coreTruthNodeId': self.core_truth_node_id,
        }
