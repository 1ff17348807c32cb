"""
Node Registry
=============

Canonicalizes fragments into typed nodes and merges repeats.

One registry per build. It is passed explicitly through the pipeline
and never shared between builds.

GUARANTEES:
- Non-evidence identity = (type, normalized label)
- Evidence nodes keyed by fragment id, never merged
- Merges are commutative and associative in weight, severity,
  confidence, phase tags and sources (see Node.merge)
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Optional

from hemisphere.contracts.fragments import EvidenceExcerptFragment, InsightFragment
from hemisphere.contracts.graph import (
    Node,
    NodeType,
    evidence_node_id,
    node_id_for,
)
from hemisphere.ingestion.text import label_key, make_label

FRAGMENT_WEIGHT = 1.0


def node_from_fragment(fragment: InsightFragment) -> Node:
    """Single-contribution node for a fragment."""
    if isinstance(fragment, EvidenceExcerptFragment):
        node_id = evidence_node_id(fragment.fragment_id)
        quotes = (fragment.text,) + fragment.quotes
    else:
        node_id = node_id_for(fragment.node_type, label_key(fragment.headline))
        quotes = fragment.quotes

    tags = frozenset({fragment.phase_or_category}) if fragment.phase_or_category else frozenset()
    return Node.create(
        node_id=node_id,
        node_type=fragment.node_type,
        label=make_label(fragment.headline),
        summary=fragment.text,
        phase_tags=tags,
        weight=FRAGMENT_WEIGHT,
        severity=fragment.severity,
        confidence=fragment.confidence,
        sources=(fragment.source,),
        evidence=quotes,
    )


class NodeRegistry:
    """
    Insertion-ordered node store with merge-on-upsert.
    """

    def __init__(self):
        self._nodes: Dict[str, Node] = {}

    def upsert(self, node: Node) -> None:
        existing = self._nodes.get(node.id)
        self._nodes[node.id] = node if existing is None else existing.merge(node)

    def upsert_fragment(self, fragment: InsightFragment) -> Node:
        node = node_from_fragment(fragment)
        self.upsert(node)
        return self._nodes[node.id]

    def get(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def non_evidence_nodes(self) -> List[Node]:
        return [n for n in self._nodes.values() if n.type != NodeType.EVIDENCE]

    def evidence_nodes(self) -> List[Node]:
        return [n for n in self._nodes.values() if n.type == NodeType.EVIDENCE]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))
