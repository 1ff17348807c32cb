"""
Core Graph Engine

Node registry, edge builders and centrality scoring. Pure computation:
no I/O, no clock, no network.
"""

from .registry import NodeRegistry, node_from_fragment
from .edges import EdgeSet, build_edges, cooccurrence_edges, similarity_edges
from .centrality import CentralityScorer, DriverSelection, RankedNode

__all__ = [
    'NodeRegistry',
    'node_from_fragment',
    'EdgeSet',
    'build_edges',
    'cooccurrence_edges',
    'similarity_edges',
    'CentralityScorer',
    'DriverSelection',
    'RankedNode',
]
