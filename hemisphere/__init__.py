"""
Hemisphere Insight Graph

Builds one cross-participant insight graph per workshop run from the
completed interview sessions, and anchors it on a single causal
"core truth" sentence.

LAYER STRUCTURE:
================

1. INGESTION LAYER (ingestion/)
   - Responsibility: Validate loosely typed source records into fragments
   - Outputs: InsightFragment (closed union), ExtractionReport
   - MUST NOT: Merge, link or rank anything

2. CORE GRAPH ENGINE (core/)
   - Responsibility: Node registry, similarity/co-occurrence edges, centrality
   - Allowed inputs: InsightFragment from the ingestion layer
   - MUST NOT: Perform I/O or call the narrative service

3. SYNTHESIS LAYER (synthesis/)
   - Responsibility: One core truth sentence, via the narrative adapter
     or the deterministic fallback
   - MUST NOT: Raise. Every failure degrades to the fallback

4. STORAGE LAYER (storage/)
   - Responsibility: Load COMPLETED sessions for one workshop run
   - MUST NOT: Cache or persist graphs

5. API / CLI (api/, cli.py)
   - Responsibility: Read-only surfaces over HemisphereEngine

6. OBSERVABILITY & AUDIT LAYER (observability/)
   - Responsibility: Logging setup and the per-build audit trail
   - MUST NOT: Modify build behavior

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: Fragments, nodes, edges and graphs are frozen
- Deterministic: Identical snapshots give identical graphs
- Per-build state: Nothing survives between builds
- Explicit errors: Skipped records and fallbacks are counted, not hidden
"""

__version__ = "0.1.0"
