"""
Engine Orchestration Module

Graph assembly for one workshop run, and the request-level engine that
loads the snapshot and wraps the graph in a report.

ASSEMBLY STATE MACHINE:
=======================
    INGEST -> MERGE -> LINK -> SCORE -> SYNTHESIZE -> FINALIZE
    any stage -> FAILED   (terminal; no partial graph is returned)

Every transition is recorded in the build's AuditTrail.

DESIGN PRINCIPLES:
==================
1. One registry, one edge set and one audit trail per build
2. No state survives a build; the assembler itself holds config only
3. Only data source failures escalate. Everything downstream degrades
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple
import logging
import uuid

from narrative import CoreTruthExecutor, NarrativeProvider, provider_for_endpoint

from .config import GraphConfig, HemisphereConfig, NarrativeConfig
from .contracts.base import (
    AssemblyFailedError,
    Error,
    ErrorCode,
    HemisphereError,
    RunType,
    stable_digest,
)
from .contracts.graph import (
    CORE_TRUTH_WEIGHT,
    Edge,
    EdgeKind,
    HemisphereGraph,
    Node,
    NodeType,
)
from .contracts.records import WorkshopSnapshot
from .core.centrality import CentralityScorer, DriverSelection
from .core.edges import EdgeSet, build_edges
from .core.registry import NodeRegistry
from .ingestion.extractor import ExtractionReport, FragmentExtractor
from .ingestion.text import make_label
from .observability import AuditTrail
from .storage import WorkshopSource
from .synthesis.core_truth import CoreTruth, CoreTruthSynthesizer

logger = logging.getLogger(__name__)

CAUSE_HINT_TOP = 0.95
CAUSE_HINT_STEP = 0.04


class BuildStage(Enum):
    INGEST = "INGEST"
    MERGE = "MERGE"
    LINK = "LINK"
    SCORE = "SCORE"
    SYNTHESIZE = "SYNTHESIZE"
    FINALIZE = "FINALIZE"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS: Dict[BuildStage, FrozenSet[BuildStage]] = {
    BuildStage.INGEST: frozenset({BuildStage.MERGE, BuildStage.FAILED}),
    BuildStage.MERGE: frozenset({BuildStage.LINK, BuildStage.FAILED}),
    BuildStage.LINK: frozenset({BuildStage.SCORE, BuildStage.FAILED}),
    BuildStage.SCORE: frozenset({BuildStage.SYNTHESIZE, BuildStage.FAILED}),
    BuildStage.SYNTHESIZE: frozenset({BuildStage.FINALIZE, BuildStage.FAILED}),
    BuildStage.FINALIZE: frozenset(),
    BuildStage.FAILED: frozenset(),
}


def cause_hint_strength(rank: int) -> float:
    return max(0.0, CAUSE_HINT_TOP - CAUSE_HINT_STEP * rank)


def core_truth_node_id(workshop_id: str, run_type: RunType) -> str:
    return f"core_truth:{stable_digest(workshop_id, run_type.value)}"


# =============================================================================
# BUILD STATE
# =============================================================================

class BuildRun:
    """
    Mutable state of ONE build. Created by the assembler, never shared.
    """

    def __init__(self, snapshot: WorkshopSnapshot, audit: AuditTrail):
        self.snapshot = snapshot
        self.audit = audit
        self.stage = BuildStage.INGEST
        self.registry = NodeRegistry()
        self.edge_set = EdgeSet()
        self.extraction: Optional[ExtractionReport] = None
        self.selection: Optional[DriverSelection] = None
        self.core_truth: Optional[CoreTruth] = None
        audit.record(self.stage.value, "enter")

    def advance(self, to: BuildStage, **detail) -> None:
        if to not in ALLOWED_TRANSITIONS[self.stage]:
            error = Error.create(
                ErrorCode.INVALID_STATE_TRANSITION,
                f"Cannot move from {self.stage.value} to {to.value}",
            )
            raise AssemblyFailedError(error)
        self.audit.record(self.stage.value, "exit", **detail)
        self.stage = to
        self.audit.record(to.value, "enter")


@dataclass(frozen=True)
class AssemblyResult:
    graph: HemisphereGraph
    core_truth: CoreTruth
    selection: DriverSelection
    extraction: ExtractionReport


# =============================================================================
# ASSEMBLER
# =============================================================================

class GraphAssembler:
    """
    Runs the stages in order over one snapshot.

    Args:
        synthesizer: Core truth synthesizer (with or without a live service)
        graph_config: Caps and thresholds
    """

    def __init__(
        self,
        synthesizer: Optional[CoreTruthSynthesizer] = None,
        graph_config: Optional[GraphConfig] = None,
    ):
        self._config = graph_config or GraphConfig()
        self._synthesizer = synthesizer or CoreTruthSynthesizer()
        self._extractor = FragmentExtractor(
            evidence_limit=self._config.evidence_limit,
            evidence_min_words=self._config.evidence_min_words,
        )
        self._scorer = CentralityScorer(
            driver_count=self._config.driver_count,
            central_count=self._config.central_count,
        )

    def assemble(self, snapshot: WorkshopSnapshot, audit: Optional[AuditTrail] = None) -> AssemblyResult:
        audit = audit or AuditTrail(build_id=uuid.uuid4().hex)
        run = BuildRun(snapshot, audit)
        try:
            self._ingest(run)
            self._merge(run)
            self._link(run)
            self._score(run)
            self._synthesize(run)
            graph = self._finalize(run)
        except AssemblyFailedError as e:
            self._fail(run, e.error)
            raise
        except HemisphereError as e:
            error = Error.create(ErrorCode.ASSEMBLY_FAILED, str(e)).with_context("stage", run.stage.value)
            self._fail(run, error)
            raise AssemblyFailedError(error) from e

        return AssemblyResult(
            graph=graph,
            core_truth=run.core_truth,
            selection=run.selection,
            extraction=run.extraction,
        )

    def _fail(self, run: BuildRun, error: Error) -> None:
        if run.stage != BuildStage.FAILED:
            run.audit.record(run.stage.value, "failed", code=error.code.name, message=error.message)
            run.stage = BuildStage.FAILED
            run.audit.record(BuildStage.FAILED.value, "enter")
        logger.error("Build %s failed: %s", run.audit.build_id, error.message)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _ingest(self, run: BuildRun) -> None:
        run.extraction = self._extractor.extract(run.snapshot)
        for skipped in run.extraction.skipped:
            run.audit.count(f"skipped.{skipped.code.name}")
        run.audit.count("ignored", run.extraction.ignored_count)
        run.advance(
            BuildStage.MERGE,
            fragments=len(run.extraction.fragments),
            skipped=run.extraction.skipped_count,
            ignored=run.extraction.ignored_count,
        )

    def _merge(self, run: BuildRun) -> None:
        for fragment in run.extraction.fragments:
            run.registry.upsert_fragment(fragment)
        run.advance(BuildStage.LINK, nodes=len(run.registry))

    def _link(self, run: BuildRun) -> None:
        run.edge_set = build_edges(
            run.registry.nodes(),
            similarity_cap=self._config.similarity_node_cap,
            similarity_threshold=self._config.similarity_threshold,
            cooccur_cap=self._config.cooccur_session_cap,
            cooccur_strength=self._config.cooccur_strength,
        )
        run.advance(BuildStage.SCORE, edges=len(run.edge_set))

    def _score(self, run: BuildRun) -> None:
        run.selection = self._scorer.rank(run.registry.nodes(), run.edge_set.edges())
        run.advance(
            BuildStage.SYNTHESIZE,
            ranked=len(run.selection.ranking),
            drivers=len(run.selection.drivers),
        )

    def _synthesize(self, run: BuildRun) -> None:
        run.core_truth = self._synthesizer.synthesize(
            drivers=run.selection.drivers,
            evidence_quotes=run.extraction.evidence_quotes,
            central=run.selection.central,
        )
        if run.core_truth.error is not None:
            run.audit.count(f"narrative.{run.core_truth.error.code.name}")
        run.advance(BuildStage.FINALIZE, source=run.core_truth.source)

    def _finalize(self, run: BuildRun) -> HemisphereGraph:
        sentence = run.core_truth.sentence
        root = Node.create(
            node_id=core_truth_node_id(run.snapshot.workshop_id, run.snapshot.run_type),
            node_type=NodeType.CORE_TRUTH,
            label=make_label(sentence),
            summary=sentence,
            weight=CORE_TRUTH_WEIGHT,
        )

        hints: List[Edge] = [
            Edge.create(root.id, ranked.node.id, EdgeKind.CAUSE_HINT, cause_hint_strength(ranked.rank))
            for ranked in run.selection.central
        ]

        graph = HemisphereGraph(
            nodes=(root,) + tuple(run.registry.nodes()),
            edges=tuple(run.edge_set.edges()) + tuple(hints),
            core_truth_node_id=root.id,
        )
        run.audit.record(BuildStage.FINALIZE.value, "complete", nodes=len(graph.nodes), edges=len(graph.edges))
        return graph


# =============================================================================
# REQUEST-LEVEL ENGINE
# =============================================================================

@dataclass(frozen=True)
class HemisphereReport:
    """Everything the HTTP surface and CLI return for one build."""
    workshop_id: str
    run_type: RunType
    generated_at: datetime
    session_count: int
    participant_count: int
    participants: Tuple[dict, ...]
    graph: HemisphereGraph
    core_truth_source: str
    diagnostics: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'ok': True,
            'workshopId': self.workshop_id,
            'runType': self.run_type.value,
            'generatedAt': self.generated_at.isoformat(),
            'sessionCount': self.session_count,
            'participantCount': self.participant_count,
            'participants': list(self.participants),
            'hemisphereGraph': self.graph.to_dict(),
        }


def build_synthesizer(
    config: NarrativeConfig,
    provider: Optional[NarrativeProvider] = None,
) -> CoreTruthSynthesizer:
    """Synthesizer wired to the configured service, or offline when inactive."""
    if provider is None:
        if not config.is_active:
            return CoreTruthSynthesizer(executor=None, mode=config.mode)
        provider = provider_for_endpoint(config.api_key, base_url=config.base_url, model=config.model)
    elif not config.enabled:
        return CoreTruthSynthesizer(executor=None, mode=config.mode)

    executor = CoreTruthExecutor(
        provider=provider,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout_seconds=config.timeout_seconds,
    )
    return CoreTruthSynthesizer(executor=executor, mode=config.mode)


class HemisphereEngine:
    """
    Unified entry point: load a snapshot, assemble, report.

    FLOW:
    =====
    1. Data source: workshop id + run type -> WorkshopSnapshot (fatal on failure)
    2. Assembler: snapshot -> graph + core truth
    3. Report: graph + participant listing + counts
    """

    def __init__(
        self,
        source: WorkshopSource,
        config: Optional[HemisphereConfig] = None,
        provider: Optional[NarrativeProvider] = None,
    ):
        self._config = config or HemisphereConfig()
        self._source = source
        self._assembler = GraphAssembler(
            synthesizer=build_synthesizer(self._config.narrative, provider),
            graph_config=self._config.graph,
        )

    @property
    def config(self) -> HemisphereConfig:
        return self._config

    def build(self, workshop_id: str, run_type: RunType = RunType.BASELINE) -> HemisphereReport:
        """
        Build the hemisphere graph for one workshop run.

        Raises SourceUnavailableError if the data source cannot be read,
        AssemblyFailedError if the build cannot complete.
        """
        audit = AuditTrail(build_id=uuid.uuid4().hex)
        snapshot = self._source.load_workshop(workshop_id, run_type)
        audit.record("LOAD", "snapshot", sessions=snapshot.session_count)

        result = self._assembler.assemble(snapshot, audit)

        summary = audit.summary()
        logger.info(
            "Built hemisphere for %s/%s: %d nodes, %d edges, core truth via %s",
            workshop_id, run_type.value, len(result.graph.nodes), len(result.graph.edges),
            result.core_truth.source,
        )
        logger.debug("Audit summary: %s", summary)

        return HemisphereReport(
            workshop_id=workshop_id,
            run_type=run_type,
            generated_at=datetime.now(timezone.utc),
            session_count=snapshot.session_count,
            participant_count=snapshot.participant_count,
            participants=tuple(snapshot.participants()),
            graph=result.graph,
            core_truth_source=result.core_truth.source,
            diagnostics={
                'audit': summary,
                'fragments': result.extraction.count_by_kind(),
                'skipped': [s.to_dict() for s in result.extraction.skipped],
                'drivers': [r.to_dict() for r in result.selection.drivers],
            },
        )
