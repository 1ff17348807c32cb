"""
API Mapper
==========

Transforms a HemisphereReport into the response DTOs.

Field names are camelCase to match the admin client.
"""

from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel

from hemisphere.engine import HemisphereReport

FAILURE_MESSAGE = "Failed to build hemisphere graph"


class SourceRefDTO(BaseModel):
    sessionId: str
    participantName: str


class NodeDTO(BaseModel):
    id: str
    type: str
    label: str
    summary: str
    phaseTags: List[str]
    layer: str
    weight: float
    severity: Optional[float] = None
    confidence: Optional[float] = None
    sources: List[SourceRefDTO]
    evidence: List[str]


class EdgeDTO(BaseModel):
    id: str
    source: str
    target: str
    strength: float
    kind: str


class GraphDTO(BaseModel):
    nodes: List[NodeDTO]
    edges: List[EdgeDTO]
    coreTruthNodeId: str


class ParticipantDTO(BaseModel):
    participantId: str
    name: str
    baselineSessionId: Optional[str] = None
    followupSessionIds: List[str]
    questionSetVersion: Optional[str] = None


class HemisphereResponse(BaseModel):
    ok: bool = True
    workshopId: str
    runType: str
    generatedAt: str
    sessionCount: int
    participantCount: int
    participants: List[ParticipantDTO]
    hemisphereGraph: GraphDTO


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str = FAILURE_MESSAGE


def map_report_to_dto(report: HemisphereReport) -> HemisphereResponse:
    """Map a finished build to its response body."""
    return HemisphereResponse(**report.to_dict())
