"""
Workshop Sources

The data source interface and its in-memory implementation.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Tuple

from hemisphere.contracts.base import RunType
from hemisphere.contracts.records import SessionRecord, WorkshopSnapshot


class WorkshopSource(ABC):
    """Supplies the records a hemisphere build reads."""

    @abstractmethod
    def load_workshop(self, workshop_id: str, run_type: RunType) -> WorkshopSnapshot:
        """
        Completed sessions of one workshop run, with everything recorded
        against them.

        Raises SourceUnavailableError if the source cannot be read.
        """
        pass


class InMemoryWorkshopSource(WorkshopSource):
    """Sessions held in memory. All sessions are treated as completed."""

    def __init__(self, workshops: Optional[Dict[str, Iterable[SessionRecord]]] = None):
        self._workshops: Dict[str, Tuple[SessionRecord, ...]] = {
            workshop_id: tuple(sessions) for workshop_id, sessions in (workshops or {}).items()
        }

    def add_session(self, workshop_id: str, session: SessionRecord) -> None:
        self._workshops[workshop_id] = self._workshops.get(workshop_id, ()) + (session,)

    def load_workshop(self, workshop_id: str, run_type: RunType) -> WorkshopSnapshot:
        sessions = tuple(s for s in self._workshops.get(workshop_id, ()) if s.run_type == run_type)
        return WorkshopSnapshot(workshop_id=workshop_id, run_type=run_type, sessions=sessions)
