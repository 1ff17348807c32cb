"""
Observability & Audit Layer

RESPONSIBILITY: Logging setup and the per-build audit trail
OUTPUTS: AuditEntry records, a summary dict, log lines

WHAT THIS LAYER MUST NOT DO:
============================
- Modify build behavior
- Filter or interpret entries (only record them)
- Outlive the build it was created for

Each build owns one AuditTrail. Entries are append-only.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the package loggers.

    Safe to call more than once; later calls only change the level.
    """
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))

    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    for name in ("hemisphere", "narrative"):
        pkg_logger = logging.getLogger(name)
        pkg_logger.setLevel(resolved)
        if _handler not in pkg_logger.handlers:
            pkg_logger.addHandler(_handler)


# =============================================================================
# AUDIT TRAIL
# =============================================================================

@dataclass(frozen=True)
class AuditEntry:
    """One recorded event of a build."""
    stage: str
    event: str
    detail: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            'stage': self.stage,
            'event': self.event,
            'detail': dict(self.detail),
            'timestamp': self.timestamp.isoformat(),
        }


class AuditTrail:
    """
    Append-only record of one build.

    Collectors are append-only: no modification of collected data.
    """

    def __init__(self, build_id: str):
        self._build_id = build_id
        self._entries: List[AuditEntry] = []
        self._counters: Dict[str, int] = {}

    @property
    def build_id(self) -> str:
        return self._build_id

    def record(self, stage: str, event: str, **detail) -> AuditEntry:
        entry = AuditEntry(
            stage=stage,
            event=event,
            detail=tuple(sorted((k, str(v)) for k, v in detail.items())),
        )
        self._entries.append(entry)
        return entry

    def count(self, name: str, amount: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + amount

    def entries(self, stage: Optional[str] = None) -> List[AuditEntry]:
        if stage is None:
            return list(self._entries)
        return [e for e in self._entries if e.stage == stage]

    def counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def summary(self) -> dict:
        return {
            'build_id': self._build_id,
            'entries': self.entry_count,
            'stages': [e.stage for e in self._entries if e.event == "enter"],
            'counters': dict(sorted(self._counters.items())),
        }
