"""
Storage Layer

Data source interface for workshop snapshots, plus two implementations:

- SqliteWorkshopStore: reference relational store (stdlib sqlite3)
- InMemoryWorkshopSource: fixed sessions held in memory, for tests and demos

BOUNDARY ENFORCEMENT:
=====================
- Sources return immutable WorkshopSnapshots only
- Sources filter to COMPLETED sessions of the requested run type
- Failure to read is raised as SourceUnavailableError, nothing else
"""

from .base import InMemoryWorkshopSource, WorkshopSource
from .sqlite import SqliteWorkshopStore

__all__ = ['WorkshopSource', 'InMemoryWorkshopSource', 'SqliteWorkshopStore']
