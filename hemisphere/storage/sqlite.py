"""
SQLite Workshop Store

Reference relational store for participants, sessions, structured
insights, reports and answers.

PRINCIPLES:
===========
1. Columns hold what upstream wrote; validation happens at ingestion
2. Report payloads are stored as JSON text and decoded on load
3. Any sqlite failure surfaces as SourceUnavailableError
   (a malformed seed fixture as InvalidRecordError)
4. Only COMPLETED sessions are ever returned
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union
import json
import logging
import sqlite3

from hemisphere.contracts.base import ErrorCode, InvalidRecordError, RunType, SourceUnavailableError
from hemisphere.contracts.records import (
    AnswerRecord,
    InsightRecord,
    ParticipantRecord,
    ReportRecord,
    SessionRecord,
    WorkshopSnapshot,
)

from .base import WorkshopSource

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "COMPLETED"


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _decode_json(value: Optional[str]) -> object:
    """Decode a stored payload; undecodable text is passed through for ingestion to reject."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _encode_json(value: object) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


class SqliteWorkshopStore(WorkshopSource):
    """
    Workshop records in a single SQLite file.
    """

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (OSError, sqlite3.Error) as e:
            raise SourceUnavailableError(f"Cannot open workshop store at {self._db_path}", cause=e) from e

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _init_db(self):
        """Initialize database schema."""
        with self._get_conn() as conn:
            conn.executescript('''
                CREATE TABLE IF NOT EXISTS participants (
                    participant_id TEXT PRIMARY KEY,
                    workshop_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    email TEXT
                );

                CREATE TABLE IF NOT EXISTS sessions (
                    session_id TEXT PRIMARY KEY,
                    workshop_id TEXT NOT NULL,
                    participant_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    run_type TEXT,
                    question_set_version TEXT,
                    created_at TEXT,
                    completed_at TEXT,
                    FOREIGN KEY (participant_id) REFERENCES participants(participant_id)
                );

                CREATE TABLE IF NOT EXISTS insights (
                    insight_id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    insight_type TEXT,
                    category TEXT,
                    text TEXT,
                    severity,
                    confidence,
                    created_at TEXT,
                    FOREIGN KEY (session_id) REFERENCES sessions(session_id)
                );

                CREATE TABLE IF NOT EXISTS reports (
                    session_id TEXT PRIMARY KEY,
                    key_insights TEXT,
                    phase_notes TEXT,
                    FOREIGN KEY (session_id) REFERENCES sessions(session_id)
                );

                CREATE TABLE IF NOT EXISTS answers (
                    session_id TEXT NOT NULL,
                    answer_key TEXT NOT NULL,
                    text TEXT,
                    PRIMARY KEY (session_id, answer_key),
                    FOREIGN KEY (session_id) REFERENCES sessions(session_id)
                );

                CREATE INDEX IF NOT EXISTS idx_sessions_workshop ON sessions(workshop_id, status);
                CREATE INDEX IF NOT EXISTS idx_insights_session ON insights(session_id);
                CREATE INDEX IF NOT EXISTS idx_answers_session ON answers(session_id);
            ''')

    @contextmanager
    def _get_conn(self):
        """Get database connection."""
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    # =========================================================================
    # READ
    # =========================================================================

    def load_workshop(self, workshop_id: str, run_type: RunType) -> WorkshopSnapshot:
        try:
            with self._get_conn() as conn:
                sessions = self._load_sessions(conn, workshop_id, run_type)
        except sqlite3.Error as e:
            raise SourceUnavailableError(f"Failed to load workshop {workshop_id}", cause=e) from e

        logger.debug("Loaded %d %s sessions for workshop %s", len(sessions), run_type.value, workshop_id)
        return WorkshopSnapshot(workshop_id=workshop_id, run_type=run_type, sessions=tuple(sessions))

    def _load_sessions(self, conn: sqlite3.Connection, workshop_id: str, run_type: RunType) -> List[SessionRecord]:
        rows = conn.execute('''
            SELECT s.session_id, s.run_type, s.question_set_version, s.created_at, s.completed_at,
                   p.participant_id, p.name, p.email
            FROM sessions s
            JOIN participants p ON p.participant_id = s.participant_id
            WHERE s.workshop_id = ? AND s.status = ?
            ORDER BY s.created_at, s.session_id
        ''', (workshop_id, STATUS_COMPLETED)).fetchall()

        # A missing or unknown run type counts as BASELINE.
        rows = [r for r in rows if RunType.parse(r['run_type']) == run_type]
        if not rows:
            return []

        session_ids = [r['session_id'] for r in rows]
        insights = self._load_insights(conn, session_ids)
        reports = self._load_reports(conn, session_ids)
        answers = self._load_answers(conn, session_ids)

        return [
            SessionRecord(
                session_id=r['session_id'],
                participant=ParticipantRecord(
                    participant_id=r['participant_id'],
                    name=r['name'],
                    email=r['email'],
                ),
                run_type=run_type,
                created_at=_parse_time(r['created_at']),
                completed_at=_parse_time(r['completed_at']),
                question_set_version=r['question_set_version'],
                insights=tuple(insights.get(r['session_id'], [])),
                report=reports.get(r['session_id']),
                answers=tuple(answers.get(r['session_id'], [])),
            )
            for r in rows
        ]

    @staticmethod
    def _placeholders(ids: List[str]) -> str:
        return ",".join("?" for _ in ids)

    def _load_insights(self, conn: sqlite3.Connection, session_ids: List[str]) -> Dict[str, List[InsightRecord]]:
        out: Dict[str, List[InsightRecord]] = {}
        rows = conn.execute(f'''
            SELECT * FROM insights
            WHERE session_id IN ({self._placeholders(session_ids)})
            ORDER BY created_at, insight_id
        ''', session_ids).fetchall()
        for r in rows:
            out.setdefault(r['session_id'], []).append(InsightRecord(
                record_id=r['insight_id'],
                session_id=r['session_id'],
                insight_type=r['insight_type'],
                category=r['category'],
                text=r['text'],
                severity=r['severity'],
                confidence=r['confidence'],
                created_at=_parse_time(r['created_at']),
            ))
        return out

    def _load_reports(self, conn: sqlite3.Connection, session_ids: List[str]) -> Dict[str, ReportRecord]:
        rows = conn.execute(f'''
            SELECT * FROM reports WHERE session_id IN ({self._placeholders(session_ids)})
        ''', session_ids).fetchall()
        return {
            r['session_id']: ReportRecord(
                session_id=r['session_id'],
                key_insights=_decode_json(r['key_insights']),
                phase_notes=_decode_json(r['phase_notes']),
            )
            for r in rows
        }

    def _load_answers(self, conn: sqlite3.Connection, session_ids: List[str]) -> Dict[str, List[AnswerRecord]]:
        out: Dict[str, List[AnswerRecord]] = {}
        rows = conn.execute(f'''
            SELECT * FROM answers
            WHERE session_id IN ({self._placeholders(session_ids)})
            ORDER BY session_id, answer_key
        ''', session_ids).fetchall()
        for r in rows:
            out.setdefault(r['session_id'], []).append(AnswerRecord(
                session_id=r['session_id'],
                key=r['answer_key'],
                text=r['text'],
            ))
        return out

    # =========================================================================
    # WRITE (fixtures and demos)
    # =========================================================================

    def seed_from_dict(self, data: dict) -> dict:
        """
        Import one workshop from a JSON-shaped fixture.

        Expected shape:
            {
              "workshopId": "...",
              "participants": [{"id", "name", "email"}],
              "sessions": [{
                  "id", "participantId", "status", "runType", "questionSetVersion",
                  "createdAt", "completedAt",
                  "insights": [{"id", "type", "category", "text", "severity", "confidence"}],
                  "report": {"keyInsights": [...], "phaseNotes": {...}},
                  "answers": {"phase:tag:index": "text"}
              }]
            }

        Existing rows with the same ids are replaced. Returns row counts.
        A fixture missing required ids raises InvalidRecordError and
        writes nothing.
        """
        if not isinstance(data, dict):
            raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, "Fixture is not a JSON object")
        workshop_id = data.get("workshopId")
        if not isinstance(workshop_id, str) or not workshop_id:
            raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, "Fixture needs a workshopId")

        counts = {'participants': 0, 'sessions': 0, 'insights': 0, 'reports': 0, 'answers': 0}
        try:
            with self._get_conn() as conn:
                for p in data.get("participants", []):
                    conn.execute('''
                        INSERT OR REPLACE INTO participants (participant_id, workshop_id, name, email)
                        VALUES (?, ?, ?, ?)
                    ''', (p["id"], workshop_id, p.get("name", ""), p.get("email")))
                    counts['participants'] += 1

                for s in data.get("sessions", []):
                    self._seed_session(conn, workshop_id, s, counts)
        except KeyError as e:
            raise InvalidRecordError(
                ErrorCode.MALFORMED_RECORD, f"Fixture {workshop_id} is missing field {e.args[0]!r}"
            ) from e
        except (TypeError, AttributeError) as e:
            raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, f"Fixture {workshop_id} is malformed: {e}") from e
        except sqlite3.Error as e:
            raise SourceUnavailableError(f"Failed to seed workshop {workshop_id}", cause=e) from e

        logger.info("Seeded workshop %s: %s", workshop_id, counts)
        return counts

    def _seed_session(self, conn: sqlite3.Connection, workshop_id: str, s: dict, counts: dict) -> None:
        session_id = s["id"]
        conn.execute('''
            INSERT OR REPLACE INTO sessions
            (session_id, workshop_id, participant_id, status, run_type, question_set_version, created_at, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            session_id,
            workshop_id,
            s["participantId"],
            s.get("status", STATUS_COMPLETED),
            s.get("runType"),
            s.get("questionSetVersion"),
            s.get("createdAt"),
            s.get("completedAt"),
        ))
        counts['sessions'] += 1

        for i, ins in enumerate(s.get("insights", [])):
            conn.execute('''
                INSERT OR REPLACE INTO insights
                (insight_id, session_id, insight_type, category, text, severity, confidence, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                ins.get("id") or f"{session_id}:insight:{i}",
                session_id,
                ins.get("type"),
                ins.get("category"),
                ins.get("text"),
                ins.get("severity"),
                ins.get("confidence"),
                ins.get("createdAt"),
            ))
            counts['insights'] += 1

        report = s.get("report")
        if report is not None:
            conn.execute('''
                INSERT OR REPLACE INTO reports (session_id, key_insights, phase_notes)
                VALUES (?, ?, ?)
            ''', (session_id, _encode_json(report.get("keyInsights")), _encode_json(report.get("phaseNotes"))))
            counts['reports'] += 1

        for key, text in sorted((s.get("answers") or {}).items()):
            conn.execute('''
                INSERT OR REPLACE INTO answers (session_id, answer_key, text) VALUES (?, ?, ?)
            ''', (session_id, key, text))
            counts['answers'] += 1

    def seed_from_file(self, path: Union[str, Path]) -> dict:
        """Import a JSON fixture file (one workshop object, or a list of them)."""
        try:
            payload = json.loads(Path(path).read_text(encoding='utf-8'))
        except OSError as e:
            raise SourceUnavailableError(f"Cannot read fixture {path}", cause=e) from e
        except ValueError as e:
            raise InvalidRecordError(ErrorCode.MALFORMED_RECORD, f"Fixture {path} is not valid JSON: {e}") from e
        fixtures = payload if isinstance(payload, list) else [payload]
        totals: Dict[str, int] = {}
        for fixture in fixtures:
            for k, v in self.seed_from_dict(fixture).items():
                totals[k] = totals.get(k, 0) + v
        return totals

    # =========================================================================
    # STATS
    # =========================================================================

    def get_stats(self) -> dict:
        """Get storage statistics."""
        try:
            with self._get_conn() as conn:
                counts = {
                    table: conn.execute(f'SELECT COUNT(*) FROM {table}').fetchone()[0]
                    for table in ('participants', 'sessions', 'insights', 'reports', 'answers')
                }
                counts['workshops'] = conn.execute(
                    'SELECT COUNT(DISTINCT workshop_id) FROM sessions'
                ).fetchone()[0]
                counts['completed_sessions'] = conn.execute(
                    'SELECT COUNT(*) FROM sessions WHERE status = ?', (STATUS_COMPLETED,)
                ).fetchone()[0]
        except sqlite3.Error as e:
            raise SourceUnavailableError("Failed to read store statistics", cause=e) from e
        return counts
