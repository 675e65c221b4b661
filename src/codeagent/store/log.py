"""
SQLite session log for codeagent.

Every turn appended to a conversation and every permission decision made
by the gate is written here. The log is append-only: rows are inserted,
never updated or deleted, and nothing in the agent reads it back to
rebuild a conversation.

Tables:
    - sessions: one row per session id (a /clear starts a new one)
    - turns: the conversation turns of each session, in order
    - permissions: every permission request and how it was answered
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Generator

from pydantic import BaseModel, ConfigDict

from codeagent.errors import StorageConnectionError, StorageReadError, StorageWriteError
from codeagent.schema import PermissionDecision, Turn

# Schema version for migrations
SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    model TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS turns (
    session_id TEXT NOT NULL,
    turn_order INTEGER NOT NULL,
    role TEXT NOT NULL,
    content_json TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (session_id, turn_order),
    FOREIGN KEY (session_id) REFERENCES sessions(session_id)
);

CREATE TABLE IF NOT EXISTS permissions (
    permission_id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    action TEXT NOT NULL,
    target TEXT NOT NULL,
    details TEXT,
    approved INTEGER NOT NULL,
    reason TEXT,
    auto_approved INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_turns_session_id ON turns(session_id);
CREATE INDEX IF NOT EXISTS idx_permissions_session_id ON permissions(session_id);
CREATE INDEX IF NOT EXISTS idx_sessions_created_at ON sessions(created_at);
"""


def now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(UTC).isoformat()


class SessionSummary(BaseModel):
    """One row of `codeagent sessions`."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    created_at: datetime
    model: str
    turn_count: int = 0
    permission_count: int = 0


class SessionLog:
    """
    Append-only SQLite log of sessions, turns and permission decisions.

    Usage:
        log = SessionLog("~/.codeagent/history.db")
        log.start_session(session_id, model="claude-sonnet-4-5")
        log.record_turn(session_id, turn)
        log.close()

    Or use as context manager:
        with SessionLog(path) as log:
            ...
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Open (and create if needed) the log database.

        Args:
            db_path: Path to the SQLite file, or ":memory:"
        """
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._connect()
        self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError) as e:
            raise StorageConnectionError(
                db_path=self.db_path,
                operation="connect",
                message=f"Failed to connect to database: {e}",
            ) from e

    def _init_schema(self) -> None:
        """Initialize database schema if needed."""
        try:
            cursor = self._conn.executescript(CREATE_TABLES_SQL)
            cursor.close()

            cursor = self._conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            if cursor.fetchone() is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, now_iso()),
                )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    @contextmanager
    def _write(self, operation: str) -> Generator[sqlite3.Connection, None, None]:
        """Run one write and commit it, mapping sqlite errors."""
        try:
            yield self._conn
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise StorageWriteError(
                operation=operation,
                underlying_error=str(e),
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SessionLog":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # =========================================================================
    # Writes
    # =========================================================================

    def start_session(self, session_id: str, model: str = "") -> None:
        """Record the start of a session. Starting the same id twice is a no-op."""
        with self._write("start_session") as conn:
            conn.execute(
                "INSERT OR IGNORE INTO sessions (session_id, created_at, model) "
                "VALUES (?, ?, ?)",
                (session_id, now_iso(), model),
            )

    def record_turn(self, session_id: str, turn: Turn) -> None:
        """Append one turn of a session."""
        content_json = json.dumps(
            [block.model_dump() for block in turn.content],
            default=str,
        )
        self.start_session(session_id)
        with self._write("record_turn") as conn:
            conn.execute(
                "INSERT INTO turns (session_id, turn_order, role, content_json, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (session_id, turn.order, turn.role.value, content_json, now_iso()),
            )

    def record_permission(
        self,
        session_id: str,
        action: str,
        target: str,
        details: str | None,
        decision: PermissionDecision,
        auto_approved: bool = False,
    ) -> None:
        """Append one permission decision."""
        self.start_session(session_id)
        with self._write("record_permission") as conn:
            conn.execute(
                """
                INSERT INTO permissions (
                    session_id, action, target, details,
                    approved, reason, auto_approved, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    action,
                    target,
                    details,
                    int(decision.approved),
                    decision.reason,
                    int(auto_approved),
                    now_iso(),
                ),
            )

    # =========================================================================
    # Reads
    # =========================================================================

    def list_sessions(self, limit: int = 20) -> list[SessionSummary]:
        """
        List recent sessions.

        Returns:
            Sessions, most recent first
        """
        try:
            cursor = self._conn.execute(
                """
                SELECT s.session_id, s.created_at, s.model,
                    (SELECT COUNT(*) FROM turns t WHERE t.session_id = s.session_id)
                        AS turn_count,
                    (SELECT COUNT(*) FROM permissions p WHERE p.session_id = s.session_id)
                        AS permission_count
                FROM sessions s
                ORDER BY s.created_at DESC
                LIMIT ?
                """,
                (limit,),
            )
            return [
                SessionSummary(
                    session_id=row["session_id"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                    model=row["model"],
                    turn_count=row["turn_count"],
                    permission_count=row["permission_count"],
                )
                for row in cursor
            ]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="list_sessions",
                underlying_error=str(e),
            ) from e

    def get_turns(self, session_id: str) -> list[dict[str, Any]]:
        """Turns of a session in order, as plain dicts."""
        try:
            cursor = self._conn.execute(
                "SELECT turn_order, role, content_json, created_at FROM turns "
                "WHERE session_id = ? ORDER BY turn_order",
                (session_id,),
            )
            return [
                {
                    "order": row["turn_order"],
                    "role": row["role"],
                    "content": json.loads(row["content_json"]),
                    "created_at": row["created_at"],
                }
                for row in cursor
            ]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="get_turns",
                underlying_error=str(e),
            ) from e

    def get_permissions(self, session_id: str) -> list[dict[str, Any]]:
        """Permission decisions of a session in the order they were made."""
        try:
            cursor = self._conn.execute(
                "SELECT * FROM permissions WHERE session_id = ? ORDER BY permission_id",
                (session_id,),
            )
            return [
                {
                    "action": row["action"],
                    "target": row["target"],
                    "details": row["details"],
                    "approved": bool(row["approved"]),
                    "reason": row["reason"],
                    "auto_approved": bool(row["auto_approved"]),
                    "created_at": row["created_at"],
                }
                for row in cursor
            ]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="get_permissions",
                underlying_error=str(e),
            ) from e
