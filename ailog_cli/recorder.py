"""
Commit Recorder
───────────────
Boundary store for the attribution decision of each commit. One row per
commit hash; git hashes are immutable, so recording the same hash again
is a no-op rather than an error or an update.
"""

import logging
import sqlite3
from dataclasses import astuple, dataclass, fields
from pathlib import Path
from typing import List, Optional

from ailog_cli.errors import RecorderError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS commits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    commit_time INTEGER NOT NULL,
    commit_hash TEXT NOT NULL UNIQUE,
    repo TEXT NOT NULL,
    branch TEXT NOT NULL,
    committer TEXT NOT NULL,
    is_ai_generated BOOLEAN NOT NULL,
    code_volume_delta INTEGER NOT NULL,
    code_write_speed_delta INTEGER NOT NULL,
    notes TEXT
)
"""


@dataclass
class CommitRecord:
    commit_time: int
    commit_hash: str
    repo: str
    branch: str
    committer: str
    is_ai_generated: bool
    code_volume_delta: int
    code_write_speed_delta: int = 0
    notes: str = ""


_COLUMNS = [f.name for f in fields(CommitRecord)]


class CommitRecorder:
    def __init__(self, db_path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            conn.execute(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise RecorderError(f"cannot open commit database {self.db_path}: {e}") from e
        return conn

    def record(self, record: CommitRecord) -> bool:
        """Store a commit. Returns False when the hash was already recorded."""
        placeholders = ", ".join("?" for _ in _COLUMNS)
        sql = f"INSERT OR IGNORE INTO commits ({', '.join(_COLUMNS)}) VALUES ({placeholders})"
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(sql, astuple(record))
            inserted = cursor.rowcount == 1
        except sqlite3.Error as e:
            raise RecorderError(f"failed to record commit {record.commit_hash[:7]}: {e}") from e
        finally:
            conn.close()

        if inserted:
            logger.info("Commit data saved: %s (ai=%s)", record.commit_hash, record.is_ai_generated)
        else:
            logger.info("Commit %s already recorded, skipping", record.commit_hash)
        return inserted

    def recent(self, repo: Optional[str] = None, limit: int = 20) -> List[CommitRecord]:
        sql = f"SELECT {', '.join(_COLUMNS)} FROM commits"
        params: list = []
        if repo:
            sql += " WHERE repo = ?"
            params.append(repo)
        sql += " ORDER BY commit_time DESC, id DESC LIMIT ?"
        params.append(limit)

        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise RecorderError(f"failed to read commit history: {e}") from e
        finally:
            conn.close()

        records = []
        for row in rows:
            record = CommitRecord(*row)
            record.is_ai_generated = bool(record.is_ai_generated)
            records.append(record)
        return records
