"""
Activity Log
────────────
Newline-delimited JSON records of "an assistant was just active on file X".
The editor-side watcher appends; hook processes only read.

Several processes touch this file without a lock, so:
  * append is one write of one complete line, never read-modify-write
  * readers skip lines they cannot parse instead of giving up
  * trimming builds a new file beside the log and swaps it in with
    os.replace; a trim that loses a concurrent append is acceptable,
    a half-written log is not
"""

import json
import logging
import math
import os
import tempfile
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)

LOG_FILENAME = "ai_activity.log"
RETENTION_MS = 24 * 60 * 60 * 1000
MAX_ENTRIES = 100


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ActivityEntry:
    file: str
    timestamp: int
    command: str = "unknown"

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict) -> "ActivityEntry":
        # Older editor builds wrote {"fsPath": ..., "timestamp": ...}
        path = data.get("file") or data.get("fsPath")
        if not isinstance(path, str) or not path:
            raise ValueError("activity entry has no file")
        ts = data.get("timestamp")
        if isinstance(ts, bool) or not isinstance(ts, (int, float)):
            raise ValueError("activity entry has no numeric timestamp")
        if not math.isfinite(ts):
            raise ValueError("activity entry timestamp is not finite")
        command = data.get("command") or "unknown"
        return cls(file=path, timestamp=int(ts), command=str(command))


class ActivityLog:
    def __init__(self, path):
        self.path = Path(path)

    @classmethod
    def for_git_dir(cls, git_dir) -> "ActivityLog":
        return cls(Path(git_dir) / LOG_FILENAME)

    def append(self, entry: ActivityEntry) -> None:
        """Append one entry. Raises OSError; callers decide whether to care."""
        line = (entry.to_json() + "\n").encode("utf-8")
        fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
        try:
            os.write(fd, line)
        finally:
            os.close(fd)

    def record(self, file: str, command: str, timestamp: Optional[int] = None) -> Optional[ActivityEntry]:
        """Best-effort append used by the watcher. Never raises on I/O errors."""
        entry = ActivityEntry(file=file, timestamp=now_ms() if timestamp is None else timestamp, command=command)
        try:
            self.append(entry)
        except OSError as e:
            logger.warning("Could not append to activity log %s: %s", self.path, e)
            return None
        logger.debug("Logged %s activity for %s", command, file)
        return entry

    def _iter_lines(self) -> Iterator[str]:
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                yield line

    def read(self) -> List[ActivityEntry]:
        """All parseable entries in file order. Missing file = empty log."""
        entries = []
        try:
            lines = list(self._iter_lines())
        except FileNotFoundError:
            return []

        for lineno, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                if not isinstance(data, dict):
                    raise ValueError("not a JSON object")
                entries.append(ActivityEntry.from_dict(data))
            except (ValueError, TypeError, OverflowError, RecursionError) as e:
                logger.debug("Skipping malformed activity log line %d: %s", lineno, e)
        return entries

    def trim(self, retention_ms: int = RETENTION_MS, max_entries: int = MAX_ENTRIES,
             now: Optional[int] = None) -> int:
        """
        Drop entries older than the retention window and keep at most
        `max_entries` of the newest. Returns the number of entries kept.
        """
        if not self.path.exists():
            return 0
        now = now_ms() if now is None else now
        kept = [e for e in self.read() if now - e.timestamp < retention_ms]
        kept = kept[-max_entries:] if max_entries > 0 else []

        fd, tmp_path = tempfile.mkstemp(prefix=".ai_activity.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for entry in kept:
                    f.write(entry.to_json() + "\n")
            os.replace(tmp_path, self.path)
        except OSError:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise
        return len(kept)
