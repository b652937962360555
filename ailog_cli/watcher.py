# ailog: editor activity watcher
#
# Turns a stream of document-change events into Activity Log entries.
# Two crude proxies for "this was not typed by a human":
#   1. velocity: a burst of changes arriving < 150ms apart
#   2. volume:   a single change inserting more than 10 lines
# Both are evaluated on every event; either may fire.

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional

from ailog_cli.activity import ActivityEntry, ActivityLog, now_ms

logger = logging.getLogger(__name__)

VELOCITY_INTERVAL_MS = 150
# Fast intervals needed before the burst is logged (strictly more than this).
VELOCITY_STREAK = 2
VOLUME_LINES = 10

VELOCITY_COMMAND = "velocity-burst"
VOLUME_COMMAND = "large-insertion"


@dataclass
class ChangeEvent:
    file: str
    texts: List[str] = field(default_factory=list)
    timestamp: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeEvent":
        path = data.get("file") or data.get("fsPath")
        if not isinstance(path, str) or not path:
            raise ValueError("change event has no file")
        if "texts" in data:
            texts = data["texts"]
            if not isinstance(texts, list):
                raise ValueError("texts must be a list")
        else:
            texts = [data.get("text", "")]
        ts = data.get("timestamp")
        if ts is None:
            ts = now_ms()
        elif isinstance(ts, bool) or not isinstance(ts, (int, float)):
            raise ValueError("timestamp must be a number")
        elif not math.isfinite(ts):
            raise ValueError("timestamp must be finite")
        return cls(file=path, texts=[str(t) for t in texts], timestamp=int(ts))


def read_events(lines: Iterable[str]) -> Iterator[ChangeEvent]:
    """Parse NDJSON change events, skipping anything malformed."""
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
            if not isinstance(data, dict):
                raise ValueError("not a JSON object")
            yield ChangeEvent.from_dict(data)
        except (ValueError, TypeError, OverflowError, RecursionError) as e:
            logger.debug("Skipping malformed change event on line %d: %s", lineno, e)


class ActivityWatcher:
    """
    Holds the velocity state for one editor session. Feed it events in
    arrival order with observe().
    """

    def __init__(self, log: ActivityLog, engine=None, session=None):
        self.log = log
        self.engine = engine
        self.session = session
        self._last_change_ms: Optional[int] = None
        self._fast_streak = 0

    def reset(self):
        self._last_change_ms = None
        self._fast_streak = 0

    def _velocity_fired(self, ts: int) -> bool:
        previous = self._last_change_ms
        self._last_change_ms = ts
        if previous is None or ts - previous >= VELOCITY_INTERVAL_MS:
            self._fast_streak = 0
            return False
        self._fast_streak += 1
        if self._fast_streak > VELOCITY_STREAK:
            self._fast_streak = 0
            return True
        return False

    @staticmethod
    def _volume_fired(texts: List[str]) -> Optional[int]:
        for text in texts:
            lines = len(text.split("\n"))
            if lines > VOLUME_LINES:
                return lines
        return None

    def observe(self, event: ChangeEvent) -> List[ActivityEntry]:
        """Process one change event; returns the entries it logged."""
        if not event.texts:
            return []

        logged = []
        if self._velocity_fired(event.timestamp):
            logger.info("High velocity change detected in %s", event.file)
            entry = self.log.record(event.file, VELOCITY_COMMAND, event.timestamp)
            if entry:
                logged.append(entry)

        lines = self._volume_fired(event.texts)
        if lines is not None:
            logger.info("Large chunk insertion detected in %s (%d lines)", event.file, lines)
            entry = self.log.record(event.file, VOLUME_COMMAND, event.timestamp)
            if entry:
                logged.append(entry)

        self._continuous_check(event)
        return logged

    def _continuous_check(self, event: ChangeEvent):
        if self.engine is None or self.session is None:
            return None
        if not self.session.load().continuous_mode:
            return None
        result = self.engine.detect_changes(event.texts, event.file, now=event.timestamp)
        if result.is_ai_generated:
            logger.info("Continuous detection flagged %s (%d%%)", event.file, result.confidence)
            try:
                self.session.mark_detected()
            except OSError as e:
                logger.warning("Could not mark next commit as AI-generated: %s", e)
        return result
