"""
Per-working-tree session state.

Two switches live outside the scoring pipeline:

  mark_next_commit  manual override: the next commit is AI-generated,
                    whatever detection says. Auto-resets when a commit
                    is processed.
  continuous_mode   the watcher runs detection on every editor change and
                    sets mark_next_commit itself. Mutually exclusive with
                    manual toggling.

The CLI, the watcher and the post-commit hook are different processes,
so the state is a small JSON file in the git directory, replaced
atomically on every write.
"""

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

STATE_FILENAME = "ailog_state.json"


@dataclass
class SessionState:
    mark_next_commit: bool = False
    continuous_mode: bool = False


class SessionStore:
    def __init__(self, path):
        self.path = Path(path)

    @classmethod
    def for_git_dir(cls, git_dir) -> "SessionStore":
        return cls(Path(git_dir) / STATE_FILENAME)

    def load(self) -> SessionState:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return SessionState()
        except (OSError, ValueError) as e:
            logger.warning("Session state %s unreadable, using defaults: %s", self.path, e)
            return SessionState()
        if not isinstance(data, dict):
            return SessionState()
        return SessionState(
            mark_next_commit=bool(data.get("mark_next_commit", False)),
            continuous_mode=bool(data.get("continuous_mode", False)),
        )

    def save(self, state: SessionState) -> None:
        fd, tmp = tempfile.mkstemp(prefix=".ailog_state.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(asdict(state), f)
            os.replace(tmp, self.path)
        except OSError:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    # ─── transitions ────────────────────────────────────────────────────────

    def toggle(self) -> SessionState:
        """Flip the manual override. In continuous mode, leave that mode instead."""
        state = self.load()
        if state.continuous_mode:
            state = SessionState(mark_next_commit=False, continuous_mode=False)
        else:
            state.mark_next_commit = not state.mark_next_commit
        self.save(state)
        return state

    def enable_continuous(self) -> SessionState:
        state = SessionState(mark_next_commit=False, continuous_mode=True)
        self.save(state)
        return state

    def mark_detected(self) -> SessionState:
        """Continuous-mode hit: the next commit carries AI code."""
        state = self.load()
        if not state.mark_next_commit:
            state.mark_next_commit = True
            self.save(state)
        return state

    def consume_override(self) -> bool:
        """Return the override and reset it. Called once per processed commit."""
        state = self.load()
        if not state.mark_next_commit:
            return False
        state.mark_next_commit = False
        try:
            self.save(state)
        except OSError as e:
            logger.error("Could not reset the AI override flag: %s", e)
        return True
