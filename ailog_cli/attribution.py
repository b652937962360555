"""
Attribution Coordinator
───────────────────────
Carries the committer's "yes, credit the assistant" decision from the
pre-commit hook to the post-commit hook. The two hooks are separate
processes, so the decision travels as a file:

  <git-dir>/AI_ATTRIBUTION_REQUESTED    exists  -> attribution requested
                                        content -> ISO-8601 time, diagnostics only

States:
  IDLE               no flag
  AWAITING_DECISION  pre-commit wrote the flag, post-commit has not run
  RECORDED           post-commit claimed the flag and handed the commit
                     to the recorder. Reported on PostCommitOutcome.state;
                     the coordinator itself is back in IDLE when
                     post_commit returns

Claiming the flag is one atomic rename, so when two post-commit hooks race
(rapid successive commits, a rebase) only one of them sees it.
"""

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

import git

from ailog_cli.errors import FlagError, RecorderError
from ailog_cli.git_client import get_last_commit, get_staged_added_text, get_staged_files
from ailog_cli.recorder import CommitRecord

logger = logging.getLogger(__name__)

FLAG_FILENAME = "AI_ATTRIBUTION_REQUESTED"
MAX_PROMPT_ROUNDS = 3

CHOICE_YES = "yes"
CHOICE_NO = "no"
CHOICE_DETAILS = "details"


class AttributionState(Enum):
    IDLE = "idle"
    AWAITING_DECISION = "awaiting_decision"
    RECORDED = "recorded"


class AttributionFlag:
    def __init__(self, path):
        self.path = Path(path)

    @classmethod
    def for_git_dir(cls, git_dir) -> "AttributionFlag":
        return cls(Path(git_dir) / FLAG_FILENAME)

    def exists(self) -> bool:
        return self.path.exists()

    def write(self) -> str:
        """Create or refresh the flag. Returns the timestamp written."""
        stamp = datetime.now(timezone.utc).isoformat()
        tmp = None
        try:
            fd, tmp = tempfile.mkstemp(prefix=".ai_attribution.", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(stamp)
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp and os.path.exists(tmp):
                os.unlink(tmp)
            raise FlagError(f"cannot write attribution flag {self.path}: {e}") from e
        return stamp

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FlagError(f"cannot read attribution flag {self.path}: {e}") from e

    def clear(self) -> bool:
        """Delete the flag. Absent flag is fine. Returns whether one was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise FlagError(f"cannot remove attribution flag {self.path}: {e}") from e
        return True

    def consume(self) -> Optional[str]:
        """
        Claim the flag for this process and delete it. Returns its content
        (possibly '') if this call claimed it, None if there was no flag.
        """
        claimed = self.path.with_name(f".{FLAG_FILENAME}.{os.getpid()}.{uuid.uuid4().hex[:8]}")
        try:
            os.rename(self.path, claimed)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FlagError(f"cannot claim attribution flag {self.path}: {e}") from e

        try:
            content = claimed.read_text(encoding="utf-8").strip()
        except OSError:
            content = ""
        try:
            claimed.unlink()
        except OSError as e:
            logger.warning("Claimed flag %s could not be removed: %s", claimed, e)
        return content


@dataclass
class StagedAnalysis:
    files: List[str] = field(default_factory=list)
    results: Dict[str, object] = field(default_factory=dict)
    has_ai_content: bool = False

    @property
    def flagged(self) -> Dict[str, object]:
        return {f: r for f, r in self.results.items() if r.is_ai_generated}


@dataclass
class PostCommitOutcome:
    commit_hash: Optional[str] = None
    is_ai_generated: bool = False
    flag_present: bool = False
    override_used: bool = False
    recorded: bool = False
    notes: str = ""
    state: AttributionState = AttributionState.IDLE


def add_attribution_trailer(message: str, attribution: str) -> str:
    if "Co-authored-by:" in message:
        return message
    return message.rstrip("\n") + "\n\n" + attribution


def analyze_staged_changes(repo: git.Repo, engine) -> StagedAnalysis:
    try:
        files = get_staged_files(repo)
    except git.exc.GitCommandError as e:
        logger.error("Could not list staged files: %s", e)
        return StagedAnalysis()

    analysis = StagedAnalysis(files=files)
    if not files:
        return analysis

    entries = engine.load_entries()
    for path in files:
        try:
            added = get_staged_added_text(repo, path)
        except git.exc.GitCommandError as e:
            logger.warning("Skipping %s, diff failed: %s", path, e)
            continue
        if not added:
            continue
        result = engine.detect(added, path, entries=entries)
        analysis.results[path] = result
        if result.is_ai_generated:
            analysis.has_ai_content = True
    return analysis


def ask_until_decided(ask: Callable[[], str], show_details: Callable[[], None],
                      max_rounds: int = MAX_PROMPT_ROUNDS) -> bool:
    """
    Yes / no / view-details. Details re-displays the report and asks again,
    at most `max_rounds` times in total; running out of rounds means no.
    """
    for _ in range(max_rounds):
        choice = ask()
        if choice == CHOICE_YES:
            return True
        if choice == CHOICE_DETAILS:
            show_details()
            continue
        return False
    logger.info("No decision after %d prompts, skipping attribution", max_rounds)
    return False


class AttributionCoordinator:
    def __init__(self, repo: git.Repo, config, session, engine=None, recorder=None):
        self.repo = repo
        self.config = config
        self.session = session
        self.engine = engine
        self.recorder = recorder
        self.flag = AttributionFlag.for_git_dir(repo.git_dir)
        self.state = AttributionState.AWAITING_DECISION if self.flag.exists() else AttributionState.IDLE

    # ─── pre-commit ─────────────────────────────────────────────────────────

    def pre_commit(
        self,
        ask: Callable[[], str],
        show_report: Callable[[StagedAnalysis], None],
        show_details: Callable[[StagedAnalysis], None],
        interactive: bool = True,
    ) -> Optional[StagedAnalysis]:
        """
        Analyse the staged change and, if it looks AI-generated, ask whether
        to credit the assistant. Never raises for detection or flag failures.
        """
        if self.session.load().mark_next_commit:
            logger.info("Manual AI override active, skipping detection")
            return None

        try:
            if self.flag.clear():
                logger.info("Removed stale attribution flag from an earlier aborted commit")
        except FlagError as e:
            logger.error("%s", e)
        self.state = AttributionState.AWAITING_DECISION if self.flag.exists() else AttributionState.IDLE

        analysis = analyze_staged_changes(self.repo, self.engine)
        if not analysis.has_ai_content:
            return analysis

        show_report(analysis)
        if not interactive:
            logger.warning("No terminal available for the attribution prompt, skipping")
            return analysis

        if ask_until_decided(ask, lambda: show_details(analysis)):
            self.request_attribution()
        return analysis

    def request_attribution(self) -> bool:
        try:
            stamp = self.flag.write()
        except FlagError as e:
            logger.error("%s", e)
            return False
        logger.info("AI attribution flag set at %s", stamp)
        self.state = AttributionState.AWAITING_DECISION
        return True

    # ─── post-commit ────────────────────────────────────────────────────────

    def post_commit(self) -> PostCommitOutcome:
        outcome = PostCommitOutcome()

        try:
            info = get_last_commit(self.repo)
        except (git.exc.GitCommandError, ValueError) as e:
            logger.error("Could not read the new commit: %s", e)
            return outcome
        if info is None:
            logger.warning("No commit found to process")
            return outcome
        outcome.commit_hash = info.hexsha

        try:
            outcome.flag_present = self.flag.consume() is not None
        except FlagError as e:
            # Leave the flag where it is; the next commit tries again.
            logger.error("%s", e)
        outcome.override_used = self.session.consume_override()
        outcome.is_ai_generated = outcome.flag_present or outcome.override_used

        outcome.notes = info.message
        if outcome.flag_present:
            outcome.notes = add_attribution_trailer(info.message, self.config.attribution_string)

        record = CommitRecord(
            commit_time=info.committed_ms,
            commit_hash=info.hexsha,
            repo=info.repo_name,
            branch=info.branch,
            committer=info.author,
            is_ai_generated=outcome.is_ai_generated,
            code_volume_delta=info.volume_delta,
            notes=outcome.notes,
        )
        if self.recorder is not None:
            try:
                outcome.recorded = self.recorder.record(record)
            except RecorderError as e:
                logger.error("%s", e)

        outcome.state = AttributionState.RECORDED
        logger.debug("Commit %s processed (ai=%s)", info.hexsha[:7], outcome.is_ai_generated)
        self.state = AttributionState.IDLE if not self.flag.exists() else AttributionState.AWAITING_DECISION
        return outcome
