import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import git

logger = logging.getLogger(__name__)


def get_repo(path: str = "."):
    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return None


def extract_added_lines(diff_text: str) -> List[str]:
    added_lines = []
    for line in diff_text.split("\n"):
        if line.startswith("+") and not line.startswith("+++"):
            added_lines.append(line[1:])
    return added_lines


def get_staged_files(repo: git.Repo) -> List[str]:
    # Deleted files add nothing worth scoring.
    output = repo.git.diff("--cached", "--name-only", "--diff-filter=ACMR")
    return [f for f in output.split("\n") if f.strip()]


def get_staged_added_text(repo: git.Repo, file_path: str) -> str:
    """Lines added to `file_path` in the index, joined. Binary diffs yield ''."""
    diff_text = repo.git.diff("--cached", "--", file_path)
    return "\n".join(extract_added_lines(diff_text))


@dataclass
class CommitInfo:
    hexsha: str
    message: str
    author: str
    committed_ms: int
    branch: str
    repo_name: str
    insertions: int = 0
    deletions: int = 0

    @property
    def volume_delta(self) -> int:
        return self.insertions - self.deletions


def _current_branch(repo: git.Repo) -> str:
    try:
        return repo.active_branch.name
    except TypeError:
        # Detached HEAD, e.g. in the middle of a rebase
        return "HEAD"


def get_last_commit(repo: git.Repo) -> Optional[CommitInfo]:
    try:
        commit = repo.head.commit
    except ValueError:
        # Unborn branch, nothing committed yet
        return None

    insertions = deletions = 0
    try:
        totals = commit.stats.total
        insertions, deletions = totals.get("insertions", 0), totals.get("deletions", 0)
    except git.exc.GitCommandError as e:
        logger.warning("Could not compute diff stats for %s: %s", commit.hexsha[:7], e)

    root = repo.working_tree_dir or repo.git_dir
    return CommitInfo(
        hexsha=commit.hexsha,
        message=commit.message,
        author=commit.author.name,
        committed_ms=int(commit.committed_date) * 1000,
        branch=_current_branch(repo),
        repo_name=Path(root).name,
        insertions=insertions,
        deletions=deletions,
    )
