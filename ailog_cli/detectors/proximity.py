import os
from typing import Optional

from ailog_cli.activity import ActivityEntry
from ailog_cli.detectors.base import Analyzer, AnalyzerScore, DetectionContext

PROXIMITY_WINDOW_MS = 5000

# (exclusive upper bound on entry age in ms, points), tightest first
_AGE_BANDS = ((1000, 50), (3000, 40), (PROXIMITY_WINDOW_MS, 30))


def normalize_path(path: str, repo_root: Optional[str] = None) -> str:
    """
    Editors log absolute paths, git reports paths relative to the work
    tree. Resolve both to the same absolute form before comparing.
    """
    if repo_root and not os.path.isabs(path):
        path = os.path.join(repo_root, path)
    return os.path.normcase(os.path.realpath(path))


class TimeProximityAnalyzer(Analyzer):
    """
    The most direct signal: the watcher saw assistant-like input on this
    very file moments ago. The log is scanned newest-first so the most
    recent assistant action is the one reported.
    """

    name = "proximity"
    max_points = 50

    def __init__(self, window_ms: int = PROXIMITY_WINDOW_MS):
        self.window_ms = window_ms

    def find_match(self, context: DetectionContext) -> Optional[ActivityEntry]:
        target = normalize_path(context.file_path, context.repo_root)
        for entry in sorted(context.entries, key=lambda e: e.timestamp, reverse=True):
            age = context.now_ms - entry.timestamp
            if age < 0:
                continue  # clock skew
            if age >= self.window_ms:
                break
            if normalize_path(entry.file, context.repo_root) == target:
                return entry
        return None

    def score(self, text: str, context: DetectionContext) -> AnalyzerScore:
        if not context.file_path or not context.entries:
            return AnalyzerScore(0, [], {"age_ms": None})

        entry = self.find_match(context)
        if entry is None:
            return AnalyzerScore(0, [], {"age_ms": None})

        age = context.now_ms - entry.timestamp
        for bound, points in _AGE_BANDS:
            if age < bound and age < self.window_ms:
                return AnalyzerScore(points, [f"Time proximity match ({entry.command})"],
                                     {"age_ms": age, "command": entry.command})
        return AnalyzerScore(0, [], {"age_ms": age})
