from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ailog_cli.activity import ActivityEntry


@dataclass
class DetectionContext:
    """Everything an analyzer may look at besides the added text itself."""

    file_path: str = ""
    language: str = "plaintext"
    repo_root: Optional[str] = None
    entries: Sequence[ActivityEntry] = ()
    now_ms: int = 0


@dataclass
class AnalyzerScore:
    points: int = 0
    reasons: List[str] = field(default_factory=list)
    details: Dict[str, object] = field(default_factory=dict)


class Analyzer:
    """
    A stateless scorer for one heuristic signal.

    Subclasses implement `score(text, context)`; `run` clamps the result to
    `max_points` so a misbehaving rule set can never inflate the total.
    """

    name = "analyzer"
    max_points = 0

    def score(self, text: str, context: DetectionContext) -> AnalyzerScore:
        raise NotImplementedError

    def run(self, text: str, context: DetectionContext) -> AnalyzerScore:
        result = self.score(text, context)
        result.points = max(0, min(int(result.points), self.max_points))
        return result
