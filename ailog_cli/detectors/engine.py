"""
Detection Engine
────────────────
Runs the six analyzers over one block of added text and folds their
points into a single 0-100 confidence:

  chunk       (30) size of the contiguous insertion
  syntax      (25) complete top-level constructs for the file's language
  boilerplate (20) recognisable code templates
  comments    (25) doc blocks (15) + full-sentence inline comments (10)
  patterns    (25) number of distinct structural token kinds
  proximity   (50) watcher saw assistant activity on the file < 5s ago

The raw sum can exceed 100 and is clamped. A fragment is classified as
AI-generated when confidence >= threshold (default 70).

An analyzer that raises contributes nothing; detection never aborts.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ailog_cli.activity import ActivityEntry, ActivityLog, now_ms
from ailog_cli.detectors.base import Analyzer, AnalyzerScore, DetectionContext
from ailog_cli.detectors.boilerplate import BoilerplateAnalyzer
from ailog_cli.detectors.chunk import ChunkSizeAnalyzer
from ailog_cli.detectors.comments import CommentQualityAnalyzer
from ailog_cli.detectors.patterns import LexicalPatternAnalyzer
from ailog_cli.detectors.proximity import TimeProximityAnalyzer
from ailog_cli.detectors.rules import language_for_path
from ailog_cli.detectors.syntax import SyntaxCompletenessAnalyzer

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 70
# Editor change events shorter than this are keystrokes, not insertions.
CHANGE_SIZE_THRESHOLD = 100


@dataclass
class DetectionMetadata:
    chunk_size: int = 0
    pattern_matches: int = 0
    has_boilerplate: bool = False
    has_quality_comments: bool = False
    time_proximity: int = 0
    language_type: str = "plaintext"


@dataclass
class DetectionResult:
    is_ai_generated: bool = False
    confidence: int = 0
    reasons: List[str] = field(default_factory=list)
    metadata: DetectionMetadata = field(default_factory=DetectionMetadata)

    def to_dict(self) -> dict:
        return asdict(self)


def clamp_confidence(total: int) -> int:
    return max(0, min(int(total), 100))


def classify(confidence: int, threshold: int = DEFAULT_THRESHOLD) -> bool:
    return confidence >= threshold


def _dedupe(reasons: Iterable[str]) -> List[str]:
    seen = []
    for r in reasons:
        if r and r not in seen:
            seen.append(r)
    return seen


def default_analyzers(enable_time_proximity: bool = True, enable_pattern_matching: bool = True) -> List[Analyzer]:
    analyzers: List[Analyzer] = [
        ChunkSizeAnalyzer(),
        SyntaxCompletenessAnalyzer(),
        BoilerplateAnalyzer(),
        CommentQualityAnalyzer(),
    ]
    if enable_time_proximity:
        analyzers.append(TimeProximityAnalyzer())
    if enable_pattern_matching:
        analyzers.append(LexicalPatternAnalyzer())
    return analyzers


class DetectionEngine:
    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        analyzers: Optional[Sequence[Analyzer]] = None,
        activity_log: Optional[ActivityLog] = None,
        repo_root: Optional[str] = None,
    ):
        self.threshold = threshold
        self.analyzers = list(analyzers) if analyzers is not None else default_analyzers()
        self.activity_log = activity_log
        self.repo_root = repo_root

    @classmethod
    def from_config(cls, config, activity_log: Optional[ActivityLog] = None,
                    repo_root: Optional[str] = None) -> "DetectionEngine":
        analyzers = default_analyzers(
            enable_time_proximity=config.enable_time_proximity,
            enable_pattern_matching=config.enable_pattern_matching,
        )
        return cls(config.confidence_threshold, analyzers, activity_log, repo_root)

    def load_entries(self) -> List[ActivityEntry]:
        if self.activity_log is None:
            return []
        try:
            return self.activity_log.read()
        except OSError as e:
            logger.warning("Activity log unreadable, time proximity disabled: %s", e)
            return []

    def _run_analyzers(self, text: str, context: DetectionContext) -> Dict[str, AnalyzerScore]:
        scores = {}
        for analyzer in self.analyzers:
            try:
                scores[analyzer.name] = analyzer.run(text, context)
            except Exception:
                logger.warning("Analyzer %s failed on %s; scoring it as 0",
                               analyzer.name, context.file_path or "<text>", exc_info=True)
                scores[analyzer.name] = AnalyzerScore()
        return scores

    def _context(self, file_path: str, entries, now: Optional[int]) -> DetectionContext:
        return DetectionContext(
            file_path=file_path or "",
            language=language_for_path(file_path or ""),
            repo_root=self.repo_root,
            entries=self.load_entries() if entries is None else entries,
            now_ms=now_ms() if now is None else now,
        )

    def detect(
        self,
        added_text: str,
        file_path: str = "",
        entries: Optional[Sequence[ActivityEntry]] = None,
        now: Optional[int] = None,
    ) -> DetectionResult:
        context = self._context(file_path, entries, now)
        scores = self._run_analyzers(added_text, context)

        total = sum(s.points for s in scores.values())
        confidence = clamp_confidence(total)
        reasons = _dedupe(r for s in scores.values() for r in s.reasons)

        metadata = DetectionMetadata(
            chunk_size=len(added_text),
            pattern_matches=len(scores["patterns"].details.get("kinds", [])) if "patterns" in scores else 0,
            has_boilerplate=scores.get("boilerplate", AnalyzerScore()).points > 0,
            has_quality_comments=scores.get("comments", AnalyzerScore()).points > 0,
            time_proximity=scores.get("proximity", AnalyzerScore()).points,
            language_type=context.language,
        )

        logger.debug("%s: raw=%d confidence=%d (%s)", file_path or "<text>", total, confidence,
                     ", ".join(f"{k}={v.points}" for k, v in scores.items()))

        return DetectionResult(
            is_ai_generated=classify(confidence, self.threshold),
            confidence=confidence,
            reasons=reasons,
            metadata=metadata,
        )

    def detect_changes(
        self,
        texts: Sequence[str],
        file_path: str = "",
        entries: Optional[Sequence[ActivityEntry]] = None,
        now: Optional[int] = None,
    ) -> DetectionResult:
        """
        Editor-side variant: score every sizeable change of one edit event
        and sum them, as continuous detection mode does while typing.
        """
        result = DetectionResult(metadata=DetectionMetadata(language_type=language_for_path(file_path)))
        if entries is None:
            entries = self.load_entries()

        total = 0
        reasons: List[str] = []
        for text in texts:
            if len(text) < CHANGE_SIZE_THRESHOLD:
                continue
            single = self.detect(text, file_path, entries=entries, now=now)
            total += single.confidence
            reasons.extend(single.reasons)

            meta = result.metadata
            meta.chunk_size = max(meta.chunk_size, single.metadata.chunk_size)
            meta.pattern_matches = max(meta.pattern_matches, single.metadata.pattern_matches)
            meta.has_boilerplate = meta.has_boilerplate or single.metadata.has_boilerplate
            meta.has_quality_comments = meta.has_quality_comments or single.metadata.has_quality_comments
            meta.time_proximity = max(meta.time_proximity, single.metadata.time_proximity)

        result.confidence = clamp_confidence(total)
        result.is_ai_generated = classify(result.confidence, self.threshold)
        result.reasons = _dedupe(reasons)
        return result
