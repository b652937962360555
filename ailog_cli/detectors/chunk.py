from ailog_cli.detectors.base import Analyzer, AnalyzerScore, DetectionContext

# (exclusive lower bound in characters, points, label), largest first
_CHUNK_BANDS = (
    (500, 30, "Large code block"),
    (200, 20, "Medium code block"),
    (100, 10, "Small code block"),
)


class ChunkSizeAnalyzer(Analyzer):
    """Large contiguous insertions are typical of accepted completions."""

    name = "chunk"
    max_points = 30

    def score(self, text: str, context: DetectionContext) -> AnalyzerScore:
        size = len(text)
        for bound, points, label in _CHUNK_BANDS:
            if size > bound:
                return AnalyzerScore(points, [f"{label} ({size} characters)"], {"size": size})
        return AnalyzerScore(0, [], {"size": size})
