from ailog_cli.detectors.base import Analyzer, AnalyzerScore, DetectionContext
from ailog_cli.detectors.rules import COMMENT_RULES, RuleSet

DOC_POINTS = 15
INLINE_POINTS = 10
MIN_INLINE_LENGTH = 10


def _is_quality_comment(body: str) -> bool:
    body = body.strip()
    return len(body) >= MIN_INLINE_LENGTH and body[:1].isupper()


class CommentQualityAnalyzer(Analyzer):
    """
    Generated code is usually well commented: documentation blocks on
    every function and full-sentence inline comments. The two signals are
    scored independently and added.
    """

    name = "comments"
    max_points = DOC_POINTS + INLINE_POINTS

    def __init__(self, rules: RuleSet = COMMENT_RULES):
        self.rules = rules

    def score(self, text: str, context: DetectionContext) -> AnalyzerScore:
        rules = self.rules.for_language(context.language)
        has_doc = any(r.matches(text) for r in rules if r.kind == "doc")

        has_inline = False
        for rule in rules:
            if rule.kind != "inline":
                continue
            if any(_is_quality_comment(m.group(1)) for m in rule.pattern.finditer(text)):
                has_inline = True
                break

        points = (DOC_POINTS if has_doc else 0) + (INLINE_POINTS if has_inline else 0)
        reasons = ["High quality comments"] if points else []
        return AnalyzerScore(points, reasons, {"doc": has_doc, "inline": has_inline})
