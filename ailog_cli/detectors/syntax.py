from ailog_cli.detectors.base import Analyzer, AnalyzerScore, DetectionContext
from ailog_cli.detectors.rules import SYNTAX_RULES, RuleSet


class SyntaxCompletenessAnalyzer(Analyzer):
    """
    Human edits land as fragments; generated code tends to arrive as whole
    functions, classes or imports. Only languages with rules can score.
    """

    name = "syntax"
    max_points = 25

    def __init__(self, rules: RuleSet = SYNTAX_RULES):
        self.rules = rules

    def score(self, text: str, context: DetectionContext) -> AnalyzerScore:
        candidates = self.rules.for_language(context.language)
        matched = [r.name for r in candidates if r.matches(text)]
        if not matched:
            return AnalyzerScore(0, [], {"constructs": []})
        return AnalyzerScore(25, ["Syntactic structure complete"], {"constructs": matched})
