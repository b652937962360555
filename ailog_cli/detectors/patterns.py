from ailog_cli.detectors.base import Analyzer, AnalyzerScore, DetectionContext
from ailog_cli.detectors.rules import ANY_LANGUAGE, PATTERN_RULES, RuleSet

# (minimum distinct token kinds, points), highest first
_KIND_BANDS = ((4, 25), (3, 20), (2, 15))


class LexicalPatternAnalyzer(Analyzer):
    """Counts how many different kinds of structural token the text contains."""

    name = "patterns"
    max_points = 25

    def __init__(self, rules: RuleSet = PATTERN_RULES):
        self.rules = rules

    def matched_kinds(self, text: str, language: str = ANY_LANGUAGE) -> list:
        kinds = []
        for rule in self.rules.matching(text, language):
            if rule.group not in kinds:
                kinds.append(rule.group)
        return kinds

    def score(self, text: str, context: DetectionContext) -> AnalyzerScore:
        kinds = self.matched_kinds(text, context.language)
        details = {"kinds": kinds}
        for minimum, points in _KIND_BANDS:
            if len(kinds) >= minimum:
                return AnalyzerScore(points, [f"Pattern matches: {', '.join(kinds)}"], details)
        return AnalyzerScore(0, [], details)
