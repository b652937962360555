from ailog_cli.detectors.base import Analyzer, AnalyzerScore, DetectionContext
from ailog_cli.detectors.rules import BOILERPLATE_RULES, RuleSet


class BoilerplateAnalyzer(Analyzer):
    name = "boilerplate"
    max_points = 20

    def __init__(self, rules: RuleSet = BOILERPLATE_RULES):
        self.rules = rules

    def score(self, text: str, context: DetectionContext) -> AnalyzerScore:
        names = []
        for rule in self.rules.matching(text, context.language):
            if rule.name not in names:
                names.append(rule.name)
        if not names:
            return AnalyzerScore(0, [], {"templates": []})
        return AnalyzerScore(20, [f"Boilerplate patterns: {', '.join(names)}"], {"templates": names})
