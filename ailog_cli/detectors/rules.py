"""
Pattern Rule Sets
─────────────────
Every regex-driven analyzer reads its patterns from a RuleSet instead of
hard-coding them. A rule carries:

  name      human-readable label used in detection reasons
  pattern   compiled regular expression
  tags      languages the rule applies to ("*" = any language)
  kind      grouping key; several spellings of one construct share a kind

Rule sets are versioned so a report can say which heuristics produced it,
and an analyzer can be handed a custom set in tests or by extensions.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

ANY_LANGUAGE = "*"


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: "re.Pattern"
    tags: Tuple[str, ...] = (ANY_LANGUAGE,)
    kind: str = ""

    def applies_to(self, language: str) -> bool:
        return ANY_LANGUAGE in self.tags or language in self.tags

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    @property
    def group(self) -> str:
        return self.kind or self.name


@dataclass(frozen=True)
class RuleSet:
    name: str
    version: str
    rules: Tuple[Rule, ...] = field(default_factory=tuple)

    def for_language(self, language: str) -> List[Rule]:
        return [r for r in self.rules if r.applies_to(language)]

    def matching(self, text: str, language: str = ANY_LANGUAGE) -> List[Rule]:
        """Rules applicable to `language` whose pattern occurs in `text`."""
        candidates = self.rules if language == ANY_LANGUAGE else self.for_language(language)
        return [r for r in candidates if r.matches(text)]

    def extend(self, extra: Iterable[Rule], version: str) -> "RuleSet":
        return RuleSet(self.name, version, self.rules + tuple(extra))


def _rule(name, regex, tags=(ANY_LANGUAGE,), kind="", flags=0) -> Rule:
    return Rule(name=name, pattern=re.compile(regex, flags), tags=tuple(tags), kind=kind)


# ─── Syntax completeness ────────────────────────────────────────────────────
# A full top-level construct anchored to line boundaries. Partial edits
# (a changed argument, a single statement) should not match.

SYNTAX_RULES = RuleSet("syntax", "1", (
    _rule("Complete function", r"^function\s+\w+\s*\([^)]*\)\s*\{[\s\S]*\}$", ["javascript"], flags=re.M),
    _rule("Complete class", r"^class\s+\w+\s*\{[\s\S]*\}$", ["javascript"], flags=re.M),
    _rule("Arrow function", r"^const\s+\w+\s*=\s*\([^)]*\)\s*=>\s*\{[\s\S]*\}$", ["javascript"], flags=re.M),
    _rule("Export statement", r"^export\s+(default\s+)?[^;]+;?$", ["javascript"], flags=re.M),

    _rule("Typed function", r"^function\s+\w+\s*\([^)]*\)\s*:\s*\w+\s*\{[\s\S]*\}$", ["typescript"], flags=re.M),
    _rule("Interface", r"^interface\s+\w+\s*\{[\s\S]*\}$", ["typescript"], flags=re.M),
    _rule("Type alias", r"^type\s+\w+\s*=[\s\S]*;$", ["typescript"], flags=re.M),
    _rule("Complete class", r"^class\s+\w+\s*\{[\s\S]*\}$", ["typescript"], flags=re.M),

    _rule("Function definition", r"^def\s+\w+\s*\([^)]*\)\s*:\s*[\s\S]*$", ["python"], flags=re.M),
    _rule("Class definition", r"^class\s+\w+\s*\([^)]*\)\s*:\s*[\s\S]*$", ["python"], flags=re.M),
    _rule("Import", r"^import\s+[\w\s,]+$", ["python"], flags=re.M),
    _rule("From-import", r"^from\s+[\w.]+\s+import\s+[\w\s,]+$", ["python"], flags=re.M),
))


# ─── Boilerplate templates ──────────────────────────────────────────────────

BOILERPLATE_RULES = RuleSet("boilerplate", "1", (
    _rule("React Component", r"import\s+React[\s\S]*?export\s+default\s+\w+"),
    _rule("API Request Function",
          r"async\s+function\s+\w+[\s\S]*?try\s*\{[\s\S]*?catch\s*\([^)]*\)\s*\{[\s\S]*?\}"),
    _rule("Data Structure Class", r"class\s+\w+\s*\{[\s\S]*?constructor\s*\([^)]*\)\s*\{[\s\S]*?\}"),
    _rule("Express Route", r"app\.(get|post|put|delete)\s*\([^,)]*,\s*(async\s*)?\([^)]*\)\s*=>\s*\{[\s\S]*?\}"),
    _rule("Test Case", r"describe\s*\([^)]*\)\s*,\s*\(\s*\)\s*=>\s*\{[\s\S]*?it\s*\([^)]*\)\s*,[\s\S]*?\}"),

    _rule("Data Structure Class", r"^class\s+\w+[^\n]*:\s*\n[\s\S]*?def\s+__init__\s*\(\s*self",
          ["python"], flags=re.M),
    _rule("Exception Wrapper", r"^\s*try:\s*\n[\s\S]+?\n\s*except\b[^\n]*:", ["python"], flags=re.M),
    _rule("Route Handler", r"^@\w+\.(route|get|post|put|delete|patch)\s*\(", ["python"], flags=re.M),
    _rule("Test Case", r"^class\s+Test\w*[^\n]*:\s*\n[\s\S]*?def\s+test_\w+", ["python"], flags=re.M),
))


# ─── Comment styles ─────────────────────────────────────────────────────────
# kind "doc" = block documentation, kind "inline" = single-line comment
# prefix. Inline rules capture the comment body in group 1.

COMMENT_RULES = RuleSet("comments", "1", (
    _rule("JSDoc block", r"/\*\*[\s\S]*?\*/", kind="doc"),
    _rule("Docstring", r'"""[\s\S]*?"""', ["python"], kind="doc"),
    _rule("Slash comment", r"^\s*//(.*)$", kind="inline", flags=re.M),
    _rule("Hash comment", r"^\s*#(?![!#])(.*)$", ["python"], kind="inline", flags=re.M),
))


# ─── Lexical token kinds ────────────────────────────────────────────────────

PATTERN_RULES = RuleSet("patterns", "1", (
    _rule("JSDoc block", r"/\*\*[\s\S]*?\*/", kind="Multi-line comments"),
    _rule("Docstring", r'"""[\s\S]*?"""', ["python"], kind="Multi-line comments"),
    _rule("Slash comment", r"//.*$", kind="Single-line comments", flags=re.M),
    _rule("Hash comment", r"^\s*#\s+\S", ["python"], kind="Single-line comments", flags=re.M),
    _rule("JS function", r"function\s+\w+\s*\(", kind="Function definitions"),
    _rule("Python def", r"^\s*(async\s+)?def\s+\w+\s*\(", ["python"], kind="Function definitions", flags=re.M),
    _rule("Const", r"const\s+\w+\s*=", kind="Constant definitions"),
    _rule("Module constant", r"^[A-Z][A-Z0-9_]{2,}\s*=", ["python"], kind="Constant definitions", flags=re.M),
    _rule("ES import", r"import\s+.*from", kind="Import statements"),
    _rule("Python import", r"^\s*(from\s+[\w.]+\s+)?import\s+\w+", ["python"], kind="Import statements", flags=re.M),
    _rule("Interface", r"interface\s+\w+\s*\{", kind="Interface definitions"),
    _rule("Type alias", r"type\s+\w+\s*=", kind="Type definitions"),
    _rule("Export", r"export\s+(default\s+)?", kind="Export statements"),
))


# ─── Languages ──────────────────────────────────────────────────────────────

EXTENSION_LANGUAGES = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "h": "c",
    "hpp": "cpp",
    "cs": "csharp",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "rb": "ruby",
    "swift": "swift",
    "kt": "kotlin",
    "scala": "scala",
}


def language_for_path(file_path: str) -> str:
    if not file_path or "." not in file_path.rsplit("/", 1)[-1]:
        return "plaintext"
    ext = file_path.rsplit(".", 1)[-1].lower()
    return EXTENSION_LANGUAGES.get(ext, "plaintext")
