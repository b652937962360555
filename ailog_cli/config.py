# ailog: configuration
#
# Resolution order, later wins:
#   1. dataclass defaults
#   2. git config section [ailog] (repository, then global scopes)
#   3. AILOG_* environment variables (a .env at the repo root is loaded first)

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

import git
from dotenv import load_dotenv

from ailog_cli.errors import ConfigError

logger = logging.getLogger(__name__)

GIT_SECTION = "ailog"

# dataclass field -> (git config key, environment variable)
_KEYS = {
    "confidence_threshold": ("threshold", "AILOG_THRESHOLD"),
    "enable_time_proximity": ("time-proximity", "AILOG_TIME_PROXIMITY"),
    "enable_pattern_matching": ("pattern-matching", "AILOG_PATTERN_MATCHING"),
    "attribution_name": ("attribution-name", "AILOG_ATTRIBUTION_NAME"),
    "attribution_email": ("attribution-email", "AILOG_ATTRIBUTION_EMAIL"),
    "db_path": ("database", "AILOG_DB_PATH"),
}

PRESETS = {
    "Cursor AI": "cursor-ai@company.com",
    "GitHub Copilot": "copilot@github.com",
    "OpenAI ChatGPT": "chatgpt@openai.com",
    "Claude AI": "claude@anthropic.com",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"expected a boolean, got {value!r}")


def parse_threshold(value) -> int:
    try:
        threshold = int(str(value).strip())
    except ValueError:
        raise ConfigError(f"threshold must be an integer, got {value!r}") from None
    if not 0 <= threshold <= 100:
        raise ConfigError("Confidence threshold must be between 0 and 100")
    return threshold


def parse_email(value) -> str:
    text = str(value).strip()
    local, _, domain = text.partition("@")
    if not local or "." not in domain or " " in text or domain.startswith(".") or domain.endswith("."):
        raise ConfigError(f"not a valid email address: {value!r}")
    return text


_PARSERS = {
    "confidence_threshold": parse_threshold,
    "enable_time_proximity": parse_bool,
    "enable_pattern_matching": parse_bool,
    "attribution_email": parse_email,
}


@dataclass
class Config:
    """Settings consumed by the detection engine and the attribution flow."""

    confidence_threshold: int = 70
    enable_time_proximity: bool = True
    enable_pattern_matching: bool = True
    attribution_name: str = "Cursor AI"
    attribution_email: str = "cursor-ai@company.com"
    db_path: str = "~/.ailog/commits.db"

    @property
    def attribution_string(self) -> str:
        return f"Co-authored-by: {self.attribution_name} <{self.attribution_email}>"

    @property
    def attribution_example(self) -> str:
        return f"Example: {self.attribution_string}"

    def _apply(self, name: str, raw, source: str):
        parser = _PARSERS.get(name, lambda v: str(v).strip())
        try:
            value = parser(raw)
        except ConfigError as e:
            logger.warning("Ignoring %s from %s: %s", name, source, e)
            return
        if isinstance(value, str) and not value:
            logger.warning("Ignoring empty %s from %s", name, source)
            return
        setattr(self, name, value)

    def resolve_paths(self):
        self.db_path = str(Path(self.db_path).expanduser())

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def load(cls, repo: Optional[git.Repo] = None, environ=None) -> "Config":
        cfg = cls()

        if repo is not None:
            try:
                reader = repo.config_reader()
                for f in fields(cls):
                    key = _KEYS[f.name][0]
                    if reader.has_option(GIT_SECTION, key):
                        cfg._apply(f.name, reader.get_value(GIT_SECTION, key), "git config")
            except (OSError, ValueError) as e:
                logger.warning("Could not read git config: %s", e)

            if environ is None and repo.working_tree_dir:
                load_dotenv(Path(repo.working_tree_dir) / ".env", override=False)

        env = os.environ if environ is None else environ
        for f in fields(cls):
            var = _KEYS[f.name][1]
            if var in env:
                cfg._apply(f.name, env[var], var)

        cfg.resolve_paths()
        return cfg


def save_to_git(repo: git.Repo, **values) -> None:
    """
    Persist settings to the repository's git config. Values are validated
    first; ConfigError leaves the config untouched.
    """
    validated = {}
    for name, value in values.items():
        if value is None:
            continue
        if name not in _KEYS:
            raise ConfigError(f"unknown setting {name!r}")
        parser = _PARSERS.get(name, lambda v: str(v).strip())
        validated[name] = parser(value)

    if not validated:
        return
    with repo.config_writer(config_level="repository") as writer:
        for name, value in validated.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            writer.set_value(GIT_SECTION, _KEYS[name][0], value)


def reset_git_config(repo: git.Repo) -> None:
    with repo.config_writer(config_level="repository") as writer:
        if writer.has_section(GIT_SECTION):
            writer.remove_section(GIT_SECTION)
