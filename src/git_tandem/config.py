"""Configuration for git-tandem.

Sources are merged in priority order:
    1. Defaults (defined in TandemConfig)
    2. Repository config (<repo>/.git-tandem.toml)
    3. Overrides passed by the caller (CLI flags); None means "not given"

Example ``.git-tandem.toml``::

    ignore_patterns = ["*.md", "*.lock", "docs/*"]
    max_commits = 2000
    top = 20
"""

from __future__ import annotations

import dataclasses
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from git_tandem.domain.errors import ConfigError
from git_tandem.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = ".git-tandem.toml"

DEFAULT_IGNORE_PATTERNS = ("*.md", "*.txt", "*.json", "*.yaml", "*.yml")


@dataclass(frozen=True)
class TandemConfig:
    ignore_patterns: tuple[str, ...] = field(default=DEFAULT_IGNORE_PATTERNS)
    max_commits: int = 0
    include_merges: bool = False
    top: int = 10
    git_timeout: float | None = None


def _validate(values: dict[str, Any], source: str) -> dict[str, Any]:
    known = {f.name for f in dataclasses.fields(TandemConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown config key(s) in {source}: {', '.join(unknown)}")

    cleaned = dict(values)
    if "ignore_patterns" in cleaned:
        patterns = cleaned["ignore_patterns"]
        if isinstance(patterns, str) or not all(isinstance(p, str) for p in patterns):
            raise ConfigError(f"ignore_patterns in {source} must be a list of strings")
        cleaned["ignore_patterns"] = tuple(patterns)
    for key in ("max_commits", "top"):
        value = cleaned.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"{key} in {source} must be a non-negative integer")
    if "include_merges" in cleaned and not isinstance(cleaned["include_merges"], bool):
        raise ConfigError(f"include_merges in {source} must be true or false")
    if "git_timeout" in cleaned and cleaned["git_timeout"] is not None:
        if not isinstance(cleaned["git_timeout"], (int, float)) or cleaned["git_timeout"] <= 0:
            raise ConfigError(f"git_timeout in {source} must be a positive number")
    return cleaned


def _read_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from None
    logger.debug("Loaded config from %s", path)
    return data


def load_config(repo_path: str | None = None, **overrides: Any) -> TandemConfig:
    values: dict[str, Any] = {}

    if repo_path is not None:
        config_path = Path(repo_path) / CONFIG_FILENAME
        if config_path.is_file():
            values.update(_validate(_read_file(config_path), str(config_path)))

    given = {k: v for k, v in overrides.items() if v is not None}
    values.update(_validate(given, "overrides"))

    return TandemConfig(**values)
