"""Configuration: built-in defaults, TOML config files, CLI overrides."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

from cdindex.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CD_INDEX_CONFIG"
CONFIG_FILENAMES = ("cd-index.toml", ".cd-index.toml")
TOOL_TABLE = "cd-index"

SECTIONS = ("tree", "entrypoints", "commands", "configs", "callgraphs")
LOC_MODES = ("physical", "logical")

DEFAULT_EXTENSIONS = [
    ".py",
    ".pyi",
    ".java",
    ".toml",
    ".cfg",
    ".json",
    ".yaml",
    ".yml",
    ".xml",
    ".gradle",
    ".kts",
    ".md",
]

DEFAULT_IGNORES = [
    ".git/",
    ".venv/",
    "venv/",
    "__pycache__/",
    "build/",
    "dist/",
    "target/",
    "node_modules/",
    ".tox/",
    ".mypy_cache/",
    ".pytest_cache/",
]


@dataclass
class TreeConfig:
    ignore: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORES))
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    loc_mode: str = "physical"
    use_gitignore: bool = True


@dataclass
class CallgraphConfig:
    roots: list[str] = field(default_factory=list)
    max_depth: int = 2
    max_nodes: int = 200
    include_external: bool = False


@dataclass
class CommandsConfig:
    allow_regex: str | None = None


@dataclass
class ScanConfig:
    """Effective settings for one run."""

    tree: TreeConfig = field(default_factory=TreeConfig)
    callgraph: CallgraphConfig = field(default_factory=CallgraphConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    sections: list[str] = field(default_factory=lambda: list(SECTIONS))
    env_prefixes: list[str] = field(default_factory=list)
    source: Path | None = None

    def enabled(self, section: str) -> bool:
        return section in self.sections

    def disable(self, section: str) -> None:
        if section in self.sections:
            self.sections.remove(section)

    def enable(self, section: str) -> None:
        if section not in self.sections:
            self.sections.append(section)

    def add_roots(self, roots: list[str]) -> None:
        """Append *roots* after the configured ones, skipping duplicates."""
        for root in roots:
            if root not in self.callgraph.roots:
                self.callgraph.roots.append(root)

    def validate(self) -> None:
        if self.callgraph.max_depth < 0:
            raise ConfigError(
                f"max_depth must be >= 0, got {self.callgraph.max_depth}"
            )
        if self.callgraph.max_nodes < 1:
            raise ConfigError(
                f"max_nodes must be >= 1, got {self.callgraph.max_nodes}"
            )
        if self.tree.loc_mode not in LOC_MODES:
            raise ConfigError(
                f"loc_mode must be one of {', '.join(LOC_MODES)}, "
                f"got {self.tree.loc_mode!r}"
            )
        if self.commands.allow_regex:
            try:
                re.compile(self.commands.allow_regex)
            except re.error as e:
                raise ConfigError(
                    f"invalid commands allow_regex {self.commands.allow_regex!r}: {e}"
                ) from e


def load_config(repo_root: Path, explicit: Path | None = None) -> ScanConfig:
    """Return the configuration for *repo_root*.

    Looks at *explicit*, then ``cd-index.toml`` / ``.cd-index.toml`` in the
    repository, then ``[tool.cd-index]`` in its ``pyproject.toml``, then the
    file named by ``$CD_INDEX_CONFIG``.  The first source found wins.  An
    unreadable or malformed file falls back to defaults; out-of-range call
    graph bounds raise :class:`ConfigError`.
    """
    for path, table in _candidates(repo_root, explicit):
        if not path.is_file():
            if path == explicit:
                raise ConfigError(f"Config file not found: {path}")
            continue
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("CFG900 could not read %s: %s (using defaults)", path, e)
            return ScanConfig()

        if table:
            tool = data.get("tool")
            data = tool.get(table) if isinstance(tool, dict) else None
            if data is None:
                continue
        try:
            config = _from_dict(data)
        except ValueError as e:
            logger.warning("CFG900 invalid %s: %s (using defaults)", path, e)
            return ScanConfig()
        config.source = path
        config.validate()
        logger.debug("CFG010 loaded configuration from %s", path)
        return config

    logger.debug("CFG001 no configuration file found, using defaults")
    return ScanConfig()


def _candidates(repo_root: Path, explicit: Path | None):
    if explicit is not None:
        yield explicit, None
        return
    for name in CONFIG_FILENAMES:
        yield repo_root / name, None
    yield repo_root / "pyproject.toml", TOOL_TABLE
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        yield Path(env_path), None


def _from_dict(data) -> ScanConfig:
    """Build a config from a parsed table; ``ValueError`` on a malformed value."""
    if not isinstance(data, dict):
        raise ValueError("configuration must be a table")
    config = ScanConfig()
    scan = _table(data, "scan")
    tree = _table(data, "tree")
    configs = _table(data, "configs")
    commands = _table(data, "commands")
    callgraph = _table(data, "callgraph")

    if "ignore" in scan:
        config.tree.ignore = _str_list(scan["ignore"], "scan.ignore")
    if "ext" in scan:
        config.tree.extensions = [
            normalize_extension(e) for e in _str_list(scan["ext"], "scan.ext")
        ]
    if "sections" in scan:
        wanted = _str_list(scan["sections"], "scan.sections")
        unknown = sorted(set(wanted) - set(SECTIONS))
        if unknown:
            logger.warning("Ignoring unknown sections: %s", ", ".join(unknown))
        config.sections = [s for s in SECTIONS if s in wanted]
    if _bool(scan.get("no_tree", False), "scan.no_tree"):
        config.disable("tree")

    if "loc_mode" in tree:
        loc_mode = tree["loc_mode"]
        if loc_mode not in LOC_MODES:
            raise ValueError(f"tree.loc_mode must be one of {', '.join(LOC_MODES)}")
        config.tree.loc_mode = loc_mode
    if "use_gitignore" in tree:
        config.tree.use_gitignore = _bool(tree["use_gitignore"], "tree.use_gitignore")

    if "env_prefixes" in configs:
        config.env_prefixes = _str_list(configs["env_prefixes"], "configs.env_prefixes")

    if "allow_regex" in commands:
        pattern = commands["allow_regex"]
        if not isinstance(pattern, str):
            raise ValueError("commands.allow_regex must be a string")
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"commands.allow_regex: {e}") from e
        config.commands.allow_regex = pattern or None

    if "roots" in callgraph:
        config.add_roots(_str_list(callgraph["roots"], "callgraph.roots"))
    if "max_depth" in callgraph:
        config.callgraph.max_depth = _int(callgraph["max_depth"], "callgraph.max_depth")
    if "max_nodes" in callgraph:
        config.callgraph.max_nodes = _int(callgraph["max_nodes"], "callgraph.max_nodes")
    if "include_external" in callgraph:
        config.callgraph.include_external = _bool(
            callgraph["include_external"], "callgraph.include_external"
        )
    return config


def normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else "." + ext


def _table(data: dict, name: str) -> dict:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"[{name}] must be a table")
    return value


def _str_list(value, key: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings")
    return list(value)


def _int(value, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return value


def _bool(value, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false")
    return value
