"""File tree scanning: filtering, hashing and line counting."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path

import pathspec

from cdindex.config import TreeConfig
from cdindex.model import FileEntry

logger = logging.getLogger(__name__)

_BOM = "\ufeff"


class IgnoreRules:
    """Match relative posix paths against configured ignores and .gitignore.

    Entries ending in ``/`` match that directory at any depth, entries that start
    with ``.`` and contain no ``/`` match a suffix (``.min.js``), anything
    else matches a path prefix.
    """

    def __init__(self, patterns: list[str], gitignore: pathspec.PathSpec | None = None):
        self.dir_prefixes: list[str] = []
        self.suffixes: list[str] = []
        self.prefixes: list[str] = []
        for raw in patterns:
            pattern = raw.strip().replace("\\", "/")
            if not pattern:
                continue
            if pattern.endswith("/"):
                self.dir_prefixes.append(pattern)
            elif pattern.startswith(".") and "/" not in pattern:
                self.suffixes.append(pattern.lower())
            else:
                self.prefixes.append(pattern)
        self.gitignore = gitignore

    def ignores(self, rel_path: str, is_dir: bool = False) -> bool:
        candidate = rel_path + "/" if is_dir else rel_path
        for prefix in self.dir_prefixes:
            if ("/" + prefix) in ("/" + candidate):
                return True
        if not is_dir:
            lowered = rel_path.lower()
            if any(lowered.endswith(s) for s in self.suffixes):
                return True
        if any(candidate.startswith(p) for p in self.prefixes):
            return True
        return self.gitignore is not None and self.gitignore.match_file(candidate)


def load_gitignore(repo_root: Path) -> pathspec.PathSpec | None:
    gitignore = repo_root / ".gitignore"
    if not gitignore.is_file():
        return None
    try:
        lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        logger.warning("Could not read %s: %s", gitignore, e)
        return None
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def normalized_lines(data: bytes) -> list[str]:
    """Decode *data* as UTF-8 (lossily) and split it into lines."""
    text = data.decode("utf-8", errors="replace")
    if text.startswith(_BOM):
        text = text[1:]
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def content_hash(lines: list[str]) -> str:
    """Hex sha256 of *lines*, each terminated by ``\\n``."""
    digest = hashlib.sha256()
    for line in lines:
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


def count_lines(lines: list[str], mode: str = "physical") -> int:
    if mode == "logical":
        return sum(1 for line in lines if line.strip())
    return len(lines)


def scan_tree(repo_root: Path, config: TreeConfig | None = None) -> list[FileEntry]:
    """Walk *repo_root* and return one entry per matching file, sorted by path."""
    config = config or TreeConfig()
    repo_root = repo_root.resolve()
    gitignore = load_gitignore(repo_root) if config.use_gitignore else None
    rules = IgnoreRules(config.ignore, gitignore)
    extensions = tuple(e.lower() for e in config.extensions)

    entries = []
    for dirpath, dirnames, filenames in os.walk(repo_root):
        rel_dir = Path(dirpath).relative_to(repo_root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"
        dirnames[:] = sorted(
            d for d in dirnames if not rules.ignores(rel_dir + d, is_dir=True)
        )
        for filename in filenames:
            rel_path = rel_dir + filename
            if not rel_path.lower().endswith(extensions):
                continue
            if rules.ignores(rel_path):
                continue
            entry = _scan_file(Path(dirpath) / filename, rel_path, config.loc_mode)
            if entry is not None:
                entries.append(entry)

    entries.sort(key=lambda e: (e.path.lower(), e.path))
    logger.debug("Tree: %d files", len(entries))
    return entries


def _scan_file(path: Path, rel_path: str, loc_mode: str) -> FileEntry | None:
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.debug("Skipping %s: %s", rel_path, e)
        return None
    lines = normalized_lines(data)
    kind = Path(rel_path).suffix.lower().lstrip(".")
    return FileEntry(
        path=rel_path,
        kind=kind,
        loc=count_lines(lines, loc_mode),
        sha256=content_hash(lines),
    )
