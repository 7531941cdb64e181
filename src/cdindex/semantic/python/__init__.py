"""Python semantic provider: shared helpers."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from cdindex.semantic.base import SourceProject

logger = logging.getLogger(__name__)

_PROJECT_MARKERS = ("pyproject.toml", "setup.cfg", "setup.py", "pixi.toml")

SKIP_DIRS = {
    ".git",
    ".github",
    ".tox",
    ".venv",
    "venv",
    ".eggs",
    ".mypy_cache",
    ".pytest_cache",
    "__pycache__",
    "node_modules",
    "build",
    "dist",
    "docs",
    "doc",
    "tests",
    "test",
    "scripts",
    "bin",
    "examples",
    "target",
}

_SKIP_MODULES = {"setup.py", "conftest.py", "noxfile.py", "fabfile.py"}


def is_python_project(project_dir: Path) -> bool:
    """Return True if *project_dir* contains a Python project indicator."""
    return any((project_dir / marker).exists() for marker in _PROJECT_MARKERS)


def find_python_projects(repo_root: Path) -> list[SourceProject]:
    """Return every Python project under *repo_root*, ordered by relative path.

    A repository without any packaging marker but with ``.py`` files is
    treated as a single project rooted at *repo_root*.
    """
    projects: list[SourceProject] = []
    for dirpath, dirnames, _filenames in os.walk(repo_root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )
        current = Path(dirpath)
        if not is_python_project(current):
            continue
        marker = next(m for m in _PROJECT_MARKERS if (current / m).exists())
        projects.append(
            SourceProject(
                name=guess_project_name(current),
                relative_path=(current / marker).relative_to(repo_root).as_posix(),
                root=current,
                language="python",
            )
        )

    if not projects and any(iter_source_files(repo_root)):
        projects.append(
            SourceProject(
                name=repo_root.name.replace("-", "_"),
                relative_path="",
                root=repo_root,
                language="python",
            )
        )
    return projects


def guess_project_name(project_dir: Path) -> str:
    """Guess the project name from pixi.toml, pyproject.toml, or the directory name."""
    for toml_name in ("pixi.toml", "pyproject.toml"):
        toml_path = project_dir / toml_name
        if not toml_path.exists():
            continue
        try:
            from cdindex.config import tomllib

            with open(toml_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, ValueError) as e:
            logger.debug("Could not read %s: %s", toml_path, e)
            continue
        name = data.get("project", {}).get("name") or (
            data.get("tool", {}).get("poetry", {}).get("name")
        )
        if name:
            # Normalise: PyPI allows hyphens but Python packages use underscores
            return name.replace("-", "_")
    return project_dir.name.replace("-", "_")


def source_root(project_dir: Path) -> Path:
    """Return the directory module names are computed relative to."""
    src = project_dir / "src"
    return src if src.is_dir() else project_dir


def iter_source_files(project_dir: Path):
    """Yield ``(path, module_name)`` for the project's modules in sorted order.

    Packages (directories with ``__init__.py``) are walked recursively; loose
    top-level modules are included unless they are tooling or test files.
    Nested directories holding their own packaging marker belong to another
    project and are skipped.
    """
    root = source_root(project_dir)
    if not root.is_dir():
        return
    for child in sorted(root.iterdir()):
        if child.is_file() and child.suffix == ".py":
            if child.name in _SKIP_MODULES or _is_test_module(child.name):
                continue
            yield child, child.stem
        elif (
            child.is_dir()
            and child.name not in SKIP_DIRS
            and (child / "__init__.py").exists()
            and not is_python_project(child)
        ):
            yield from _iter_package(child, child.name)


def _iter_package(package_dir: Path, package_name: str):
    for child in sorted(package_dir.iterdir()):
        if child.is_file() and child.suffix == ".py":
            if child.name == "__init__.py":
                yield child, package_name
            else:
                yield child, f"{package_name}.{child.stem}"
        elif (
            child.is_dir()
            and child.name != "__pycache__"
            and (child / "__init__.py").exists()
        ):
            yield from _iter_package(child, f"{package_name}.{child.name}")


def _is_test_module(filename: str) -> bool:
    return filename.startswith("test_") or filename.endswith("_test.py")
