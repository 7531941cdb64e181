"""Java semantic provider for Maven and Gradle projects."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from cdindex.semantic.base import SourceProject

logger = logging.getLogger(__name__)

_BUILD_FILES = ("pom.xml", "build.gradle.kts", "build.gradle")

_SKIP_DIRS = {".git", ".gradle", ".idea", "build", "target", "out", "node_modules"}


def is_java_project(project_dir: Path) -> bool:
    return any((project_dir / name).exists() for name in _BUILD_FILES)


def find_java_projects(repo_root: Path) -> list[SourceProject]:
    """Return the Java projects of *repo_root*, one per Maven module or Gradle subproject.

    Single-module builds yield a single project rooted at *repo_root*.
    """
    if not is_java_project(repo_root):
        return []

    module_dirs = _discover_maven_modules(repo_root) or _discover_gradle_subprojects(
        repo_root
    )
    candidates = [repo_root / m for m in module_dirs if (repo_root / m).is_dir()]
    if not candidates or find_source_root(repo_root) is not None:
        candidates.insert(0, repo_root)

    projects = []
    for module_dir in candidates:
        build_file = next(
            (module_dir / n for n in _BUILD_FILES if (module_dir / n).exists()), None
        )
        relative_path = (
            build_file.relative_to(repo_root).as_posix() if build_file is not None else ""
        )
        projects.append(
            SourceProject(
                name=_guess_module_name(module_dir, build_file),
                relative_path=relative_path,
                root=module_dir,
                language="java",
            )
        )
    return sorted(projects, key=lambda p: p.relative_path)


def find_source_root(module_dir: Path) -> Path | None:
    """Find the Java source root directory."""
    src_main_java = module_dir / "src" / "main" / "java"
    if src_main_java.is_dir():
        return src_main_java
    return None


def iter_java_files(module_dir: Path):
    """Yield the module's main ``.java`` sources in sorted order."""
    root = find_source_root(module_dir)
    if root is None:
        return
    for path in sorted(root.rglob("*.java")):
        if any(part in _SKIP_DIRS for part in path.relative_to(root).parts):
            continue
        yield path


def _discover_maven_modules(project_dir: Path) -> list[str]:
    """Parse <modules> from root pom.xml."""
    pom_path = project_dir / "pom.xml"
    if not pom_path.exists():
        return []
    try:
        from jgo.maven import POM

        pom = POM(pom_path)
        return pom.values("modules/module")
    except ImportError:
        logger.debug("jgo not installed, cannot discover Maven modules")
        return []
    except (OSError, SyntaxError, ValueError, KeyError) as e:
        logger.debug("Could not parse pom.xml for modules: %s", e)
        return []


def _discover_gradle_subprojects(project_dir: Path) -> list[str]:
    """Parse include() from settings.gradle(.kts)."""
    for name in ("settings.gradle.kts", "settings.gradle"):
        settings_path = project_dir / name
        if settings_path.exists():
            try:
                text = settings_path.read_text()
                # Match include("subproject") or include 'subproject'
                # and include(":subproject") forms
                matches = re.findall(
                    r"""include\s*\(?\s*["':]+([^"')]+)["']\s*\)?""",
                    text,
                )
                return [m.lstrip(":").replace(":", "/") for m in matches]
            except OSError as e:
                logger.debug("Could not parse %s: %s", name, e)
    return []


def _guess_module_name(module_dir: Path, build_file: Path | None) -> str:
    """Project name from the POM artifactId, Gradle settings, or the directory name."""
    if build_file is not None and build_file.name == "pom.xml":
        try:
            from jgo.maven import POM

            pom = POM(build_file)
            if pom.artifactId:
                return pom.artifactId
        except (ImportError, OSError, SyntaxError, ValueError) as e:
            logger.debug("Could not read artifactId from %s: %s", build_file, e)

    for settings_name in ("settings.gradle.kts", "settings.gradle"):
        settings_path = module_dir / settings_name
        if settings_path.exists():
            try:
                content = settings_path.read_text(encoding="utf-8")
            except OSError:
                continue
            m = re.search(r'rootProject\.name\s*=\s*["\']([^"\']+)["\']', content)
            if m:
                return m.group(1)

    return module_dir.name
