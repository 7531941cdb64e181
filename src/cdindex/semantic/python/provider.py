"""Semantic provider for Python codebases, built on the ``ast`` module."""

from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Iterator

from cdindex.model import CliCommand, Entrypoint
from cdindex.semantic.base import CallSite, MethodSymbol, SourceProject
from cdindex.semantic.python import find_python_projects, iter_source_files
from cdindex.semantic.python.commands import find_commands
from cdindex.semantic.python.index import (
    FunctionInfo,
    ModuleInfo,
    dotted_name,
    parse_module,
)
from cdindex.semantic.python.resolver import PythonCallResolver, is_super_call

logger = logging.getLogger(__name__)

_ENV_ACCESSORS = {
    "os.getenv",
    "os.environ.get",
    "os.environ.setdefault",
    "os.environ.pop",
}


class PythonSemanticProvider:
    """Answer declaration and call-resolution queries for Python projects."""

    language = "python"

    def __init__(self, repo_root: Path):
        self._repo_root = repo_root.resolve()
        self._projects: list[SourceProject] | None = None
        self._by_project: dict[SourceProject, list[ModuleInfo]] = {}
        self._resolver: PythonCallResolver | None = None

    def can_handle(self) -> bool:
        return bool(self.projects())

    def projects(self) -> list[SourceProject]:
        if self._projects is None:
            self._projects = find_python_projects(self._repo_root)
            logger.debug(
                "Python projects: %s", [p.relative_path or "." for p in self._projects]
            )
        return self._projects

    # -- declarations --------------------------------------------------------

    def declarations(self, project: SourceProject) -> Iterator[MethodSymbol]:
        for module in self._project_modules(project):
            for info in module.declarations:
                # An overloaded function is declared by its @overload signatures.
                if not info.has_overloads:
                    yield info.symbol

    def call_sites(self, method: MethodSymbol) -> Iterator[CallSite]:
        info = method.handle
        if not isinstance(info, FunctionInfo):
            return
        if info.implementation is not None:
            info = info.implementation
        if info.node is None:
            return
        collector = _CallCollector()
        for stmt in info.node.body:
            collector.visit(stmt)
        for call in collector.calls:
            yield CallSite(
                text=ast.unparse(call.func),
                arg_count=len(call.args) + len(call.keywords),
                line=call.lineno,
                handle=(info, call),
            )

    def resolve_call(self, call: CallSite) -> MethodSymbol | None:
        caller, node = call.handle
        return self._load().resolve(caller, node)

    # -- supplementary queries ----------------------------------------------

    def entrypoints(self, project: SourceProject) -> list[Entrypoint]:
        found: list[Entrypoint] = []
        for module in self._project_modules(project):
            if module.path.name == "__main__.py":
                found.append(Entrypoint(module.rel_path, 1, module.name, "main-module"))
            for stmt in module.tree.body:
                if isinstance(stmt, ast.If) and _is_main_guard(stmt.test):
                    found.append(
                        Entrypoint(module.rel_path, stmt.lineno, module.name, "main-guard")
                    )
        return found

    def commands(self, project: SourceProject) -> list[CliCommand]:
        found: list[CliCommand] = []
        for module in self._project_modules(project):
            found.extend(find_commands(module))
        return found

    def env_lookups(self, project: SourceProject) -> Iterator[str]:
        resolver = self._load()
        for module in self._project_modules(project):
            for node in ast.walk(module.tree):
                if isinstance(node, ast.Call) and node.args:
                    dotted = dotted_name(node.func)
                    if dotted is None:
                        continue
                    if resolver.qualify(module, dotted) in _ENV_ACCESSORS:
                        key = _string_value(node.args[0])
                        if key:
                            yield key
                elif isinstance(node, ast.Subscript):
                    dotted = dotted_name(node.value)
                    if dotted is None:
                        continue
                    if resolver.qualify(module, dotted) == "os.environ":
                        key = _string_value(node.slice)
                        if key:
                            yield key

    def string_literals(self, project: SourceProject) -> Iterator[str]:
        for module in self._project_modules(project):
            for node in ast.walk(module.tree):
                value = _string_value(node)
                if value is not None:
                    yield value

    # -- loading -------------------------------------------------------------

    def _project_modules(self, project: SourceProject) -> list[ModuleInfo]:
        self._load()
        return self._by_project.get(project, [])

    def _load(self) -> PythonCallResolver:
        if self._resolver is not None:
            return self._resolver
        modules: dict[str, ModuleInfo] = {}
        for project in self.projects():
            loaded: list[ModuleInfo] = []
            for path, module_name in iter_source_files(project.root):
                rel_path = path.relative_to(self._repo_root).as_posix()
                module = parse_module(path, module_name, rel_path, project)
                if module is None:
                    continue
                loaded.append(module)
                if module_name in modules:
                    logger.debug(
                        "Module %s defined twice; keeping %s",
                        module_name,
                        modules[module_name].rel_path,
                    )
                    continue
                modules[module_name] = module
            self._by_project[project] = loaded
            logger.debug("Python AST: %s, %d modules", project.name, len(loaded))
        self._resolver = PythonCallResolver(modules)
        return self._resolver


class _CallCollector(ast.NodeVisitor):
    """Collect call expressions in source (pre-)order."""

    def __init__(self) -> None:
        self.calls: list[ast.Call] = []

    def visit_Call(self, node: ast.Call) -> None:
        self.calls.append(node)
        if isinstance(node.func, ast.Attribute) and is_super_call(node.func.value):
            # super() only picks where the lookup starts.
            for child in [*node.args, *node.keywords]:
                self.visit(child)
            return
        self.generic_visit(node)


def _is_main_guard(test: ast.expr) -> bool:
    if not isinstance(test, ast.Compare) or len(test.ops) != 1:
        return False
    if not isinstance(test.ops[0], ast.Eq):
        return False
    sides = [test.left, test.comparators[0]]
    has_name = any(isinstance(s, ast.Name) and s.id == "__name__" for s in sides)
    has_main = any(_string_value(s) == "__main__" for s in sides)
    return has_name and has_main


def _string_value(node: ast.AST) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None
