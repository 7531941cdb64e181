"""Semantic provider for Java codebases, built on tree-sitter."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from cdindex.errors import ProviderError
from cdindex.model import CliCommand, Entrypoint
from cdindex.semantic.base import CallSite, MethodSymbol, SourceProject
from cdindex.semantic.java import find_java_projects, iter_java_files
from cdindex.semantic.java.commands import find_commands
from cdindex.semantic.java.index import (
    CompilationUnit,
    JavaMethod,
    JavaType,
    node_text,
    parse_unit,
)
from cdindex.semantic.java.resolver import (
    JavaCallResolver,
    argument_count,
    call_text,
    walk_calls,
)

logger = logging.getLogger(__name__)


def _string_literal_value(node) -> str | None:
    text = node_text(node)
    if text.startswith('"""') or len(text) < 2:
        return None
    return text[1:-1]


class JavaSemanticProvider:
    """Answer declaration and call-resolution queries for Java projects."""

    language = "java"

    def __init__(self, repo_root: Path):
        self._repo_root = repo_root.resolve()
        self._projects: list[SourceProject] | None = None
        self._units: dict[SourceProject, list[CompilationUnit]] = {}
        self._resolver: JavaCallResolver | None = None

    def can_handle(self) -> bool:
        if not self.projects():
            return False
        try:
            import tree_sitter  # noqa: F401
            import tree_sitter_java  # noqa: F401
        except ImportError:
            logger.warning(
                "tree-sitter / tree-sitter-java not installed, "
                "skipping Java sources. "
                "Install with: pip install cd-index[java]"
            )
            return False
        return True

    def projects(self) -> list[SourceProject]:
        if self._projects is None:
            self._projects = find_java_projects(self._repo_root)
        return self._projects

    def declarations(self, project: SourceProject) -> Iterator[MethodSymbol]:
        for unit in self._project_units(project):
            for method in unit.declarations:
                yield method.symbol

    def call_sites(self, method: MethodSymbol) -> Iterator[CallSite]:
        java_method = method.handle
        if not isinstance(java_method, JavaMethod) or java_method.node is None:
            return
        body = java_method.node.child_by_field_name("body")
        if body is None:
            return
        source = java_method.owner.unit.source
        for node in walk_calls(body):
            yield CallSite(
                text=call_text(node, source),
                arg_count=argument_count(node),
                line=node.start_point[0] + 1,
                handle=(java_method, node),
            )

    def resolve_call(self, call: CallSite) -> MethodSymbol | None:
        caller, node = call.handle
        return self._load().resolve(caller, node)

    def entrypoints(self, project: SourceProject) -> list[Entrypoint]:
        found = []
        for unit in self._project_units(project):
            for method in unit.declarations:
                if (
                    method.name == "main"
                    and method.is_static
                    and method.param_types
                    and len(method.param_types) == 1
                    and method.param_types[0].replace(" ", "") in ("String[]", "String...")
                ):
                    found.append(
                        Entrypoint(
                            unit.rel_path,
                            method.node.start_point[0] + 1,
                            method.owner.full_name,
                            "main-method",
                        )
                    )
        return found

    def commands(self, project: SourceProject) -> list[CliCommand]:
        found: list[CliCommand] = []
        for unit in self._project_units(project):
            found.extend(find_commands(unit))
        return found

    def env_lookups(self, project: SourceProject) -> Iterator[str]:
        for unit in self._project_units(project):
            for node in walk_calls(unit.tree.root_node):
                if node.type != "method_invocation":
                    continue
                obj = node.child_by_field_name("object")
                name = node.child_by_field_name("name")
                if obj is None or name is None:
                    continue
                if node_text(obj) not in ("System", "java.lang.System"):
                    continue
                if node_text(name) != "getenv":
                    continue
                arguments = node.child_by_field_name("arguments")
                if arguments is None or not arguments.named_children:
                    continue
                first = arguments.named_children[0]
                if first.type == "string_literal":
                    value = _string_literal_value(first)
                    if value:
                        yield value

    def string_literals(self, project: SourceProject) -> Iterator[str]:
        for unit in self._project_units(project):
            stack = [unit.tree.root_node]
            while stack:
                node = stack.pop()
                if node.type == "string_literal":
                    value = _string_literal_value(node)
                    if value is not None:
                        yield value
                    continue
                stack.extend(reversed(node.children))

    # -- loading -------------------------------------------------------------

    def _project_units(self, project: SourceProject) -> list[CompilationUnit]:
        self._load()
        return self._units.get(project, [])

    def _load(self) -> JavaCallResolver:
        if self._resolver is not None:
            return self._resolver
        try:
            import tree_sitter_java as tsjava
            from tree_sitter import Language, Parser
        except ImportError as e:
            raise ProviderError(f"tree-sitter-java is not available: {e}") from e

        language = Language(tsjava.language())
        parser = Parser(language)

        units: dict[SourceProject, list[CompilationUnit]] = {}
        types: dict[str, JavaType] = {}
        for project in self.projects():
            loaded = []
            for path in iter_java_files(project.root):
                rel_path = path.relative_to(self._repo_root).as_posix()
                unit = parse_unit(parser, path, rel_path, project)
                if unit is None:
                    continue
                loaded.append(unit)
                for java_type in unit.types.values():
                    _register(types, java_type)
            units[project] = loaded
            logger.debug(
                "Java AST: %s, %d files, %d declarations",
                project.name,
                len(loaded),
                sum(len(u.declarations) for u in loaded),
            )
        self._units = units
        self._resolver = JavaCallResolver(types)
        return self._resolver


def _register(types: dict[str, JavaType], java_type: JavaType) -> None:
    types.setdefault(java_type.full_name, java_type)
    for nested in java_type.nested.values():
        _register(types, nested)
