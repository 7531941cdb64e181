"""Tests for the tree-sitter Java semantic provider."""

from __future__ import annotations

import logging

import pytest

pytest.importorskip("tree_sitter")
pytest.importorskip("tree_sitter_java")

from cdindex.extractors.callgraph import (  # noqa: E402
    CalleeEnumerator,
    GraphBuilder,
    MethodResolver,
)
from cdindex.extractors.callgraph.resolver import Resolution  # noqa: E402
from cdindex.semantic.java import find_java_projects  # noqa: E402
from cdindex.semantic.java.provider import JavaSemanticProvider  # noqa: E402
from conftest import write  # noqa: E402

ROOT = "com.example.RootClass"
HELPER = "com.example.Helper"


@pytest.fixture
def provider(java_repo):
    return JavaSemanticProvider(java_repo)


def graph_for(provider, root, *, max_depth=2, max_nodes=100, include_external=False):
    (project,) = provider.projects()
    resolved = MethodResolver(provider).resolve(project, root)
    assert resolved.found, root
    builder = GraphBuilder(
        CalleeEnumerator(provider, include_external=include_external),
        max_depth=max_depth,
        max_nodes=max_nodes,
    )
    return builder.build(resolved.method, resolved.method_id)


def edge_set(graph):
    return {(e.caller, e.callee) for e in graph.edges}


class TestProjectDiscovery:
    def test_gradle_root_project(self, java_repo):
        (project,) = find_java_projects(java_repo)
        assert project.name == "sample-java"
        assert project.relative_path == "build.gradle"
        assert project.language == "java"

    def test_gradle_subprojects(self, tmp_path):
        write(tmp_path, "settings.gradle", "include 'core'\ninclude(':app')\n")
        write(tmp_path, "build.gradle", "")
        write(tmp_path, "core/build.gradle", "")
        write(tmp_path, "app/build.gradle.kts", "")
        projects = find_java_projects(tmp_path)
        assert [(p.name, p.relative_path) for p in projects] == [
            ("app", "app/build.gradle.kts"),
            ("core", "core/build.gradle"),
        ]

    def test_maven_aggregator(self, tmp_path):
        write(tmp_path, "pom.xml", _AGGREGATOR_POM)
        write(tmp_path, "core/pom.xml", _module_pom("shapes-core"))
        write(tmp_path, "app/pom.xml", _module_pom("shapes-app"))
        write(tmp_path, "core/src/main/java/shapes/Core.java", "package shapes;\n")
        projects = find_java_projects(tmp_path)
        assert [(p.name, p.relative_path) for p in projects] == [
            ("shapes-app", "app/pom.xml"),
            ("shapes-core", "core/pom.xml"),
        ]
        assert [p.root for p in projects] == [tmp_path / "app", tmp_path / "core"]

    def test_maven_aggregator_with_own_sources(self, tmp_path):
        write(tmp_path, "pom.xml", _AGGREGATOR_POM)
        write(tmp_path, "core/pom.xml", _module_pom("shapes-core"))
        write(tmp_path, "app/pom.xml", _module_pom("shapes-app"))
        write(tmp_path, "src/main/java/shapes/Main.java", "package shapes;\n")
        projects = find_java_projects(tmp_path)
        assert [(p.name, p.relative_path) for p in projects] == [
            ("shapes-app", "app/pom.xml"),
            ("shapes-core", "core/pom.xml"),
            ("shapes-parent", "pom.xml"),
        ]

    def test_not_java(self, tmp_path):
        assert find_java_projects(tmp_path) == []


class TestDeclarations:
    def test_methods(self, provider):
        (project,) = provider.projects()
        symbols = {
            (s.type_name, s.name, s.param_count, s.is_constructor)
            for s in provider.declarations(project)
        }
        assert (ROOT, "a", 0, False) in symbols
        assert (ROOT, "over", 1, False) in symbols
        assert (ROOT, "over", 2, False) in symbols
        assert (HELPER, "make", 1, False) in symbols


class TestScenarios:
    def test_depth_two_graph(self, provider):
        graph = graph_for(provider, f"{ROOT}.a")
        assert not graph.truncated
        assert edge_set(graph) == {
            (f"{ROOT}.a(0)", f"{ROOT}.b(0)"),
            (f"{ROOT}.a(0)", f"{ROOT}.c(0)"),
            (f"{ROOT}.b(0)", f"{ROOT}.d(0)"),
        }

    def test_node_budget_truncates(self, provider):
        graph = graph_for(provider, f"{ROOT}.a", max_depth=5, max_nodes=2)
        assert graph.truncated

    def test_ambiguous_root(self, provider, caplog):
        (project,) = provider.projects()
        with caplog.at_level(logging.DEBUG, logger="cdindex"):
            resolved = MethodResolver(provider).resolve(project, f"{ROOT}.over")
        assert resolved.status is Resolution.AMBIGUOUS
        assert resolved.method_id == f"{ROOT}.over(1)"
        assert "CLG110 ambiguous-root" in caplog.text

    def test_arity_root(self, provider):
        graph = graph_for(provider, f"{ROOT}.over/2")
        assert graph.root == f"{ROOT}.over(2)"
        assert (f"{ROOT}.over(2)", f"{ROOT}.a(0)") in edge_set(graph)


class TestCallResolution:
    def test_fields_static_calls_and_implicit_constructor(self, provider):
        graph = graph_for(provider, f"{ROOT}.useHelper")
        assert edge_set(graph) == {
            (f"{ROOT}.useHelper(0)", f"{HELPER}.run(0)"),
            (f"{ROOT}.useHelper(0)", f"{HELPER}.make(1)"),
            (f"{HELPER}.run(0)", f"{HELPER}.step(0)"),
            (f"{HELPER}.make(1)", f"{HELPER}..ctor(0)"),
        }

    def test_library_call_on_imported_type(self, provider):
        graph = graph_for(provider, f"{ROOT}.useList", include_external=True)
        assert edge_set(graph) == {(f"{ROOT}.useList(1)", "java.util.List.get(1)")}

    def test_main_constructs_and_calls(self, provider):
        graph = graph_for(provider, f"{ROOT}.main", max_depth=1, include_external=True)
        edges = edge_set(graph)
        assert (f"{ROOT}.main(1)", f"{ROOT}..ctor(0)") in edges
        assert (f"{ROOT}.main(1)", f"{ROOT}.a(0)") in edges
        assert (f"{ROOT}.main(1)", "System.getenv(1)") in edges

    def test_inheritance_and_super(self, tmp_path):
        write(tmp_path, "pom.xml", _POM)
        write(
            tmp_path,
            "src/main/java/shapes/Shape.java",
            """
            package shapes;

            public abstract class Shape {
                protected final String name;

                protected Shape(String name) {
                    this.name = name;
                }

                public double area() {
                    return 0;
                }

                public String describe() {
                    return name + area();
                }
            }
            """,
        )
        write(
            tmp_path,
            "src/main/java/shapes/Square.java",
            """
            package shapes;

            public class Square extends Shape {
                private final double side;

                public Square(double side) {
                    super("square");
                    this.side = side;
                }

                @Override
                public double area() {
                    return super.area() + side * side;
                }

                public String label() {
                    return describe();
                }
            }
            """,
        )
        provider = JavaSemanticProvider(tmp_path)
        assert edge_set(graph_for(provider, "shapes.Square..ctor")) == {
            ("shapes.Square..ctor(1)", "shapes.Shape..ctor(1)")
        }
        assert edge_set(graph_for(provider, "shapes.Square.area")) == {
            ("shapes.Square.area(0)", "shapes.Shape.area(0)")
        }
        assert edge_set(graph_for(provider, "shapes.Square.label", max_depth=1)) == {
            ("shapes.Square.label(0)", "shapes.Shape.describe(0)")
        }


class TestSupplementaryQueries:
    def test_entrypoints(self, provider):
        (project,) = provider.projects()
        (entry,) = provider.entrypoints(project)
        assert entry.file == "src/main/java/com/example/RootClass.java"
        assert entry.type_name == ROOT
        assert entry.kind == "main-method"

    def test_env_lookups(self, provider):
        (project,) = provider.projects()
        assert list(provider.env_lookups(project)) == ["JAVA_HOME_DIR"]

    def test_string_literals(self, provider):
        (project,) = provider.projects()
        assert "JAVA_HOME_DIR" in set(provider.string_literals(project))

    def test_picocli_commands(self, tmp_path):
        write(tmp_path, "pom.xml", _POM)
        write(
            tmp_path,
            "src/main/java/shapes/cli/ServeCommand.java",
            """
            package shapes.cli;

            import java.io.File;
            import picocli.CommandLine.Command;
            import picocli.CommandLine.Option;
            import picocli.CommandLine.Parameters;

            @Command(name = "serve", aliases = {"s"}, mixinStandardHelpOptions = true)
            public class ServeCommand implements Runnable {
                @Option(names = {"--port", "-p"}, description = "Port")
                private int port;

                @Parameters(paramLabel = "FILE")
                private File root;

                @Parameters(index = "1")
                private String mode;

                public void run() {
                }

                @picocli.CommandLine.Command(name = "check")
                static class Check {
                    @Option(names = "--strict")
                    boolean strict;
                }
            }
            """,
        )
        write(
            tmp_path,
            "src/main/java/shapes/cli/Plain.java",
            "package shapes.cli;\n\n@Deprecated\npublic class Plain {\n}\n",
        )
        provider = JavaSemanticProvider(tmp_path)
        (project,) = provider.projects()
        found = {
            (c.name, tuple(c.aliases), tuple(c.options), tuple(c.arguments), c.line)
            for c in provider.commands(project)
        }
        assert found == {
            ("serve", ("s",), ("--port",), ("FILE", "mode"), 8),
            ("check", (), ("--strict",), (), 22),
        }
        assert {c.file for c in provider.commands(project)} == {
            "src/main/java/shapes/cli/ServeCommand.java"
        }


_POM = """
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.example</groupId>
  <artifactId>shapes</artifactId>
  <version>1.0</version>
</project>
"""

_AGGREGATOR_POM = """
<project>
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.example</groupId>
  <artifactId>shapes-parent</artifactId>
  <version>1.0</version>
  <packaging>pom</packaging>
  <modules>
    <module>core</module>
    <module>app</module>
  </modules>
</project>
"""


def _module_pom(artifact_id: str) -> str:
    return f"""
<project>
  <modelVersion>4.0.0</modelVersion>
  <parent>
    <groupId>org.example</groupId>
    <artifactId>shapes-parent</artifactId>
    <version>1.0</version>
  </parent>
  <artifactId>{artifact_id}</artifactId>
</project>
"""
