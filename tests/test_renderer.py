"""Tests for deterministic JSON rendering."""

from __future__ import annotations

import io
import json

from cdindex.model import (
    CallEdge,
    Callgraph,
    CliCommand,
    ConfigSection,
    Entrypoint,
    EntrypointsSection,
    FileEntry,
    Meta,
    ProjectCallgraphs,
    ProjectIndex,
    ProjectRef,
    ProjectSection,
)
from cdindex.renderer.json import index_to_dict, render_json, write_json


def sample_index(shuffled=False):
    edges = (CallEdge("T.a(0)", "T.c(0)"), CallEdge("T.a(0)", "T.b(0)"))
    graphs = [Callgraph("T.z(0)", 2, False), Callgraph("T.a(0)", 2, True, edges)]
    callgraphs = [
        ProjectCallgraphs(ProjectRef("zeta", "zeta/pom.xml"), graphs),
        ProjectCallgraphs(ProjectRef("alpha", "pyproject.toml"), []),
    ]
    files = [FileEntry("b.py", "py", 1, "00"), FileEntry("A.py", "py", 2, "11")]
    if not shuffled:
        callgraphs.reverse()
        files.reverse()
    return ProjectIndex(
        meta=Meta("0.1.0", "1.2", "2024-01-01T00:00:00Z"),
        projects=[ProjectSection("zeta", "zeta/pom.xml", "java")],
        tree=files,
        entrypoints=[
            EntrypointsSection(
                ProjectRef("zeta", "zeta/pom.xml"),
                [
                    Entrypoint("Main.java", 9, "app.Main", "main-method"),
                    Entrypoint("Cli.java", 3, None, "main-method"),
                ],
            )
        ],
        configs=ConfigSection(["B_KEY", "A_KEY"]),
        callgraphs=callgraphs,
    )


class TestIndexToDict:
    def test_camel_case_and_meta(self):
        data = index_to_dict(sample_index())
        assert list(data) == [
            "meta",
            "projects",
            "tree",
            "entrypoints",
            "configs",
            "callgraphs",
        ]
        assert data["meta"] == {
            "version": "0.1.0",
            "schemaVersion": "1.2",
            "generatedAt": "2024-01-01T00:00:00Z",
            "sections": ["callgraphs", "configs", "entrypoints", "projects", "tree"],
        }
        assert data["configs"] == {"envKeys": ["A_KEY", "B_KEY"]}
        # Projects without graphs are dropped.
        assert [p["project"] for p in data["callgraphs"]] == [
            {"name": "zeta", "relativePath": "zeta/pom.xml"}
        ]

    def test_reorders_everything(self):
        data = index_to_dict(sample_index(shuffled=True))
        assert [f["path"] for f in data["tree"]] == ["A.py", "b.py"]
        assert [e["file"] for e in data["entrypoints"][0]["entrypoints"]] == [
            "Cli.java",
            "Main.java",
        ]
        zeta = data["callgraphs"][0]
        assert [g["root"] for g in zeta["graphs"]] == ["T.a(0)", "T.z(0)"]
        assert zeta["graphs"][0]["edges"] == [
            {"caller": "T.a(0)", "callee": "T.b(0)"},
            {"caller": "T.a(0)", "callee": "T.c(0)"},
        ]
        assert zeta["graphs"][0]["truncated"] is True
        assert zeta["graphs"][0]["depth"] == 2

    def test_optional_fields_omitted(self):
        data = index_to_dict(sample_index())
        cli = data["entrypoints"][0]["entrypoints"][0]
        assert "typeName" not in cli

    def test_commands(self):
        index = ProjectIndex(
            meta=Meta("0.1.0", "1.2", "t"),
            commands=[
                CliCommand(
                    "serve", ["s", "run"], ["--port", "--host"], ["root"], "b.py", 3
                ),
                CliCommand("build", [], [], [], "a.py", 9),
            ],
        )
        data = index_to_dict(index)
        assert data["meta"]["sections"] == ["commands"]
        assert data["commands"] == [
            {
                "name": "build",
                "aliases": [],
                "options": [],
                "arguments": [],
                "file": "a.py",
                "line": 9,
            },
            {
                "name": "serve",
                "aliases": ["run", "s"],
                "options": ["--host", "--port"],
                "arguments": ["root"],
                "file": "b.py",
                "line": 3,
            },
        ]

    def test_empty_sections_omitted(self):
        index = ProjectIndex(meta=Meta("0.1.0", "1.2", "t"), tree=[])
        data = index_to_dict(index)
        assert list(data) == ["meta"]
        assert data["meta"]["sections"] == []


class TestRenderJson:
    def test_byte_stable(self):
        assert render_json(sample_index()) == render_json(sample_index(shuffled=True))

    def test_pretty_and_compact(self):
        pretty = render_json(sample_index())
        compact = render_json(sample_index(), compact=True)
        assert pretty.endswith("\n") and compact.endswith("\n")
        assert pretty.startswith('{\n  "meta"')
        assert "\n" not in compact.rstrip("\n")
        assert json.loads(pretty) == json.loads(compact)

    def test_write_to_stream_and_file(self, tmp_path):
        stream = io.StringIO()
        write_json(sample_index(), stream=stream)
        out = tmp_path / "nested" / "index.json"
        write_json(sample_index(), out)
        assert out.read_text(encoding="utf-8") == stream.getvalue()
