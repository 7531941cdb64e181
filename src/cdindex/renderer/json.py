"""Render a ProjectIndex to deterministic JSON."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TextIO

from cdindex.model import (
    Callgraph,
    CliCommand,
    Entrypoint,
    EntrypointsSection,
    ProjectCallgraphs,
    ProjectIndex,
    ProjectRef,
    ProjectSection,
)


def _project_ref(ref: ProjectRef) -> dict:
    return {"name": ref.name, "relativePath": ref.relative_path}


def _project_to_dict(project: ProjectSection) -> dict:
    d: dict = {"name": project.name, "path": project.path}
    if project.language:
        d["language"] = project.language
    return d


def _entrypoint_to_dict(ep: Entrypoint) -> dict:
    d: dict = {"file": ep.file, "line": ep.line, "kind": ep.kind}
    if ep.type_name is not None:
        d["typeName"] = ep.type_name
    return d


def _entrypoints_to_dict(section: EntrypointsSection) -> dict:
    entries = sorted(section.entrypoints, key=lambda e: (e.file, e.line))
    return {
        "project": _project_ref(section.project),
        "entrypoints": [_entrypoint_to_dict(e) for e in entries],
    }


def _command_to_dict(command: CliCommand) -> dict:
    return {
        "name": command.name,
        "aliases": sorted(command.aliases),
        "options": sorted(command.options),
        "arguments": sorted(command.arguments),
        "file": command.file,
        "line": command.line,
    }


def _callgraph_to_dict(graph: Callgraph) -> dict:
    return {
        "root": graph.root,
        "depth": graph.depth,
        "truncated": graph.truncated,
        "edges": [
            {"caller": e.caller, "callee": e.callee} for e in sorted(graph.edges)
        ],
    }


def _project_callgraphs_to_dict(project: ProjectCallgraphs) -> dict:
    graphs = sorted(project.graphs, key=lambda g: g.root)
    return {
        "project": _project_ref(project.project),
        "graphs": [_callgraph_to_dict(g) for g in graphs],
    }


def index_to_dict(index: ProjectIndex) -> dict:
    """Convert *index* to plain JSON data, re-applying every ordering rule."""
    sections: dict = {}

    if index.projects:
        projects = sorted(index.projects, key=lambda p: (p.name, p.path))
        sections["projects"] = [_project_to_dict(p) for p in projects]
    if index.tree:
        files = sorted(index.tree, key=lambda f: (f.path.lower(), f.path))
        sections["tree"] = [
            {"path": f.path, "kind": f.kind, "loc": f.loc, "sha256": f.sha256}
            for f in files
        ]
    if index.entrypoints:
        ordered = sorted(
            index.entrypoints,
            key=lambda s: (s.project.name, s.project.relative_path),
        )
        sections["entrypoints"] = [_entrypoints_to_dict(s) for s in ordered]
    if index.commands:
        commands = sorted(index.commands, key=lambda c: (c.name, c.file, c.line))
        sections["commands"] = [_command_to_dict(c) for c in commands]
    if index.configs and index.configs.env_keys:
        sections["configs"] = {"envKeys": sorted(set(index.configs.env_keys))}
    with_graphs = [p for p in index.callgraphs or [] if p.graphs]
    if with_graphs:
        with_graphs.sort(key=lambda p: (p.project.name, p.project.relative_path))
        sections["callgraphs"] = [_project_callgraphs_to_dict(p) for p in with_graphs]

    meta = {
        "version": index.meta.version,
        "schemaVersion": index.meta.schema_version,
        "generatedAt": index.meta.generated_at,
        "sections": sorted(sections),
    }
    return {"meta": meta, **sections}


def render_json(index: ProjectIndex, *, compact: bool = False) -> str:
    data = index_to_dict(index)
    if compact:
        text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    else:
        text = json.dumps(data, ensure_ascii=False, indent=2)
    return text + "\n"


def write_json(
    index: ProjectIndex,
    output: Path | None = None,
    *,
    compact: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Write *index* to *output*, or to *stream* (stdout by default)."""
    text = render_json(index, compact=compact)
    if output is None:
        (stream or sys.stdout).write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8", newline="\n")
