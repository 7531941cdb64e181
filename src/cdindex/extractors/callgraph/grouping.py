"""Group per-root call graphs by project and fix their final order."""

from __future__ import annotations

from typing import Iterable, Mapping

from cdindex.model import Callgraph, ProjectCallgraphs, ProjectRef


def group_callgraphs(
    graphs: Mapping[ProjectRef, Iterable[Callgraph]],
) -> list[ProjectCallgraphs]:
    """Return one entry per project with at least one graph.

    Graphs are ordered by root id and projects by name (ties broken by
    relative path), all by ordinal string comparison.
    """
    grouped = []
    for project, project_graphs in graphs.items():
        ordered = sorted(project_graphs, key=lambda g: g.root)
        if ordered:
            grouped.append(ProjectCallgraphs(project=project, graphs=ordered))
    grouped.sort(key=lambda p: (p.project.name, p.project.relative_path))
    return grouped
