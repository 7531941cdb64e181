"""Static call graph extraction.

For every requested root and every project, the root spec is resolved with
:class:`MethodResolver`; resolved roots are explored with
:class:`GraphBuilder` and the graphs are grouped per project.
"""

from __future__ import annotations

import logging

from cdindex.extractors.base import ScanContext
from cdindex.extractors.callgraph.builder import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_NODES,
    GraphBuilder,
)
from cdindex.extractors.callgraph.callees import Callee, CalleeEnumerator
from cdindex.extractors.callgraph.grouping import group_callgraphs
from cdindex.extractors.callgraph.ids import format_method_id, strip_generics
from cdindex.extractors.callgraph.resolver import (
    MethodResolver,
    Resolution,
    ResolvedRoot,
    RootSpec,
)
from cdindex.model import Callgraph, ProjectIndex, ProjectRef

__all__ = [
    "Callee",
    "CalleeEnumerator",
    "CallgraphExtractor",
    "GraphBuilder",
    "MethodResolver",
    "Resolution",
    "ResolvedRoot",
    "RootSpec",
    "format_method_id",
    "group_callgraphs",
    "strip_generics",
]

logger = logging.getLogger(__name__)


class CallgraphExtractor:
    """Build one call graph per (project, resolved root)."""

    section = "callgraphs"

    def __init__(
        self,
        roots: list[str],
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_nodes: int = DEFAULT_MAX_NODES,
        include_external: bool = False,
    ):
        self.roots = list(roots)
        self.max_depth = max_depth
        self.max_nodes = max_nodes
        self.include_external = include_external

    def extract(self, context: ScanContext, index: ProjectIndex) -> None:
        if not self.roots:
            return

        specs = []
        for text in self.roots:
            spec = RootSpec.parse(text)
            if spec is None:
                logger.debug("CLG120 invalid-root %s", text)
            else:
                specs.append(spec)

        graphs: dict[ProjectRef, list[Callgraph]] = {}
        for provider in context.providers:
            resolver = MethodResolver(provider)
            builder = GraphBuilder(
                CalleeEnumerator(provider, include_external=self.include_external),
                max_depth=self.max_depth,
                max_nodes=self.max_nodes,
            )
            for project in provider.projects():
                for spec in specs:
                    resolved = resolver.resolve(project, spec)
                    if not resolved.found:
                        continue
                    logger.debug(
                        "Root %s at %s:%s",
                        resolved.method_id,
                        resolved.method.file,
                        resolved.method.line,
                    )
                    graph = builder.build(resolved.method, resolved.method_id)
                    if graph.truncated:
                        logger.debug(
                            "CLG200 truncated %s %s", project.name, spec.text
                        )
                    graphs.setdefault(project.ref, []).append(graph)

        grouped = group_callgraphs(graphs)
        logger.debug(
            "Call graphs: %d across %d project(s)",
            sum(len(p.graphs) for p in grouped),
            len(grouped),
        )
        index.callgraphs = grouped or None
