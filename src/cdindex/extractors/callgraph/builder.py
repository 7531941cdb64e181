"""Bounded breadth-first exploration of the static call graph."""

from __future__ import annotations

from collections import deque

from cdindex.extractors.callgraph.callees import CalleeEnumerator
from cdindex.extractors.callgraph.ids import format_method_id
from cdindex.model import CallEdge, Callgraph
from cdindex.semantic.base import MethodSymbol

DEFAULT_MAX_DEPTH = 2
DEFAULT_MAX_NODES = 200


class GraphBuilder:
    """Explore outward from a root, bounded by depth and by node count.

    Only nodes at BFS distance ``< max_depth`` are expanded, but every edge
    they produce is recorded, so nodes at exactly ``max_depth`` still show up
    as edge targets.  ``max_nodes`` caps the number of distinct in-codebase
    methods (the root included); external leaves never count against it.
    Once the cap would be exceeded the graph is marked truncated and
    exploration stops for good.

    All traversal state lives in :meth:`build`, so one builder may be shared
    by independent roots.
    """

    def __init__(
        self,
        enumerator: CalleeEnumerator,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_nodes: int = DEFAULT_MAX_NODES,
    ):
        self._enumerator = enumerator
        self.max_depth = max_depth
        self.max_nodes = max_nodes

    def build(self, root: MethodSymbol, root_id: str | None = None) -> Callgraph:
        root_id = root_id or format_method_id(root)
        edges: set[CallEdge] = set()
        visited = {root_id}
        queue: deque[tuple[MethodSymbol, str, int]] = deque([(root, root_id, 0)])
        truncated = False

        while queue and not truncated:
            current, current_id, depth = queue.popleft()
            if depth >= self.max_depth:
                continue

            for callee in self._enumerator.callees(current):
                edges.add(CallEdge(current_id, callee.id))
                if not callee.explorable or callee.id in visited:
                    continue
                if len(visited) >= self.max_nodes:
                    truncated = True
                    break
                visited.add(callee.id)
                if depth + 1 < self.max_depth:
                    queue.append((callee.method, callee.id, depth + 1))

        return Callgraph(
            root=root_id,
            depth=self.max_depth,
            truncated=truncated,
            edges=tuple(sorted(edges)),
        )
