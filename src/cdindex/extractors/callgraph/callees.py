"""Enumerate and classify the callees of a method."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from cdindex.extractors.callgraph.ids import format_method_id
from cdindex.semantic.base import MethodSymbol, SemanticProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Callee:
    """A call target.  Only in-codebase callees carry a method to explore."""

    id: str
    method: MethodSymbol | None = None

    @property
    def explorable(self) -> bool:
        return self.method is not None


class CalleeEnumerator:
    """Ask a provider for call sites and classify what each one resolves to.

    In-codebase targets are explorable.  External targets, and calls the
    provider cannot bind at all (labelled by their source text), are leaves
    and are only reported when *include_external* is set.
    """

    def __init__(self, provider: SemanticProvider, *, include_external: bool = False):
        self._provider = provider
        self._include_external = include_external

    def callees(self, method: MethodSymbol) -> Iterator[Callee]:
        for call in self._provider.call_sites(method):
            target = self._provider.resolve_call(call)
            if target is None:
                logger.debug(
                    "Unresolved call %s/%d at %s:%s",
                    call.text,
                    call.arg_count,
                    method.file,
                    call.line,
                )
                if self._include_external:
                    text = call.text.strip()
                    if text:
                        yield Callee(text)
                continue
            if target.in_source:
                yield Callee(format_method_id(target), target)
            elif self._include_external:
                yield Callee(format_method_id(target))
