"""Semantic provider protocol: the boundary between parsers and extractors.

A provider owns all source parsing for one language.  Extractors only ever
see projects, method symbols and call sites, and ask the provider to resolve
a call site to a declared method.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Protocol

from cdindex.errors import ProviderError
from cdindex.model import CliCommand, Entrypoint, ProjectRef

__all__ = [
    "CallSite",
    "MethodSymbol",
    "ProviderError",
    "SemanticProvider",
    "SourceProject",
]


@dataclass(frozen=True)
class SourceProject:
    """A unit of source code (Python distribution, Maven module, ...)."""

    name: str
    relative_path: str
    root: Path = field(compare=False)
    language: str = "unknown"

    @property
    def ref(self) -> ProjectRef:
        return ProjectRef(self.name, self.relative_path)


@dataclass(frozen=True)
class MethodSymbol:
    """A declared method or constructor, as seen from outside the provider.

    ``handle`` is private to the provider that produced the symbol; it is
    excluded from equality so two symbols with the same structure compare
    equal regardless of where they were found.
    """

    type_name: str
    name: str
    param_count: int
    is_constructor: bool = False
    in_source: bool = True
    file: str | None = field(default=None, compare=False)
    line: int | None = field(default=None, compare=False)
    handle: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CallSite:
    """A call expression inside a method body.

    ``text`` is the literal source of the call target (without arguments),
    used as a best-effort label when the provider cannot resolve the call.
    """

    text: str
    arg_count: int
    line: int | None = None
    handle: Any = field(default=None, compare=False, repr=False)


class SemanticProvider(Protocol):
    """Protocol for language-specific semantic indexes."""

    language: str

    def projects(self) -> list[SourceProject]:
        """Return the projects found in the repository, in a stable order."""
        ...

    def declarations(self, project: SourceProject) -> Iterable[MethodSymbol]:
        """Yield every method and constructor declared in *project*."""
        ...

    def call_sites(self, method: MethodSymbol) -> Iterable[CallSite]:
        """Yield call expressions in the body of *method*, in source order."""
        ...

    def resolve_call(self, call: CallSite) -> MethodSymbol | None:
        """Resolve *call* to a declared method, or None when binding fails."""
        ...

    def entrypoints(self, project: SourceProject) -> list[Entrypoint]:
        ...

    def commands(self, project: SourceProject) -> list[CliCommand]:
        """Return the command-line commands declared in *project*."""
        ...

    def env_lookups(self, project: SourceProject) -> Iterable[str]:
        """Yield keys passed as literals to environment-variable accessors."""
        ...

    def string_literals(self, project: SourceProject) -> Iterable[str]:
        ...
