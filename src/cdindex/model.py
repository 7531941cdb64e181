"""Language-agnostic data model for the emitted project index."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProjectRef:
    """Reference to a project (Python distribution, Maven module, ...)."""

    name: str
    relative_path: str


@dataclass
class ProjectSection:
    name: str
    path: str
    language: str | None = None


@dataclass
class FileEntry:
    """A scanned file in the repository tree."""

    path: str
    kind: str
    loc: int
    sha256: str


@dataclass
class Entrypoint:
    file: str
    line: int
    type_name: str | None
    kind: str  # "main-guard", "main-module", "main-method"


@dataclass
class EntrypointsSection:
    project: ProjectRef
    entrypoints: list[Entrypoint] = field(default_factory=list)


@dataclass
class CliCommand:
    """A command-line (sub)command declared in source."""

    name: str
    aliases: list[str]
    options: list[str]
    arguments: list[str]
    file: str
    line: int


@dataclass
class ConfigSection:
    env_keys: list[str] = field(default_factory=list)


@dataclass(frozen=True, order=True)
class CallEdge:
    """A directed caller -> callee edge between canonical method ids."""

    caller: str
    callee: str


@dataclass(frozen=True)
class Callgraph:
    """Static call graph explored from a single root method."""

    root: str
    depth: int
    truncated: bool
    edges: tuple[CallEdge, ...] = ()


@dataclass
class ProjectCallgraphs:
    project: ProjectRef
    graphs: list[Callgraph] = field(default_factory=list)


@dataclass
class Meta:
    version: str
    schema_version: str
    generated_at: str
    sections: list[str] = field(default_factory=list)


@dataclass
class ProjectIndex:
    """Complete index produced by a scan."""

    meta: Meta
    projects: list[ProjectSection] = field(default_factory=list)
    tree: list[FileEntry] | None = None
    entrypoints: list[EntrypointsSection] | None = None
    commands: list[CliCommand] | None = None
    configs: ConfigSection | None = None
    callgraphs: list[ProjectCallgraphs] | None = None
