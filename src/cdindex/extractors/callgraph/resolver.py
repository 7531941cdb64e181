"""Resolve root specifications such as ``pkg.Type.method/2`` to declarations."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass

from cdindex.extractors.callgraph.ids import CONSTRUCTOR_NAME, format_method_id
from cdindex.semantic.base import MethodSymbol, SemanticProvider, SourceProject

logger = logging.getLogger(__name__)

GLOBAL_PREFIX = "global::"

_ARITY_RE = re.compile(r"^(?P<spec>.+)/(?P<arity>\d+)$")


@dataclass(frozen=True)
class RootSpec:
    """A parsed root specification."""

    text: str
    type_part: str
    member_part: str
    explicit_arity: int | None = None

    @property
    def is_constructor(self) -> bool:
        return self.member_part == CONSTRUCTOR_NAME

    @classmethod
    def parse(cls, text: str) -> RootSpec | None:
        """Parse *text*, returning None when it has no type/member separator."""
        spec = text.strip()
        arity = None
        m = _ARITY_RE.match(spec)
        if m:
            spec = m.group("spec")
            arity = int(m.group("arity"))

        if spec.endswith("." + CONSTRUCTOR_NAME):
            type_part = spec[: -len(CONSTRUCTOR_NAME) - 1]
            member_part = CONSTRUCTOR_NAME
        else:
            type_part, dot, member_part = spec.rpartition(".")
            if not dot:
                return None
        if type_part.startswith(GLOBAL_PREFIX):
            type_part = type_part[len(GLOBAL_PREFIX) :]
        if not type_part or not member_part:
            return None
        return cls(text, type_part, member_part, arity)

    def matches(self, method: MethodSymbol) -> bool:
        if method.type_name not in (self.type_part, GLOBAL_PREFIX + self.type_part):
            return False
        if self.is_constructor:
            if not method.is_constructor:
                return False
        elif method.name != self.member_part:
            return False
        return self.explicit_arity is None or method.param_count == self.explicit_arity


class Resolution(enum.Enum):
    NOT_FOUND = "not-found"
    AMBIGUOUS = "ambiguous"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class ResolvedRoot:
    """Outcome of resolving one root spec within one project."""

    status: Resolution
    method: MethodSymbol | None = None
    method_id: str | None = None
    candidates: tuple[MethodSymbol, ...] = ()

    @property
    def found(self) -> bool:
        return self.method is not None


NOT_FOUND = ResolvedRoot(Resolution.NOT_FOUND)


class MethodResolver:
    """Locate root declarations within a single project."""

    def __init__(self, provider: SemanticProvider):
        self._provider = provider

    def resolve(self, project: SourceProject, root: str | RootSpec) -> ResolvedRoot:
        spec = RootSpec.parse(root) if isinstance(root, str) else root
        if spec is None:
            logger.debug("CLG120 invalid-root %s", root)
            return NOT_FOUND

        matches = [m for m in self._provider.declarations(project) if spec.matches(m)]
        if not matches:
            logger.debug("CLG100 root-not-found %s %s", project.name, spec.text)
            return NOT_FOUND

        # First match in declaration order wins, with or without ambiguity.
        chosen = matches[0]
        method_id = format_method_id(chosen)
        if len(matches) > 1 and spec.explicit_arity is None:
            logger.debug("CLG110 ambiguous-root %s %s", project.name, spec.text)
            return ResolvedRoot(Resolution.AMBIGUOUS, chosen, method_id, tuple(matches))
        return ResolvedRoot(Resolution.RESOLVED, chosen, method_id, tuple(matches))
