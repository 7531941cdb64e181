"""Extractor protocol: all section extractors conform to this interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from cdindex.model import ProjectIndex
from cdindex.semantic.base import SemanticProvider


@dataclass
class ScanContext:
    """What every extractor may look at: the repository and its providers."""

    repo_root: Path
    providers: list[SemanticProvider] = field(default_factory=list)


class Extractor(Protocol):
    """Protocol for index section extractors."""

    section: str

    def extract(self, context: ScanContext, index: ProjectIndex) -> None:
        """Populate *index* with data extracted through *context*."""
        ...
