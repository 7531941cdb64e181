"""Extract environment-variable keys a codebase reads."""

from __future__ import annotations

import logging

from cdindex.extractors.base import ScanContext
from cdindex.model import ConfigSection, ProjectIndex

logger = logging.getLogger(__name__)


class ConfigsExtractor:
    """Collect env keys from accessor calls and prefix-matching literals.

    A string literal counts as a key when it starts with one of
    *env_prefixes* and is longer than that prefix.
    """

    section = "configs"

    def __init__(self, env_prefixes: list[str] | None = None):
        self.env_prefixes = [p for p in (env_prefixes or []) if p]

    def extract(self, context: ScanContext, index: ProjectIndex) -> None:
        keys: set[str] = set()
        for provider in context.providers:
            for project in provider.projects():
                keys.update(k for k in provider.env_lookups(project) if k)
                if self.env_prefixes:
                    keys.update(
                        s
                        for s in provider.string_literals(project)
                        if self._has_prefix(s)
                    )

        logger.debug("Env keys: %d", len(keys))
        index.configs = ConfigSection(sorted(keys)) if keys else None

    def _has_prefix(self, literal: str) -> bool:
        return any(
            literal.startswith(p) and len(literal) > len(p) for p in self.env_prefixes
        )
