"""Extract program entrypoints (main guards, main modules, main methods)."""

from __future__ import annotations

import logging

from cdindex.extractors.base import ScanContext
from cdindex.model import EntrypointsSection, ProjectIndex

logger = logging.getLogger(__name__)


class EntrypointsExtractor:
    """Collect each project's entrypoints, ordered by file then line."""

    section = "entrypoints"

    def extract(self, context: ScanContext, index: ProjectIndex) -> None:
        sections = []
        for provider in context.providers:
            for project in provider.projects():
                found = sorted(
                    provider.entrypoints(project), key=lambda e: (e.file, e.line)
                )
                if not found:
                    continue
                logger.debug("Entrypoints in %s: %d", project.name, len(found))
                sections.append(EntrypointsSection(project.ref, found))

        sections.sort(key=lambda s: (s.project.name, s.project.relative_path))
        index.entrypoints = sections or None
