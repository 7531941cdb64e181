"""Extract command-line commands (argparse subparsers, click, picocli)."""

from __future__ import annotations

import logging
import re

from cdindex.extractors.base import ScanContext
from cdindex.model import ProjectIndex

logger = logging.getLogger(__name__)


class CommandsExtractor:
    """Collect declared commands across projects, ordered by name, file, line.

    With *allow_regex*, only commands whose name matches it are kept.
    """

    section = "commands"

    def __init__(self, allow_regex: str | None = None):
        self.allow = re.compile(allow_regex) if allow_regex else None

    def extract(self, context: ScanContext, index: ProjectIndex) -> None:
        found = []
        for provider in context.providers:
            for project in provider.projects():
                for command in provider.commands(project):
                    if self.allow is not None and not self.allow.search(command.name):
                        continue
                    found.append(command)

        found.sort(key=lambda c: (c.name, c.file, c.line))
        logger.debug("Commands: %d", len(found))
        index.commands = found or None
