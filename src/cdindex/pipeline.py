"""Orchestrator: detect → extract → render."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from cdindex import __version__
from cdindex.config import ScanConfig
from cdindex.detect import detect_providers
from cdindex.errors import NoProjectError, OutputError, ProviderError
from cdindex.extractors.base import Extractor, ScanContext
from cdindex.extractors.callgraph import CallgraphExtractor
from cdindex.extractors.commands import CommandsExtractor
from cdindex.extractors.configs import ConfigsExtractor
from cdindex.extractors.entrypoints import EntrypointsExtractor
from cdindex.model import Meta, ProjectIndex, ProjectSection
from cdindex.renderer.json import write_json
from cdindex.tree import scan_tree

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.2"


def generated_at() -> str:
    """UTC timestamp of this run, pinned by ``$SOURCE_DATE_EPOCH`` when set."""
    epoch = os.environ.get("SOURCE_DATE_EPOCH")
    moment = None
    if epoch:
        try:
            moment = datetime.fromtimestamp(int(epoch), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            logger.warning("Ignoring invalid SOURCE_DATE_EPOCH=%r", epoch)
    if moment is None:
        moment = datetime.now(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_extractors(config: ScanConfig) -> list[Extractor]:
    extractors: list[Extractor] = []
    if config.enabled("entrypoints"):
        extractors.append(EntrypointsExtractor())
    if config.enabled("commands"):
        extractors.append(CommandsExtractor(config.commands.allow_regex))
    if config.enabled("configs"):
        extractors.append(ConfigsExtractor(config.env_prefixes))
    if config.enabled("callgraphs") and config.callgraph.roots:
        extractors.append(
            CallgraphExtractor(
                config.callgraph.roots,
                max_depth=config.callgraph.max_depth,
                max_nodes=config.callgraph.max_nodes,
                include_external=config.callgraph.include_external,
            )
        )
    return extractors


def build_index(repo_root: Path, config: ScanConfig | None = None) -> ProjectIndex:
    """Scan *repo_root* and return the populated index."""
    config = config or ScanConfig()
    config.validate()
    repo_root = repo_root.resolve()

    providers = detect_providers(repo_root)
    if not providers:
        raise NoProjectError(f"Could not detect a supported project in {repo_root}")

    context = ScanContext(repo_root, providers)
    index = ProjectIndex(
        meta=Meta(__version__, SCHEMA_VERSION, generated_at()),
        projects=_projects(context),
    )

    if config.enabled("tree"):
        try:
            index.tree = scan_tree(repo_root, config.tree)
        except OSError as e:
            logger.warning("Skipping tree section: %s", e)

    for extractor in build_extractors(config):
        logger.debug("Running %s", type(extractor).__name__)
        try:
            extractor.extract(context, index)
        except (ProviderError, OSError) as e:
            logger.warning("Skipping %s section: %s", extractor.section, e)
            setattr(index, extractor.section, None)

    return index


def run(
    repo_root: Path,
    config: ScanConfig | None = None,
    *,
    output: Path | None = None,
    compact: bool = False,
) -> ProjectIndex:
    """Run the full cd-index pipeline and write the result.

    Raises :class:`OutputError` when the result cannot be written.
    """
    index = build_index(repo_root, config)
    try:
        write_json(index, output, compact=compact)
    except OSError as e:
        raise OutputError(f"Could not write output: {e}") from e
    if output is not None:
        logger.info("Generated %s", output)
    return index


def _projects(context: ScanContext) -> list[ProjectSection]:
    sections = [
        ProjectSection(p.name, p.relative_path, provider.language)
        for provider in context.providers
        for p in provider.projects()
    ]
    sections.sort(key=lambda s: (s.name, s.path))
    return sections
