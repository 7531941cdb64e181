"""Auto-detect project languages and return matching semantic providers."""

from __future__ import annotations

import logging
from pathlib import Path

from cdindex.semantic.base import SemanticProvider
from cdindex.semantic.java.provider import JavaSemanticProvider
from cdindex.semantic.python.provider import PythonSemanticProvider

logger = logging.getLogger(__name__)


def detect_providers(repo_root: Path) -> list[SemanticProvider]:
    """Return an ordered list of providers applicable to *repo_root*."""
    providers: list[SemanticProvider] = []

    python = PythonSemanticProvider(repo_root)
    if python.can_handle():
        providers.append(python)

    java = JavaSemanticProvider(repo_root)
    if java.can_handle():
        providers.append(java)

    logger.debug("Providers: %s", [p.language for p in providers])
    return providers
