"""Exception hierarchy for cd-index."""

from __future__ import annotations


class CdIndexError(Exception):
    """Base class for all cd-index errors."""


class ConfigError(CdIndexError):
    """Raised when scan configuration values are invalid."""


class ProviderError(CdIndexError):
    """Raised when a semantic provider cannot answer a query."""


class NoProjectError(CdIndexError):
    """Raised when no supported project is found under the scanned root."""


class OutputError(CdIndexError):
    """Raised when the rendered index cannot be written."""
