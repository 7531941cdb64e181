"""cd-index: deterministic architectural index of a codebase."""

__version__ = "0.1.0"
