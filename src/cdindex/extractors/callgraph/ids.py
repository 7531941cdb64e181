"""Canonical method identities: ``Type.Member(ParamCount)``."""

from __future__ import annotations

from cdindex.semantic.base import MethodSymbol

CONSTRUCTOR_NAME = ".ctor"

# Markers that start a generic suffix: ``List`1`` (CLR arity) or ``Map<K, V>``.
_GENERIC_MARKERS = ("`", "<")


def strip_generics(name: str) -> str:
    """Drop a generic arity/parameter suffix from *name*."""
    for marker in _GENERIC_MARKERS:
        idx = name.find(marker)
        if idx > 0:
            name = name[:idx]
    return name


def format_method_id(method: MethodSymbol) -> str:
    """Return the stable identity of *method*.

    Depends only on the containing type, simple name, parameter count and
    constructor-ness, never on where the method is declared.
    """
    type_name = strip_generics(method.type_name or "<unknown>")
    name = CONSTRUCTOR_NAME if method.is_constructor else strip_generics(method.name)
    return f"{type_name}.{name}({method.param_count:d})"
