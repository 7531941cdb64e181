"""Tests for canonical method identities."""

from __future__ import annotations

from cdindex.extractors.callgraph.ids import format_method_id, strip_generics
from conftest import method


class TestFormatMethodId:
    def test_plain_method(self):
        assert format_method_id(method("pkg.Type", "run", 2)) == "pkg.Type.run(2)"

    def test_constructor_uses_ctor_marker(self):
        ctor = method("pkg.Type", "__init__", 1, is_constructor=True)
        assert format_method_id(ctor) == "pkg.Type..ctor(1)"

    def test_generic_markers_stripped(self):
        assert format_method_id(method("List`1", "Add`1", 1)) == "List.Add(1)"
        assert format_method_id(method("Map<K, V>", "put", 2)) == "Map.put(2)"

    def test_ignores_location(self):
        first = method("T", "m", 0, file="a.py", line=3)
        second = method("T", "m", 0, file="b.py", line=99)
        assert format_method_id(first) == format_method_id(second)

    def test_empty_type_name(self):
        assert format_method_id(method("", "f", 0)) == "<unknown>.f(0)"


class TestStripGenerics:
    def test_leading_marker_kept(self):
        assert strip_generics("<lambda>") == "<lambda>"

    def test_no_marker(self):
        assert strip_generics("Widget") == "Widget"
