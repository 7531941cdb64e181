"""Tests for file tree scanning, hashing and line counting."""

from __future__ import annotations

import hashlib

from cdindex.config import TreeConfig
from cdindex.tree import IgnoreRules, content_hash, count_lines, normalized_lines, scan_tree


def paths(entries):
    return [e.path for e in entries]


class TestHashing:
    def test_line_endings_do_not_change_hash(self):
        lf = content_hash(normalized_lines(b"a\nb\n"))
        crlf = content_hash(normalized_lines(b"a\r\nb\r\n"))
        cr = content_hash(normalized_lines(b"a\rb"))
        assert lf == crlf == cr

    def test_bom_dropped(self):
        plain = content_hash(normalized_lines(b"x = 1\n"))
        bom = content_hash(normalized_lines(b"\xef\xbb\xbfx = 1\n"))
        assert plain == bom

    def test_known_digest(self):
        expected = hashlib.sha256(b"hello\nworld\n").hexdigest()
        assert content_hash(normalized_lines(b"hello\nworld")) == expected

    def test_undecodable_bytes_replaced(self):
        lines = normalized_lines(b"ok\n\xff\xfe\n")
        assert lines[0] == "ok"
        assert len(lines) == 2


class TestLineCounting:
    def test_physical(self):
        assert count_lines(["a", "", "  ", "b"], "physical") == 4

    def test_logical(self):
        assert count_lines(["a", "", "  ", "b"], "logical") == 2

    def test_empty(self):
        assert count_lines(normalized_lines(b""), "physical") == 0


class TestIgnoreRules:
    def test_directory_entries_match_at_any_depth(self):
        rules = IgnoreRules(["build/"])
        assert rules.ignores("build", is_dir=True)
        assert rules.ignores("pkg/build", is_dir=True)
        assert not rules.ignores("builder", is_dir=True)

    def test_suffix_entries(self):
        rules = IgnoreRules([".min.js"])
        assert rules.ignores("static/app.MIN.js")
        assert not rules.ignores("static/app.js")

    def test_prefix_entries(self):
        rules = IgnoreRules(["docs/generated"])
        assert rules.ignores("docs/generated/api.md")
        assert not rules.ignores("src/docs/generated.md")


class TestScanTree:
    def test_filters_and_sorts(self, tmp_path):
        for rel in ["b.py", "A.py", "a.md", "skip.bin", "pkg/Z.java", "build/out.py"]:
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("x\n")
        entries = scan_tree(tmp_path)
        assert paths(entries) == ["a.md", "A.py", "b.py", "pkg/Z.java"]
        assert entries[1].kind == "py"
        assert entries[3].kind == "java"

    def test_case_insensitive_order_ties_broken_ordinally(self, tmp_path):
        (tmp_path / "readme.md").write_text("x\n")
        (tmp_path / "README.md").write_text("x\n")
        assert paths(scan_tree(tmp_path)) == ["README.md", "readme.md"]

    def test_gitignore(self, tmp_path):
        (tmp_path / ".gitignore").write_text("*.log.py\nsecret/\n")
        (tmp_path / "keep.py").write_text("x\n")
        (tmp_path / "debug.log.py").write_text("x\n")
        (tmp_path / "secret").mkdir()
        (tmp_path / "secret" / "key.py").write_text("x\n")
        assert paths(scan_tree(tmp_path)) == ["keep.py"]
        no_git = scan_tree(tmp_path, TreeConfig(use_gitignore=False))
        assert paths(no_git) == ["debug.log.py", "keep.py", "secret/key.py"]

    def test_loc_modes(self, tmp_path):
        (tmp_path / "m.py").write_text("a = 1\n\n\nb = 2\n")
        (entry,) = scan_tree(tmp_path)
        assert entry.loc == 4
        (entry,) = scan_tree(tmp_path, TreeConfig(loc_mode="logical"))
        assert entry.loc == 2

    def test_custom_extensions(self, tmp_path):
        (tmp_path / "a.py").write_text("x\n")
        (tmp_path / "b.rs").write_text("x\n")
        entries = scan_tree(tmp_path, TreeConfig(extensions=[".rs"]))
        assert paths(entries) == ["b.rs"]
