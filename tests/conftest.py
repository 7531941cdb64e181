"""Pytest configuration and fixtures."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from cdindex.model import CliCommand, Entrypoint
from cdindex.semantic.base import CallSite, MethodSymbol, SourceProject


def write(root: Path, rel_path: str, content: str) -> Path:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return path


def method(type_name: str, name: str, params: int = 0, **kwargs) -> MethodSymbol:
    return MethodSymbol(type_name=type_name, name=name, param_count=params, **kwargs)


class FakeProvider:
    """In-memory semantic provider.

    ``calls`` maps a declared method to the call sites in its body, each a
    ``(text, target)`` pair where *target* is the symbol the call resolves
    to, or None when it cannot be bound.
    """

    language = "fake"

    def __init__(self, projects=None):
        self._projects = projects or [SourceProject("App", "app/App.proj", Path("."))]
        self.decls: dict[SourceProject, list[MethodSymbol]] = {
            p: [] for p in self._projects
        }
        self.calls: dict[MethodSymbol, list[tuple[str, MethodSymbol | None]]] = {}
        self.entries: dict[SourceProject, list[Entrypoint]] = {}
        self.cmds: dict[SourceProject, list[CliCommand]] = {}
        self.env: dict[SourceProject, list[str]] = {}
        self.literals: dict[SourceProject, list[str]] = {}
        self.call_site_queries = 0

    def declare(self, symbol: MethodSymbol, project: SourceProject | None = None):
        self.decls[project or self._projects[0]].append(symbol)
        return symbol

    def add_calls(self, caller: MethodSymbol, *targets) -> None:
        for target in targets:
            if isinstance(target, str):
                self.calls.setdefault(caller, []).append((target, None))
            else:
                self.calls.setdefault(caller, []).append((target.name, target))

    def projects(self):
        return list(self._projects)

    def declarations(self, project):
        return list(self.decls.get(project, []))

    def call_sites(self, symbol):
        self.call_site_queries += 1
        for text, target in self.calls.get(symbol, []):
            yield CallSite(text=text, arg_count=0, handle=target)

    def resolve_call(self, call):
        return call.handle

    def entrypoints(self, project):
        return list(self.entries.get(project, []))

    def commands(self, project):
        return list(self.cmds.get(project, []))

    def env_lookups(self, project):
        return list(self.env.get(project, []))

    def string_literals(self, project):
        return list(self.literals.get(project, []))


@pytest.fixture
def fake_provider():
    """A small codebase mirroring the sample repositories below.

    RootClass.A calls B and C, B calls D; Over has a 1- and a 2-parameter
    overload; ExternalCalls.UseLinq calls a library Select and something
    that cannot be bound.
    """
    provider = FakeProvider()
    a = provider.declare(method("RootClass", "A"))
    b = provider.declare(method("RootClass", "B"))
    c = provider.declare(method("RootClass", "C"))
    d = provider.declare(method("RootClass", "D"))
    over1 = provider.declare(method("RootClass", "Over", 1))
    over2 = provider.declare(method("RootClass", "Over", 2))
    ctor = provider.declare(method("RootClass", "RootClass", 0, is_constructor=True))
    use_linq = provider.declare(method("ExternalCalls", "UseLinq"))
    select = method("System.Linq.Enumerable", "Select", 2, in_source=False)

    provider.add_calls(a, b, c)
    provider.add_calls(b, d)
    provider.add_calls(over1, a)
    provider.add_calls(over2, b)
    provider.add_calls(ctor, c)
    provider.add_calls(use_linq, select, "dynamic.Invoke")
    return provider


@pytest.fixture
def python_repo(tmp_path):
    """A src-layout Python distribution named ``sample``."""
    root = tmp_path / "pyrepo"
    write(
        root,
        "pyproject.toml",
        """
        [project]
        name = "sample"
        version = "0.1.0"
        """,
    )
    write(root, "src/sample/__init__.py", "")
    write(
        root,
        "src/sample/core.py",
        '''
        """Core classes."""

        from typing import overload

        from sample.helpers import Helper, shout


        class RootClass:
            def a(self):
                self.b()
                self.c()

            def b(self):
                self.d()

            def c(self):
                pass

            def d(self):
                pass

            @overload
            def over(self, x: int) -> int: ...

            @overload
            def over(self, x: int, y: int) -> int: ...

            def over(self, x, y=0):
                return self.a()

            def recurse(self, n):
                if n:
                    self.recurse(n - 1)
                    self.ping()

            def ping(self):
                self.recurse(0)

            def use_helper(self):
                helper = Helper("x")
                helper.run()
                shout("hi")


        class ExternalCalls:
            def use_linq(self, items):
                return list(map(str, items))

            def mystery(self, thing):
                thing.frobnicate()
        ''',
    )
    write(
        root,
        "src/sample/helpers.py",
        '''
        import os


        class Base:
            def run(self):
                self.step()

            def step(self):
                pass


        class Helper(Base):
            def __init__(self, name):
                self.name = name

            def step(self):
                return os.getenv("SAMPLE_HOME")


        def shout(text):
            return text.upper()


        TOKEN = os.environ["SAMPLE_TOKEN"]
        PREFIXED = "APP_MODE"
        ''',
    )
    write(
        root,
        "src/sample/__main__.py",
        """
        from sample.core import RootClass

        RootClass().a()
        """,
    )
    write(
        root,
        "src/sample/cli.py",
        """
        def main():
            pass


        if __name__ == "__main__":
            main()
        """,
    )
    write(root, "tests/test_core.py", "def test_nothing():\n    pass\n")
    return root


@pytest.fixture
def java_repo(tmp_path):
    """A single-project Gradle build named ``sample-java``."""
    root = tmp_path / "javarepo"
    write(root, "settings.gradle", 'rootProject.name = "sample-java"\n')
    write(root, "build.gradle", "plugins { id 'java' }\n")
    write(
        root,
        "src/main/java/com/example/RootClass.java",
        """
        package com.example;

        import java.util.List;

        public class RootClass {
            private final Helper helper = new Helper();

            public void a() {
                b();
                this.c();
            }

            public void b() {
                d();
            }

            public void c() {
            }

            public void d() {
            }

            public int over(int x) {
                return x;
            }

            public int over(int x, int y) {
                a();
                return x + y;
            }

            public void useHelper() {
                helper.run();
                Helper.make(1);
            }

            public String useList(List<String> items) {
                return items.get(0);
            }

            public static void main(String[] args) {
                String home = System.getenv("JAVA_HOME_DIR");
                new RootClass().a();
            }
        }
        """,
    )
    write(
        root,
        "src/main/java/com/example/Helper.java",
        """
        package com.example;

        public class Helper {
            public void run() {
                step();
            }

            private void step() {
            }

            public static Helper make(int n) {
                return new Helper();
            }
        }
        """,
    )
    return root
