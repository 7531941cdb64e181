"""Find command-line subcommands declared with argparse or click-style decorators.

Two shapes are recognised:

* ``sub = subparsers.add_parser("name", aliases=[...])`` followed, in the
  same block, by ``sub.add_argument(...)`` calls;
* functions decorated with ``@<group>.command(...)`` (click, typer) whose
  ``@<x>.option(...)`` / ``@<x>.argument(...)`` decorators describe inputs.

Only literal names are recorded.
"""

from __future__ import annotations

import ast

from cdindex.model import CliCommand
from cdindex.semantic.python.index import ModuleInfo

_BLOCK_FIELDS = ("body", "orelse", "finalbody")


def find_commands(module: ModuleInfo) -> list[CliCommand]:
    commands: list[CliCommand] = []
    for node in ast.walk(module.tree):
        for name in _BLOCK_FIELDS:
            block = getattr(node, name, None)
            if isinstance(block, list):
                commands.extend(_argparse_commands(module, block))
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            command = _decorated_command(module, node)
            if command is not None:
                commands.append(command)
    return commands


def _argparse_commands(module: ModuleInfo, block: list) -> list[CliCommand]:
    found = []
    for i, stmt in enumerate(block):
        if isinstance(stmt, ast.Assign) and isinstance(stmt.value, ast.Call):
            call = stmt.value
            target = stmt.targets[0] if len(stmt.targets) == 1 else None
            var = target.id if isinstance(target, ast.Name) else None
        elif isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Call):
            call, var = stmt.value, None
        else:
            continue
        if not _is_method_call(call, "add_parser") or not call.args:
            continue
        name = _literal(call.args[0])
        if not name:
            continue

        aliases: set[str] = set()
        for keyword in call.keywords:
            if keyword.arg == "aliases":
                aliases.update(_literal_list(keyword.value))

        options: set[str] = set()
        arguments: set[str] = set()
        if var is not None:
            for later in block[i + 1 :]:
                for sub in ast.walk(later):
                    if (
                        isinstance(sub, ast.Call)
                        and _is_method_call(sub, "add_argument")
                        and isinstance(sub.func.value, ast.Name)
                        and sub.func.value.id == var
                    ):
                        _collect_flags(sub, options, arguments)

        found.append(_command(module, name, aliases, options, arguments, stmt.lineno))
    return found


def _decorated_command(
    module: ModuleInfo, node: ast.FunctionDef | ast.AsyncFunctionDef
) -> CliCommand | None:
    name = None
    options: set[str] = set()
    arguments: set[str] = set()
    for deco in node.decorator_list:
        if not isinstance(deco, ast.Call):
            continue
        kind = _callee_name(deco.func)
        if kind == "command":
            name = _literal(deco.args[0]) if deco.args else None
            for keyword in deco.keywords:
                if keyword.arg == "name":
                    name = _literal(keyword.value)
            if not name:
                name = node.name.lower().replace("_", "-")
        elif kind == "option":
            options.update(
                s for s in (_literal(a) for a in deco.args) if s and s.startswith("--")
            )
        elif kind == "argument" and deco.args:
            value = _literal(deco.args[0])
            if value:
                arguments.add(value)
    if name is None:
        return None
    return _command(module, name, set(), options, arguments, node.lineno)


def _collect_flags(call: ast.Call, options: set[str], arguments: set[str]) -> None:
    flags = [s for s in (_literal(a) for a in call.args) if s]
    if not flags:
        return
    if flags[0].startswith("-"):
        options.update(f for f in flags if f.startswith("--"))
    else:
        arguments.add(flags[0])


def _command(module, name, aliases, options, arguments, line) -> CliCommand:
    return CliCommand(
        name=name,
        aliases=sorted(aliases),
        options=sorted(options),
        arguments=sorted(arguments),
        file=module.rel_path,
        line=line,
    )


def _is_method_call(call: ast.Call, method: str) -> bool:
    return isinstance(call.func, ast.Attribute) and call.func.attr == method


def _callee_name(func: ast.expr) -> str | None:
    if isinstance(func, ast.Attribute):
        return func.attr
    if isinstance(func, ast.Name):
        return func.id
    return None


def _literal(node: ast.expr) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def _literal_list(node: ast.expr) -> list[str]:
    if isinstance(node, (ast.List, ast.Tuple)):
        return [s for s in (_literal(e) for e in node.elts) if s]
    return []
