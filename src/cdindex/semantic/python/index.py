"""Parse Python modules into a declaration index via AST."""

from __future__ import annotations

import ast
import logging
import warnings
from dataclasses import dataclass, field
from pathlib import Path

from cdindex.semantic.base import MethodSymbol, SourceProject

logger = logging.getLogger(__name__)

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef

_OVERLOAD_DECORATORS = {"overload", "typing.overload", "typing_extensions.overload"}


@dataclass(eq=False)
class FunctionInfo:
    """A function or method declaration together with its arity bounds."""

    module: ModuleInfo
    cls: ClassInfo | None
    node: FunctionNode | None
    name: str
    param_count: int
    min_args: int
    max_args: int | None
    is_constructor: bool = False
    is_static: bool = False
    is_overload: bool = False
    # For @overload stubs: the declaration whose body runs.
    implementation: FunctionInfo | None = None
    has_overloads: bool = False
    _symbol: MethodSymbol | None = field(default=None, repr=False)

    @property
    def type_name(self) -> str:
        return self.cls.full_name if self.cls is not None else self.module.name

    @property
    def self_name(self) -> str | None:
        """Name bound to the instance (or class) inside a method body."""
        if self.cls is None or self.is_static or self.node is None:
            return None
        positional = self.node.args.posonlyargs + self.node.args.args
        return positional[0].arg if positional else None

    def accepts(self, arg_count: int) -> bool:
        if arg_count < self.min_args:
            return False
        return self.max_args is None or arg_count <= self.max_args

    @property
    def symbol(self) -> MethodSymbol:
        if self._symbol is None:
            self._symbol = MethodSymbol(
                type_name=self.type_name,
                name=self.name,
                param_count=self.param_count,
                is_constructor=self.is_constructor,
                in_source=True,
                file=self.module.rel_path,
                line=self.node.lineno if self.node is not None else None,
                handle=self,
            )
        return self._symbol


@dataclass(eq=False)
class ClassInfo:
    module: ModuleInfo
    qualname: str
    node: ast.ClassDef
    methods: dict[str, list[FunctionInfo]] = field(default_factory=dict)
    nested: dict[str, ClassInfo] = field(default_factory=dict)
    attr_types: dict[str, ast.expr] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.module.name}.{self.qualname}"

    @property
    def is_dataclass(self) -> bool:
        for deco in self.node.decorator_list:
            target = deco.func if isinstance(deco, ast.Call) else deco
            if dotted_name(target) in ("dataclass", "dataclasses.dataclass"):
                return True
        return False

    def dataclass_field_count(self) -> int:
        count = 0
        for stmt in self.node.body:
            if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
                continue
            if "ClassVar" in ast.unparse(stmt.annotation):
                continue
            count += 1
        return count


@dataclass(eq=False)
class ModuleInfo:
    name: str
    path: Path
    rel_path: str
    tree: ast.Module
    project: SourceProject
    is_package: bool = False
    functions: dict[str, list[FunctionInfo]] = field(default_factory=dict)
    classes: dict[str, ClassInfo] = field(default_factory=dict)
    # alias -> (module, member); member is None for plain ``import x``
    imports: dict[str, tuple[str, str | None]] = field(default_factory=dict)
    declarations: list[FunctionInfo] = field(default_factory=list)

    @property
    def package(self) -> str:
        if self.is_package:
            return self.name
        return self.name.rpartition(".")[0]


def dotted_name(node: ast.expr) -> str | None:
    """Return ``a.b.c`` for a Name/Attribute chain, else None."""
    parts: list[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def parse_module(
    path: Path, module_name: str, rel_path: str, project: SourceProject
) -> ModuleInfo | None:
    """Parse *path* and index its declarations, or None if it cannot be parsed."""
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", SyntaxWarning)
            tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except (OSError, SyntaxError, UnicodeDecodeError, ValueError) as e:
        logger.debug("Skipping unparseable module %s: %s", rel_path, e)
        return None

    module = ModuleInfo(
        name=module_name,
        path=path,
        rel_path=rel_path,
        tree=tree,
        project=project,
        is_package=path.name == "__init__.py",
    )
    _collect_imports(module)
    _index_body(module, tree.body, cls=None)
    _link_overloads(module.functions)
    for cls in module.classes.values():
        _link_class_overloads(cls)
    return module


def _collect_imports(module: ModuleInfo) -> None:
    for node in ast.walk(module.tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    module.imports[alias.asname] = (alias.name, None)
                else:
                    head = alias.name.split(".")[0]
                    module.imports.setdefault(head, (head, None))
        elif isinstance(node, ast.ImportFrom):
            source = _absolute_module(module, node.module, node.level)
            if source is None:
                continue
            for alias in node.names:
                if alias.name == "*":
                    continue
                module.imports[alias.asname or alias.name] = (source, alias.name)


def _absolute_module(module: ModuleInfo, name: str | None, level: int) -> str | None:
    if level == 0:
        return name
    parts = module.package.split(".") if module.package else []
    if level - 1 > len(parts):
        return None
    base = parts[: len(parts) - (level - 1)]
    if name:
        base.append(name)
    return ".".join(base) or None


def _index_body(module: ModuleInfo, body: list[ast.stmt], cls: ClassInfo | None) -> None:
    for stmt in body:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            info = _function_info(module, cls, stmt)
            target = cls.methods if cls is not None else module.functions
            target.setdefault(info.name, []).append(info)
            module.declarations.append(info)
            if cls is not None and info.is_constructor:
                _collect_attr_types(cls, stmt, info.self_name)
        elif isinstance(stmt, ast.ClassDef):
            qualname = f"{cls.qualname}.{stmt.name}" if cls is not None else stmt.name
            child = ClassInfo(module=module, qualname=qualname, node=stmt)
            if cls is not None:
                cls.nested[stmt.name] = child
            else:
                module.classes[stmt.name] = child
            for item in stmt.body:
                if isinstance(item, ast.AnnAssign) and isinstance(item.target, ast.Name):
                    child.attr_types.setdefault(item.target.id, item.annotation)
            _index_body(module, stmt.body, child)
        elif isinstance(stmt, ast.If):
            _index_body(module, stmt.body, cls)
            _index_body(module, stmt.orelse, cls)
        elif isinstance(stmt, ast.Try):
            _index_body(module, stmt.body, cls)
            for handler in stmt.handlers:
                _index_body(module, handler.body, cls)
            _index_body(module, stmt.orelse, cls)


def _link_class_overloads(cls: ClassInfo) -> None:
    _link_overloads(cls.methods)
    for nested in cls.nested.values():
        _link_class_overloads(nested)


def _link_overloads(scope: dict[str, list[FunctionInfo]]) -> None:
    """Point each @overload stub at the implementation declared after it."""
    for infos in scope.values():
        stubs = [i for i in infos if i.is_overload]
        implementations = [i for i in infos if not i.is_overload]
        if not stubs or not implementations:
            continue
        implementation = implementations[-1]
        implementation.has_overloads = True
        for stub in stubs:
            stub.implementation = implementation


def _function_info(
    module: ModuleInfo, cls: ClassInfo | None, node: FunctionNode
) -> FunctionInfo:
    decorators = {dotted_name(d) for d in node.decorator_list}
    is_static = cls is not None and "staticmethod" in decorators
    args = node.args
    positional = args.posonlyargs + args.args
    if cls is not None and not is_static and positional:
        positional = positional[1:]
    defaults = min(len(args.defaults), len(positional))
    required_kwonly = sum(1 for d in args.kw_defaults if d is None)

    param_count = len(positional) + len(args.kwonlyargs)
    if args.vararg is not None:
        param_count += 1
    if args.kwarg is not None:
        param_count += 1

    max_args: int | None = len(positional) + len(args.kwonlyargs)
    if args.vararg is not None or args.kwarg is not None:
        max_args = None

    return FunctionInfo(
        module=module,
        cls=cls,
        node=node,
        name=node.name,
        param_count=param_count,
        min_args=len(positional) - defaults + required_kwonly,
        max_args=max_args,
        is_constructor=cls is not None and node.name == "__init__",
        is_static=is_static,
        is_overload=bool(decorators & _OVERLOAD_DECORATORS),
    )


def _collect_attr_types(cls: ClassInfo, init: FunctionNode, self_name: str | None) -> None:
    """Record ``self.x`` attribute types assigned in ``__init__``."""
    if self_name is None:
        return
    param_types = {
        a.arg: a.annotation
        for a in init.args.posonlyargs + init.args.args + init.args.kwonlyargs
        if a.annotation is not None
    }
    for node in ast.walk(init):
        if isinstance(node, ast.AnnAssign):
            targets, value, annotation = [node.target], node.value, node.annotation
        elif isinstance(node, ast.Assign):
            targets, value, annotation = node.targets, node.value, None
        else:
            continue
        for target in targets:
            if not (
                isinstance(target, ast.Attribute)
                and isinstance(target.value, ast.Name)
                and target.value.id == self_name
            ):
                continue
            if annotation is not None:
                cls.attr_types[target.attr] = annotation
            elif isinstance(value, ast.Call):
                cls.attr_types.setdefault(target.attr, value.func)
            elif isinstance(value, ast.Name) and value.id in param_types:
                cls.attr_types.setdefault(target.attr, param_types[value.id])
