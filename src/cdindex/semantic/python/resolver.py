"""Best-effort static resolution of Python call expressions.

Resolution works on dotted names: the head of a call target is looked up in
the enclosing function's locals, the enclosing class (``self``/``cls``/
``super()``), the module's own definitions and its imports, and finally in
builtins.  The resulting fully-qualified name is then matched against the
indexed project modules; anything that lands outside of them is reported as
an external method.
"""

from __future__ import annotations

import ast
import builtins
import logging

from cdindex.semantic.base import MethodSymbol
from cdindex.semantic.python.index import (
    ClassInfo,
    FunctionInfo,
    ModuleInfo,
    dotted_name,
)

logger = logging.getLogger(__name__)

_BUILTIN_NAMES = frozenset(dir(builtins))

# Maximum number of re-export hops followed through package ``__init__`` files.
_MAX_REEXPORT_HOPS = 5


class PythonCallResolver:
    """Resolve ``ast.Call`` nodes against a map of indexed modules."""

    def __init__(self, modules: dict[str, ModuleInfo]):
        self._modules = modules
        self._local_types: dict[int, dict[str, ast.expr]] = {}
        self._locals: dict[int, set[str]] = {}

    # -- public entry point -------------------------------------------------

    def resolve(self, caller: FunctionInfo, call: ast.Call) -> MethodSymbol | None:
        arg_count = len(call.args) + len(call.keywords)
        func = call.func

        if isinstance(func, ast.Name):
            target = self._qualify_head(caller, func.id)
            if target is None:
                return None
            return self._resolve_qualified(target, arg_count)

        if not isinstance(func, ast.Attribute):
            return None

        receiver = func.value
        if is_super_call(receiver):
            if caller.cls is None:
                return None
            return self._lookup_in_bases(caller.cls, func.attr, arg_count)

        if isinstance(receiver, ast.Name) and receiver.id == caller.self_name:
            return self._lookup_method(caller.cls, func.attr, arg_count)

        receiver_type = self._receiver_type(caller, receiver)
        if receiver_type is not None:
            return self._resolve_qualified(f"{receiver_type}.{func.attr}", arg_count)

        dotted = dotted_name(func)
        if dotted is None:
            return None
        head, _, rest = dotted.partition(".")
        qualified_head = self._qualify_head(caller, head, allow_builtins=False)
        if qualified_head is None:
            return None
        return self._resolve_qualified(f"{qualified_head}.{rest}", arg_count)

    # -- name qualification ---------------------------------------------------

    def qualify(self, module: ModuleInfo, dotted: str) -> str:
        """Map the head of *dotted* through *module*'s imports and definitions."""
        head, sep, rest = dotted.partition(".")
        qualified = self._qualify_module_name(module, head) or head
        return qualified + sep + rest

    def _qualify_head(
        self, caller: FunctionInfo, name: str, *, allow_builtins: bool = True
    ) -> str | None:
        if name in self._function_locals(caller):
            return None
        qualified = self._qualify_module_name(caller.module, name)
        if qualified is not None:
            return qualified
        if allow_builtins and name in _BUILTIN_NAMES:
            return f"builtins.{name}"
        return None

    def _qualify_module_name(self, module: ModuleInfo, name: str) -> str | None:
        if name in module.classes or name in module.functions:
            return f"{module.name}.{name}"
        imported = module.imports.get(name)
        if imported is not None:
            source, member = imported
            return source if member is None else f"{source}.{member}"
        return None

    def _function_locals(self, caller: FunctionInfo) -> set[str]:
        """Names bound locally in *caller* that shadow module-level names."""
        cached = self._locals.get(id(caller))
        if cached is not None:
            return cached
        names: set[str] = set()
        node = caller.node
        if node is not None:
            args = node.args
            names.update(a.arg for a in args.posonlyargs + args.args + args.kwonlyargs)
            for a in (args.vararg, args.kwarg):
                if a is not None:
                    names.add(a.arg)
            for sub in ast.walk(node):
                if isinstance(sub, (ast.FunctionDef, ast.AsyncFunctionDef)) and sub is not node:
                    names.add(sub.name)
                elif isinstance(sub, ast.Name) and isinstance(sub.ctx, ast.Store):
                    names.add(sub.id)
        self._locals[id(caller)] = names
        return names

    # -- receiver typing -----------------------------------------------------

    def _receiver_type(self, caller: FunctionInfo, receiver: ast.expr) -> str | None:
        """Return the fully-qualified class name of *receiver*, when known."""
        if isinstance(receiver, ast.Name):
            annotation = self._locals_types(caller).get(receiver.id)
            if annotation is None:
                return None
            return self._type_name(caller.module, annotation)

        # Foo().method()
        if isinstance(receiver, ast.Call):
            return self._type_name(caller.module, receiver.func)

        # self.attr.method()
        if (
            isinstance(receiver, ast.Attribute)
            and isinstance(receiver.value, ast.Name)
            and receiver.value.id == caller.self_name
            and caller.cls is not None
        ):
            cls: ClassInfo | None = caller.cls
            seen: set[int] = set()
            while cls is not None and id(cls) not in seen:
                seen.add(id(cls))
                annotation = cls.attr_types.get(receiver.attr)
                if annotation is not None:
                    return self._type_name(cls.module, annotation)
                cls = self._first_project_base(cls)
        return None

    def _locals_types(self, caller: FunctionInfo) -> dict[str, ast.expr]:
        key = id(caller)
        cached = self._local_types.get(key)
        if cached is not None:
            return cached

        types: dict[str, ast.expr] = {}
        node = caller.node
        if node is not None:
            for a in node.args.posonlyargs + node.args.args + node.args.kwonlyargs:
                if a.annotation is not None:
                    types[a.arg] = a.annotation
            for sub in ast.walk(node):
                if isinstance(sub, ast.AnnAssign) and isinstance(sub.target, ast.Name):
                    types[sub.target.id] = sub.annotation
                elif (
                    isinstance(sub, ast.Assign)
                    and len(sub.targets) == 1
                    and isinstance(sub.targets[0], ast.Name)
                    and isinstance(sub.value, ast.Call)
                ):
                    types.setdefault(sub.targets[0].id, sub.value.func)
                elif isinstance(sub, (ast.With, ast.AsyncWith)):
                    for item in sub.items:
                        if isinstance(item.optional_vars, ast.Name) and isinstance(
                            item.context_expr, ast.Call
                        ):
                            types.setdefault(item.optional_vars.id, item.context_expr.func)
        self._local_types[key] = types
        return types

    def _type_name(self, module: ModuleInfo, annotation: ast.expr) -> str | None:
        """Reduce an annotation (or constructor expression) to a qualified name."""
        if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
            try:
                annotation = ast.parse(annotation.value, mode="eval").body
            except SyntaxError:
                return None
        if isinstance(annotation, ast.BinOp) and isinstance(annotation.op, ast.BitOr):
            for side in (annotation.left, annotation.right):
                if not (isinstance(side, ast.Constant) and side.value is None):
                    return self._type_name(module, side)
            return None
        if isinstance(annotation, ast.Subscript):
            outer = dotted_name(annotation.value)
            if outer in ("Optional", "typing.Optional"):
                return self._type_name(module, annotation.slice)
            return None
        dotted = dotted_name(annotation)
        if dotted is None:
            return None
        qualified = self.qualify(module, dotted)
        found = self._find_class(qualified)
        if found is not None:
            return found.full_name
        # Only external names that look like classes are usable receivers.
        if qualified.rpartition(".")[2][:1].isupper():
            return qualified
        return None

    # -- lookup against indexed modules --------------------------------------

    def _split_module(self, qualified: str) -> tuple[ModuleInfo | None, list[str]]:
        parts = qualified.split(".")
        for i in range(len(parts), 0, -1):
            module = self._modules.get(".".join(parts[:i]))
            if module is not None:
                return module, parts[i:]
        return None, parts

    def _find_class(self, qualified: str, hops: int = 0) -> ClassInfo | None:
        module, rest = self._split_module(qualified)
        if module is None or not rest:
            return None
        cls = module.classes.get(rest[0])
        if cls is None:
            imported = module.imports.get(rest[0])
            if imported is None or hops >= _MAX_REEXPORT_HOPS:
                return None
            source, member = imported
            target = source if member is None else f"{source}.{member}"
            return self._find_class(".".join([target, *rest[1:]]), hops + 1)
        for name in rest[1:]:
            cls = cls.nested.get(name)
            if cls is None:
                return None
        return cls

    def _resolve_qualified(
        self, qualified: str, arg_count: int, hops: int = 0
    ) -> MethodSymbol | None:
        module, rest = self._split_module(qualified)
        if module is None:
            return _external(qualified, arg_count)
        if not rest:
            return None

        head = rest[0]
        if len(rest) == 1 and head in module.functions:
            return _pick(module.functions[head], arg_count).symbol

        cls = module.classes.get(head)
        if cls is not None:
            for name in rest[1:-1]:
                cls = cls.nested.get(name)
                if cls is None:
                    return None
            if len(rest) == 1:
                return self._constructor(cls, arg_count)
            last = rest[-1]
            nested = cls.nested.get(last)
            if nested is not None:
                return self._constructor(nested, arg_count)
            return self._lookup_method(cls, last, arg_count)

        imported = module.imports.get(head)
        if imported is not None and hops < _MAX_REEXPORT_HOPS:
            source, member = imported
            target = source if member is None else f"{source}.{member}"
            return self._resolve_qualified(".".join([target, *rest[1:]]), arg_count, hops + 1)
        return None

    def _constructor(self, cls: ClassInfo, arg_count: int) -> MethodSymbol:
        own = cls.methods.get("__init__")
        if own:
            return _pick(own, arg_count).symbol

        inherited = self._find_in_hierarchy(cls, "__init__", arg_count, include_self=False)
        if cls.is_dataclass:
            param_count = cls.dataclass_field_count()
        elif inherited is not None:
            param_count = inherited.param_count
        else:
            param_count = 0
        # Implicit constructor: exploring it explores the inherited __init__.
        return MethodSymbol(
            type_name=cls.full_name,
            name="__init__",
            param_count=param_count,
            is_constructor=True,
            in_source=True,
            file=cls.module.rel_path,
            line=cls.node.lineno,
            handle=inherited,
        )

    def _lookup_method(
        self, cls: ClassInfo | None, name: str, arg_count: int
    ) -> MethodSymbol | None:
        if cls is None:
            return None
        if name == "__init__":
            return self._constructor(cls, arg_count)
        found = self._find_in_hierarchy(cls, name, arg_count, include_self=True)
        if found is not None:
            return found.symbol
        external_base = self._first_external_base(cls)
        if external_base is not None:
            return _external(f"{external_base}.{name}", arg_count)
        return None

    def _lookup_in_bases(self, cls: ClassInfo, name: str, arg_count: int) -> MethodSymbol | None:
        found = self._find_in_hierarchy(cls, name, arg_count, include_self=False)
        if found is not None:
            return found.symbol
        if name == "__init__":
            base = self._first_project_base(cls)
            if base is not None:
                return self._constructor(base, arg_count)
        external_base = self._first_external_base(cls)
        if external_base is not None:
            return _external(f"{external_base}.{name}", arg_count, constructor=name == "__init__")
        return None

    def _find_in_hierarchy(
        self, cls: ClassInfo, name: str, arg_count: int, *, include_self: bool
    ) -> FunctionInfo | None:
        """Depth-first, left-to-right search through project base classes."""
        seen: set[int] = set()
        stack = [cls] if include_self else list(reversed(self._project_bases(cls)))
        while stack:
            current = stack.pop()
            if id(current) in seen:
                continue
            seen.add(id(current))
            candidates = current.methods.get(name)
            if candidates:
                return _pick(candidates, arg_count)
            stack.extend(reversed(self._project_bases(current)))
        return None

    def _project_bases(self, cls: ClassInfo) -> list[ClassInfo]:
        bases = []
        for base in cls.node.bases:
            dotted = dotted_name(base)
            if dotted is None:
                continue
            found = self._find_class(self.qualify(cls.module, dotted))
            if found is not None:
                bases.append(found)
        return bases

    def _first_project_base(self, cls: ClassInfo) -> ClassInfo | None:
        bases = self._project_bases(cls)
        return bases[0] if bases else None

    def _first_external_base(self, cls: ClassInfo) -> str | None:
        for base in cls.node.bases:
            dotted = dotted_name(base)
            if dotted is None or dotted == "object":
                continue
            qualified = self.qualify(cls.module, dotted)
            if self._find_class(qualified) is None:
                if "." not in qualified and qualified in _BUILTIN_NAMES:
                    return f"builtins.{qualified}"
                return qualified
        return None


def is_super_call(node: ast.expr) -> bool:
    return (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "super"
    )


def _pick(candidates: list[FunctionInfo], arg_count: int) -> FunctionInfo:
    """Choose the first declaration whose arity accepts *arg_count*.

    Overloaded functions are matched against their @overload signatures.
    """
    declared = [i for i in candidates if not i.has_overloads] or candidates
    for info in declared:
        if info.accepts(arg_count):
            return info
    return declared[0]


def _external(qualified: str, arg_count: int, *, constructor: bool = False) -> MethodSymbol:
    """Build a symbol for a callee declared outside the analyzed source."""
    type_name, _, name = qualified.rpartition(".")
    if not type_name:
        type_name = "builtins"
    if name[:1].isupper():
        # Calling a class: treat as its constructor.
        return MethodSymbol(
            type_name=qualified,
            name="__init__",
            param_count=arg_count,
            is_constructor=True,
            in_source=False,
        )
    return MethodSymbol(
        type_name=type_name,
        name=name,
        param_count=arg_count,
        is_constructor=constructor,
        in_source=False,
    )
