"""Best-effort static resolution of Java call expressions.

Receivers are typed from declarations only: method parameters, local
variables (including ``var x = new T()``), enhanced-for and catch variables,
try-with-resources and fields of the enclosing types.  Overloads are chosen
by argument count.
"""

from __future__ import annotations

import logging

from cdindex.semantic.base import MethodSymbol
from cdindex.semantic.java.index import (
    CompilationUnit,
    JavaMethod,
    JavaType,
    node_text,
    strip_generics,
)

logger = logging.getLogger(__name__)

# Call expression node types that a method body is scanned for.
CALL_NODE_TYPES = {
    "method_invocation",
    "object_creation_expression",
    "explicit_constructor_invocation",
}

_LOCAL_DECL_TYPES = {
    "local_variable_declaration",
    "formal_parameter",
    "catch_formal_parameter",
    "enhanced_for_statement",
    "resource",
}


def argument_count(node) -> int:
    arguments = node.child_by_field_name("arguments")
    if arguments is None:
        return 0
    return sum(1 for child in arguments.named_children if child.type != "comment")


def call_text(node, source: bytes) -> str:
    """Literal source of the call target, without the argument list."""
    if node.type == "object_creation_expression":
        type_node = node.child_by_field_name("type")
        return "new " + (node_text(type_node) if type_node is not None else "?")
    arguments = node.child_by_field_name("arguments")
    end = arguments.start_byte if arguments is not None else node.end_byte
    return source[node.start_byte : end].decode("utf-8", errors="replace").strip()


class JavaCallResolver:
    """Resolve tree-sitter call nodes against the indexed compilation units."""

    def __init__(self, types: dict[str, JavaType]):
        self._types = types
        self._locals: dict[int, dict[str, str]] = {}

    def resolve(self, caller: JavaMethod, node) -> MethodSymbol | None:
        arg_count = argument_count(node)
        if node.type == "object_creation_expression":
            type_node = node.child_by_field_name("type")
            if type_node is None:
                return None
            return self._construct(caller.owner, node_text(type_node), arg_count)
        if node.type == "explicit_constructor_invocation":
            return self._explicit_constructor(caller.owner, node, arg_count)

        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = node_text(name_node)
        receiver = node.child_by_field_name("object")

        if receiver is None or receiver.type == "this":
            return self._lookup_enclosing(caller.owner, name, arg_count)
        if receiver.type == "super":
            superclass = self.find_type(caller.owner, caller.owner.superclass)
            if isinstance(superclass, JavaType):
                return self._lookup_method(superclass, name, arg_count)
            if superclass is not None:
                return _external(superclass, name, arg_count)
            return None

        receiver_type = self._receiver_type(caller, receiver)
        if receiver_type is None:
            return None
        if isinstance(receiver_type, JavaType):
            return self._lookup_method(receiver_type, name, arg_count)
        return _external(receiver_type, name, arg_count)

    # -- receivers -----------------------------------------------------------

    def _receiver_type(self, caller: JavaMethod, receiver) -> JavaType | str | None:
        if receiver.type == "identifier":
            name = node_text(receiver)
            declared = self._local_types(caller).get(name) or self._field_type(
                caller.owner, name
            )
            if declared is not None:
                return self.find_type(caller.owner, declared)
            if name[:1].isupper() or name in caller.owner.unit.imports:
                # Static call through a type name.
                return self.find_type(caller.owner, name)
            return None

        if receiver.type == "field_access":
            obj = receiver.child_by_field_name("object")
            field_node = receiver.child_by_field_name("field")
            if obj is not None and field_node is not None and obj.type == "this":
                declared = self._field_type(caller.owner, node_text(field_node))
                if declared is not None:
                    return self.find_type(caller.owner, declared)
                return None
            # Fully qualified type name: java.util.Objects.equals(...)
            text = node_text(receiver)
            if text.rpartition(".")[2][:1].isupper():
                return self._types.get(text, text)
            return None

        if receiver.type in ("type_identifier", "scoped_type_identifier"):
            return self.find_type(caller.owner, node_text(receiver))

        # new Foo().bar()
        if receiver.type == "object_creation_expression":
            type_node = receiver.child_by_field_name("type")
            if type_node is not None:
                return self.find_type(caller.owner, node_text(type_node))
        return None

    def _local_types(self, caller: JavaMethod) -> dict[str, str]:
        key = id(caller)
        cached = self._locals.get(key)
        if cached is not None:
            return cached
        found: dict[str, str] = {}
        if caller.node is not None:
            for node in _walk(caller.node):
                if node.type not in _LOCAL_DECL_TYPES:
                    continue
                type_node = node.child_by_field_name("type")
                if type_node is None:
                    continue
                type_text = strip_generics(node_text(type_node))
                if node.type == "local_variable_declaration":
                    for declarator in node.children_by_field_name("declarator"):
                        name_node = declarator.child_by_field_name("name")
                        if name_node is None:
                            continue
                        declared = type_text
                        if declared == "var":
                            declared = _inferred_var_type(declarator)
                        if declared:
                            found.setdefault(node_text(name_node), declared)
                else:
                    name_node = node.child_by_field_name("name")
                    if name_node is not None:
                        found.setdefault(node_text(name_node), type_text)
        self._locals[key] = found
        return found

    def _field_type(self, owner: JavaType, name: str) -> str | None:
        seen: set[int] = set()
        current: JavaType | None = owner
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            for java_type in self._hierarchy(current):
                if name in java_type.fields:
                    return java_type.fields[name]
            current = current.outer
        return None

    # -- type lookup ---------------------------------------------------------

    def find_type(self, context: JavaType, type_text: str | None) -> JavaType | str | None:
        """Resolve *type_text* as seen from *context*.

        Returns the project type, the best-known qualified name of an
        external type, or None for an empty reference.
        """
        if not type_text:
            return None
        type_text = strip_generics(type_text).removesuffix("[]")
        if "." in type_text:
            if type_text in self._types:
                return self._types[type_text]
            head, _, rest = type_text.partition(".")
            outer = self.find_type(context, head)
            if isinstance(outer, JavaType):
                for part in rest.split("."):
                    outer = outer.nested.get(part) if isinstance(outer, JavaType) else None
                if isinstance(outer, JavaType):
                    return outer
            return type_text

        current: JavaType | None = context
        while current is not None:
            if current.simple_name == type_text:
                return current
            if type_text in current.nested:
                return current.nested[type_text]
            current = current.outer

        unit: CompilationUnit = context.unit
        if type_text in unit.types:
            return unit.types[type_text]
        imported = unit.imports.get(type_text)
        if imported is not None:
            return self._types.get(imported, imported)
        same_package = f"{unit.package}.{type_text}" if unit.package else type_text
        if same_package in self._types:
            return self._types[same_package]
        for wildcard in unit.wildcard_imports:
            candidate = self._types.get(f"{wildcard}.{type_text}")
            if candidate is not None:
                return candidate
        return type_text

    def _hierarchy(self, java_type: JavaType):
        """Yield *java_type* then its project supertypes, depth-first."""
        seen: set[int] = set()
        stack = [java_type]
        while stack:
            current = stack.pop()
            if id(current) in seen:
                continue
            seen.add(id(current))
            yield current
            supers = [current.superclass, *current.interfaces]
            for name in reversed(supers):
                found = self.find_type(current, name)
                if isinstance(found, JavaType):
                    stack.append(found)

    # -- method lookup -------------------------------------------------------

    def _lookup_enclosing(self, owner: JavaType, name: str, arg_count: int) -> MethodSymbol | None:
        current: JavaType | None = owner
        while current is not None:
            found = self._find_method(current, name, arg_count)
            if found is not None:
                return found.symbol
            current = current.outer
        external_super = self._external_supertype(owner)
        if external_super is not None:
            return _external(external_super, name, arg_count)
        return None

    def _lookup_method(self, java_type: JavaType, name: str, arg_count: int) -> MethodSymbol | None:
        found = self._find_method(java_type, name, arg_count)
        if found is not None:
            return found.symbol
        external_super = self._external_supertype(java_type)
        if external_super is not None:
            return _external(external_super, name, arg_count)
        return None

    def _find_method(self, java_type: JavaType, name: str, arg_count: int) -> JavaMethod | None:
        for current in self._hierarchy(java_type):
            candidates = current.methods.get(name)
            if candidates:
                return _pick(candidates, arg_count)
        return None

    def _external_supertype(self, java_type: JavaType) -> str | None:
        for current in self._hierarchy(java_type):
            for name in (current.superclass, *current.interfaces):
                found = self.find_type(current, name)
                if isinstance(found, str):
                    return found
        return None

    # -- constructors --------------------------------------------------------

    def _construct(self, context: JavaType, type_text: str, arg_count: int) -> MethodSymbol | None:
        found = self.find_type(context, type_text)
        if found is None:
            return None
        if isinstance(found, str):
            return MethodSymbol(
                type_name=found,
                name=found.rpartition(".")[2],
                param_count=arg_count,
                is_constructor=True,
                in_source=False,
            )
        return self._constructor(found, arg_count)

    def _constructor(self, java_type: JavaType, arg_count: int) -> MethodSymbol:
        if java_type.constructors:
            return _pick(java_type.constructors, arg_count).symbol
        # Implicit default constructor: declared in source, nothing to explore.
        return MethodSymbol(
            type_name=java_type.full_name,
            name=java_type.simple_name,
            param_count=0,
            is_constructor=True,
            in_source=True,
            file=java_type.unit.rel_path,
            line=java_type.node.start_point[0] + 1,
        )

    def _explicit_constructor(self, owner: JavaType, node, arg_count: int) -> MethodSymbol | None:
        target = node.child_by_field_name("constructor")
        if target is None:
            return None
        if target.type == "this":
            return self._constructor(owner, arg_count)
        superclass = self.find_type(owner, owner.superclass)
        if isinstance(superclass, JavaType):
            return self._constructor(superclass, arg_count)
        if superclass is not None:
            return MethodSymbol(
                type_name=superclass,
                name=superclass.rpartition(".")[2],
                param_count=arg_count,
                is_constructor=True,
                in_source=False,
            )
        return None


def _walk(node):
    """Pre-order traversal of a tree-sitter node."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def walk_calls(body):
    """Yield call nodes under *body* in source order."""
    for node in _walk(body):
        if node.type in CALL_NODE_TYPES:
            yield node


def _inferred_var_type(declarator) -> str | None:
    value = declarator.child_by_field_name("value")
    if value is not None and value.type == "object_creation_expression":
        type_node = value.child_by_field_name("type")
        if type_node is not None:
            return strip_generics(node_text(type_node))
    return None


def _pick(candidates: list[JavaMethod], arg_count: int) -> JavaMethod:
    for method in candidates:
        if method.accepts(arg_count):
            return method
    return candidates[0]


def _external(type_name: str, name: str, arg_count: int) -> MethodSymbol:
    return MethodSymbol(
        type_name=type_name,
        name=name,
        param_count=arg_count,
        in_source=False,
    )
