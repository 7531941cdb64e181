"""Index Java compilation units parsed with tree-sitter."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from cdindex.semantic.base import MethodSymbol, SourceProject

logger = logging.getLogger(__name__)

# tree-sitter node types that represent Java type declarations.
TYPE_DECL_TYPES = {
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
}

_BODY_CONTAINERS = {"enum_body_declarations"}


@dataclass(eq=False)
class JavaMethod:
    """A method or constructor declaration."""

    owner: JavaType
    node: object | None
    name: str
    param_count: int
    is_varargs: bool = False
    is_constructor: bool = False
    is_static: bool = False
    param_types: list[str] = field(default_factory=list)
    _symbol: MethodSymbol | None = field(default=None, repr=False)

    def accepts(self, arg_count: int) -> bool:
        if self.is_varargs:
            return arg_count >= self.param_count - 1
        return arg_count == self.param_count

    @property
    def symbol(self) -> MethodSymbol:
        if self._symbol is None:
            self._symbol = MethodSymbol(
                type_name=self.owner.full_name,
                name=self.name,
                param_count=self.param_count,
                is_constructor=self.is_constructor,
                in_source=True,
                file=self.owner.unit.rel_path,
                line=self.node.start_point[0] + 1 if self.node is not None else None,
                handle=self,
            )
        return self._symbol


@dataclass(eq=False)
class JavaType:
    unit: CompilationUnit
    qualname: str
    node: object
    outer: JavaType | None = None
    superclass: str | None = None
    interfaces: list[str] = field(default_factory=list)
    methods: dict[str, list[JavaMethod]] = field(default_factory=dict)
    constructors: list[JavaMethod] = field(default_factory=list)
    fields: dict[str, str] = field(default_factory=dict)
    nested: dict[str, JavaType] = field(default_factory=dict)

    @property
    def simple_name(self) -> str:
        return self.qualname.rpartition(".")[2]

    @property
    def full_name(self) -> str:
        if self.unit.package:
            return f"{self.unit.package}.{self.qualname}"
        return self.qualname


@dataclass(eq=False)
class CompilationUnit:
    path: Path
    rel_path: str
    source: bytes
    tree: object
    project: SourceProject
    package: str = ""
    imports: dict[str, str] = field(default_factory=dict)
    wildcard_imports: list[str] = field(default_factory=list)
    types: dict[str, JavaType] = field(default_factory=dict)
    declarations: list[JavaMethod] = field(default_factory=list)


def node_text(node) -> str:
    return node.text.decode("utf-8")


def strip_generics(type_text: str) -> str:
    """``Map<String, List<X>>`` -> ``Map``; array brackets are kept."""
    base = type_text.split("<", 1)[0].strip()
    if "[]" in type_text and not base.endswith("[]"):
        base += "[]" * type_text.count("[]")
    return base


def parse_unit(
    parser, path: Path, rel_path: str, project: SourceProject
) -> CompilationUnit | None:
    """Parse one ``.java`` file, or return None if it cannot be read."""
    try:
        source = path.read_bytes()
        tree = parser.parse(source)
    except (OSError, ValueError) as e:
        logger.debug("Skipping unparseable Java file %s: %s", rel_path, e)
        return None

    unit = CompilationUnit(
        path=path, rel_path=rel_path, source=source, tree=tree, project=project
    )
    for node in tree.root_node.children:
        if node.type == "package_declaration":
            for child in node.named_children:
                if child.type in ("scoped_identifier", "identifier"):
                    unit.package = node_text(child)
        elif node.type == "import_declaration":
            _add_import(unit, node)
        elif node.type in TYPE_DECL_TYPES:
            java_type = _index_type(unit, node, outer=None)
            if java_type is not None:
                unit.types[java_type.simple_name] = java_type
    return unit


def _add_import(unit: CompilationUnit, node) -> None:
    is_static = any(child.type == "static" for child in node.children)
    is_wildcard = any(child.type == "asterisk" for child in node.children)
    name = None
    for child in node.named_children:
        if child.type in ("scoped_identifier", "identifier"):
            name = node_text(child)
    if name is None or is_static:
        return
    if is_wildcard:
        unit.wildcard_imports.append(name)
    else:
        unit.imports[name.rpartition(".")[2]] = name


def _index_type(unit: CompilationUnit, node, outer: JavaType | None) -> JavaType | None:
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None
    simple_name = node_text(name_node)
    qualname = f"{outer.qualname}.{simple_name}" if outer is not None else simple_name
    java_type = JavaType(unit=unit, qualname=qualname, node=node, outer=outer)

    superclass = node.child_by_field_name("superclass")
    if superclass is not None:
        for child in superclass.named_children:
            java_type.superclass = strip_generics(node_text(child))
    interfaces = node.child_by_field_name("interfaces")
    if interfaces is not None:
        for child in interfaces.named_children:
            if child.type == "type_list":
                java_type.interfaces.extend(
                    strip_generics(node_text(t)) for t in child.named_children
                )
    # interface Foo extends Bar, Baz
    for child in node.children:
        if child.type == "extends_interfaces":
            for type_list in child.named_children:
                java_type.interfaces.extend(
                    strip_generics(node_text(t)) for t in type_list.named_children
                )

    body = node.child_by_field_name("body")
    if body is not None:
        _index_members(unit, java_type, body)
    return java_type


def _index_members(unit: CompilationUnit, java_type: JavaType, body) -> None:
    for child in body.named_children:
        if child.type in _BODY_CONTAINERS:
            _index_members(unit, java_type, child)
        elif child.type in ("method_declaration", "constructor_declaration"):
            method = _method(java_type, child)
            if method.is_constructor:
                java_type.constructors.append(method)
            else:
                java_type.methods.setdefault(method.name, []).append(method)
            unit.declarations.append(method)
        elif child.type == "field_declaration":
            type_node = child.child_by_field_name("type")
            if type_node is None:
                continue
            for declarator in child.children_by_field_name("declarator"):
                name_node = declarator.child_by_field_name("name")
                if name_node is not None:
                    java_type.fields[node_text(name_node)] = strip_generics(
                        node_text(type_node)
                    )
        elif child.type in TYPE_DECL_TYPES:
            nested = _index_type(unit, child, outer=java_type)
            if nested is not None:
                java_type.nested[nested.simple_name] = nested


def _method(owner: JavaType, node) -> JavaMethod:
    is_constructor = node.type == "constructor_declaration"
    name_node = node.child_by_field_name("name")
    name = node_text(name_node) if name_node is not None else owner.simple_name

    param_types: list[str] = []
    is_varargs = False
    params = node.child_by_field_name("parameters")
    if params is not None:
        for child in params.named_children:
            if child.type == "formal_parameter":
                type_node = child.child_by_field_name("type")
                param_types.append(node_text(type_node) if type_node is not None else "?")
            elif child.type == "spread_parameter":
                is_varargs = True
                type_text = "?"
                for sub in child.named_children:
                    if sub.type not in ("modifiers", "variable_declarator"):
                        type_text = node_text(sub)
                        break
                param_types.append(type_text + "...")

    return JavaMethod(
        owner=owner,
        node=node,
        name=name,
        param_count=len(param_types),
        is_varargs=is_varargs,
        is_constructor=is_constructor,
        is_static=_has_modifier(node, "static"),
        param_types=param_types,
    )


def _has_modifier(node, modifier: str) -> bool:
    for child in node.children:
        if child.type == "modifiers":
            return any(m.type == modifier for m in child.children)
    return False
