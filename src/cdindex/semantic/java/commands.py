"""Find picocli ``@Command`` classes and their ``@Option``/``@Parameters`` fields."""

from __future__ import annotations

from cdindex.model import CliCommand
from cdindex.semantic.java.index import CompilationUnit, JavaType, node_text


def find_commands(unit: CompilationUnit) -> list[CliCommand]:
    commands: list[CliCommand] = []
    for java_type in unit.types.values():
        _collect(unit, java_type, commands)
    return commands


def _collect(unit: CompilationUnit, java_type: JavaType, out: list[CliCommand]) -> None:
    command = _command(unit, java_type)
    if command is not None:
        out.append(command)
    for nested in java_type.nested.values():
        _collect(unit, nested, out)


def _command(unit: CompilationUnit, java_type: JavaType) -> CliCommand | None:
    values = None
    for annotation in _annotations(java_type.node):
        if _annotation_name(annotation) == "Command":
            values = _annotation_values(annotation)
    if values is None or not values.get("name"):
        return None

    options: set[str] = set()
    arguments: set[str] = set()
    body = java_type.node.child_by_field_name("body")
    for member in body.named_children if body is not None else []:
        if member.type != "field_declaration":
            continue
        for annotation in _annotations(member):
            kind = _annotation_name(annotation)
            if kind == "Option":
                names = _annotation_values(annotation).get("names", [])
                options.update(n for n in names if n.startswith("--"))
            elif kind == "Parameters":
                label = _annotation_values(annotation).get("paramLabel")
                if label:
                    arguments.add(label[0])
                else:
                    field_name = _field_name(member)
                    if field_name:
                        arguments.add(field_name)

    return CliCommand(
        name=values["name"][0],
        aliases=sorted(set(values.get("aliases", []))),
        options=sorted(options),
        arguments=sorted(arguments),
        file=unit.rel_path,
        line=java_type.node.start_point[0] + 1,
    )


def _annotations(declaration) -> list:
    for child in declaration.children:
        if child.type == "modifiers":
            return [
                c
                for c in child.named_children
                if c.type in ("annotation", "marker_annotation")
            ]
    return []


def _annotation_name(annotation) -> str:
    name = annotation.child_by_field_name("name")
    return node_text(name).rpartition(".")[2] if name is not None else ""


def _annotation_values(annotation) -> dict[str, list[str]]:
    """Map element names to their string values (``value`` for a bare element)."""
    values: dict[str, list[str]] = {}
    arguments = annotation.child_by_field_name("arguments")
    if arguments is None:
        return values
    for child in arguments.named_children:
        if child.type == "element_value_pair":
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if key is not None and value is not None:
                values[node_text(key)] = _strings(value)
        else:
            values["value"] = _strings(child)
    return values


def _strings(node) -> list[str]:
    if node.type == "string_literal":
        text = node_text(node)
        return [text[1:-1]] if len(text) > 2 and not text.startswith('"""') else []
    if node.type == "element_value_array_initializer":
        found: list[str] = []
        for child in node.named_children:
            found.extend(_strings(child))
        return found
    return []


def _field_name(field_declaration) -> str | None:
    declarator = field_declaration.child_by_field_name("declarator")
    if declarator is None:
        return None
    name = declarator.child_by_field_name("name")
    return node_text(name) if name is not None else None
