"""
Tree-sitter adapter for Java source.

Classes, records, interfaces and enums become TypeDefs; their methods are
recorded as functions with the declaring type as receiver. Constructors are
skipped. Nested types are visited recursively.
"""

from __future__ import annotations

from typing import List, Optional

from tree_sitter import Node, Tree

from ..models import Field, FileAnalysis, FunctionDef, Import, Language, Parameter, TypeDef, TypeKind
from ..utils import split_top_level
from .extractor_base import (
    SourceContext,
    base_type_name,
    children_of_type,
    collect_calls,
    count_complexity,
    preceding_doc,
)

BRANCH_TYPES = {
    "if_statement",
    "for_statement",
    "enhanced_for_statement",
    "while_statement",
    "do_statement",
    "switch_label",
    "catch_clause",
    "ternary_expression",
}
COMMENT_TYPES = ("line_comment", "block_comment")
TYPE_DECLARATIONS = {
    "class_declaration": TypeKind.CLASS,
    "record_declaration": TypeKind.STRUCT,
    "interface_declaration": TypeKind.INTERFACE,
    "enum_declaration": TypeKind.ENUM,
}


def extract_file_analysis(tree: Tree, ctx: SourceContext) -> FileAnalysis:
    file_analysis = FileAnalysis(path=ctx.file_path, language=Language.JAVA)
    for child in tree.root_node.named_children:
        if child.type == "package_declaration":
            file_analysis.package = ctx.text(child).replace("package", "", 1).strip(" ;")
        elif child.type == "import_declaration":
            file_analysis.imports.append(_build_import(child, ctx))
        elif child.type in TYPE_DECLARATIONS:
            _visit_type(child, ctx, file_analysis, in_interface=False)
    return file_analysis


def _build_import(node: Node, ctx: SourceContext) -> Import:
    text = ctx.text(node).strip().rstrip(";")
    text = text[len("import"):].strip()
    if text.startswith("static "):
        text = text[len("static "):].strip()
    return Import(path=text.replace(" ", ""))


def _modifiers(node: Node, ctx: SourceContext) -> List[str]:
    for child in children_of_type(node, "modifiers"):
        return [ctx.text(m) for m in child.children if not m.type.endswith("annotation")]
    return []


def _is_public(node: Node, ctx: SourceContext, in_interface: bool) -> bool:
    return in_interface or "private" not in _modifiers(node, ctx)


def _doc(ctx: SourceContext, node: Node) -> Optional[str]:
    return preceding_doc(ctx, node, comment_types=COMMENT_TYPES, prefixes=("/**",))


def _type_parameters(node: Node, ctx: SourceContext) -> List[str]:
    params = node.child_by_field_name("type_parameters")
    names: List[str] = []
    for param in children_of_type(params, "type_parameter"):
        identifiers = children_of_type(param, "type_identifier", "identifier")
        if identifiers:
            names.append(ctx.text(identifiers[0]))
    return names


def _supertypes(node: Node, ctx: SourceContext) -> List[str]:
    names: List[str] = []
    for field_name in ("superclass", "interfaces"):
        clause = node.child_by_field_name(field_name)
        if clause is not None:
            names.extend(_type_list(ctx.text(clause)))
    for clause in children_of_type(node, "extends_interfaces"):
        names.extend(_type_list(ctx.text(clause)))
    return names


def _type_list(text: str) -> List[str]:
    for keyword in ("extends", "implements"):
        if text.startswith(keyword):
            text = text[len(keyword):]
            break
    return [base_type_name(part) for part in split_top_level(text) if part]


def _visit_type(node: Node, ctx: SourceContext, file_analysis: FileAnalysis, in_interface: bool) -> None:
    name = ctx.text(node.child_by_field_name("name"))
    kind = TYPE_DECLARATIONS[node.type]
    type_def = TypeDef(
        name=name,
        kind=kind,
        generics=_type_parameters(node, ctx),
        implements=_supertypes(node, ctx),
        exported=_is_public(node, ctx, in_interface),
        location=ctx.location(node),
        doc=_doc(ctx, node),
        hash_body=ctx.hash(node),
    )
    if kind == TypeKind.STRUCT:
        for param in children_of_type(node.child_by_field_name("parameters"), "formal_parameter"):
            type_def.fields.append(_field(ctx.text(param.child_by_field_name("name")),
                                          ctx.text(param.child_by_field_name("type"))))
    file_analysis.types.append(type_def)

    body = node.child_by_field_name("body")
    members = list(body.named_children) if body is not None else []
    if kind == TypeKind.ENUM:
        type_def.variants = [
            ctx.text(c.child_by_field_name("name")) for c in children_of_type(body, "enum_constant")
        ]
        for declarations in children_of_type(body, "enum_body_declarations"):
            members.extend(declarations.named_children)

    member_in_interface = kind == TypeKind.INTERFACE
    for member in members:
        if member.type == "field_declaration":
            type_text = ctx.text(member.child_by_field_name("type"))
            for declarator in member.children_by_field_name("declarator"):
                type_def.fields.append(_field(ctx.text(declarator.child_by_field_name("name")), type_text))
        elif member.type == "method_declaration":
            method = _build_method(member, ctx, receiver=name, in_interface=member_in_interface)
            type_def.methods.append(method.name)
            if member.child_by_field_name("body") is not None:
                file_analysis.functions.append(method)
        elif member.type in TYPE_DECLARATIONS:
            _visit_type(member, ctx, file_analysis, in_interface=member_in_interface)


def _field(name: str, type_text: str) -> Field:
    head = type_text.split("<")[0].strip()
    return Field(
        name=name,
        type=type_text,
        optional=head == "Optional",
        is_array=type_text.endswith("[]") or head in ("List", "ArrayList", "Set", "Collection"),
        is_map=head in ("Map", "HashMap", "TreeMap"),
    )


def _build_method(node: Node, ctx: SourceContext, receiver: str, in_interface: bool) -> FunctionDef:
    body = node.child_by_field_name("body")
    return_text = ctx.text(node.child_by_field_name("type"))
    return FunctionDef(
        name=ctx.text(node.child_by_field_name("name")),
        parameters=_build_parameters(node.child_by_field_name("parameters"), ctx),
        returns=[return_text] if return_text else [],
        is_async=False,
        exported=_is_public(node, ctx, in_interface),
        signature=ctx.header(node, body),
        calls=collect_calls(ctx, body, {"method_invocation"}, callee_fields=("name",)),
        complexity=count_complexity(body, BRANCH_TYPES),
        doc=_doc(ctx, node),
        location=ctx.location(node),
        hash_body=ctx.hash(node),
        receiver=receiver,
    )


def _build_parameters(params_node: Optional[Node], ctx: SourceContext) -> List[Parameter]:
    parameters: List[Parameter] = []
    for child in children_of_type(params_node, "formal_parameter", "spread_parameter"):
        if child.type == "formal_parameter":
            parameters.append(Parameter(
                name=ctx.text(child.child_by_field_name("name")),
                type=ctx.text(child.child_by_field_name("type")),
            ))
            continue
        # Type... name: the declarator carries the name, the other child the element type
        declarators = children_of_type(child, "variable_declarator")
        type_nodes = [c for c in child.named_children if c.type not in ("variable_declarator", "modifiers")]
        name = ctx.text(declarators[0].child_by_field_name("name")) if declarators else ""
        type_text = ctx.text(type_nodes[0]) if type_nodes else ""
        parameters.append(Parameter(name=name, type=f"{type_text}[]", variadic=True))
    return parameters
