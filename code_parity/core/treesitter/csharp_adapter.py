"""
Tree-sitter adapter for C# source.

Walks namespaces (block and file-scoped) and records classes, structs,
records, interfaces and enums. Properties and fields become TypeDef fields;
methods are recorded as functions with the declaring type as receiver.
"""

from __future__ import annotations

from typing import List, Optional, Set

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
    "foreach_statement",
    "for_each_statement",
    "while_statement",
    "do_statement",
    "switch_section",
    "switch_expression_arm",
    "catch_clause",
    "conditional_expression",
}
BOOLEAN_OPERATORS = {"&&", "||", "??"}
TYPE_DECLARATIONS = {
    "class_declaration": TypeKind.CLASS,
    "struct_declaration": TypeKind.STRUCT,
    "record_declaration": TypeKind.STRUCT,
    "record_struct_declaration": TypeKind.STRUCT,
    "interface_declaration": TypeKind.INTERFACE,
    "enum_declaration": TypeKind.ENUM,
}
NAMESPACES = {"namespace_declaration", "file_scoped_namespace_declaration"}


def extract_file_analysis(tree: Tree, ctx: SourceContext) -> FileAnalysis:
    file_analysis = FileAnalysis(path=ctx.file_path, language=Language.CSHARP)
    _walk_declarations(tree.root_node, ctx, file_analysis)
    return file_analysis


def _walk_declarations(node: Node, ctx: SourceContext, file_analysis: FileAnalysis) -> None:
    for child in node.named_children:
        if child.type == "using_directive":
            file_analysis.imports.append(_build_using(child, ctx))
        elif child.type in NAMESPACES:
            file_analysis.package = ctx.text(child.child_by_field_name("name")) or file_analysis.package
            body = child.child_by_field_name("body")
            _walk_declarations(body if body is not None else child, ctx, file_analysis)
        elif child.type == "declaration_list":
            _walk_declarations(child, ctx, file_analysis)
        elif child.type in TYPE_DECLARATIONS:
            _visit_type(child, ctx, file_analysis, in_interface=False)


def _build_using(node: Node, ctx: SourceContext) -> Import:
    text = ctx.text(node).strip().rstrip(";")
    text = text[len("using"):].strip()
    if text.startswith("static "):
        text = text[len("static "):].strip()
    alias = None
    if "=" in text:
        alias, text = [part.strip() for part in text.split("=", 1)]
    return Import(path=text, alias=alias)


def _modifiers(node: Node, ctx: SourceContext) -> Set[str]:
    found: Set[str] = set()
    for child in node.children:
        if child.type in ("modifier", "modifiers", "parameter_modifier"):
            found.update(ctx.text(child).split())
    return found


def _is_public(node: Node, ctx: SourceContext, in_interface: bool) -> bool:
    return in_interface or "private" not in _modifiers(node, ctx)


def _doc(ctx: SourceContext, node: Node) -> Optional[str]:
    sibling = node.prev_sibling
    while sibling is not None and sibling.type == "attribute_list":
        node = sibling
        sibling = sibling.prev_sibling
    return preceding_doc(ctx, node, prefixes=("///",))


def _type_parameters(node: Node, ctx: SourceContext) -> List[str]:
    params = node.child_by_field_name("type_parameters")
    if params is None:
        params = next(iter(children_of_type(node, "type_parameter_list")), None)
    names: List[str] = []
    for param in children_of_type(params, "type_parameter"):
        name_node = param.child_by_field_name("name")
        names.append(ctx.text(name_node) if name_node is not None else ctx.text(param))
    return names


def _bases(node: Node, ctx: SourceContext) -> List[str]:
    for base_list in children_of_type(node, "base_list"):
        return [base_type_name(part) for part in split_top_level(ctx.text(base_list).lstrip(":"))
                if part and "(" not in part]
    return []


def _visit_type(node: Node, ctx: SourceContext, file_analysis: FileAnalysis, in_interface: bool) -> None:
    name = ctx.text(node.child_by_field_name("name"))
    kind = TYPE_DECLARATIONS[node.type]
    type_def = TypeDef(
        name=name,
        kind=kind,
        generics=_type_parameters(node, ctx),
        implements=_bases(node, ctx),
        exported=_is_public(node, ctx, in_interface),
        location=ctx.location(node),
        doc=_doc(ctx, node),
        hash_body=ctx.hash(node),
    )
    file_analysis.types.append(type_def)

    # Positional record: record Person(string Name, int Age);
    for params in children_of_type(node, "parameter_list"):
        for param in _build_parameters(params, ctx):
            type_def.fields.append(_field(param.name, param.type))

    body = node.child_by_field_name("body")
    if kind == TypeKind.ENUM:
        type_def.variants = [
            ctx.text(m.child_by_field_name("name")) for m in children_of_type(body, "enum_member_declaration")
        ]
        return

    member_in_interface = kind == TypeKind.INTERFACE
    for member in (body.named_children if body is not None else []):
        if member.type == "property_declaration":
            type_def.fields.append(_field(ctx.text(member.child_by_field_name("name")), _declared_type(member, ctx)))
        elif member.type == "field_declaration":
            for declaration in children_of_type(member, "variable_declaration"):
                type_text = ctx.text(declaration.child_by_field_name("type"))
                for declarator in children_of_type(declaration, "variable_declarator"):
                    name_node = declarator.child_by_field_name("name") or declarator.named_children[0]
                    type_def.fields.append(_field(ctx.text(name_node), type_text))
        elif member.type == "method_declaration":
            method = _build_method(member, ctx, receiver=name, in_interface=member_in_interface)
            type_def.methods.append(method.name)
            if member.child_by_field_name("body") is not None or children_of_type(member, "arrow_expression_clause"):
                file_analysis.functions.append(method)
        elif member.type in TYPE_DECLARATIONS:
            _visit_type(member, ctx, file_analysis, in_interface=member_in_interface)


def _declared_type(node: Node, ctx: SourceContext) -> str:
    type_node = node.child_by_field_name("type") or node.child_by_field_name("returns")
    return ctx.text(type_node)


def _field(name: str, type_text: str) -> Field:
    head = type_text.split("<")[0].strip()
    return Field(
        name=name,
        type=type_text,
        optional=type_text.endswith("?"),
        is_array=type_text.endswith("[]") or head in ("List", "IList", "IEnumerable", "ICollection"),
        is_map=head in ("Dictionary", "IDictionary", "IReadOnlyDictionary"),
    )


def _build_method(node: Node, ctx: SourceContext, receiver: str, in_interface: bool) -> FunctionDef:
    body = node.child_by_field_name("body") or next(iter(children_of_type(node, "arrow_expression_clause")), None)
    return_text = ctx.text(node.child_by_field_name("returns") or node.child_by_field_name("type"))
    return FunctionDef(
        name=ctx.text(node.child_by_field_name("name")),
        parameters=_build_parameters(node.child_by_field_name("parameters"), ctx),
        returns=[return_text] if return_text else [],
        is_async="async" in _modifiers(node, ctx),
        exported=_is_public(node, ctx, in_interface),
        signature=ctx.header(node, body),
        calls=collect_calls(ctx, body, {"invocation_expression"}),
        complexity=count_complexity(body, BRANCH_TYPES, BOOLEAN_OPERATORS),
        doc=_doc(ctx, node),
        location=ctx.location(node),
        hash_body=ctx.hash(node),
        receiver=receiver,
    )


def _build_parameters(params_node: Optional[Node], ctx: SourceContext) -> List[Parameter]:
    """
    Parameters of a parameter_list. A 'params' array is not wrapped in its own
    node: the 'params' keyword, the array type and the name are siblings of the
    ordinary parameter nodes.
    """
    parameters: List[Parameter] = []
    if params_node is None:
        return parameters
    params_type: Optional[Node] = None
    in_params = False
    for child in params_node.children:
        if child.type == "parameter":
            parameters.append(_build_parameter(child, ctx))
        elif child.type == "params":
            in_params, params_type = True, None
        elif in_params and child.type == "identifier":
            parameters.append(Parameter(name=ctx.text(child), type=ctx.text(params_type), variadic=True))
            in_params = False
        elif in_params and child.is_named and child.type != "attribute_list":
            params_type = child
    return parameters


def _build_parameter(node: Node, ctx: SourceContext) -> Parameter:
    equals = next((c for c in node.children if c.type == "="), None)
    default = equals.next_named_sibling if equals is not None else None
    return Parameter(
        name=ctx.text(node.child_by_field_name("name")),
        type=ctx.text(node.child_by_field_name("type")),
        optional=default is not None,
        default=ctx.text(default) if default is not None else None,
    )
