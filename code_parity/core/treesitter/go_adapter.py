"""
Tree-sitter adapter for Go source.

Produces a FileAnalysis from a Go syntax tree: struct/interface/named types,
functions and methods (with their receiver), imports, and typed const groups
that turn a named type into an enum.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from tree_sitter import Node, Tree

from ..models import Field, FileAnalysis, FunctionDef, Import, Language, Parameter, TypeDef, TypeKind
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
    "expression_case",
    "type_case",
    "communication_case",
}


def extract_file_analysis(tree: Tree, ctx: SourceContext) -> FileAnalysis:
    file_analysis = FileAnalysis(path=ctx.file_path, language=Language.GO)
    for child in tree.root_node.named_children:
        if child.type == "package_clause":
            name_node = child.named_children[0] if child.named_children else None
            file_analysis.package = ctx.text(name_node) or None
        elif child.type == "import_declaration":
            file_analysis.imports.extend(_build_imports(child, ctx))
        elif child.type == "function_declaration":
            file_analysis.functions.append(_build_function(child, ctx, receiver=None))
        elif child.type == "method_declaration":
            receiver = _receiver_type(child, ctx)
            file_analysis.functions.append(_build_function(child, ctx, receiver=receiver))
        elif child.type == "type_declaration":
            for spec in children_of_type(child, "type_spec", "type_alias"):
                file_analysis.types.append(_build_type(spec, child, ctx))
        elif child.type == "const_declaration":
            for type_name, const_name in _typed_constants(child, ctx):
                file_analysis.constants.setdefault(type_name, []).append(const_name)
    return file_analysis


def is_exported(name: str) -> bool:
    return bool(name) and name[0].isupper()


def _build_imports(node: Node, ctx: SourceContext) -> List[Import]:
    imports: List[Import] = []
    for spec in (n for n in _descendants(node) if n.type == "import_spec"):
        path = ctx.text(spec.child_by_field_name("path")).strip('"`')
        alias_node = spec.child_by_field_name("name")
        imports.append(Import(path=path, alias=ctx.text(alias_node) or None))
    return imports


def _descendants(node: Node):
    for child in node.named_children:
        yield child
        yield from _descendants(child)


def _build_function(node: Node, ctx: SourceContext, receiver: Optional[str]) -> FunctionDef:
    name = ctx.text(node.child_by_field_name("name"))
    body = node.child_by_field_name("body")
    return FunctionDef(
        name=name,
        parameters=_build_parameters(node.child_by_field_name("parameters"), ctx),
        returns=_build_results(node.child_by_field_name("result"), ctx),
        is_async=False,
        exported=is_exported(name),
        signature=ctx.header(node, body),
        calls=collect_calls(ctx, body, {"call_expression"}),
        complexity=count_complexity(body, BRANCH_TYPES),
        doc=preceding_doc(ctx, node, prefixes=("//", "/*")),
        location=ctx.location(node),
        hash_body=ctx.hash(node),
        receiver=receiver,
    )


def _build_parameters(params_node: Optional[Node], ctx: SourceContext) -> List[Parameter]:
    parameters: List[Parameter] = []
    for child in children_of_type(params_node, "parameter_declaration", "variadic_parameter_declaration"):
        type_text = ctx.text(child.child_by_field_name("type"))
        variadic = child.type == "variadic_parameter_declaration"
        names = [ctx.text(n) for n in child.children_by_field_name("name")]
        if not names:
            names = [""]
        for name in names:
            parameters.append(Parameter(
                name=name,
                type=f"[]{type_text}" if variadic else type_text,
                variadic=variadic,
            ))
    return parameters


def _build_results(result_node: Optional[Node], ctx: SourceContext) -> List[str]:
    if result_node is None:
        return []
    if result_node.type != "parameter_list":
        return [ctx.text(result_node)]
    results: List[str] = []
    for child in children_of_type(result_node, "parameter_declaration", "variadic_parameter_declaration"):
        type_text = ctx.text(child.child_by_field_name("type"))
        # Named results declare one value per name: (x, y int)
        count = max(1, len(child.children_by_field_name("name")))
        results.extend([type_text] * count)
    return results


def _receiver_type(node: Node, ctx: SourceContext) -> Optional[str]:
    receiver = node.child_by_field_name("receiver")
    for child in children_of_type(receiver, "parameter_declaration"):
        return base_type_name(ctx.text(child.child_by_field_name("type")))
    return None


def _build_type(spec: Node, declaration: Node, ctx: SourceContext) -> TypeDef:
    name = ctx.text(spec.child_by_field_name("name"))
    type_node = spec.child_by_field_name("type")
    anchor = declaration if len(children_of_type(declaration, "type_spec", "type_alias")) == 1 else spec
    type_def = TypeDef(
        name=name,
        kind=TypeKind.ALIAS,
        generics=_type_parameters(spec, ctx),
        exported=is_exported(name),
        location=ctx.location(spec),
        doc=preceding_doc(ctx, anchor, prefixes=("//", "/*")),
        hash_body=ctx.hash(spec),
    )
    if type_node is not None and type_node.type == "struct_type":
        type_def.kind = TypeKind.STRUCT
        type_def.fields, type_def.implements = _struct_fields(type_node, ctx)
    elif type_node is not None and type_node.type == "interface_type":
        type_def.kind = TypeKind.INTERFACE
        type_def.methods, type_def.implements = _interface_members(type_node, ctx)
    else:
        type_def.alias_of = ctx.text(type_node)
    return type_def


def _type_parameters(spec: Node, ctx: SourceContext) -> List[str]:
    params = spec.child_by_field_name("type_parameters")
    names: List[str] = []
    for decl in children_of_type(params, "type_parameter_declaration"):
        names.extend(ctx.text(n) for n in decl.children_by_field_name("name"))
    return names


def _struct_fields(struct_node: Node, ctx: SourceContext) -> Tuple[List[Field], List[str]]:
    fields: List[Field] = []
    embedded: List[str] = []
    for field_list in children_of_type(struct_node, "field_declaration_list"):
        for decl in children_of_type(field_list, "field_declaration"):
            type_text = ctx.text(decl.child_by_field_name("type"))
            names = [ctx.text(n) for n in decl.children_by_field_name("name")]
            if not names:
                embedded.append(base_type_name(type_text))
                continue
            for name in names:
                fields.append(Field(
                    name=name,
                    type=type_text,
                    optional=type_text.startswith("*"),
                    is_pointer=type_text.startswith("*"),
                    is_array=type_text.startswith("["),
                    is_map=type_text.startswith("map["),
                ))
    return fields, embedded


def _interface_members(iface_node: Node, ctx: SourceContext) -> Tuple[List[str], List[str]]:
    methods: List[str] = []
    embedded: List[str] = []
    for child in iface_node.named_children:
        if child.type in ("method_elem", "method_spec"):
            methods.append(ctx.text(child.child_by_field_name("name")))
        elif child.type in ("type_elem", "constraint_elem", "interface_type_name"):
            text = ctx.text(child)
            # Type sets ('~int | ~string') are constraints, not embedded interfaces
            if "|" not in text and "~" not in text:
                embedded.append(base_type_name(text))
    return methods, embedded


def _typed_constants(node: Node, ctx: SourceContext) -> List[Tuple[str, str]]:
    """
    (type name, constant name) pairs of a const block.

    A spec with neither type nor value repeats the previous spec's type
    (iota groups); a spec with a value and no type is untyped.
    """
    pairs: List[Tuple[str, str]] = []
    current_type: Optional[str] = None
    for spec in children_of_type(node, "const_spec"):
        type_node = spec.child_by_field_name("type")
        value_node = spec.child_by_field_name("value")
        if type_node is not None:
            current_type = ctx.text(type_node)
        elif value_node is not None:
            current_type = None
        if current_type is None:
            continue
        for name_node in spec.children_by_field_name("name"):
            name = ctx.text(name_node)
            if name != "_":
                pairs.append((current_type, name))
    return pairs
