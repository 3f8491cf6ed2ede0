"""
Tree-sitter adapter for TypeScript / TSX source.

Produces a FileAnalysis from TypeScript syntax trees: classes, interfaces,
enums, type aliases, top-level functions, arrow functions bound to
const/let, class methods, and import statements.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from tree_sitter import Node, Tree

from ..models import Field, FileAnalysis, FunctionDef, Import, Language, Parameter, TypeDef, TypeKind
from ..utils import split_top_level
from .extractor_base import (
    SourceContext,
    base_type_name,
    children_of_type,
    collect_calls,
    count_complexity,
    has_child_type,
    preceding_doc,
    strip_type_annotation,
)

BRANCH_TYPES = {
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_case",
    "catch_clause",
    "ternary_expression",
}
BOOLEAN_OPERATORS = {"&&", "||", "??"}
FUNCTION_VALUES = {"arrow_function", "function_expression", "function"}
PRIVATE_MODIFIERS = {"private", "protected"}


def extract_file_analysis(tree: Tree, ctx: SourceContext) -> FileAnalysis:
    file_analysis = FileAnalysis(path=ctx.file_path, language=Language.TYPESCRIPT)
    for child in tree.root_node.named_children:
        if child.type == "import_statement":
            file_analysis.imports.append(_build_import(child, ctx))
        elif child.type == "export_statement":
            declaration = child.child_by_field_name("declaration")
            if declaration is not None:
                _visit_declaration(declaration, child, ctx, file_analysis, exported=True)
        else:
            _visit_declaration(child, child, ctx, file_analysis, exported=False)
    return file_analysis


def _visit_declaration(node: Node, anchor: Node, ctx: SourceContext,
                       file_analysis: FileAnalysis, exported: bool) -> None:
    if node.type in ("function_declaration", "generator_function_declaration", "function_signature"):
        file_analysis.functions.append(_build_function(node, anchor, ctx, exported, receiver=None))
    elif node.type in ("class_declaration", "abstract_class_declaration"):
        type_def, methods = _build_class(node, anchor, ctx, exported)
        file_analysis.types.append(type_def)
        file_analysis.functions.extend(methods)
    elif node.type == "interface_declaration":
        file_analysis.types.append(_build_interface(node, anchor, ctx, exported))
    elif node.type == "enum_declaration":
        file_analysis.types.append(_build_enum(node, anchor, ctx, exported))
    elif node.type == "type_alias_declaration":
        file_analysis.types.append(_build_type_alias(node, anchor, ctx, exported))
    elif node.type in ("lexical_declaration", "variable_declaration"):
        for declarator in children_of_type(node, "variable_declarator"):
            value = declarator.child_by_field_name("value")
            if value is not None and value.type in FUNCTION_VALUES:
                file_analysis.functions.append(
                    _build_arrow_function(declarator, value, anchor, ctx, exported)
                )
    elif node.type == "ambient_declaration":
        for inner in node.named_children:
            _visit_declaration(inner, anchor, ctx, file_analysis, exported)


def _build_import(node: Node, ctx: SourceContext) -> Import:
    path = ctx.text(node.child_by_field_name("source")).strip("'\"`")
    names: List[str] = []
    alias: Optional[str] = None
    for clause in children_of_type(node, "import_clause"):
        for part in clause.named_children:
            if part.type == "identifier":
                names.append(ctx.text(part))
            elif part.type == "namespace_import":
                alias = ctx.text(part.named_children[-1]) if part.named_children else None
            elif part.type == "named_imports":
                for spec in children_of_type(part, "import_specifier"):
                    names.append(ctx.text(spec.child_by_field_name("name")))
    return Import(path=path, alias=alias, names=names)


def _doc(ctx: SourceContext, anchor: Node) -> Optional[str]:
    return preceding_doc(ctx, anchor, prefixes=("/**",))


def _is_async(node: Node) -> bool:
    return has_child_type(node, "async")


def _return_type(node: Node, ctx: SourceContext) -> List[str]:
    return_node = node.child_by_field_name("return_type")
    if return_node is None:
        return []
    text = strip_type_annotation(ctx.text(return_node))
    if return_node.type in ("type_predicate_annotation", "asserts_annotation"):
        return ["boolean"] if return_node.type == "type_predicate_annotation" else []
    return [text] if text else []


def _build_parameters(params_node: Optional[Node], ctx: SourceContext) -> List[Parameter]:
    parameters: List[Parameter] = []
    if params_node is None:
        return parameters
    if params_node.type == "identifier":
        # Single bare arrow parameter: x => ...
        return [Parameter(name=ctx.text(params_node))]
    for child in children_of_type(params_node, "required_parameter", "optional_parameter"):
        pattern = child.child_by_field_name("pattern")
        name = ctx.text(pattern)
        if name == "this":
            continue
        variadic = pattern is not None and pattern.type == "rest_pattern"
        value = child.child_by_field_name("value")
        type_text = strip_type_annotation(ctx.text(child.child_by_field_name("type")))
        parameters.append(Parameter(
            name=name.lstrip("."),
            type=type_text,
            optional=child.type == "optional_parameter" or value is not None,
            variadic=variadic,
            default=ctx.text(value) if value is not None else None,
        ))
    return parameters


def _build_function(node: Node, anchor: Node, ctx: SourceContext, exported: bool,
                    receiver: Optional[str]) -> FunctionDef:
    body = node.child_by_field_name("body")
    return FunctionDef(
        name=ctx.text(node.child_by_field_name("name")),
        parameters=_build_parameters(node.child_by_field_name("parameters"), ctx),
        returns=_return_type(node, ctx),
        is_async=_is_async(node),
        exported=exported,
        signature=ctx.header(node, body),
        calls=collect_calls(ctx, body, {"call_expression"}),
        complexity=count_complexity(body, BRANCH_TYPES, BOOLEAN_OPERATORS),
        doc=_doc(ctx, anchor),
        location=ctx.location(node),
        hash_body=ctx.hash(node),
        receiver=receiver,
    )


def _build_arrow_function(declarator: Node, value: Node, anchor: Node, ctx: SourceContext,
                          exported: bool) -> FunctionDef:
    body = value.child_by_field_name("body")
    params = value.child_by_field_name("parameters") or value.child_by_field_name("parameter")
    return FunctionDef(
        name=ctx.text(declarator.child_by_field_name("name")),
        parameters=_build_parameters(params, ctx),
        returns=_return_type(value, ctx),
        is_async=_is_async(value),
        exported=exported,
        signature=ctx.header(declarator, body),
        calls=collect_calls(ctx, body, {"call_expression"}),
        complexity=count_complexity(body, BRANCH_TYPES, BOOLEAN_OPERATORS),
        doc=_doc(ctx, anchor),
        location=ctx.location(declarator),
        hash_body=ctx.hash(declarator),
    )


def _member_is_private(member: Node, ctx: SourceContext) -> bool:
    for modifier in children_of_type(member, "accessibility_modifier"):
        if ctx.text(modifier) in PRIVATE_MODIFIERS:
            return True
    name_node = member.child_by_field_name("name")
    return name_node is not None and (
        name_node.type == "private_property_identifier" or ctx.text(name_node).startswith("#")
    )


def _heritage(node: Node, ctx: SourceContext) -> List[str]:
    names: List[str] = []
    for clause in _descendants_of_type(node, {"extends_clause", "implements_clause", "extends_type_clause"},
                                       stop={"class_body", "interface_body", "object_type"}):
        text = ctx.text(clause)
        for keyword in ("extends", "implements"):
            if text.startswith(keyword):
                text = text[len(keyword):]
                break
        names.extend(base_type_name(part) for part in split_top_level(text))
    return [name for name in names if name]


def _descendants_of_type(node: Node, types: set, stop: set) -> List[Node]:
    found: List[Node] = []
    for child in node.named_children:
        if child.type in stop:
            continue
        if child.type in types:
            found.append(child)
        else:
            found.extend(_descendants_of_type(child, types, stop))
    return found


def _type_parameters(node: Node, ctx: SourceContext) -> List[str]:
    params = node.child_by_field_name("type_parameters")
    return [ctx.text(p.child_by_field_name("name")) for p in children_of_type(params, "type_parameter")]


def _property_field(member: Node, ctx: SourceContext) -> Field:
    type_text = strip_type_annotation(ctx.text(member.child_by_field_name("type")))
    value = member.child_by_field_name("value")
    return Field(
        name=ctx.text(member.child_by_field_name("name")),
        type=type_text,
        optional=has_child_type(member, "?"),
        default=ctx.text(value) if value is not None else None,
        is_array=type_text.endswith("[]") or type_text.startswith("Array<"),
        is_map=type_text.startswith(("Map<", "Record<")),
    )


def _build_class(node: Node, anchor: Node, ctx: SourceContext,
                 exported: bool) -> Tuple[TypeDef, List[FunctionDef]]:
    name = ctx.text(node.child_by_field_name("name"))
    type_def = TypeDef(
        name=name,
        kind=TypeKind.CLASS,
        generics=_type_parameters(node, ctx),
        implements=_heritage(node, ctx),
        exported=exported,
        location=ctx.location(node),
        doc=_doc(ctx, anchor),
        hash_body=ctx.hash(node),
    )
    methods: List[FunctionDef] = []
    body = node.child_by_field_name("body")
    for member in (body.named_children if body is not None else []):
        if member.type in ("method_definition", "method_signature", "abstract_method_signature"):
            method_name = ctx.text(member.child_by_field_name("name"))
            if method_name == "constructor":
                type_def.fields.extend(_parameter_properties(member, ctx))
                continue
            method = _build_function(member, member, ctx, not _member_is_private(member, ctx), receiver=name)
            methods.append(method)
            type_def.methods.append(method_name)
        elif member.type in ("public_field_definition", "property_signature"):
            type_def.fields.append(_property_field(member, ctx))
    return type_def, methods


def _parameter_properties(constructor: Node, ctx: SourceContext) -> List[Field]:
    """Constructor parameters declared with an accessibility or readonly modifier are fields."""
    fields: List[Field] = []
    params = constructor.child_by_field_name("parameters")
    for child in children_of_type(params, "required_parameter", "optional_parameter"):
        if not has_child_type(child, "accessibility_modifier", "readonly", "override_modifier"):
            continue
        type_text = strip_type_annotation(ctx.text(child.child_by_field_name("type")))
        fields.append(Field(
            name=ctx.text(child.child_by_field_name("pattern")),
            type=type_text,
            optional=child.type == "optional_parameter",
        ))
    return fields


def _object_members(body: Optional[Node], ctx: SourceContext) -> Tuple[List[Field], List[str]]:
    fields: List[Field] = []
    methods: List[str] = []
    for member in (body.named_children if body is not None else []):
        if member.type == "property_signature":
            type_node = member.child_by_field_name("type")
            value_type = type_node.named_children[0].type if type_node is not None and type_node.named_children else ""
            if value_type == "function_type":
                methods.append(ctx.text(member.child_by_field_name("name")))
            else:
                fields.append(_property_field(member, ctx))
        elif member.type == "method_signature":
            methods.append(ctx.text(member.child_by_field_name("name")))
    return fields, methods


def _build_interface(node: Node, anchor: Node, ctx: SourceContext, exported: bool) -> TypeDef:
    fields, methods = _object_members(node.child_by_field_name("body"), ctx)
    return TypeDef(
        name=ctx.text(node.child_by_field_name("name")),
        kind=TypeKind.INTERFACE,
        fields=fields,
        methods=methods,
        generics=_type_parameters(node, ctx),
        implements=_heritage(node, ctx),
        exported=exported,
        location=ctx.location(node),
        doc=_doc(ctx, anchor),
        hash_body=ctx.hash(node),
    )


def _build_enum(node: Node, anchor: Node, ctx: SourceContext, exported: bool) -> TypeDef:
    variants: List[str] = []
    for member in children_of_type(node.child_by_field_name("body"), "property_identifier", "enum_assignment", "string"):
        name_node = member.child_by_field_name("name") if member.type == "enum_assignment" else member
        variants.append(ctx.text(name_node).strip("'\""))
    return TypeDef(
        name=ctx.text(node.child_by_field_name("name")),
        kind=TypeKind.ENUM,
        variants=variants,
        exported=exported,
        location=ctx.location(node),
        doc=_doc(ctx, anchor),
        hash_body=ctx.hash(node),
    )


def _build_type_alias(node: Node, anchor: Node, ctx: SourceContext, exported: bool) -> TypeDef:
    value = node.child_by_field_name("value")
    type_def = TypeDef(
        name=ctx.text(node.child_by_field_name("name")),
        kind=TypeKind.ALIAS,
        generics=_type_parameters(node, ctx),
        exported=exported,
        location=ctx.location(node),
        doc=_doc(ctx, anchor),
        hash_body=ctx.hash(node),
    )
    if value is not None and value.type == "object_type":
        # type User = { id: number } declares a record shape
        type_def.kind = TypeKind.STRUCT
        type_def.fields, type_def.methods = _object_members(value, ctx)
    elif value is not None and value.type == "union_type" and _is_literal_union(value):
        type_def.kind = TypeKind.ENUM
        type_def.variants = [ctx.text(part).strip("'\"") for part in _union_members(value)]
    else:
        type_def.alias_of = ctx.text(value)
    return type_def


def _union_members(node: Node) -> List[Node]:
    members: List[Node] = []
    for child in node.named_children:
        if child.type == "union_type":
            members.extend(_union_members(child))
        else:
            members.append(child)
    return members


def _is_literal_union(node: Node) -> bool:
    members = _union_members(node)
    return bool(members) and all(
        m.type == "literal_type" and m.named_children and m.named_children[0].type == "string"
        for m in members
    )
