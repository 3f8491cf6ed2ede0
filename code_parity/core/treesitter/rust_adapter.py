"""
Tree-sitter adapter for Rust source.

Produces a FileAnalysis from Rust syntax trees. Functions inside ``impl``
blocks are recorded as methods of the impl's self type; ``impl Trait for
Type`` is recorded as an implementation so the aggregator can link types
declared in other files.
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
    has_child_type,
    preceding_doc,
)

BRANCH_TYPES = {
    "if_expression",
    "match_arm",
    "while_expression",
    "for_expression",
    "loop_expression",
}
COMMENT_TYPES = ("line_comment", "block_comment", "attribute_item")


def extract_file_analysis(tree: Tree, ctx: SourceContext) -> FileAnalysis:
    file_analysis = FileAnalysis(path=ctx.file_path, language=Language.RUST)
    _walk_items(tree.root_node, ctx, file_analysis)
    return file_analysis


def _walk_items(node: Node, ctx: SourceContext, file_analysis: FileAnalysis) -> None:
    for child in node.named_children:
        if child.type == "function_item":
            file_analysis.functions.append(_build_function(child, ctx, impl_type=None, in_trait_impl=False))
        elif child.type == "struct_item":
            file_analysis.types.append(_build_struct(child, ctx))
        elif child.type == "enum_item":
            file_analysis.types.append(_build_enum(child, ctx))
        elif child.type == "trait_item":
            file_analysis.types.append(_build_trait(child, ctx))
        elif child.type == "type_item":
            file_analysis.types.append(_build_alias(child, ctx))
        elif child.type == "impl_item":
            _walk_impl(child, ctx, file_analysis)
        elif child.type == "use_declaration":
            file_analysis.imports.extend(_build_uses(child, ctx))
        elif child.type == "mod_item":
            body = child.child_by_field_name("body")
            if body is not None:
                _walk_items(body, ctx, file_analysis)


def _is_pub(node: Node) -> bool:
    return has_child_type(node, "visibility_modifier")


def _doc(ctx: SourceContext, node: Node) -> Optional[str]:
    # Attributes such as #[derive(...)] sit between the doc comment and the item.
    sibling = node.prev_sibling
    while sibling is not None and sibling.type == "attribute_item":
        node = sibling
        sibling = sibling.prev_sibling
    return preceding_doc(ctx, node, comment_types=COMMENT_TYPES, prefixes=("///", "/**"))


def _build_function(node: Node, ctx: SourceContext, impl_type: Optional[str],
                    in_trait_impl: bool) -> FunctionDef:
    body = node.child_by_field_name("body")
    return_node = node.child_by_field_name("return_type")
    modifiers = children_of_type(node, "function_modifiers")
    return FunctionDef(
        name=ctx.text(node.child_by_field_name("name")),
        parameters=_build_parameters(node.child_by_field_name("parameters"), ctx),
        returns=[ctx.text(return_node)] if return_node is not None else [],
        is_async=any("async" in ctx.text(m).split() for m in modifiers),
        exported=_is_pub(node) or in_trait_impl,
        signature=ctx.header(node, body),
        calls=collect_calls(ctx, body, {"call_expression"}),
        complexity=count_complexity(body, BRANCH_TYPES),
        doc=_doc(ctx, node),
        location=ctx.location(node),
        hash_body=ctx.hash(node),
        receiver=impl_type,
    )


def _build_parameters(params_node: Optional[Node], ctx: SourceContext) -> List[Parameter]:
    parameters: List[Parameter] = []
    for child in children_of_type(params_node, "parameter"):
        name = ctx.text(child.child_by_field_name("pattern"))
        if name.startswith("mut "):
            name = name[4:]
        parameters.append(Parameter(name=name, type=ctx.text(child.child_by_field_name("type"))))
    return parameters


def _walk_impl(node: Node, ctx: SourceContext, file_analysis: FileAnalysis) -> None:
    impl_type = base_type_name(ctx.text(node.child_by_field_name("type")))
    trait_node = node.child_by_field_name("trait")
    if trait_node is not None:
        file_analysis.implementations.setdefault(impl_type, []).append(base_type_name(ctx.text(trait_node)))
    body = node.child_by_field_name("body")
    for child in children_of_type(body, "function_item"):
        file_analysis.functions.append(
            _build_function(child, ctx, impl_type=impl_type, in_trait_impl=trait_node is not None)
        )


def _type_parameters(node: Node, ctx: SourceContext) -> List[str]:
    params = node.child_by_field_name("type_parameters")
    names: List[str] = []
    for child in (params.named_children if params is not None else []):
        if child.type in ("type_identifier", "constrained_type_parameter", "type_parameter"):
            name_node = child.child_by_field_name("left") or child.child_by_field_name("name") or child
            names.append(ctx.text(name_node))
    return names


def _build_struct(node: Node, ctx: SourceContext) -> TypeDef:
    fields: List[Field] = []
    body = node.child_by_field_name("body")
    if body is not None and body.type == "field_declaration_list":
        for decl in children_of_type(body, "field_declaration"):
            type_text = ctx.text(decl.child_by_field_name("type"))
            fields.append(_field(ctx.text(decl.child_by_field_name("name")), type_text))
    elif body is not None and body.type == "ordered_field_declaration_list":
        # Tuple struct: positional fields are named by index
        for index, type_node in enumerate(body.children_by_field_name("type")):
            fields.append(_field(str(index), ctx.text(type_node)))
    return TypeDef(
        name=ctx.text(node.child_by_field_name("name")),
        kind=TypeKind.STRUCT,
        fields=fields,
        generics=_type_parameters(node, ctx),
        exported=_is_pub(node),
        location=ctx.location(node),
        doc=_doc(ctx, node),
        hash_body=ctx.hash(node),
    )


def _field(name: str, type_text: str) -> Field:
    head = type_text.split("<")[0].strip()
    return Field(
        name=name,
        type=type_text,
        optional=head in ("Option", "std::option::Option"),
        is_pointer=type_text.startswith(("&", "Box<", "Rc<", "Arc<")),
        is_array=head in ("Vec", "VecDeque") or type_text.startswith("["),
        is_map=head in ("HashMap", "BTreeMap"),
    )


def _build_enum(node: Node, ctx: SourceContext) -> TypeDef:
    body = node.child_by_field_name("body")
    variants = [ctx.text(v.child_by_field_name("name")) for v in children_of_type(body, "enum_variant")]
    return TypeDef(
        name=ctx.text(node.child_by_field_name("name")),
        kind=TypeKind.ENUM,
        variants=variants,
        generics=_type_parameters(node, ctx),
        exported=_is_pub(node),
        location=ctx.location(node),
        doc=_doc(ctx, node),
        hash_body=ctx.hash(node),
    )


def _build_trait(node: Node, ctx: SourceContext) -> TypeDef:
    body = node.child_by_field_name("body")
    methods = [
        ctx.text(child.child_by_field_name("name"))
        for child in children_of_type(body, "function_signature_item", "function_item")
    ]
    bounds = node.child_by_field_name("bounds")
    supertraits = [base_type_name(b) for b in split_top_level(ctx.text(bounds).lstrip(":"), "+")] if bounds else []
    return TypeDef(
        name=ctx.text(node.child_by_field_name("name")),
        kind=TypeKind.INTERFACE,
        methods=methods,
        generics=_type_parameters(node, ctx),
        implements=[s for s in supertraits if s and not s.startswith("'")],
        exported=_is_pub(node),
        location=ctx.location(node),
        doc=_doc(ctx, node),
        hash_body=ctx.hash(node),
    )


def _build_alias(node: Node, ctx: SourceContext) -> TypeDef:
    return TypeDef(
        name=ctx.text(node.child_by_field_name("name")),
        kind=TypeKind.ALIAS,
        alias_of=ctx.text(node.child_by_field_name("type")),
        generics=_type_parameters(node, ctx),
        exported=_is_pub(node),
        location=ctx.location(node),
        doc=_doc(ctx, node),
        hash_body=ctx.hash(node),
    )


def _build_uses(node: Node, ctx: SourceContext) -> List[Import]:
    """
    Expands a use declaration into one Import per leaf path:
    ``use std::{io, fmt::Display as D};`` -> std::io, std::fmt::Display (alias D).
    """
    argument = node.child_by_field_name("argument")
    text = " ".join(ctx.text(argument).split())
    return [Import(path=path, alias=alias) for path, alias in _expand_use(text)]


def _expand_use(text: str, prefix: str = "") -> List[tuple]:
    text = text.strip()
    if "{" in text and text.endswith("}"):
        head, inner = text.split("{", 1)
        head = head.rstrip(":").strip()
        base = f"{prefix}::{head}" if prefix and head else (head or prefix)
        expanded: List[tuple] = []
        for part in split_top_level(inner[:-1]):
            expanded.extend(_expand_use(part, base))
        return expanded
    alias = None
    if " as " in text:
        text, alias = [part.strip() for part in text.split(" as ", 1)]
    if text == "self":
        return [(prefix, alias)]
    path = f"{prefix}::{text}" if prefix else text
    return [(path, alias)]
