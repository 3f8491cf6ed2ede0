"""
Shared Tree-sitter extractor base.

Holds the node helpers every grammar adapter uses: text slicing, iterative
walks, line spans, doc-comment lookup, call-name collection and the
branch-counting complexity heuristic.
"""

from __future__ import annotations

import re
from abc import abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Set, Tuple, Union

from tree_sitter import Node, Tree

from ..base_extractor import LanguageExtractor
from ..models import AnalysisError, FileAnalysis, SourceLocation
from ..utils import clean_comment, hash_source_snippet
from .parser import parse_source

_CALLEE_SPLIT = re.compile(r"::|\.|->|\?\.")


class TreeSitterExtractorBase(LanguageExtractor):
    """Extractor whose syntax tree comes from a tree-sitter grammar."""
    language_id: str = ""

    def grammar_for(self, file_path: str) -> str:
        return self.language_id

    @abstractmethod
    def build(self, tree: Tree, ctx: "SourceContext") -> FileAnalysis:
        ...

    def _parse(self, source: Union[str, bytes], file_path: str = "") -> Tree:
        return parse_source(source, self.grammar_for(file_path))

    def parse(self, source: bytes, file_path: str) -> FileAnalysis:
        tree = self._parse(source, file_path)
        ctx = SourceContext.from_bytes(source, file_path)
        file_analysis = self.build(tree, ctx)
        record_syntax_errors(tree, file_analysis)
        return file_analysis


@dataclass
class SourceContext:
    """Source bytes plus the pieces every builder needs for one file."""
    source: bytes
    file_path: str
    lines: List[str]

    @classmethod
    def from_bytes(cls, source: bytes, file_path: str) -> "SourceContext":
        return cls(source=source, file_path=file_path,
                   lines=source.decode("utf-8", errors="replace").splitlines())

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def location(self, node: Node) -> SourceLocation:
        start, end = line_span(node)
        return SourceLocation(file=self.file_path, line_start=start, line_end=end)

    def hash(self, node: Node) -> str:
        start, end = line_span(node)
        return hash_source_snippet(self.lines, start, end)

    def header(self, node: Node, body: Optional[Node]) -> str:
        """Declaration text up to (not including) its body, whitespace-collapsed."""
        end = body.start_byte if body is not None else node.end_byte
        text = self.source[node.start_byte:end].decode("utf-8", errors="replace")
        return " ".join(text.split()).rstrip("{; ").strip()


def line_span(node: Node) -> Tuple[int, int]:
    return node.start_point[0] + 1, node.end_point[0] + 1


def walk(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def has_child_type(node: Node, *types: str) -> bool:
    return any(child.type in types for child in node.children)


def children_of_type(node: Optional[Node], *types: str) -> List[Node]:
    if node is None:
        return []
    return [child for child in node.named_children if child.type in types]


def record_syntax_errors(tree: Tree, file_analysis: FileAnalysis) -> None:
    """Adds one warning for the first ERROR/MISSING node; the partial tree is still used."""
    if not tree.root_node.has_error:
        return
    for node in walk(tree.root_node):
        if node.type == "ERROR" or node.is_missing:
            file_analysis.errors.append(AnalysisError(
                file=file_analysis.path,
                message=f"syntax error near line {node.start_point[0] + 1}",
                severity="warning",
                line=node.start_point[0] + 1,
            ))
            return


def preceding_doc(
    ctx: SourceContext,
    node: Node,
    comment_types: Iterable[str] = ("comment",),
    prefixes: Tuple[str, ...] = ("//", "/*", "#"),
) -> Optional[str]:
    """
    Collects the comment block directly above node.

    Only comments ending on the line before node (or before the previous
    comment of the block) and starting with one of prefixes are included.
    """
    comment_types = set(comment_types)
    collected: List[str] = []
    expected_row = node.start_point[0]
    sibling = node.prev_sibling
    while sibling is not None and sibling.type in comment_types:
        if sibling.end_point[0] < expected_row - 1:
            break
        text = ctx.text(sibling)
        if not text.startswith(prefixes):
            break
        collected.append(text)
        expected_row = sibling.start_point[0]
        sibling = sibling.prev_sibling
    if not collected:
        return None
    return clean_comment("\n".join(reversed(collected))) or None


def callee_name(text: str) -> str:
    """'pkg.Client.Do' -> 'Do', 'Vec::<u8>::new' -> 'new', 'foo<T>' -> 'foo'."""
    text = re.sub(r"<[^<>]*>", "", text.strip())
    text = text.split("(")[0]
    segments = [segment for segment in _CALLEE_SPLIT.split(text) if segment]
    return segments[-1].strip() if segments else ""


def collect_calls(ctx: SourceContext, body: Optional[Node], call_types: Set[str],
                  callee_fields: Tuple[str, ...] = ("function",)) -> List[str]:
    """Names of functions called inside body, deduplicated in first-seen order."""
    if body is None:
        return []
    names: List[str] = []
    seen: Set[str] = set()
    for node in walk(body):
        if node.type not in call_types:
            continue
        callee = None
        for field_name in callee_fields:
            callee = node.child_by_field_name(field_name)
            if callee is not None:
                break
        if callee is None:
            continue
        name = callee_name(ctx.text(callee))
        if name and name.isidentifier() and name not in seen:
            seen.add(name)
            names.append(name)
    return names


def count_complexity(body: Optional[Node], branch_types: Set[str],
                     boolean_operators: Set[str] = frozenset({"&&", "||"})) -> int:
    """
    Starts at 1 and adds one per branch/loop/case node and per short-circuit
    boolean operator found under body.
    """
    complexity = 1
    if body is None:
        return complexity
    for node in walk(body):
        if node.type in branch_types:
            complexity += 1
        elif node.type == "binary_expression" and any(
            child.type in boolean_operators for child in node.children
        ):
            complexity += 1
    return complexity


def strip_type_annotation(text: str) -> str:
    """': string' -> 'string'."""
    text = text.strip()
    if text.startswith(":"):
        text = text[1:]
    return text.strip()


def base_type_name(text: str) -> str:
    """'*pkg.User[T]' -> 'User', '&mut Foo<'a>' -> 'Foo'."""
    text = text.strip().lstrip("*&").strip()
    if text.startswith("mut "):
        text = text[4:]
    text = text.split("<")[0].split("[")[0]
    return callee_name(text)
