"""
Native Python extractor built on the standard ``ast`` module.

This module contains the Python-specific AST visitor and extractor classes.
Unlike the grammar-based extractors it resolves the full declaration
language: dataclasses, enums, protocols, NamedTuple/TypedDict, type aliases,
generics and keyword/variadic parameters, with exact line numbers.
"""

import ast
import sys
from typing import Dict, List, Optional, Set

from .base_extractor import DisplayVocabulary, LanguageExtractor, path_segments
from .models import (
    AnalysisError,
    Field,
    FileAnalysis,
    FunctionDef,
    Import,
    Language,
    Parameter,
    SourceLocation,
    TypeDef,
    TypeKind,
)
from .utils import hash_source_snippet

ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
INTERFACE_BASES = {"Protocol", "ABC"}
STRUCT_BASES = {"NamedTuple", "TypedDict", "BaseModel"}
STRUCT_DECORATORS = {"dataclass", "dataclasses.dataclass", "attr.s", "attrs.define", "define", "frozen"}
IGNORED_BASES = {"object", "Generic"}


def _unparse(node: Optional[ast.AST]) -> str:
    return ast.unparse(node) if node is not None else ""


def _dotted_name(node: ast.AST) -> str:
    """'typing.Protocol' for Attribute chains, the id for Names, '' otherwise."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        prefix = _dotted_name(node.value)
        return f"{prefix}.{node.attr}" if prefix else node.attr
    if isinstance(node, ast.Call):
        return _dotted_name(node.func)
    if isinstance(node, ast.Subscript):
        return _dotted_name(node.value)
    return ""


def _short_name(node: ast.AST) -> str:
    return _dotted_name(node).split(".")[-1]


def calculate_complexity(node: ast.AST) -> int:
    """
    Approximates cyclomatic complexity: 1 plus one per branch, loop,
    exception handler, comprehension clause, match case and extra boolean operand.
    """
    complexity = 1
    for sub_node in ast.walk(node):
        if isinstance(sub_node, (ast.If, ast.IfExp, ast.For, ast.AsyncFor, ast.While,
                                 ast.ExceptHandler, ast.comprehension)):
            complexity += 1
        elif isinstance(sub_node, ast.match_case):
            complexity += 1
        elif isinstance(sub_node, ast.BoolOp):
            complexity += len(sub_node.values) - 1
    return complexity


def split_tuple_return(annotation: str) -> List[str]:
    """'tuple[int, str]' -> ['int', 'str']; homogeneous 'tuple[int, ...]' stays whole."""
    try:
        node = ast.parse(annotation, mode="eval").body
    except SyntaxError:
        return [annotation]
    if (isinstance(node, ast.Subscript) and _short_name(node.value) in ("tuple", "Tuple")
            and isinstance(node.slice, ast.Tuple)):
        elements = node.slice.elts
        if any(isinstance(e, ast.Constant) and e.value is Ellipsis for e in elements):
            return [annotation]
        return [_unparse(e) for e in elements]
    return [annotation]


class PythonSemanticVisitor(ast.NodeVisitor):
    """
    AST visitor collecting module-level declarations and class members.

    Function bodies are not descended into, so nested helpers and local
    classes are not reported.
    """

    def __init__(self, file_path: str, source_lines: List[str]):
        self.file_path = file_path
        self.source_lines = source_lines
        self.file_analysis = FileAnalysis(path=file_path, language=Language.PYTHON)
        self.current_class: Optional[TypeDef] = None

    def _location(self, node: ast.AST) -> SourceLocation:
        end = getattr(node, "end_lineno", None) or node.lineno
        return SourceLocation(file=self.file_path, line_start=node.lineno, line_end=end)

    def _hash(self, node: ast.AST) -> str:
        end = getattr(node, "end_lineno", None) or node.lineno
        return hash_source_snippet(self.source_lines, node.lineno, end)

    # --- imports ---

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.file_analysis.imports.append(Import(path=alias.name, alias=alias.asname))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        path = "." * node.level + (node.module or "")
        self.file_analysis.imports.append(Import(path=path, names=[a.name for a in node.names]))

    # --- functions ---

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._add_function(node, is_async=False)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._add_function(node, is_async=True)

    def _add_function(self, node, is_async: bool) -> None:
        receiver = self.current_class.name if self.current_class is not None else None
        decorators = {_short_name(d) for d in node.decorator_list}
        if receiver is not None and node.name == "__init__":
            self._collect_instance_fields(node)
            return
        if "overload" in decorators or decorators & {"setter", "deleter"}:
            return
        if receiver is not None and decorators & {"property", "cached_property"}:
            # Properties read like fields from other languages
            self.current_class.fields.append(self._field(node.name, node.returns, None))
            return
        if receiver is not None:
            self.current_class.methods.append(node.name)
        drop_first = receiver is not None and "staticmethod" not in decorators
        returns = _unparse(node.returns)
        self.file_analysis.functions.append(FunctionDef(
            name=node.name,
            parameters=self._parameters(node.args, drop_first),
            returns=split_tuple_return(returns) if returns else [],
            is_async=is_async,
            exported=not node.name.startswith("_"),
            signature=self._signature(node, is_async),
            calls=self._calls(node),
            complexity=calculate_complexity(node),
            doc=ast.get_docstring(node),
            location=self._location(node),
            hash_body=self._hash(node),
            receiver=receiver,
        ))

    def _parameters(self, args: ast.arguments, drop_first: bool) -> List[Parameter]:
        parameters: List[Parameter] = []
        positional = list(args.posonlyargs) + list(args.args)
        defaults: List[Optional[ast.expr]] = [None] * (len(positional) - len(args.defaults)) + list(args.defaults)
        pairs = list(zip(positional, defaults))
        if drop_first and pairs and pairs[0][0].arg in ("self", "cls"):
            pairs = pairs[1:]
        for arg, default in pairs:
            parameters.append(self._parameter(arg, default))
        if args.vararg is not None:
            annotation = _unparse(args.vararg.annotation)
            parameters.append(Parameter(name=args.vararg.arg,
                                        type=f"list[{annotation}]" if annotation else "",
                                        variadic=True))
        for arg, default in zip(args.kwonlyargs, args.kw_defaults):
            parameters.append(self._parameter(arg, default))
        if args.kwarg is not None:
            annotation = _unparse(args.kwarg.annotation)
            parameters.append(Parameter(name=args.kwarg.arg,
                                        type=f"dict[str, {annotation}]" if annotation else "",
                                        variadic=True))
        return parameters

    @staticmethod
    def _parameter(arg: ast.arg, default: Optional[ast.expr]) -> Parameter:
        return Parameter(
            name=arg.arg,
            type=_unparse(arg.annotation),
            optional=default is not None,
            default=_unparse(default) if default is not None else None,
        )

    @staticmethod
    def _signature(node, is_async: bool) -> str:
        prefix = "async def" if is_async else "def"
        signature = f"{prefix} {node.name}({_unparse(node.args)})"
        if node.returns is not None:
            signature += f" -> {_unparse(node.returns)}"
        return signature

    @staticmethod
    def _calls(node: ast.AST) -> List[str]:
        names: List[str] = []
        seen: Set[str] = set()
        for sub_node in ast.walk(node):
            if isinstance(sub_node, ast.Call):
                name = _short_name(sub_node.func)
                if name and name not in seen:
                    seen.add(name)
                    names.append(name)
        return names

    # --- classes ---

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        if self.current_class is not None:
            return
        base_names = [_short_name(b) for b in node.bases]
        decorator_names = {_dotted_name(d) for d in node.decorator_list}
        decorator_names |= {name.split(".")[-1] for name in decorator_names}
        metaclass = next((_short_name(k.value) for k in node.keywords if k.arg == "metaclass"), "")

        if ENUM_BASES & set(base_names):
            kind = TypeKind.ENUM
        elif INTERFACE_BASES & set(base_names) or metaclass == "ABCMeta":
            kind = TypeKind.INTERFACE
        elif STRUCT_BASES & set(base_names) or STRUCT_DECORATORS & decorator_names:
            kind = TypeKind.STRUCT
        else:
            kind = TypeKind.CLASS

        type_def = TypeDef(
            name=node.name,
            kind=kind,
            generics=self._class_generics(node),
            implements=[name for name in base_names if name and name not in IGNORED_BASES],
            exported=not node.name.startswith("_"),
            location=self._location(node),
            doc=ast.get_docstring(node),
            hash_body=self._hash(node),
        )
        self.file_analysis.types.append(type_def)

        self.current_class = type_def
        try:
            for statement in node.body:
                if kind == TypeKind.ENUM:
                    type_def.variants.extend(self._enum_members(statement))
                elif isinstance(statement, ast.AnnAssign) and isinstance(statement.target, ast.Name):
                    if _short_name(statement.annotation) != "ClassVar":
                        type_def.fields.append(self._field(statement.target.id, statement.annotation,
                                                           statement.value))
                if isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    self.visit(statement)
        finally:
            self.current_class = None

    @staticmethod
    def _class_generics(node: ast.ClassDef) -> List[str]:
        type_params = getattr(node, "type_params", None) or []
        names = [p.name for p in type_params if hasattr(p, "name")]
        for base in node.bases:
            if isinstance(base, ast.Subscript) and _short_name(base.value) in ("Generic", "Protocol"):
                elements = base.slice.elts if isinstance(base.slice, ast.Tuple) else [base.slice]
                names.extend(_unparse(e) for e in elements if _unparse(e) not in names)
        return names

    @staticmethod
    def _enum_members(statement: ast.stmt) -> List[str]:
        targets: List[ast.expr] = []
        if isinstance(statement, ast.Assign):
            targets = statement.targets
        elif isinstance(statement, ast.AnnAssign) and statement.value is not None:
            targets = [statement.target]
        return [t.id for t in targets if isinstance(t, ast.Name) and not t.id.startswith("_")]

    @staticmethod
    def _field(name: str, annotation: Optional[ast.expr], value: Optional[ast.expr]) -> Field:
        type_text = _unparse(annotation)
        head = _short_name(annotation) if annotation is not None else ""
        optional = head == "Optional" or (
            isinstance(annotation, ast.BinOp) and "None" in (_unparse(annotation.left), _unparse(annotation.right))
        )
        return Field(
            name=name,
            type=type_text,
            optional=optional,
            default=_unparse(value) if value is not None else None,
            is_array=head in ("list", "List", "Sequence", "set", "Set", "tuple", "Tuple"),
            is_map=head in ("dict", "Dict", "Mapping"),
        )

    def _collect_instance_fields(self, init: ast.FunctionDef) -> None:
        """Fields of plain classes come from ``self.x = ...`` in ``__init__``."""
        type_def = self.current_class
        known = {f.name for f in type_def.fields}
        param_types: Dict[str, Optional[ast.expr]] = {
            a.arg: a.annotation for a in list(init.args.args) + list(init.args.kwonlyargs)
        }
        for statement in ast.walk(init):
            annotation: Optional[ast.expr] = None
            if isinstance(statement, ast.AnnAssign):
                targets, annotation, value = [statement.target], statement.annotation, statement.value
            elif isinstance(statement, ast.Assign):
                targets, value = statement.targets, statement.value
            else:
                continue
            for target in targets:
                if not (isinstance(target, ast.Attribute) and isinstance(target.value, ast.Name)
                        and target.value.id == "self"):
                    continue
                if target.attr in known:
                    continue
                if annotation is None and isinstance(value, ast.Name):
                    annotation = param_types.get(value.id)
                known.add(target.attr)
                type_def.fields.append(self._field(target.attr, annotation, None))

    # --- aliases ---

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        if (self.current_class is None and isinstance(node.target, ast.Name)
                and _short_name(node.annotation) == "TypeAlias" and node.value is not None):
            self._add_alias(node, node.target.id, node.value)

    def visit_Assign(self, node: ast.Assign) -> None:
        # UserId = NewType("UserId", int)
        if (self.current_class is None and len(node.targets) == 1 and isinstance(node.targets[0], ast.Name)
                and isinstance(node.value, ast.Call) and _short_name(node.value.func) == "NewType"
                and len(node.value.args) == 2):
            self._add_alias(node, node.targets[0].id, node.value.args[1])

    def visit_TypeAlias(self, node) -> None:
        self._add_alias(node, node.name.id, node.value)

    def _add_alias(self, node: ast.AST, name: str, target: ast.expr) -> None:
        self.file_analysis.types.append(TypeDef(
            name=name,
            kind=TypeKind.ALIAS,
            alias_of=_unparse(target),
            exported=not name.startswith("_"),
            location=self._location(node),
            hash_body=self._hash(node),
        ))

    def generic_visit(self, node: ast.AST) -> None:
        # Only module-level statements (and if/try blocks around them) are declarations.
        if isinstance(node, (ast.Module, ast.If, ast.Try)) or type(node).__name__ == "TryStar":
            super().generic_visit(node)


class PythonExtractor(LanguageExtractor):
    """
    Main interface for extracting the semantic model from Python files.
    """
    language = Language.PYTHON
    extensions = (".py", ".pyi")
    vocabulary = DisplayVocabulary(
        primitives={
            "str": "Text", "int": "Integer", "float": "Float", "bool": "Boolean",
            "bytes": "Bytes", "datetime": "Timestamp", "datetime.datetime": "Timestamp",
            "timedelta": "Duration", "datetime.timedelta": "Duration", "UUID": "UUID",
            "uuid.UUID": "UUID", "Any": "Any", "None": "Nothing", "dict": "Map", "Dict": "Map",
        },
        list_wrappers=("list", "List", "Sequence", "Iterable", "set", "Set", "tuple", "Tuple"),
        optional_wrappers=("Optional", "Union"),
        map_wrappers=("dict", "Dict", "Mapping"),
        array_suffix="",
    )

    def parse(self, source: bytes, file_path: str) -> FileAnalysis:
        text = source.decode("utf-8-sig", errors="replace")
        try:
            tree = ast.parse(text, filename=file_path)
        except SyntaxError as e:
            return FileAnalysis(
                path=file_path,
                language=self.language,
                errors=[AnalysisError(file=file_path, message=f"syntax error: {e.msg}",
                                      severity="warning", line=e.lineno or 0)],
            )
        visitor = PythonSemanticVisitor(file_path, text.splitlines())
        visitor.visit(tree)
        return visitor.file_analysis

    def is_test_file(self, file_path: str) -> bool:
        segments = path_segments(file_path)
        name = segments[-1] if segments else file_path
        return (name.startswith("test_") or name.endswith("_test.py") or name == "conftest.py"
                or any(s in ("tests", "test") for s in segments[:-1]))

    def is_stdlib_import(self, import_path: str) -> bool:
        if import_path.startswith("."):
            return False
        return import_path.split(".")[0] in sys.stdlib_module_names

    def map_type_to_vocabulary(self, type_str: str) -> str:
        type_str = type_str.strip()
        if type_str.endswith("| None") or type_str.startswith("None |"):
            inner = type_str.replace("| None", "").replace("None |", "").strip()
            return "Optional " + self.map_type_to_vocabulary(inner)
        return super().map_type_to_vocabulary(type_str)
