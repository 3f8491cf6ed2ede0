"""
Core data models for the language-neutral semantic model.

This module contains pure data structures describing what the extractors
find in a source tree: declared types, functions, imports and the
project-level aggregate built from them.
"""

from enum import Enum
from typing import List, Dict, Optional
from dataclasses import dataclass, field


class Language(str, Enum):
    """Closed set of languages the extractors understand."""
    GO = "go"
    PYTHON = "python"
    TYPESCRIPT = "typescript"
    RUST = "rust"
    JAVA = "java"
    CSHARP = "csharp"


class TypeKind(str, Enum):
    STRUCT = "struct"
    INTERFACE = "interface"
    ENUM = "enum"
    ALIAS = "alias"
    CLASS = "class"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class SourceLocation:
    file: str
    line_start: int = 0
    line_end: int = 0

    def __str__(self) -> str:
        if self.line_start:
            return f"{self.file}:{self.line_start}"
        return self.file


@dataclass
class Field:
    """A field of a struct/class/interface."""
    name: str
    type: str = ""
    optional: bool = False
    default: Optional[str] = None
    is_pointer: bool = False
    is_array: bool = False
    is_map: bool = False
    doc: Optional[str] = None


@dataclass
class Parameter:
    name: str
    type: str = ""
    optional: bool = False
    variadic: bool = False
    default: Optional[str] = None


@dataclass
class TypeDef:
    """A declared type. Only ENUM populates variants, only ALIAS populates alias_of."""
    name: str
    kind: TypeKind
    fields: List[Field] = field(default_factory=list)
    methods: List[str] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)
    alias_of: Optional[str] = None
    generics: List[str] = field(default_factory=list)
    implements: List[str] = field(default_factory=list)
    exported: bool = True
    location: Optional[SourceLocation] = None
    doc: Optional[str] = None
    hash_body: Optional[str] = None


@dataclass
class FunctionDef:
    """A function or method. Methods carry the name of their receiver type."""
    name: str
    parameters: List[Parameter] = field(default_factory=list)
    returns: List[str] = field(default_factory=list)
    is_async: bool = False
    exported: bool = True
    signature: str = ""
    calls: List[str] = field(default_factory=list)
    complexity: int = 1
    doc: Optional[str] = None
    location: Optional[SourceLocation] = None
    hash_body: Optional[str] = None
    receiver: Optional[str] = None

    @property
    def is_method(self) -> bool:
        return self.receiver is not None


@dataclass
class Import:
    path: str
    alias: Optional[str] = None
    names: List[str] = field(default_factory=list)


@dataclass
class AnalysisError:
    """A non-fatal extraction problem."""
    file: str
    message: str
    severity: str = "warning"
    line: int = 0


@dataclass
class FileAnalysis:
    path: str
    language: Language
    package: Optional[str] = None
    types: List[TypeDef] = field(default_factory=list)
    functions: List[FunctionDef] = field(default_factory=list)
    imports: List[Import] = field(default_factory=list)
    errors: List[AnalysisError] = field(default_factory=list)
    # type name -> interfaces/traits implemented outside the type declaration
    implementations: Dict[str, List[str]] = field(default_factory=dict)
    # type name -> constants declared with that type (Go const groups)
    constants: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class Dependency:
    path: str
    is_stdlib: bool = False
    is_local: bool = False


@dataclass
class Analysis:
    """
    Aggregate for one project in one language.

    Built fresh per extraction pass and treated as read-only once returned.
    """
    language: Language
    name: str = ""
    root: str = ""
    files: List[FileAnalysis] = field(default_factory=list)
    types: List[TypeDef] = field(default_factory=list)
    functions: List[FunctionDef] = field(default_factory=list)
    call_graph: Dict[str, List[str]] = field(default_factory=dict)
    type_graph: Dict[str, List[str]] = field(default_factory=dict)
    dependencies: List[Dependency] = field(default_factory=list)
    errors: List[AnalysisError] = field(default_factory=list)

    def find_type(self, name: str) -> Optional[TypeDef]:
        for type_def in self.types:
            if type_def.name == name:
                return type_def
        return None

    def find_function(self, name: str) -> Optional[FunctionDef]:
        for func in self.functions:
            if func.name == name:
                return func
        return None

    @property
    def is_empty(self) -> bool:
        return not self.types and not self.functions
