"""
Registry of per-language extractors.

The set of languages is closed: every supported language has exactly one
extractor class here (or in python_extractor), and files are dispatched by
extension.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Optional, Union

from tree_sitter import Tree

from .base_extractor import DisplayVocabulary, LanguageExtractor, path_segments
from .errors import LanguageDetectionError, UnsupportedLanguageError
from .models import FileAnalysis, Language
from .python_extractor import PythonExtractor
from .treesitter import csharp_adapter, go_adapter, java_adapter, rust_adapter, typescript_adapter
from .treesitter.extractor_base import SourceContext, TreeSitterExtractorBase

NODE_BUILTINS = {
    "assert", "buffer", "child_process", "crypto", "dns", "events", "fs", "http", "https",
    "net", "os", "path", "process", "querystring", "readline", "stream", "timers", "tls",
    "url", "util", "zlib", "worker_threads",
}
DETECTION_SKIP_DIRS = {"node_modules", "vendor", "target", "bin", "obj", "build", "dist", "__pycache__"}


class GoExtractor(TreeSitterExtractorBase):
    language = Language.GO
    language_id = "go"
    extensions = (".go",)
    vocabulary = DisplayVocabulary(
        primitives={
            "string": "Text", "int": "Integer", "int8": "Integer", "int16": "Integer",
            "int32": "Integer", "int64": "Integer", "uint": "Integer", "uint8": "Integer",
            "uint16": "Integer", "uint32": "Integer", "uint64": "Integer", "float32": "Float",
            "float64": "Float", "bool": "Boolean", "time.Time": "Timestamp",
            "time.Duration": "Duration", "error": "Error", "interface{}": "Any", "any": "Any",
            "[]byte": "Bytes",
        },
        list_prefix="[]",
        optional_prefix="*",
        map_prefix="map[",
        array_suffix="",
    )

    def build(self, tree: Tree, ctx: SourceContext) -> FileAnalysis:
        return go_adapter.extract_file_analysis(tree, ctx)

    def is_test_file(self, file_path: str) -> bool:
        return file_path.endswith("_test.go")

    def is_stdlib_import(self, import_path: str) -> bool:
        # Standard library paths have no domain in their first element.
        return not import_path.startswith(".") and "." not in import_path.split("/")[0]


class TypeScriptExtractor(TreeSitterExtractorBase):
    language = Language.TYPESCRIPT
    language_id = "typescript"
    extensions = (".ts", ".tsx")
    vocabulary = DisplayVocabulary(
        primitives={
            "string": "Text", "number": "Float", "bigint": "Integer", "boolean": "Boolean",
            "Date": "Timestamp", "any": "Any", "unknown": "Any", "void": "Nothing",
            "undefined": "Nothing", "null": "Nothing", "Uint8Array": "Bytes", "Buffer": "Bytes",
        },
        list_wrappers=("Array", "ReadonlyArray", "Set"),
        map_wrappers=("Map", "Record"),
        result_wrappers=("Promise",),
        nullable_suffix="?",
    )

    def grammar_for(self, file_path: str) -> str:
        return "tsx" if file_path.endswith(".tsx") else "typescript"

    def build(self, tree: Tree, ctx: SourceContext) -> FileAnalysis:
        return typescript_adapter.extract_file_analysis(tree, ctx)

    def is_source_file(self, file_path: str) -> bool:
        return file_path.endswith(self.extensions) and not file_path.endswith(".d.ts")

    def is_test_file(self, file_path: str) -> bool:
        name = path_segments(file_path)[-1]
        return ".test." in name or ".spec." in name or "__tests__" in path_segments(file_path)

    def is_stdlib_import(self, import_path: str) -> bool:
        return import_path.startswith("node:") or import_path.split("/")[0] in NODE_BUILTINS

    def map_type_to_vocabulary(self, type_str: str) -> str:
        parts = [p.strip() for p in type_str.split("|")]
        if len(parts) > 1 and any(p in ("null", "undefined") for p in parts):
            inner = [p for p in parts if p not in ("null", "undefined")]
            return "Optional " + super().map_type_to_vocabulary(" | ".join(inner))
        return super().map_type_to_vocabulary(type_str)


class RustExtractor(TreeSitterExtractorBase):
    language = Language.RUST
    language_id = "rust"
    extensions = (".rs",)
    vocabulary = DisplayVocabulary(
        primitives={
            "String": "Text", "&str": "Text", "str": "Text", "i8": "Integer", "i16": "Integer",
            "i32": "Integer", "i64": "Integer", "i128": "Integer", "isize": "Integer",
            "u8": "Integer", "u16": "Integer", "u32": "Integer", "u64": "Integer",
            "u128": "Integer", "usize": "Integer", "f32": "Float", "f64": "Float",
            "bool": "Boolean", "()": "Nothing", "Vec<u8>": "Bytes", "Duration": "Duration",
            "Uuid": "UUID", "DateTime<Utc>": "Timestamp",
        },
        list_wrappers=("Vec", "VecDeque", "HashSet", "BTreeSet"),
        optional_wrappers=("Option",),
        map_wrappers=("HashMap", "BTreeMap"),
        result_wrappers=("Result",),
        array_suffix="",
    )

    def build(self, tree: Tree, ctx: SourceContext) -> FileAnalysis:
        return rust_adapter.extract_file_analysis(tree, ctx)

    def is_test_file(self, file_path: str) -> bool:
        return file_path.endswith("_test.rs") or "tests" in path_segments(file_path)[:-1]

    def is_stdlib_import(self, import_path: str) -> bool:
        return import_path.split("::")[0] in ("std", "core", "alloc")


class JavaExtractor(TreeSitterExtractorBase):
    language = Language.JAVA
    language_id = "java"
    extensions = (".java",)
    stdlib_prefixes = ("java.", "javax.")
    vocabulary = DisplayVocabulary(
        primitives={
            "String": "Text", "int": "Integer", "Integer": "Integer", "long": "Integer",
            "Long": "Integer", "short": "Integer", "byte": "Integer", "float": "Float",
            "Float": "Float", "double": "Float", "Double": "Float", "BigDecimal": "Float",
            "boolean": "Boolean", "Boolean": "Boolean", "Instant": "Timestamp",
            "LocalDateTime": "Timestamp", "Duration": "Duration", "UUID": "UUID",
            "Object": "Any", "void": "Nothing", "byte[]": "Bytes",
        },
        list_wrappers=("List", "ArrayList", "Set", "HashSet", "Collection"),
        optional_wrappers=("Optional",),
        map_wrappers=("Map", "HashMap", "TreeMap"),
        result_wrappers=("CompletableFuture",),
    )

    def build(self, tree: Tree, ctx: SourceContext) -> FileAnalysis:
        return java_adapter.extract_file_analysis(tree, ctx)

    def is_test_file(self, file_path: str) -> bool:
        return file_path.endswith(("Test.java", "Tests.java")) or "test" in path_segments(file_path)[:-1]


class CSharpExtractor(TreeSitterExtractorBase):
    language = Language.CSHARP
    language_id = "csharp"
    extensions = (".cs",)
    vocabulary = DisplayVocabulary(
        primitives={
            "string": "Text", "String": "Text", "int": "Integer", "long": "Integer",
            "short": "Integer", "byte": "Integer", "uint": "Integer", "ulong": "Integer",
            "float": "Float", "double": "Float", "decimal": "Float", "bool": "Boolean",
            "DateTime": "Timestamp", "DateTimeOffset": "Timestamp", "TimeSpan": "Duration",
            "Guid": "UUID", "object": "Any", "dynamic": "Any", "void": "Nothing",
            "byte[]": "Bytes",
        },
        list_wrappers=("List", "IList", "IEnumerable", "ICollection", "IReadOnlyList", "HashSet"),
        map_wrappers=("Dictionary", "IDictionary", "IReadOnlyDictionary"),
        result_wrappers=("Task", "ValueTask"),
        nullable_suffix="?",
    )

    def build(self, tree: Tree, ctx: SourceContext) -> FileAnalysis:
        return csharp_adapter.extract_file_analysis(tree, ctx)

    def is_test_file(self, file_path: str) -> bool:
        segments = path_segments(file_path)
        return (file_path.endswith(("Tests.cs", "Test.cs")) or "Tests" in segments[:-1]
                or any(s.endswith(".Tests") for s in segments[:-1]))

    def is_stdlib_import(self, import_path: str) -> bool:
        return import_path == "System" or import_path.startswith(("System.", "Microsoft."))


_EXTRACTOR_CLASSES = {
    Language.GO: GoExtractor,
    Language.PYTHON: PythonExtractor,
    Language.TYPESCRIPT: TypeScriptExtractor,
    Language.RUST: RustExtractor,
    Language.JAVA: JavaExtractor,
    Language.CSHARP: CSharpExtractor,
}
_EXTRACTORS: Dict[Language, LanguageExtractor] = {}

LANGUAGE_ALIASES = {
    "golang": Language.GO,
    "py": Language.PYTHON,
    "ts": Language.TYPESCRIPT,
    "tsx": Language.TYPESCRIPT,
    "rs": Language.RUST,
    "c#": Language.CSHARP,
    "cs": Language.CSHARP,
}


def resolve_language(language: Union[str, Language]) -> Language:
    """Maps a language tag (or common alias) to Language; unknown tags are a configuration error."""
    if isinstance(language, Language):
        return language
    tag = language.strip().lower()
    if tag in LANGUAGE_ALIASES:
        return LANGUAGE_ALIASES[tag]
    try:
        return Language(tag)
    except ValueError:
        raise UnsupportedLanguageError(language) from None


def get_extractor(language: Union[str, Language]) -> LanguageExtractor:
    language = resolve_language(language)
    if language not in _EXTRACTORS:
        _EXTRACTORS[language] = _EXTRACTOR_CLASSES[language]()
    return _EXTRACTORS[language]


def extractor_for_path(file_path: str) -> Optional[LanguageExtractor]:
    """The extractor whose extensions match file_path, or None for non-source files."""
    for language in _EXTRACTOR_CLASSES:
        extractor = get_extractor(language)
        if extractor.is_source_file(file_path):
            return extractor
    return None


def detect_language(root: Union[str, Path]) -> Language:
    """
    Picks the language with the most source files under root.

    Ties are broken by the order of the Language enum.
    """
    root = Path(root)
    counts: Counter = Counter()
    for path in root.rglob("*"):
        relative = path.relative_to(root).parts
        if any(part.startswith(".") or part in DETECTION_SKIP_DIRS for part in relative[:-1]):
            continue
        if not path.is_file():
            continue
        extractor = extractor_for_path(path.name)
        if extractor is not None:
            counts[extractor.language] += 1
    if not counts:
        raise LanguageDetectionError(f"No supported source files found in {root}")
    order = list(Language)
    language = max(counts, key=lambda lang: (counts[lang], -order.index(lang)))
    logging.info(f"Detected {language.value} project at {root} ({counts[language]} files)")
    return language
