"""
Capability interface shared by every language extractor.

An extractor turns the raw bytes of one file into a FileAnalysis and never
raises for malformed input: failures become warning-level AnalysisError
records so aggregation can continue over the rest of the project.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Tuple

from .models import AnalysisError, FileAnalysis, FunctionDef, Language, TypeDef
from .utils import generic_parts


@dataclass(frozen=True)
class DisplayVocabulary:
    """Per-language table used to render declared types as plain-language pseudo-types."""
    primitives: Dict[str, str]
    list_wrappers: Tuple[str, ...] = ()
    optional_wrappers: Tuple[str, ...] = ()
    map_wrappers: Tuple[str, ...] = ()
    result_wrappers: Tuple[str, ...] = ()
    list_prefix: str = ""
    map_prefix: str = ""
    optional_prefix: str = ""
    nullable_suffix: str = ""
    array_suffix: str = "[]"


class LanguageExtractor(ABC):
    """
    Base class for the closed set of per-language extractors.

    Subclasses set ``language``, ``extensions`` and ``vocabulary`` and
    implement ``parse``.
    """
    language: Language
    extensions: Tuple[str, ...] = ()
    vocabulary: DisplayVocabulary = DisplayVocabulary(primitives={})
    stdlib_prefixes: Tuple[str, ...] = ()

    @abstractmethod
    def parse(self, source: bytes, file_path: str) -> FileAnalysis:
        ...

    def extract_file(self, source: bytes, file_path: str) -> FileAnalysis:
        """Extracts one file; a failure yields an empty result carrying a warning."""
        try:
            return self.parse(source, file_path)
        except Exception as e:
            logging.warning(f"   Warning: Error processing {file_path}: {e}")
            return FileAnalysis(
                path=file_path,
                language=self.language,
                errors=[AnalysisError(file=file_path, message=str(e) or type(e).__name__)],
            )

    def extract_types(self, source: bytes, file_path: str) -> List[TypeDef]:
        return self.extract_file(source, file_path).types

    def extract_functions(self, source: bytes, file_path: str) -> List[FunctionDef]:
        return self.extract_file(source, file_path).functions

    def is_source_file(self, file_path: str) -> bool:
        return file_path.endswith(self.extensions)

    @abstractmethod
    def is_test_file(self, file_path: str) -> bool:
        ...

    def is_stdlib_import(self, import_path: str) -> bool:
        return any(
            import_path == prefix.rstrip(".:") or import_path.startswith(prefix)
            for prefix in self.stdlib_prefixes
        )

    def map_type_to_vocabulary(self, type_str: str) -> str:
        """
        Renders a declared type in the display vocabulary ('List of Text',
        'Optional Integer', 'Map', ...). Unknown types are returned unchanged.
        """
        vocab = self.vocabulary
        type_str = type_str.strip()
        if not type_str:
            return "Nothing"
        if type_str in vocab.primitives:
            return vocab.primitives[type_str]
        if vocab.list_prefix and type_str.startswith(vocab.list_prefix):
            return "List of " + self.map_type_to_vocabulary(type_str[len(vocab.list_prefix):])
        if vocab.optional_prefix and type_str.startswith(vocab.optional_prefix):
            return "Optional " + self.map_type_to_vocabulary(type_str[len(vocab.optional_prefix):])
        if vocab.nullable_suffix and type_str.endswith(vocab.nullable_suffix):
            return "Optional " + self.map_type_to_vocabulary(type_str[:-len(vocab.nullable_suffix)])
        if vocab.array_suffix and type_str.endswith(vocab.array_suffix):
            return "List of " + self.map_type_to_vocabulary(type_str[:-len(vocab.array_suffix)])
        if vocab.map_prefix and type_str.startswith(vocab.map_prefix):
            return "Map"
        head, args = generic_parts(type_str)
        if args:
            if head in vocab.list_wrappers:
                return "List of " + self.map_type_to_vocabulary(args[0])
            if head in vocab.optional_wrappers:
                inner = [a for a in args if a.strip() not in ("None", "null", "undefined")]
                return "Optional " + self.map_type_to_vocabulary(inner[0] if inner else args[0])
            if head in vocab.map_wrappers:
                return "Map"
            if head in vocab.result_wrappers:
                return "Result of " + self.map_type_to_vocabulary(args[0])
        return type_str


def path_segments(file_path: str) -> List[str]:
    return list(PurePosixPath(file_path.replace("\\", "/")).parts)
