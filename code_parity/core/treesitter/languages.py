"""
Tree-sitter language loaders.

These helpers return Tree-sitter Language objects for Go, TypeScript/TSX,
Rust, Java and C#.
"""

from functools import lru_cache

from tree_sitter import Language

from tree_sitter_c_sharp import language as csharp_language
from tree_sitter_go import language as go_language
from tree_sitter_java import language as java_language
from tree_sitter_rust import language as rust_language
from tree_sitter_typescript import language_typescript, language_tsx


@lru_cache(maxsize=1)
def get_go_language() -> Language:
    return Language(go_language())


@lru_cache(maxsize=1)
def get_ts_language() -> Language:
    return Language(language_typescript())


@lru_cache(maxsize=1)
def get_tsx_language() -> Language:
    return Language(language_tsx())


@lru_cache(maxsize=1)
def get_rust_language() -> Language:
    return Language(rust_language())


@lru_cache(maxsize=1)
def get_java_language() -> Language:
    return Language(java_language())


@lru_cache(maxsize=1)
def get_csharp_language() -> Language:
    return Language(csharp_language())
