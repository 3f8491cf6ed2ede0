"""
Tree-sitter integration for code_parity.

Provides language loading and parsing utilities shared by the grammar adapters.
"""

from .parser import parse_source, get_parser
from .languages import (
    get_go_language,
    get_ts_language,
    get_tsx_language,
    get_rust_language,
    get_java_language,
    get_csharp_language,
)

__all__ = [
    "parse_source",
    "get_parser",
    "get_go_language",
    "get_ts_language",
    "get_tsx_language",
    "get_rust_language",
    "get_java_language",
    "get_csharp_language",
]
