"""
Tree-sitter parser facade with cached parser instances.

Parsers are shared per grammar and are not thread-safe; callers parse files
sequentially.
"""

from functools import lru_cache
from typing import Union

from tree_sitter import Parser, Tree

from .languages import (
    get_csharp_language,
    get_go_language,
    get_java_language,
    get_rust_language,
    get_ts_language,
    get_tsx_language,
)

_LOADERS = {
    "go": get_go_language,
    "typescript": get_ts_language,
    "tsx": get_tsx_language,
    "rust": get_rust_language,
    "java": get_java_language,
    "csharp": get_csharp_language,
}


@lru_cache(maxsize=len(_LOADERS))
def get_parser(language_id: str) -> Parser:
    loader = _LOADERS.get(language_id)
    if loader is None:
        raise ValueError(f"Unsupported language: {language_id}")
    parser = Parser()
    parser.language = loader()
    return parser


def parse_source(source: Union[str, bytes], language_id: str) -> Tree:
    parser = get_parser(language_id)
    if isinstance(source, str):
        source = source.encode("utf-8")
    return parser.parse(source)
