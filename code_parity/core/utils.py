"""
Shared utility functions for code analysis.

Pure helpers used by the extractors and the aggregator: source hashing,
gitignore-style path filtering, bracket-aware splitting of type spellings,
doc-comment cleanup and JSON-safe serialization of the data model.
"""

import fnmatch
import hashlib
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

_OPENERS = "<([{"
_CLOSERS = ">)]}"


# --- Source Code Hashing ---

def hash_source_snippet(source_lines: List[str], start_line: int, end_line: int) -> str:
    """
    Generates an MD5 hash of the whitespace-stripped lines in [start_line, end_line].

    Lines are 1-based. Returns an empty string for an empty or inverted range.
    """
    if not source_lines or start_line > end_line:
        return ""
    snippet = source_lines[max(0, start_line - 1):min(len(source_lines), end_line)]
    stripped = "\n".join(line.strip() for line in snippet if line.strip())
    return hashlib.md5(stripped.encode('utf-8')).hexdigest()


# --- Gitignore Pattern Matching ---

def get_gitignore_patterns(directory: Path) -> List[Tuple[str, Path]]:
    """
    Collect .gitignore patterns from the directory and its parents.

    Returns:
        List of (pattern, directory holding the .gitignore) tuples
    """
    patterns: List[Tuple[str, Path]] = []
    current = directory.resolve()
    while True:
        gitignore = current / ".gitignore"
        if gitignore.is_file():
            with open(gitignore, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and not line.startswith("!"):
                        patterns.append((line, current))
        if current == current.parent:
            break
        current = current.parent
    return patterns


def match_file_against_pattern(file_path: Path, pattern: str, gitignore_dir: Path,
                               root: Optional[Path] = None) -> bool:
    """
    Match a file against one gitignore pattern declared in gitignore_dir.

    Supports directory patterns ('build/'), anchored patterns ('/dist') and
    plain globs, which match any single path segment when they contain no slash.
    When root is given, only the path segments below root can match, so a
    .gitignore above root never excludes root itself.
    """
    pattern = pattern.strip().replace("\\", "/")
    if not pattern:
        return False
    try:
        relative = file_path.resolve().relative_to(gitignore_dir).as_posix()
    except ValueError:
        return False

    anchored = pattern.startswith("/")
    pattern = pattern.lstrip("/")
    directory_only = pattern.endswith("/")
    pattern = pattern.rstrip("/")
    if not pattern:
        return False
    parts = relative.split("/")
    floor = _segments_above(root, gitignore_dir)

    if anchored or "/" in pattern:
        # Match the pattern against every leading prefix of the path.
        for i in range(floor + 1, len(parts) + 1):
            if directory_only and i == len(parts):
                break
            if fnmatch.fnmatch("/".join(parts[:i]), pattern):
                return True
        return False

    candidates = parts[floor:-1] if directory_only else parts[floor:]
    return any(fnmatch.fnmatch(part, pattern) for part in candidates)


def _segments_above(root: Optional[Path], gitignore_dir: Path) -> int:
    """Number of leading path segments, relative to gitignore_dir, that belong to root."""
    if root is None:
        return 0
    try:
        inside = root.resolve().relative_to(gitignore_dir)
    except ValueError:
        return 0
    return len(inside.parts)


def is_path_ignored(file_path: Path, patterns: Iterable[Tuple[str, Path]], root: Optional[Path] = None) -> bool:
    return any(match_file_against_pattern(file_path, pattern, origin, root) for pattern, origin in patterns)


# --- Type Spelling Helpers ---

def split_top_level(text: str, separator: str = ",") -> List[str]:
    """
    Split text on separator, ignoring separators nested inside brackets.

    >>> split_top_level("Map<K, V>, int")
    ['Map<K, V>', 'int']
    """
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS and not (ch == ">" and i > 0 and text[i - 1] == "="):
            depth = max(0, depth - 1)
        if depth == 0 and text.startswith(separator, i):
            parts.append("".join(current).strip())
            current = []
            i += len(separator)
            continue
        current.append(ch)
        i += 1
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [part for part in parts if part]


def generic_parts(type_str: str) -> Tuple[str, List[str]]:
    """
    Split 'Head<A, B>' or 'Head[A, B]' into ('Head', ['A', 'B']).

    A spelling without a trailing generic argument list returns (type_str, []).
    """
    type_str = type_str.strip()
    if not type_str or type_str[-1] not in ">]":
        return type_str, []
    opener = "<" if type_str[-1] == ">" else "["
    depth = 0
    for i in range(len(type_str) - 1, -1, -1):
        ch = type_str[i]
        if ch in _CLOSERS:
            depth += 1
        elif ch in _OPENERS:
            depth -= 1
            if depth == 0:
                if ch != opener or i == 0 or i == len(type_str) - 2:
                    return type_str, []
                return type_str[:i].strip(), split_top_level(type_str[i + 1:-1])
    return type_str, []


# --- Comments ---

def clean_comment(text: str) -> str:
    """Strips comment markers ('//', '///', '/**', '*', '#') from a comment block."""
    cleaned: List[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        for marker in ("/**", "/*", "*/", "///", "//", "#"):
            if line.startswith(marker):
                line = line[len(marker):]
                break
        if line.endswith("*/"):
            line = line[:-2]
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        cleaned.append(line)
    return "\n".join(cleaned).strip()


# --- Serialization ---

def to_serializable(value: Any) -> Any:
    """Converts dataclasses, enums and containers into JSON-safe values."""
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(to_serializable(k)): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_serializable(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    return value
