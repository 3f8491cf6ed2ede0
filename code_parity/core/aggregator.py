"""
Symbol aggregator: turns a source tree into a project-level Analysis.

Walks a root directory, dispatches each eligible file to the extractor for
the project language, and merges the per-file results into flattened type
and function lists, a call graph, a type graph and a dependency list.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union

from .config import DEFAULT_IGNORED_PATTERNS
from .errors import AnalysisFailedError
from .extractors import detect_language, get_extractor, resolve_language
from .models import Analysis, AnalysisError, Dependency, FileAnalysis, Language, TypeDef, TypeKind
from .utils import get_gitignore_patterns, is_path_ignored

logger = logging.getLogger(__name__)

_NAME_LINE = re.compile(r'^\s*name\s*=\s*["\']([^"\']+)["\']', re.MULTILINE)


class SymbolAggregator:
    """
    Builds Analysis objects from directories or from pre-collected files.

    Hidden directories, vendor/build directories, ignore patterns and
    .gitignore entries are skipped; test files are skipped unless
    include_tests is set.
    """

    def __init__(self, ignored_patterns: Optional[List[str]] = None, include_tests: bool = False,
                 respect_gitignore: bool = True):
        self.ignored_patterns = list(DEFAULT_IGNORED_PATTERNS if ignored_patterns is None else ignored_patterns)
        self.include_tests = include_tests
        self.respect_gitignore = respect_gitignore

    # --- file collection ---

    def collect_files(self, root: Union[str, Path], language: Optional[Union[str, Language]] = None,
                      errors: Optional[List[AnalysisError]] = None) -> Iterator[Tuple[str, bytes]]:
        """
        Yields (relative POSIX path, raw bytes) for every eligible file under root,
        in sorted path order. Unreadable files and directories are recorded in errors.
        """
        root = Path(root)
        if not root.is_dir() or not os.access(root, os.R_OK | os.X_OK):
            raise AnalysisFailedError(str(root), "not a readable directory")
        extractor = get_extractor(language) if language is not None else None
        gitignore = get_gitignore_patterns(root) if self.respect_gitignore else []

        def on_error(err: OSError) -> None:
            logger.warning(f"Skipping unreadable path {err.filename}: {err.strerror}")
            if errors is not None:
                errors.append(AnalysisError(file=str(err.filename), message=str(err)))

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if not self._skip_directory(d, current / d, gitignore, root))
            for filename in sorted(filenames):
                path = current / filename
                relative = path.relative_to(root).as_posix()
                if extractor is not None and not extractor.is_source_file(relative):
                    continue
                if gitignore and is_path_ignored(path, gitignore, root):
                    continue
                try:
                    data = path.read_bytes()
                except OSError as e:
                    on_error(e)
                    continue
                yield relative, data

    def _skip_directory(self, name: str, path: Path, gitignore: List[Tuple[str, Path]], root: Path) -> bool:
        if name.startswith("."):
            return True
        if name in self.ignored_patterns:
            return True
        return bool(gitignore) and is_path_ignored(path / "_", gitignore, root)

    # --- analysis ---

    def analyze(self, root: Union[str, Path], language: Optional[Union[str, Language]] = None,
                name: Optional[str] = None) -> Analysis:
        """
        Analyzes the project at root. The language is detected from the file
        mix when not given.
        """
        root = Path(root)
        if not root.is_dir():
            raise AnalysisFailedError(str(root), "directory does not exist")
        language = resolve_language(language) if language is not None else detect_language(root)
        walk_errors: List[AnalysisError] = []
        files = self.collect_files(root, language, walk_errors)
        analysis = self.analyze_files(files, language, name=name or find_project_name(root, language),
                                      root=str(root), local_prefixes=_local_prefixes(root, language))
        analysis.errors.extend(walk_errors)
        logger.info(f"Analyzed {len(analysis.files)} {language.value} files in {root}: "
                    f"{len(analysis.types)} types, {len(analysis.functions)} functions, "
                    f"{len(analysis.errors)} warnings")
        return analysis

    def analyze_files(self, files: Iterable[Tuple[str, bytes]], language: Union[str, Language],
                      name: str = "", root: str = "", local_prefixes: Tuple[str, ...] = ()) -> Analysis:
        """Builds an Analysis from (relative path, raw bytes) pairs produced by any collector."""
        language = resolve_language(language)
        extractor = get_extractor(language)
        file_results: List[FileAnalysis] = []
        for relative, data in sorted(files, key=lambda pair: pair[0]):
            if not extractor.is_source_file(relative):
                continue
            if not self.include_tests and extractor.is_test_file(relative):
                continue
            file_results.append(extractor.extract_file(data, relative))
        return merge_file_analyses(file_results, language, name=name, root=root,
                                   local_prefixes=local_prefixes)


def merge_file_analyses(file_results: List[FileAnalysis], language: Language, name: str = "",
                        root: str = "", local_prefixes: Tuple[str, ...] = ()) -> Analysis:
    """
    Merges per-file results. On a type-name collision the first declaration
    (in path order) wins.
    """
    extractor = get_extractor(language)
    analysis = Analysis(language=language, name=name, root=root, files=file_results)
    type_index: Dict[str, TypeDef] = {}
    constants: Dict[str, List[str]] = {}
    implementations: Dict[str, List[str]] = {}

    for file_analysis in file_results:
        analysis.errors.extend(file_analysis.errors)
        for type_def in file_analysis.types:
            if type_def.name in type_index:
                logger.debug(f"Duplicate type {type_def.name} in {file_analysis.path}, keeping first")
                continue
            type_index[type_def.name] = type_def
            analysis.types.append(type_def)
        analysis.functions.extend(file_analysis.functions)
        for type_name, names in file_analysis.constants.items():
            constants.setdefault(type_name, []).extend(names)
        for type_name, names in file_analysis.implementations.items():
            implementations.setdefault(type_name, []).extend(names)

    _apply_constants(type_index, constants)
    _attach_methods(analysis, type_index)
    for type_name, names in implementations.items():
        type_def = type_index.get(type_name)
        if type_def is not None:
            _extend_unique(type_def.implements, names)

    analysis.call_graph = build_call_graph(analysis)
    analysis.type_graph = build_type_graph(analysis, infer_structural=language == Language.GO)
    analysis.dependencies = build_dependencies(file_results, extractor, local_prefixes)
    return analysis


def _extend_unique(target: List[str], values: Iterable[str]) -> None:
    for value in values:
        if value and value not in target:
            target.append(value)


def _apply_constants(type_index: Dict[str, TypeDef], constants: Dict[str, List[str]]) -> None:
    """A named non-struct type with typed constants declared against it is an enum."""
    for type_name, names in constants.items():
        type_def = type_index.get(type_name)
        if type_def is None or type_def.kind != TypeKind.ALIAS:
            continue
        type_def.kind = TypeKind.ENUM
        type_def.alias_of = None
        _extend_unique(type_def.variants, names)


def _attach_methods(analysis: Analysis, type_index: Dict[str, TypeDef]) -> None:
    for func in analysis.functions:
        if func.receiver is None:
            continue
        type_def = type_index.get(func.receiver)
        if type_def is not None and func.name not in type_def.methods:
            type_def.methods.append(func.name)


def build_call_graph(analysis: Analysis) -> Dict[str, List[str]]:
    """function name -> called names; functions sharing a name share one entry."""
    graph: Dict[str, List[str]] = {}
    for func in analysis.functions:
        _extend_unique(graph.setdefault(func.name, []), func.calls)
    return graph


def build_type_graph(analysis: Analysis, infer_structural: bool = False) -> Dict[str, List[str]]:
    """
    type name -> implemented/extended names.

    With infer_structural, a non-interface type whose method set covers every
    method of an interface is also recorded as implementing it.
    """
    graph: Dict[str, List[str]] = {}
    for type_def in analysis.types:
        if type_def.implements:
            graph[type_def.name] = list(type_def.implements)
    if not infer_structural:
        return graph
    interfaces = [t for t in analysis.types if t.kind == TypeKind.INTERFACE and t.methods]
    for type_def in analysis.types:
        if type_def.kind == TypeKind.INTERFACE or not type_def.methods:
            continue
        method_set: Set[str] = set(type_def.methods)
        for interface in interfaces:
            if set(interface.methods) <= method_set:
                _extend_unique(graph.setdefault(type_def.name, []), [interface.name])
    return graph


def build_dependencies(file_results: List[FileAnalysis], extractor,
                       local_prefixes: Tuple[str, ...] = ()) -> List[Dependency]:
    dependencies: List[Dependency] = []
    seen: Set[str] = set()
    for file_analysis in file_results:
        for imported in file_analysis.imports:
            if not imported.path or imported.path in seen:
                continue
            seen.add(imported.path)
            is_local = imported.path.startswith((".", "crate::", "self::", "super::")) or (
                bool(local_prefixes) and imported.path.startswith(local_prefixes)
            )
            dependencies.append(Dependency(
                path=imported.path,
                is_stdlib=not is_local and extractor.is_stdlib_import(imported.path),
                is_local=is_local,
            ))
    return dependencies


def _local_prefixes(root: Path, language: Language) -> Tuple[str, ...]:
    """Import prefixes that refer to the project itself (the Go module path, the crate name)."""
    if language == Language.GO:
        module = _go_module(root)
        return (module,) if module else ()
    return ()


def _go_module(root: Path) -> Optional[str]:
    go_mod = root / "go.mod"
    if not go_mod.is_file():
        return None
    for line in go_mod.read_text(encoding="utf-8", errors="replace").splitlines():
        line = line.strip()
        if line.startswith("module "):
            return line[len("module "):].strip().strip('"')
    return None


def find_project_name(root: Union[str, Path], language: Optional[Language] = None) -> str:
    """
    Reads the project name from go.mod, pyproject.toml, Cargo.toml,
    package.json or a .csproj file, falling back to the directory name.
    The manifest of the given language is consulted first.
    """
    root = Path(root)
    readers = [
        (Language.GO, _name_from_go_mod),
        (Language.PYTHON, lambda r: _name_from_toml(r / "pyproject.toml")),
        (Language.RUST, lambda r: _name_from_toml(r / "Cargo.toml")),
        (Language.TYPESCRIPT, _name_from_package_json),
        (Language.CSHARP, _name_from_csproj),
    ]
    readers.sort(key=lambda reader: reader[0] != language)
    for _, reader in readers:
        name = reader(root)
        if name:
            return name
    return root.resolve().name


def _name_from_go_mod(root: Path) -> Optional[str]:
    module = _go_module(root)
    return module.rstrip("/").split("/")[-1] if module else None


def _name_from_toml(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    match = _NAME_LINE.search(path.read_text(encoding="utf-8", errors="replace"))
    return match.group(1) if match else None


def _name_from_package_json(root: Path) -> Optional[str]:
    package_json = root / "package.json"
    if not package_json.is_file():
        return None
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except ValueError as e:
        logger.warning(f"Could not read {package_json}: {e}")
        return None
    return data.get("name") if isinstance(data, dict) else None


def _name_from_csproj(root: Path) -> Optional[str]:
    projects = sorted(root.glob("*.csproj"))
    return projects[0].stem if projects else None
