"""
Tests for core utility helpers.
"""

from enum import Enum
from pathlib import Path

from code_parity.core.models import Language, TypeDef, TypeKind
from code_parity.core.utils import (
    clean_comment,
    generic_parts,
    get_gitignore_patterns,
    hash_source_snippet,
    is_path_ignored,
    split_top_level,
    to_serializable,
)


class TestTypeSpellingHelpers:

    def test_split_top_level_respects_brackets(self):
        assert split_top_level("Map<K, V>, int") == ["Map<K, V>", "int"]
        assert split_top_level("dict[str, list[int]], None") == ["dict[str, list[int]]", "None"]

    def test_split_top_level_ignores_arrow(self):
        assert split_top_level("(a: A) => B, C") == ["(a: A) => B", "C"]

    def test_split_top_level_custom_separator(self):
        assert split_top_level("User | None", "|") == ["User", "None"]

    def test_generic_parts(self):
        assert generic_parts("HashMap<String, Vec<u8>>") == ("HashMap", ["String", "Vec<u8>"])
        assert generic_parts("list[int]") == ("list", ["int"])
        assert generic_parts("string") == ("string", [])

    def test_generic_parts_plain_array_suffix(self):
        # 'int[]' has no generic arguments
        assert generic_parts("int[]") == ("int[]", [])


class TestComments:

    def test_clean_comment_strips_markers(self):
        assert clean_comment("// CreateUser builds a user.\n// It validates the name.") == \
            "CreateUser builds a user.\nIt validates the name."
        assert clean_comment("/**\n * Adds numbers.\n */") == "Adds numbers."
        assert clean_comment("/// Rust docs") == "Rust docs"


class TestHashing:

    def test_hash_ignores_indentation(self):
        a = hash_source_snippet(["def f():", "    return 1"], 1, 2)
        b = hash_source_snippet(["def f():", "  return 1"], 1, 2)
        assert a == b

    def test_hash_differs_for_different_bodies(self):
        a = hash_source_snippet(["return 1"], 1, 1)
        b = hash_source_snippet(["return 2"], 1, 1)
        assert a != b


class TestGitignore:

    def test_patterns_are_matched(self, temp_dir: Path):
        (temp_dir / ".gitignore").write_text("# comment\ngenerated/\n*.pb.go\n!keep.go\n")
        patterns = get_gitignore_patterns(temp_dir)
        assert all(not p.startswith("!") for p, _ in patterns)
        assert is_path_ignored(temp_dir / "api.pb.go", patterns)
        assert is_path_ignored(temp_dir / "generated" / "x.go", patterns)
        assert not is_path_ignored(temp_dir / "main.go", patterns)

    def test_segments_at_or_above_root_never_match(self, temp_dir: Path):
        (temp_dir / ".gitignore").write_text("generated/\n/out/python\n")
        patterns = get_gitignore_patterns(temp_dir)
        root = temp_dir / "generated" / "go"
        assert is_path_ignored(root / "main.go", patterns)
        assert not is_path_ignored(root / "main.go", patterns, root)
        assert is_path_ignored(root / "generated" / "main.go", patterns, root)
        assert not is_path_ignored(temp_dir / "out" / "python" / "a.py", patterns, temp_dir / "out" / "python")


class Color(Enum):
    RED = "red"


class TestSerialization:

    def test_dataclasses_and_enums(self):
        data = to_serializable({"type": TypeDef(name="User", kind=TypeKind.STRUCT), "lang": Language.GO})
        assert data["type"]["kind"] == "struct"
        assert data["type"]["name"] == "User"
        assert data["lang"] == "go"

    def test_paths_and_tuples(self):
        assert to_serializable((Path("a/b"), Color.RED)) == ["a/b", "red"]
