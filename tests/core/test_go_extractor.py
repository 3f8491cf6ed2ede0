"""
Tests for the tree-sitter Go extractor.
"""

import pytest

from code_parity.core.extractors import GoExtractor
from code_parity.core.models import TypeKind

GO_SOURCE = '''package store

import (
	"context"
	"fmt"
	db "github.com/acme/db"
)

// Repository persists users.
type Repository interface {
	Save(ctx context.Context, u *User) error
	Find(id int64) (*User, error)
}

type User struct {
	ID    int64
	Name  string
	Tags  []string
	Meta  map[string]string
	Owner *User
	Base
	internal bool
}

type Status int

const (
	Active Status = iota
	Suspended
	_
	Deleted
)

const Limit = 10

// Save stores the user.
func (r *SQLRepo) Save(ctx context.Context, u *User) error {
	if u == nil || u.Name == "" {
		return fmt.Errorf("invalid user")
	}
	for _, t := range u.Tags {
		if t == "" {
			continue
		}
	}
	return db.Exec(ctx, u)
}

func Join(sep string, parts ...string) string {
	return ""
}

func split(s string) (head, tail string) {
	return "", ""
}
'''


@pytest.fixture
def go_result():
    return GoExtractor().extract_file(GO_SOURCE.encode("utf-8"), "store/store.go")


class TestGoExtractor:

    def test_package_and_imports(self, go_result):
        assert go_result.package == "store"
        assert [i.path for i in go_result.imports] == ["context", "fmt", "github.com/acme/db"]
        assert go_result.imports[2].alias == "db"

    def test_interface(self, go_result):
        repo = next(t for t in go_result.types if t.name == "Repository")
        assert repo.kind == TypeKind.INTERFACE
        assert repo.methods == ["Save", "Find"]
        assert repo.doc == "Repository persists users."

    def test_struct_fields(self, go_result):
        user = next(t for t in go_result.types if t.name == "User")
        assert user.kind == TypeKind.STRUCT
        fields = {f.name: f for f in user.fields}
        assert list(fields) == ["ID", "Name", "Tags", "Meta", "Owner", "internal"]
        assert fields["Tags"].is_array
        assert fields["Meta"].is_map
        assert fields["Owner"].is_pointer
        assert user.implements == ["Base"]

    def test_named_type_and_typed_constants(self, go_result):
        status = next(t for t in go_result.types if t.name == "Status")
        assert status.kind == TypeKind.ALIAS
        assert status.alias_of == "int"
        assert go_result.constants == {"Status": ["Active", "Suspended", "Deleted"]}

    def test_method_with_receiver(self, go_result):
        save = next(f for f in go_result.functions if f.name == "Save")
        assert save.receiver == "SQLRepo"
        assert [(p.name, p.type) for p in save.parameters] == [("ctx", "context.Context"), ("u", "*User")]
        assert save.returns == ["error"]
        assert save.exported
        assert save.doc == "Save stores the user."
        assert "Errorf" in save.calls and "Exec" in save.calls
        # if, ||, for, if
        assert save.complexity == 5

    def test_variadic_parameter(self, go_result):
        join = next(f for f in go_result.functions if f.name == "Join")
        assert join.parameters[1].variadic
        assert join.parameters[1].type == "[]string"

    def test_named_results_and_visibility(self, go_result):
        split = next(f for f in go_result.functions if f.name == "split")
        assert not split.exported
        assert split.returns == ["string", "string"]

    def test_no_errors_for_valid_source(self, go_result):
        assert go_result.errors == []

    def test_malformed_source_records_warning(self):
        result = GoExtractor().extract_file(b"package x\nfunc Broken( {\n", "x.go")
        assert result.errors
        assert result.errors[0].severity == "warning"


class TestGoClassification:

    def test_test_files(self):
        extractor = GoExtractor()
        assert extractor.is_test_file("store/store_test.go")
        assert not extractor.is_test_file("store/store.go")

    def test_stdlib_imports(self):
        extractor = GoExtractor()
        assert extractor.is_stdlib_import("net/http")
        assert not extractor.is_stdlib_import("github.com/acme/db")

    def test_display_vocabulary(self):
        extractor = GoExtractor()
        assert extractor.map_type_to_vocabulary("[]string") == "List of Text"
        assert extractor.map_type_to_vocabulary("*int64") == "Optional Integer"
        assert extractor.map_type_to_vocabulary("map[string]int") == "Map"
        assert extractor.map_type_to_vocabulary("[]byte") == "Bytes"
