"""
Tests for the tree-sitter Java extractor.
"""

import pytest

from code_parity.core.extractors import JavaExtractor
from code_parity.core.models import TypeKind

JAVA_SOURCE = '''package com.acme.users;

import java.util.List;
import static java.util.Objects.requireNonNull;
import com.acme.db.Repo;

/** A registered user service. */
public class UserService implements Service, AutoCloseable {
    private final Repo repo;
    private int count, limit;
    public List<String> tags;

    public UserService(Repo repo) {
        this.repo = repo;
    }

    /** Creates a user. */
    public User createUser(String name, String... roles) {
        if (name == null || name.isEmpty()) {
            throw new IllegalArgumentException("name");
        }
        return repo.save(new User(name));
    }

    private void reset() {
    }

    public enum Status {
        ACTIVE,
        SUSPENDED;

        public boolean active() {
            return this == ACTIVE;
        }
    }
}

interface Service {
    void close();

    default String name() {
        return "svc";
    }
}

record Point(int x, int y) {
}
'''


@pytest.fixture
def java_result():
    return JavaExtractor().extract_file(JAVA_SOURCE.encode("utf-8"), "src/main/java/com/acme/users/UserService.java")


class TestJavaExtractor:

    def test_package_and_imports(self, java_result):
        assert java_result.package == "com.acme.users"
        assert [i.path for i in java_result.imports] == [
            "java.util.List",
            "java.util.Objects.requireNonNull",
            "com.acme.db.Repo",
        ]

    def test_class(self, java_result):
        service = next(t for t in java_result.types if t.name == "UserService")
        assert service.kind == TypeKind.CLASS
        assert service.implements == ["Service", "AutoCloseable"]
        assert service.doc == "A registered user service."
        assert [f.name for f in service.fields] == ["repo", "count", "limit", "tags"]
        assert service.fields[3].is_array
        assert service.methods == ["createUser", "reset"]

    def test_constructor_is_skipped(self, java_result):
        assert not any(f.name == "UserService" for f in java_result.functions)

    def test_method_details(self, java_result):
        create = next(f for f in java_result.functions if f.name == "createUser")
        assert create.receiver == "UserService"
        assert create.exported
        assert create.returns == ["User"]
        assert create.doc == "Creates a user."
        assert create.parameters[0].name == "name"
        assert create.parameters[1].name == "roles"
        assert create.parameters[1].variadic
        assert create.parameters[1].type == "String[]"
        assert "save" in create.calls
        assert create.complexity == 3

        reset = next(f for f in java_result.functions if f.name == "reset")
        assert not reset.exported
        assert reset.returns == ["void"]

    def test_nested_enum(self, java_result):
        status = next(t for t in java_result.types if t.name == "Status")
        assert status.kind == TypeKind.ENUM
        assert status.variants == ["ACTIVE", "SUSPENDED"]
        active = next(f for f in java_result.functions if f.name == "active")
        assert active.receiver == "Status"

    def test_interface_methods(self, java_result):
        service = next(t for t in java_result.types if t.name == "Service")
        assert service.kind == TypeKind.INTERFACE
        assert service.methods == ["close", "name"]
        # abstract methods have no body to compare
        assert not any(f.name == "close" for f in java_result.functions)
        default_method = next(f for f in java_result.functions if f.name == "name")
        assert default_method.exported

    def test_record_components_are_fields(self, java_result):
        point = next(t for t in java_result.types if t.name == "Point")
        assert point.kind == TypeKind.STRUCT
        assert [(f.name, f.type) for f in point.fields] == [("x", "int"), ("y", "int")]


class TestJavaClassification:

    def test_test_files(self):
        extractor = JavaExtractor()
        assert extractor.is_test_file("src/test/java/UserServiceTest.java")
        assert extractor.is_test_file("UserServiceTests.java")
        assert not extractor.is_test_file("src/main/java/UserService.java")

    def test_stdlib_imports(self):
        extractor = JavaExtractor()
        assert extractor.is_stdlib_import("java.util.List")
        assert extractor.is_stdlib_import("javax.inject.Inject")
        assert not extractor.is_stdlib_import("com.acme.db.Repo")

    def test_display_vocabulary(self):
        extractor = JavaExtractor()
        assert extractor.map_type_to_vocabulary("List<String>") == "List of Text"
        assert extractor.map_type_to_vocabulary("Optional<Integer>") == "Optional Integer"
        assert extractor.map_type_to_vocabulary("byte[]") == "Bytes"
        assert extractor.map_type_to_vocabulary("int[]") == "List of Integer"
