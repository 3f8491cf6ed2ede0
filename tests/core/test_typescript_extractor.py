"""
Tests for the tree-sitter TypeScript extractor.
"""

import pytest

from code_parity.core.extractors import TypeScriptExtractor
from code_parity.core.models import TypeKind

TS_SOURCE = '''import { readFile } from "fs";
import * as path from "node:path";
import axios from "axios";

/** A registered user. */
export interface User {
  id: number;
  name: string;
  email?: string;
  greet(): string;
}

export type Role = "admin" | "member";

export type Point = { x: number; y: number };

export type UserId = string;

export enum Color {
  Red,
  Green = "green",
}

export class UserService implements Service {
  private cache: Map<string, User>;

  constructor(private readonly repo: Repo, count: number) {}

  async createUser(name: string, tags: string[] = []): Promise<User> {
    if (!name || name.length === 0) {
      throw new Error("empty");
    }
    return this.repo.save({ name });
  }

  private reset(): void {}
}

export const formatName = (user: User): string => `${user.name}`;

function internalHelper(...values: number[]): number {
  return values.length > 0 ? values[0] : 0;
}
'''


@pytest.fixture
def ts_result():
    return TypeScriptExtractor().extract_file(TS_SOURCE.encode("utf-8"), "src/users.ts")


class TestTypeScriptExtractor:

    def test_imports(self, ts_result):
        assert [i.path for i in ts_result.imports] == ["fs", "node:path", "axios"]
        assert ts_result.imports[0].names == ["readFile"]
        assert ts_result.imports[1].alias == "path"

    def test_interface_fields_and_methods(self, ts_result):
        user = next(t for t in ts_result.types if t.name == "User")
        assert user.kind == TypeKind.INTERFACE
        assert [f.name for f in user.fields] == ["id", "name", "email"]
        assert user.fields[2].optional
        assert user.methods == ["greet"]
        assert user.exported
        assert user.doc == "A registered user."

    def test_type_aliases(self, ts_result):
        types = {t.name: t for t in ts_result.types}
        assert types["Role"].kind == TypeKind.ENUM
        assert types["Role"].variants == ["admin", "member"]
        assert types["Point"].kind == TypeKind.STRUCT
        assert [f.name for f in types["Point"].fields] == ["x", "y"]
        assert types["UserId"].kind == TypeKind.ALIAS
        assert types["UserId"].alias_of == "string"

    def test_enum(self, ts_result):
        color = next(t for t in ts_result.types if t.name == "Color")
        assert color.kind == TypeKind.ENUM
        assert color.variants == ["Red", "Green"]

    def test_class_members(self, ts_result):
        service = next(t for t in ts_result.types if t.name == "UserService")
        assert service.kind == TypeKind.CLASS
        assert service.implements == ["Service"]
        assert [f.name for f in service.fields] == ["cache", "repo"]
        assert service.methods == ["createUser", "reset"]

    def test_method_details(self, ts_result):
        create = next(f for f in ts_result.functions if f.name == "createUser")
        assert create.receiver == "UserService"
        assert create.is_async
        assert create.exported
        assert create.returns == ["Promise<User>"]
        assert [(p.name, p.type) for p in create.parameters] == [("name", "string"), ("tags", "string[]")]
        assert create.parameters[1].optional
        assert create.complexity >= 3

        reset = next(f for f in ts_result.functions if f.name == "reset")
        assert not reset.exported
        assert reset.returns == ["void"]

    def test_arrow_and_plain_functions(self, ts_result):
        format_name = next(f for f in ts_result.functions if f.name == "formatName")
        assert format_name.exported
        assert format_name.returns == ["string"]
        assert format_name.parameters[0].type == "User"

        helper = next(f for f in ts_result.functions if f.name == "internalHelper")
        assert not helper.exported
        assert helper.parameters[0].variadic
        assert helper.parameters[0].name == "values"

    def test_tsx_files_parse(self):
        source = b"export function App(props: Props): JSX.Element { return <div>{props.title}</div>; }\n"
        result = TypeScriptExtractor().extract_file(source, "src/App.tsx")
        assert [f.name for f in result.functions] == ["App"]
        assert result.errors == []


class TestTypeScriptClassification:

    def test_file_predicates(self):
        extractor = TypeScriptExtractor()
        assert extractor.is_source_file("src/a.ts")
        assert extractor.is_source_file("src/a.tsx")
        assert not extractor.is_source_file("src/a.d.ts")
        assert extractor.is_test_file("src/a.test.ts")
        assert extractor.is_test_file("src/a.spec.tsx")
        assert extractor.is_test_file("src/__tests__/a.ts")
        assert not extractor.is_test_file("src/a.ts")

    def test_stdlib_imports(self):
        extractor = TypeScriptExtractor()
        assert extractor.is_stdlib_import("fs")
        assert extractor.is_stdlib_import("node:path")
        assert not extractor.is_stdlib_import("axios")

    def test_display_vocabulary(self):
        extractor = TypeScriptExtractor()
        assert extractor.map_type_to_vocabulary("string[]") == "List of Text"
        assert extractor.map_type_to_vocabulary("string | null") == "Optional Text"
        assert extractor.map_type_to_vocabulary("Promise<number>") == "Result of Float"
        assert extractor.map_type_to_vocabulary("Record<string, number>") == "Map"
