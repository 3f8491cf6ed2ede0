"""
Tests for cross-language name and type normalization.
"""

import pytest

from code_parity.core.models import Field, FunctionDef, Language, Parameter, SourceLocation, TypeDef, TypeKind
from code_parity.parity.models import TypeShape
from code_parity.parity.normalizer import (
    convert_case,
    naming_for,
    normalize_functions,
    normalize_kind,
    normalize_name,
    normalize_returns,
    normalize_signature,
    normalize_type,
    normalize_type_def,
    parse_type,
    signature_match,
    split_identifier,
    tuple_elements,
    type_match,
    types_compatible,
)


class TestNormalizeName:

    @pytest.mark.parametrize("name, expected", [
        ("CreateUser", "create_user"),
        ("createUser", "create_user"),
        ("create_user", "create_user"),
        ("HTTPServer", "http_server"),
        ("parseJSON", "parse_json"),
        ("userID", "user_id"),
        ("MAX_SIZE", "max_size"),
        ("ID", "id"),
        ("v2Client", "v2_client"),
    ])
    def test_conventions_converge(self, name, expected):
        assert normalize_name(name) == expected

    @pytest.mark.parametrize("name", ["HTTPServer", "getUserByID", "snake_case_name", "XMLHttpRequest"])
    def test_idempotent(self, name):
        once = normalize_name(name)
        assert normalize_name(once) == once


class TestCaseConversion:

    def test_split_identifier(self):
        assert split_identifier("parseHTTPRequest") == ["parse", "http", "request"]
        assert split_identifier("create_user") == ["create", "user"]

    def test_convert_case(self):
        assert convert_case("create_user", "PascalCase") == "CreateUser"
        assert convert_case("CreateUser", "snake_case") == "create_user"
        assert convert_case("parseHTTPRequest", "camelCase") == "parseHttpRequest"
        assert convert_case("maxSize", "SCREAMING_CASE") == "MAX_SIZE"
        assert convert_case("name", "kebab") == "name"

    def test_language_conventions(self):
        assert naming_for(Language.GO).function_case == "PascalCase"
        assert naming_for(Language.PYTHON).function_case == "snake_case"
        assert naming_for(Language.RUST).const_case == "SCREAMING_CASE"
        assert naming_for(Language.CSHARP).function_case == "camelCase"
        assert naming_for(Language.JAVA).type_case == "PascalCase"


class TestParseType:

    @pytest.mark.parametrize("spelling, expected", [
        ("int64", "integer"),
        ("i32", "integer"),
        ("Long", "integer"),
        ("float64", "float"),
        ("double", "float"),
        ("str", "string"),
        ("String", "string"),
        ("bool", "boolean"),
        ("context.Context", "context"),
        ("time.Time", "timestamp"),
        ("Guid", "uuid"),
        ("interface{}", "any"),
        ("Exception", "error"),
        ("pkg.User", "user"),
        ("HTTPServer", "http_server"),
        ("", "void"),
        ("None", "void"),
    ])
    def test_canonical_bases(self, spelling, expected):
        assert normalize_type(spelling) == expected

    def test_pointers(self):
        assert parse_type("*User") == TypeShape(base="user", is_ptr=True)
        assert parse_type("&str") == TypeShape(base="string", is_ptr=True)
        assert parse_type("Box<Node>") == TypeShape(base="node", is_ptr=True)
        assert parse_type("&mut Buffer") == TypeShape(base="bytes", is_ptr=True)

    @pytest.mark.parametrize("spelling", ["[]string", "string[]", "list[str]", "Vec<String>", "List<String>",
                                          "Array<string>", "[5]string", "tuple[str, ...]"])
    def test_arrays(self, spelling):
        assert parse_type(spelling) == TypeShape(base="string", is_array=True)

    @pytest.mark.parametrize("spelling", ["[]byte", "Vec<u8>", "bytes", "byte[]", "&[u8]"])
    def test_byte_sequences_are_bytes(self, spelling):
        assert parse_type(spelling) == TypeShape(base="bytes")

    @pytest.mark.parametrize("spelling", ["map[string]int", "dict[str, int]", "HashMap<String, Vec<u8>>",
                                          "Record<string, number>", "Dictionary<string, int>"])
    def test_maps(self, spelling):
        assert parse_type(spelling) == TypeShape(base="map", is_map=True)

    @pytest.mark.parametrize("spelling", ["Optional[str]", "str | None", "Option<String>", "string?",
                                          "string | undefined"])
    def test_optionals_set_pointer_flag(self, spelling):
        assert parse_type(spelling) == TypeShape(base="string", is_ptr=True)

    def test_async_wrappers_unwrap(self):
        assert parse_type("Promise<User[]>") == TypeShape(base="user", is_array=True)
        assert parse_type("Task<int>") == TypeShape(base="integer")

    @pytest.mark.parametrize("spelling", ["(a: number) => void", "func(int) error", "Callable[[int], str]",
                                          "fn(i32) -> i32", "Func<int, string>"])
    def test_function_types(self, spelling):
        assert normalize_type(spelling) == "function"

    @pytest.mark.parametrize("spelling", ["[User, Error]", "(i32, String)", "(int, string)",
                                          "[number, number]", "tuple[int, str]", "(int id, string name)"])
    def test_tuples_are_untyped_arrays(self, spelling):
        assert parse_type(spelling) == TypeShape(base="any", is_array=True)

    def test_groupings_are_not_tuples(self):
        assert tuple_elements("[u8; 4]") is None
        assert tuple_elements("[User]") is None
        assert tuple_elements("tuple[int, ...]") is None
        assert tuple_elements("()") is None
        assert tuple_elements("(i32,)") == ["i32"]

    def test_tuple_member_labels_dropped(self):
        assert tuple_elements("[id: number, name?: string]") == ["number", "string"]
        assert tuple_elements("(int Id, List<string> Tags)") == ["int", "List<string>"]
        assert tuple_elements("(&'a str, &mut Vec<u8>)") == ["&'a str", "&mut Vec<u8>"]

    def test_union_without_null_is_any(self):
        assert normalize_type("int | str") == "any"
        assert normalize_type("Union[int, str]") == "any"

    @pytest.mark.parametrize("spelling", ["*pkg.HTTPServer", "Optional[List[int]]", "Promise<Map<string, User>>",
                                          "context.Context", "[]byte"])
    def test_idempotent(self, spelling):
        base = normalize_type(spelling)
        assert normalize_type(base) == base

    def test_number_compatibility(self):
        assert types_compatible("number", "integer")
        assert types_compatible("float", "number")
        assert types_compatible("user", "user")
        assert not types_compatible("integer", "float")
        assert not types_compatible("number", "string")


class TestNormalizeReturns:

    @pytest.mark.parametrize("returns, expected", [
        (["*User", "error"], ["user", "error"]),
        (["void"], []),
        (["None"], []),
        (["()"], []),
        ([], []),
        (["Result<User, Error>"], ["user", "error"]),
        (["Result<(), io::Error>"], ["error"]),
        (["Task"], []),
        (["Promise<void>"], []),
        (["Task<int>"], ["integer"]),
        (["[User, Error]"], ["user", "error"]),
        (["Promise<[User, Error]>"], ["user", "error"]),
        (["(i32, String)"], ["integer", "string"]),
        (["Result<(User, u32), Error>"], ["user", "integer", "error"]),
        (["(int Id, string Name)"], ["integer", "string"]),
    ])
    def test_returns(self, returns, expected):
        assert normalize_returns(returns) == expected


class TestNormalizeDefinitions:

    def test_kinds(self):
        assert normalize_kind(TypeDef(name="A", kind=TypeKind.CLASS)) == "struct"
        assert normalize_kind(TypeDef(name="A", kind=TypeKind.STRUCT)) == "struct"
        assert normalize_kind(TypeDef(name="A", kind=TypeKind.INTERFACE, fields=[Field(name="x")])) == "struct"
        assert normalize_kind(TypeDef(name="A", kind=TypeKind.INTERFACE, methods=["run"])) == "interface"
        assert normalize_kind(TypeDef(name="A", kind=TypeKind.ENUM)) == "enum"

    def test_signature_keeps_original_name_and_location(self):
        func = FunctionDef(
            name="CreateUser",
            parameters=[Parameter(name="userName", type="string")],
            returns=["*User", "error"],
            signature="func CreateUser(userName string) (*User, error)",
            location=SourceLocation(file="users.go", line_start=12),
        )
        sig = normalize_signature(func)
        assert sig.name == "create_user"
        assert sig.original_name == "CreateUser"
        assert sig.parameters[0].name == "user_name"
        assert sig.parameters[0].base_type == "string"
        assert sig.returns == ["user", "error"]
        assert sig.location == "users.go:12"

    def test_type_def_fields(self):
        type_def = TypeDef(name="User", kind=TypeKind.STRUCT, fields=[
            Field(name="ID", type="int64"),
            Field(name="Tags", type="[]string"),
            Field(name="Owner", type="*User"),
        ], methods=["Save"])
        normalized = normalize_type_def(type_def)
        assert normalized.name == "user"
        assert [(f.name, f.base_type) for f in normalized.fields] == [
            ("id", "integer"), ("tags", "string"), ("owner", "user"),
        ]
        assert normalized.fields[1].is_array
        assert normalized.fields[2].is_ptr
        assert normalized.methods == ["save"]
        assert normalized.describe() == "struct User"

    def test_private_symbols_filtered(self):
        funcs = [FunctionDef(name="Public"), FunctionDef(name="private", exported=False)]
        assert [s.name for s in normalize_functions(funcs, ignore_private=True)] == ["public"]
        assert len(normalize_functions(funcs, ignore_private=False)) == 2


def _sig(name, params, returns, is_async=False):
    return normalize_signature(FunctionDef(
        name=name,
        parameters=[Parameter(name=n, type=t) for n, t in params],
        returns=returns,
        is_async=is_async,
    ))


class TestSignatureMatch:

    def test_reflexive(self):
        sig = _sig("FindUser", [("ctx", "context.Context"), ("id", "int64")], ["*User", "error"])
        assert signature_match(sig, sig) == (True, [])

    def test_cross_language_equivalent(self):
        go = _sig("FindUser", [("ctx", "context.Context"), ("id", "int64")], ["*User", "error"])
        py = _sig("find_user", [("ctx", "Context"), ("id", "int")], ["User", "Exception"])
        assert signature_match(go, py) == (True, [])

    def test_missing_error_return(self):
        go = _sig("CreateUser", [("name", "string")], ["*User", "error"])
        py = _sig("create_user", [("name", "str")], ["User"])
        is_match, diffs = signature_match(go, py)
        assert not is_match
        assert diffs == ["return type count mismatch"]

    def test_name_mismatch_short_circuits(self):
        assert signature_match(_sig("a", [], []), _sig("b", [("x", "int")], ["int"])) == (False, ["name mismatch"])

    def test_parameter_differences(self):
        ref = _sig("f", [("a", "int"), ("b", "string")], [])
        gen = _sig("f", [("a", "string")], [])
        _, diffs = signature_match(ref, gen)
        assert diffs == ["parameter count mismatch", "parameter type mismatch: a"]

    def test_return_type_mismatch(self):
        _, diffs = signature_match(_sig("f", [], ["int"]), _sig("f", [], ["string"]))
        assert diffs == ["return type mismatch"]

    def test_pointer_and_async_only_in_strict_mode(self):
        ref = _sig("f", [("u", "*User")], [], is_async=True)
        gen = _sig("f", [("u", "User")], [])
        assert signature_match(ref, gen, strict=False) == (True, [])
        _, diffs = signature_match(ref, gen, strict=True)
        assert diffs == ["parameter pointer mismatch: u", "async mismatch"]


def _type(name, fields, kind=TypeKind.STRUCT, methods=None):
    return normalize_type_def(TypeDef(name=name, kind=kind, fields=[Field(name=n, type=t) for n, t in fields],
                                      methods=methods or []))


class TestTypeMatch:

    def test_equivalent_fields(self):
        go = _type("User", [("ID", "int"), ("Name", "string")])
        py = _type("User", [("id", "int"), ("name", "str")], kind=TypeKind.CLASS)
        assert type_match(go, py) == (True, [])

    def test_extra_generated_field(self):
        ref = _type("User", [("id", "int")])
        gen = _type("User", [("id", "int"), ("email", "str")])
        _, diffs = type_match(ref, gen)
        assert diffs == ["field count mismatch", "missing field: email"]

    def test_field_type_and_kind(self):
        ref = _type("Status", [("code", "int")])
        gen = _type("Status", [("code", "str")], kind=TypeKind.ENUM)
        _, diffs = type_match(ref, gen)
        assert diffs == ["kind mismatch: struct vs enum", "field type mismatch: code"]

    def test_method_count_only_in_strict_mode(self):
        ref = _type("Repo", [], kind=TypeKind.INTERFACE, methods=["save", "find"])
        gen = _type("Repo", [], kind=TypeKind.INTERFACE, methods=["save"])
        assert type_match(ref, gen) == (True, [])
        assert type_match(ref, gen, strict=True) == (False, ["method count mismatch"])
