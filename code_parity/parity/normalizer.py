"""
Cross-language normalization.

Pure, stateless functions that map language-specific identifiers and type
spellings onto a shared vocabulary so that ``CreateUser(name string)`` in
one language and ``create_user(name: str)`` in another compare as equal.
Every function here is deterministic and idempotent on its own output.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..core.models import FunctionDef, Language, TypeDef, TypeKind
from ..core.utils import generic_parts, split_top_level
from .models import NormalizedField, NormalizedParam, NormalizedSignature, NormalizedType, TypeShape

# Spelling -> canonical token. Canonical tokens map to themselves so that
# normalizing an already-normalized base is a no-op.
TYPE_VOCABULARY = {
    # Integers
    "int": "integer", "int8": "integer", "int16": "integer", "int32": "integer", "int64": "integer",
    "uint": "integer", "uint8": "integer", "uint16": "integer", "uint32": "integer", "uint64": "integer",
    "uintptr": "integer", "rune": "integer",
    "i8": "integer", "i16": "integer", "i32": "integer", "i64": "integer", "i128": "integer",
    "u16": "integer", "u32": "integer", "u64": "integer", "u128": "integer",
    "isize": "integer", "usize": "integer",
    "Integer": "integer", "Long": "integer", "long": "integer", "Short": "integer", "short": "integer",
    "ulong": "integer", "ushort": "integer", "sbyte": "integer", "BigInteger": "integer", "bigint": "integer",
    "Int16": "integer", "Int32": "integer", "Int64": "integer", "UInt32": "integer", "UInt64": "integer",
    "integer": "integer",
    "number": "number",
    # Floats
    "float": "float", "float32": "float", "float64": "float", "f32": "float", "f64": "float",
    "Float": "float", "Double": "float", "double": "float", "decimal": "float", "Decimal": "float",
    "BigDecimal": "float", "Single": "float",
    # Strings
    "string": "string", "String": "string", "str": "string", "StringBuilder": "string",
    "char": "string", "Character": "string", "Char": "string",
    # Booleans
    "bool": "boolean", "boolean": "boolean", "Boolean": "boolean",
    # Void / unit / null
    "void": "void", "()": "void", "None": "void", "Unit": "void", "never": "void", "Void": "void",
    "null": "null", "nil": "null", "undefined": "null", "NoneType": "null",
    # Bytes
    "byte": "byte", "Byte": "byte", "u8": "byte",
    "bytes": "bytes", "[]byte": "bytes", "bytearray": "bytes", "byte[]": "bytes", "Vec<u8>": "bytes",
    "&[u8]": "bytes", "[u8]": "bytes", "Uint8Array": "bytes", "Buffer": "bytes", "memoryview": "bytes",
    # Any
    "any": "any", "Any": "any", "interface{}": "any", "Object": "any", "object": "any",
    "dynamic": "any", "unknown": "any",
    # Errors
    "error": "error", "Error": "error", "Exception": "error", "Throwable": "error",
    "result": "result", "Result": "result",
    # Context
    "context": "context", "context.Context": "context", "Context": "context",
    "CancellationToken": "context",
    # Time and identifiers
    "timestamp": "timestamp", "time.Time": "timestamp", "datetime": "timestamp", "Date": "timestamp",
    "DateTime": "timestamp", "DateTimeOffset": "timestamp", "Instant": "timestamp",
    "LocalDateTime": "timestamp", "SystemTime": "timestamp",
    "duration": "duration", "time.Duration": "duration", "timedelta": "duration", "Duration": "duration",
    "TimeSpan": "duration",
    "uuid": "uuid", "UUID": "uuid", "Uuid": "uuid", "Guid": "uuid",
    # Collections without element types
    "map": "map",
    "function": "function",
}

CANONICAL_TYPES = frozenset(TYPE_VOCABULARY.values())

ARRAY_WRAPPERS = {
    "list", "List", "Vec", "Array", "ArrayList", "LinkedList", "Set", "set", "frozenset", "HashSet",
    "BTreeSet", "Sequence", "MutableSequence", "Iterable", "Iterator", "Collection", "IEnumerable",
    "IList", "ICollection", "IReadOnlyList", "IReadOnlyCollection", "ReadonlyArray", "VecDeque",
    "AbstractSet", "Stream",
}
MAP_WRAPPERS = {
    "Map", "HashMap", "BTreeMap", "TreeMap", "LinkedHashMap", "Dictionary", "IDictionary",
    "IReadOnlyDictionary", "dict", "Dict", "Mapping", "MutableMapping", "Record", "DefaultDict",
    "defaultdict", "OrderedDict", "ConcurrentDictionary", "ConcurrentHashMap",
}
OPTIONAL_WRAPPERS = {"Optional", "Option", "Nullable"}
ASYNC_WRAPPERS = {"Promise", "Task", "ValueTask", "Future", "Awaitable", "CompletableFuture", "CompletionStage"}
POINTER_WRAPPERS = {"Box", "Rc", "Arc", "RefCell", "Cell", "Mutex", "RwLock", "Weak", "Ref"}
FUNCTION_WRAPPERS = {
    "Callable", "Fn", "FnMut", "FnOnce", "Func", "Action", "Function", "BiFunction",
    "Supplier", "Consumer", "Predicate", "Runnable",
}
NULLISH = {"None", "null", "undefined", "nil", "NoneType"}

_QUALIFIER_PREFIXES = ("const ", "readonly ", "dyn ", "impl ", "mut ", "ref ", "out ", "in ", "final ",
                       "params ", "keyof ", "typeof ")
_OPENERS_ALL = "<([{"
_CLOSERS_ALL = ">)]}"
_FIXED_ARRAY = re.compile(r"^\[\d*\]")
_LIFETIME = re.compile(r"^'\w+\s+")
_PACKAGE_SEPARATORS = re.compile(r"::|\.")


# --- Names ---

def normalize_name(name: str) -> str:
    """
    Converts snake_case, camelCase, PascalCase or SCREAMING_CASE to lower snake_case.

    An underscore is inserted before an uppercase letter that follows a
    lowercase letter or digit, or that starts a new word after an acronym
    (HTTPServer -> http_server). Existing underscores are kept as-is.
    """
    out: List[str] = []
    length = len(name)
    for i, ch in enumerate(name):
        if i > 0 and ch.isupper():
            prev = name[i - 1]
            nxt = name[i + 1] if i + 1 < length else ""
            if prev != "_" and (prev.islower() or prev.isdigit() or (prev.isupper() and nxt.islower())):
                out.append("_")
        out.append(ch)
    return "".join(out).lower()


_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z]|\d|\b|_|$)|[A-Z]?[a-z]+|[A-Z]+|\d+")


def split_identifier(name: str) -> List[str]:
    """'parseHTTPRequest2' -> ['parse', 'http', 'request', '2']."""
    if "_" in name:
        return [part.lower() for part in name.split("_") if part]
    return [match.lower() for match in _WORD.findall(name)]


def convert_case(name: str, target_case: str) -> str:
    parts = split_identifier(name)
    if target_case == "camelCase":
        return (parts[0] + "".join(p.capitalize() for p in parts[1:])) if parts else ""
    if target_case == "PascalCase":
        return "".join(p.capitalize() for p in parts)
    if target_case == "snake_case":
        return "_".join(parts)
    if target_case == "SCREAMING_CASE":
        return "_".join(parts).upper()
    return name


@dataclass(frozen=True)
class LanguageNaming:
    function_case: str
    type_case: str
    field_case: str
    const_case: str


_NAMING = {
    Language.GO: LanguageNaming("PascalCase", "PascalCase", "PascalCase", "PascalCase"),
    Language.RUST: LanguageNaming("snake_case", "PascalCase", "snake_case", "SCREAMING_CASE"),
    Language.PYTHON: LanguageNaming("snake_case", "PascalCase", "snake_case", "SCREAMING_CASE"),
    Language.JAVA: LanguageNaming("camelCase", "PascalCase", "camelCase", "SCREAMING_CASE"),
    Language.CSHARP: LanguageNaming("camelCase", "PascalCase", "camelCase", "SCREAMING_CASE"),
    Language.TYPESCRIPT: LanguageNaming("camelCase", "PascalCase", "camelCase", "SCREAMING_CASE"),
}


def naming_for(language: Language) -> LanguageNaming:
    return _NAMING.get(language, LanguageNaming("camelCase", "PascalCase", "camelCase", "SCREAMING_CASE"))


# --- Types ---

def _strip_qualifiers(type_str: str) -> str:
    changed = True
    while changed:
        changed = False
        type_str = _LIFETIME.sub("", type_str.strip())
        for prefix in _QUALIFIER_PREFIXES:
            if type_str.startswith(prefix):
                type_str = type_str[len(prefix):].strip()
                changed = True
    return type_str


def _lookup(type_str: str) -> Optional[str]:
    if type_str in TYPE_VOCABULARY:
        return TYPE_VOCABULARY[type_str]
    compact = type_str.replace(" ", "")
    return TYPE_VOCABULARY.get(compact)


def _array_element(type_str: str) -> Optional[str]:
    if type_str.startswith("[]"):
        return type_str[2:]
    match = _FIXED_ARRAY.match(type_str)
    if match:
        return type_str[match.end():]
    if type_str.endswith("[]"):
        return type_str[:-2]
    if type_str.startswith("[") and type_str.endswith("]"):
        # Rust slices and fixed arrays: [T] / [T; N]
        return type_str[1:-1].split(";")[0]
    head, args = generic_parts(type_str)
    if head in ARRAY_WRAPPERS and args:
        return args[0]
    if head in ("tuple", "Tuple") and len(args) == 2 and args[1].strip() == "...":
        return args[0]
    return None


def _optional_inner(type_str: str) -> Optional[str]:
    if type_str.endswith("?"):
        return type_str[:-1]
    head, args = generic_parts(type_str)
    if head in OPTIONAL_WRAPPERS and args:
        return args[0]
    members = args if head == "Union" else split_top_level(type_str, "|")
    if len(members) > 1:
        rest = [m for m in members if m.strip() not in NULLISH]
        if len(rest) < len(members):
            return " | ".join(rest) if rest else "null"
    return None


_TUPLE_LABEL = re.compile(r"^(?:\.\.\.)?[A-Za-z_$][\w$]*\??\s*:(?!:)\s*")
_TUPLE_NAME = re.compile(r"^(?P<type>.*[\w>\]?)])\s+[A-Za-z_]\w*$")
_TYPE_KEYWORDS = {"mut", "dyn", "impl", "const", "ref", "out", "in", "readonly", "unsigned", "signed",
                  "long", "short", "struct"}


def _enclosed(type_str: str, opener: str, closer: str) -> bool:
    """True when the first and last characters are one matching bracket pair."""
    if len(type_str) < 2 or type_str[0] != opener or type_str[-1] != closer:
        return False
    depth = 0
    for i, ch in enumerate(type_str):
        if ch in _OPENERS_ALL:
            depth += 1
        elif ch in _CLOSERS_ALL and not (ch == ">" and type_str[i - 1] in "=-"):
            depth -= 1
            if depth == 0 and i < len(type_str) - 1:
                return False
    return True


def _tuple_member(spelling: str) -> str:
    """Drops a TypeScript label ('id: number') or a C# element name ('int id')."""
    spelling = _TUPLE_LABEL.sub("", spelling.strip())
    match = _TUPLE_NAME.match(spelling)
    last = match.group("type").split()[-1] if match else ""
    if match and last not in _TYPE_KEYWORDS and "'" not in last and not last.startswith(("&", "*")):
        return match.group("type").strip()
    return spelling


def tuple_elements(type_str: str) -> Optional[List[str]]:
    """
    Element spellings of a tuple type, or None for anything else.

    Recognizes '(int, string)', TypeScript '[User, Error]' and Python
    'tuple[A, B]'. Homogeneous 'tuple[T, ...]', Rust '[T; N]' slices and
    one-element groupings are not tuples.
    """
    type_str = _strip_qualifiers(type_str or "")
    head, args = generic_parts(type_str)
    if head in ("tuple", "Tuple") and args:
        if len(args) == 2 and args[1].strip() == "...":
            return None
        return [_tuple_member(a) for a in args] if len(args) > 1 else None
    if _enclosed(type_str, "(", ")") or _enclosed(type_str, "[", "]"):
        inner = type_str[1:-1]
        if type_str[0] == "[" and split_top_level(inner, ";") != [inner.strip()]:
            return None
        members = split_top_level(inner)
        if len(members) > 1 or inner.rstrip().endswith(","):
            return [_tuple_member(m) for m in members]
    return None


def _is_function_type(type_str: str) -> bool:
    head, _ = generic_parts(type_str)
    if head in FUNCTION_WRAPPERS:
        return True
    if type_str.startswith(("func(", "func (", "fn(", "fn (")):
        return True
    return type_str.startswith("(") and "=>" in type_str


def _base_name(type_str: str) -> str:
    head, _ = generic_parts(type_str)
    head = head.strip() or type_str
    mapped = _lookup(head)
    if mapped is not None:
        return mapped
    segments = [s for s in _PACKAGE_SEPARATORS.split(head) if s]
    if segments:
        head = segments[-1]
    head = re.sub(r"[^\w]", "", head)
    if not head:
        return "any"
    name = normalize_name(head)
    return TYPE_VOCABULARY.get(name, name)


def parse_type(type_str: str) -> TypeShape:
    """
    Decomposes a type spelling into a canonical base plus pointer/array/map flags.

    Order: one pointer/reference marker, async and smart-pointer wrappers,
    array/list wrappers (recursing into the element), map spellings (base
    becomes 'map'), optional/nullable spellings (recursing, sets is_ptr as a
    nullability proxy), then the vocabulary lookup. Unknown spellings are
    user-defined types and are name-normalized.
    """
    type_str = _strip_qualifiers(type_str or "")
    if not type_str:
        return TypeShape(base="void")
    is_ptr = False
    if type_str[0] in "*&" and type_str not in TYPE_VOCABULARY:
        is_ptr = True
        type_str = _strip_qualifiers(type_str[1:])
        if not type_str:
            return TypeShape(base="any", is_ptr=True)

    mapped = _lookup(type_str)
    if mapped is not None:
        return TypeShape(base=mapped, is_ptr=is_ptr)

    head, args = generic_parts(type_str)
    if args and head in ASYNC_WRAPPERS:
        inner = parse_type(args[-1] if head == "Coroutine" else args[0])
        return TypeShape(inner.base, is_ptr or inner.is_ptr, inner.is_array, inner.is_map)
    if args and head == "Coroutine":
        inner = parse_type(args[-1])
        return TypeShape(inner.base, is_ptr or inner.is_ptr, inner.is_array, inner.is_map)
    if args and head in POINTER_WRAPPERS:
        inner = parse_type(args[0])
        return TypeShape(inner.base, True, inner.is_array, inner.is_map)

    if _is_function_type(type_str):
        return TypeShape(base="function", is_ptr=is_ptr)

    if tuple_elements(type_str) is not None:
        # tuples have no single element type
        return TypeShape(base="any", is_ptr=is_ptr, is_array=True)

    element = _array_element(type_str)
    if element is not None:
        inner = parse_type(element)
        return TypeShape(inner.base, is_ptr or inner.is_ptr, True, inner.is_map)
    if type_str in ARRAY_WRAPPERS:
        return TypeShape(base="any", is_ptr=is_ptr, is_array=True)

    if type_str.startswith("map[") or head in MAP_WRAPPERS or type_str in MAP_WRAPPERS:
        return TypeShape(base="map", is_ptr=is_ptr, is_map=True)

    inner_str = _optional_inner(type_str)
    if inner_str is not None:
        inner = parse_type(inner_str)
        return TypeShape(inner.base, True, inner.is_array, inner.is_map)

    if (head == "Union" and args) or len(split_top_level(type_str, "|")) > 1:
        return TypeShape(base="any", is_ptr=is_ptr)

    return TypeShape(base=_base_name(type_str), is_ptr=is_ptr)


def normalize_type(type_str: str) -> str:
    """The canonical base of a type spelling."""
    return parse_type(type_str).base


def types_compatible(a: str, b: str) -> bool:
    """Canonical bases match, with TypeScript's 'number' matching both integer and float."""
    if a == b:
        return True
    return "number" in (a, b) and {a, b} <= {"number", "integer", "float"}


def normalize_returns(returns: Iterable[str]) -> List[str]:
    """
    Normalized return bases with void entries dropped, so a missing return
    and an explicit void/None/() agree. Rust Result<T, E> contributes [T, error]
    and a tuple contributes one entry per element.
    """
    normalized: List[str] = []
    for spelling in returns:
        spelling = _strip_qualifiers(spelling or "")
        if spelling in ASYNC_WRAPPERS:
            # C# 'async Task' and friends carry no value
            continue
        head, args = generic_parts(spelling)
        if head in ASYNC_WRAPPERS and args:
            head, args = generic_parts(args[0])
            spelling = f"{head}<{', '.join(args)}>" if args else head
        if head in ("Result", "std::result::Result", "io::Result") and args:
            normalized.extend(normalize_returns(args[:1]))
            normalized.append("error")
            continue
        elements = tuple_elements(spelling)
        if elements is not None:
            normalized.extend(normalize_returns(elements))
            continue
        base = normalize_type(spelling)
        if base != "void":
            normalized.append(base)
    return normalized


def normalize_kind(type_def: TypeDef) -> str:
    """
    Class and struct are both 'struct'; an interface with fields but no methods
    describes a data shape and is also 'struct'.
    """
    if type_def.kind in (TypeKind.CLASS, TypeKind.STRUCT):
        return TypeKind.STRUCT.value
    if type_def.kind == TypeKind.INTERFACE and type_def.fields and not type_def.methods:
        return TypeKind.STRUCT.value
    return type_def.kind.value


# --- Projections ---

def normalize_param(name: str, type_str: str, optional: bool = False, variadic: bool = False) -> NormalizedParam:
    shape = parse_type(type_str) if type_str else TypeShape(base="any")
    return NormalizedParam(
        name=normalize_name(name),
        base_type=shape.base,
        is_ptr=shape.is_ptr,
        is_array=shape.is_array,
        is_map=shape.is_map,
        optional=optional,
        variadic=variadic,
    )


def normalize_signature(func: FunctionDef) -> NormalizedSignature:
    return NormalizedSignature(
        name=normalize_name(func.name),
        parameters=[normalize_param(p.name, p.type, p.optional, p.variadic) for p in func.parameters],
        returns=normalize_returns(func.returns),
        is_async=func.is_async,
        is_public=func.exported,
        complexity=func.complexity,
        original_name=func.name,
        signature=func.signature or func.name,
        location=str(func.location) if func.location else "",
        receiver=func.receiver,
    )


def normalize_type_def(type_def: TypeDef) -> NormalizedType:
    fields: List[NormalizedField] = []
    for f in type_def.fields:
        shape = parse_type(f.type) if f.type else TypeShape(base="any")
        fields.append(NormalizedField(
            name=normalize_name(f.name),
            base_type=shape.base,
            is_ptr=shape.is_ptr or f.is_pointer,
            is_array=shape.is_array or f.is_array,
            is_map=shape.is_map or f.is_map,
        ))
    return NormalizedType(
        name=normalize_name(type_def.name),
        kind=normalize_kind(type_def),
        fields=fields,
        methods=[normalize_name(m) for m in type_def.methods],
        implements=[normalize_name(i) for i in type_def.implements],
        variants=[normalize_name(v) for v in type_def.variants],
        is_public=type_def.exported,
        original_name=type_def.name,
        location=str(type_def.location) if type_def.location else "",
    )


def normalize_functions(funcs: Iterable[FunctionDef], ignore_private: bool) -> List[NormalizedSignature]:
    return [normalize_signature(f) for f in funcs if f.exported or not ignore_private]


def normalize_types(types: Iterable[TypeDef], ignore_private: bool) -> List[NormalizedType]:
    return [normalize_type_def(t) for t in types if t.exported or not ignore_private]


# --- Structural match rules ---

def signature_match(a: NormalizedSignature, b: NormalizedSignature, strict: bool = False) -> Tuple[bool, List[str]]:
    """
    Compares a reference signature (a) with a generated one (b).

    Returns (is_match, differences). Parameters are compared positionally up
    to the shorter list; pointer and async differences count only in strict mode.
    """
    diffs: List[str] = []
    if a.name != b.name:
        return False, ["name mismatch"]

    if len(a.parameters) != len(b.parameters):
        diffs.append("parameter count mismatch")
    for pa, pb in zip(a.parameters, b.parameters):
        if not types_compatible(pa.base_type, pb.base_type):
            diffs.append(f"parameter type mismatch: {pa.name}")
        if strict and pa.is_ptr != pb.is_ptr:
            diffs.append(f"parameter pointer mismatch: {pa.name}")

    if len(a.returns) != len(b.returns):
        diffs.append("return type count mismatch")
    else:
        for ra, rb in zip(a.returns, b.returns):
            if not types_compatible(ra, rb):
                diffs.append("return type mismatch")

    if strict and a.is_async != b.is_async:
        diffs.append("async mismatch")

    return not diffs, diffs


def type_match(a: NormalizedType, b: NormalizedType, strict: bool = False) -> Tuple[bool, List[str]]:
    """
    Compares a reference type (a) with a generated one (b).

    Fields are matched by name. Fields present only in b are reported as
    'missing field: <name>'; fields present only in a show up through the
    field count difference.
    """
    diffs: List[str] = []
    if a.name != b.name:
        return False, ["name mismatch"]

    if a.kind != b.kind:
        diffs.append(f"kind mismatch: {a.kind} vs {b.kind}")

    if len(a.fields) != len(b.fields):
        diffs.append("field count mismatch")

    reference_fields = {f.name: f for f in a.fields}
    for generated in b.fields:
        reference = reference_fields.get(generated.name)
        if reference is None:
            diffs.append(f"missing field: {generated.name}")
        elif not types_compatible(reference.base_type, generated.base_type):
            diffs.append(f"field type mismatch: {generated.name}")

    if strict and len(a.methods) != len(b.methods):
        diffs.append("method count mismatch")

    return not diffs, diffs
