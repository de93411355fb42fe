from __future__ import annotations

import datetime as _dt
import re
import types
import typing
from dataclasses import dataclass
from typing import Any, Mapping, Union

# Names the schema builder maps straight to an OpenAPI primitive.
PRIMITIVE_NAMES = frozenset(
    {
        "int", "integer",
        "float", "double",
        "bool", "boolean",
        "str", "string",
        "array", "list",
        "object", "mixed", "dict", "Any",
        "DateTime", "DateTimeImmutable", "datetime", "date",
        "null", "None",
    }
)

NULL_NAMES = frozenset({"null", "None"})

_BUILTIN_NAMES: dict[Any, str] = {
    int: "int",
    float: "float",
    bool: "bool",
    str: "string",
    bytes: "string",
    dict: "object",
    object: "object",
    list: "array",
    tuple: "array",
    set: "array",
    frozenset: "array",
    _dt.datetime: "datetime",
    _dt.date: "date",
    type(None): "null",
    Any: "mixed",
}

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)

_LIST_GENERIC = re.compile(r"^(?:list|List|set|Set|Sequence)\[(.+)\]$")


@dataclass(frozen=True)
class Primitive:
    name: str

    @property
    def is_null(self) -> bool:
        return self.name in NULL_NAMES


@dataclass(frozen=True)
class ArrayOf:
    item: "TypeSpec"


@dataclass(frozen=True)
class EntityRef:
    name: str  # dotted (module.QualName) or short name


@dataclass(frozen=True)
class UnionOf:
    members: tuple["TypeSpec", ...]

    @property
    def allows_null(self) -> bool:
        return any(isinstance(m, Primitive) and m.is_null for m in self.members)

    @property
    def non_null(self) -> tuple["TypeSpec", ...]:
        return tuple(m for m in self.members if not (isinstance(m, Primitive) and m.is_null))


@dataclass(frozen=True)
class StatusMap:
    """HTTP status code -> declared type. ``None`` means a generic object."""

    codes: tuple[tuple[str, Union["TypeSpec", None]], ...]

    def items(self):
        return iter(self.codes)


TypeSpec = Union[Primitive, ArrayOf, EntityRef, UnionOf, StatusMap]


def allows_null(spec: TypeSpec | None) -> bool:
    if spec is None:
        return True
    if isinstance(spec, Primitive):
        return spec.is_null or spec.name in ("mixed", "Any")
    if isinstance(spec, UnionOf):
        return spec.allows_null
    return False


def _split_top_level(name: str) -> list[str]:
    # list[int|str] stays one part
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in name:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        if ch == "|" and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += ch
    parts.append(current)
    return parts


def parse_type_name(text: str) -> TypeSpec:
    """
    Parse a textual type name:
      User[]        -> ArrayOf(EntityRef("User"))
      int|string    -> UnionOf(...)
      ?app.Node     -> UnionOf((EntityRef("app.Node"), Primitive("null")))
    """
    name = (text or "").strip()
    if name.startswith("?"):
        return UnionOf((parse_type_name(name[1:]), Primitive("null")))

    if "|" in name:
        parts = [p for p in (s.strip() for s in _split_top_level(name)) if p]
        if len(parts) > 1:
            return UnionOf(tuple(parse_type_name(p) for p in parts))
        name = parts[0] if parts else ""

    if name.endswith("[]"):
        return ArrayOf(parse_type_name(name[:-2]))

    generic = _LIST_GENERIC.match(name)
    if generic:
        return ArrayOf(parse_type_name(generic.group(1)))

    name = name.lstrip("\\")
    if not name:
        return Primitive("mixed")
    if name in PRIMITIVE_NAMES:
        return Primitive(name)
    return EntityRef(name.replace("\\", "."))


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def type_spec_from_annotation(tp: Any) -> TypeSpec:
    """Convert a Python annotation into a TypeSpec. Unknown constructs become ``mixed``."""
    if tp is None:
        return Primitive("null")

    if isinstance(tp, str):
        return parse_type_name(tp)

    if isinstance(tp, typing.ForwardRef):
        return parse_type_name(tp.__forward_arg__)

    try:
        builtin = _BUILTIN_NAMES.get(tp)
    except TypeError:
        builtin = None
    if builtin is not None:
        return Primitive(builtin)

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is Union or (hasattr(types, "UnionType") and isinstance(tp, types.UnionType)):
        return UnionOf(tuple(type_spec_from_annotation(a) for a in args))

    if origin is typing.Annotated:
        return type_spec_from_annotation(args[0])

    if origin is typing.Literal:
        kinds = {type(a) for a in args}
        if len(kinds) == 1:
            return type_spec_from_annotation(kinds.pop())
        return Primitive("mixed")

    if origin in _SEQUENCE_ORIGINS:
        item_args = [a for a in args if a is not Ellipsis]
        if not item_args:
            return Primitive("array")
        return ArrayOf(type_spec_from_annotation(item_args[0]))

    if origin is not None:
        # dict[str, X], Mapping[...], etc.
        if isinstance(origin, type) and issubclass(origin, Mapping):
            return Primitive("object")
        return type_spec_from_annotation(origin)

    if isinstance(tp, type):
        return EntityRef(qualified_name(tp))

    return Primitive("mixed")


def type_name_of(obj: Any) -> str:
    """Textual name for a class, annotation or string (inverse of parse_type_name)."""
    if isinstance(obj, str):
        return obj
    return format_type_spec(type_spec_from_annotation(obj))


def format_type_spec(spec: TypeSpec) -> str:
    if isinstance(spec, Primitive):
        return spec.name
    if isinstance(spec, EntityRef):
        return spec.name
    if isinstance(spec, ArrayOf):
        # A|B[] would read back as A|(B[])
        if isinstance(spec.item, UnionOf):
            return f"list[{format_type_spec(spec.item)}]"
        return f"{format_type_spec(spec.item)}[]"
    if isinstance(spec, UnionOf):
        return "|".join(format_type_spec(m) for m in spec.members)
    if isinstance(spec, StatusMap):
        inner = ", ".join(
            f"{code}: {format_type_spec(t) if t is not None else 'object'}" for code, t in spec.codes
        )
        return "{" + inner + "}"
    return "mixed"
