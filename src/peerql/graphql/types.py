"""
Type descriptors for the type registry.

Named types (scalars, enums, objects, input objects) are declared with the
descriptor classes below. Fields and arguments refer to other types through
``NamedRef`` by name, optionally wrapped in ``ListOf`` / ``NonNull``, so the
graph may contain cycles and can be declared in any order. Every place that
takes a type reference also accepts SDL text such as ``"[User!]!"``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Union

from graphql.error import GraphQLSyntaxError
from graphql.language import ListTypeNode, NamedTypeNode, NonNullTypeNode, TypeNode, parse_type

from .errors import SchemaError


class TypeKind(Enum):
    SCALAR = "SCALAR"
    ENUM = "ENUM"
    OBJECT = "OBJECT"
    INPUT_OBJECT = "INPUT_OBJECT"
    LIST = "LIST"
    NON_NULL = "NON_NULL"


class _Unset:
    """Marker for "no value supplied", distinct from an explicit null."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# Type references


@dataclass(frozen=True)
class NamedRef:
    """Reference to a named type, resolved through the registry."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ListOf:
    of_type: TypeRef

    @property
    def kind(self) -> TypeKind:
        return TypeKind.LIST

    def __str__(self) -> str:
        return f"[{self.of_type}]"


@dataclass(frozen=True)
class NonNull:
    of_type: TypeRef

    @property
    def kind(self) -> TypeKind:
        return TypeKind.NON_NULL

    def __str__(self) -> str:
        return f"{self.of_type}!"


TypeRef = Union[NamedRef, ListOf, NonNull]


def ast_to_type_ref(node: TypeNode) -> TypeRef:
    """Convert a parsed GraphQL type node into a type reference."""
    if isinstance(node, NonNullTypeNode):
        return NonNull(ast_to_type_ref(node.type))
    if isinstance(node, ListTypeNode):
        return ListOf(ast_to_type_ref(node.type))
    if isinstance(node, NamedTypeNode):
        return NamedRef(node.name.value)
    raise TypeError(f"Unexpected type node: {node!r}")


def type_ref(value: TypeRef | NamedType | str) -> TypeRef:
    """Normalise SDL text, a named descriptor or a reference into a reference."""
    if isinstance(value, (NamedRef, ListOf, NonNull)):
        return value
    if isinstance(value, (ScalarType, EnumType, ObjectType, InputObjectType)):
        return NamedRef(value.name)
    if isinstance(value, str):
        try:
            return ast_to_type_ref(parse_type(value, no_location=True))
        except GraphQLSyntaxError as e:
            raise SchemaError(f"Invalid type reference '{value}': {e.message}") from e
    raise TypeError(f"Cannot use {value!r} as a type reference")


def named_ref(ref: TypeRef) -> NamedRef:
    """Strip list and non-null wrappers."""
    while not isinstance(ref, NamedRef):
        ref = ref.of_type
    return ref


def is_non_null(ref: TypeRef) -> bool:
    return isinstance(ref, NonNull)


# Arguments and fields


@dataclass(frozen=True)
class Argument:
    """A named input value: a field argument or an input object field."""

    name: str
    type: TypeRef
    default: Any = UNSET
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", type_ref(self.type))

    @property
    def has_default(self) -> bool:
        return self.default is not UNSET

    @property
    def required(self) -> bool:
        return is_non_null(self.type) and not self.has_default


def _argument_map(args: Sequence[Argument] | Mapping[str, Argument]) -> Mapping[str, Argument]:
    if isinstance(args, Mapping):
        args = list(args.values())
    result: dict[str, Argument] = {}
    for arg in args:
        if arg.name in result:
            raise SchemaError(f"Argument '{arg.name}' is declared more than once.")
        result[arg.name] = arg
    return MappingProxyType(result)


Resolver = Callable[..., Any]


@dataclass(frozen=True)
class FieldDescriptor:
    """An output field of an object type.

    ``source`` is the attribute (or mapping key) the default resolver reads
    from the parent value; it defaults to the field name.
    """

    type: TypeRef
    args: Mapping[str, Argument] = field(default_factory=dict)
    resolver: Resolver | None = None
    source: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", type_ref(self.type))
        object.__setattr__(self, "args", _argument_map(self.args))


# Named types


@dataclass(frozen=True)
class ScalarType:
    name: str
    serialize: Callable[[Any], Any]
    parse_value: Callable[[Any], Any]
    parse_literal: Callable[[Any], Any]
    description: str | None = None

    @property
    def kind(self) -> TypeKind:
        return TypeKind.SCALAR


@dataclass(frozen=True)
class EnumType:
    """Enumeration mapping public value names to internal values."""

    name: str
    values: Mapping[str, Any]
    description: str | None = None

    def __post_init__(self) -> None:
        values = self.values
        if not isinstance(values, Mapping):
            values = {value: value for value in values}
        object.__setattr__(self, "values", MappingProxyType(dict(values)))

    @property
    def kind(self) -> TypeKind:
        return TypeKind.ENUM

    def serialize(self, value: Any) -> str:
        if isinstance(value, Enum):
            value = value.value
        for name, internal in self.values.items():
            if internal == value:
                return name
        raise TypeError(f"Enum '{self.name}' cannot represent value: {value!r}")

    def parse_value(self, value: Any) -> Any:
        if isinstance(value, str) and value in self.values:
            return self.values[value]
        raise TypeError(f"Value {value!r} does not exist in '{self.name}' enum.")


@dataclass(frozen=True)
class ObjectType:
    name: str
    fields: Mapping[str, FieldDescriptor]
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def kind(self) -> TypeKind:
        return TypeKind.OBJECT


@dataclass(frozen=True)
class InputObjectType:
    name: str
    fields: Mapping[str, Argument]
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _argument_map(self.fields))

    @property
    def kind(self) -> TypeKind:
        return TypeKind.INPUT_OBJECT


NamedType = Union[ScalarType, EnumType, ObjectType, InputObjectType]

INPUT_KINDS = frozenset({TypeKind.SCALAR, TypeKind.ENUM, TypeKind.INPUT_OBJECT})
OUTPUT_KINDS = frozenset({TypeKind.SCALAR, TypeKind.ENUM, TypeKind.OBJECT})
