"""
Type registry: the immutable, validated graph of named types that queries
are checked and executed against.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from graphql.language import OperationType

from ..logging import get_logger
from .binding import default_resolver
from .errors import SchemaError, UnknownType
from .scalars import BUILTIN_SCALARS
from .types import (
    INPUT_KINDS,
    OUTPUT_KINDS,
    Argument,
    EnumType,
    FieldDescriptor,
    InputObjectType,
    ListOf,
    NamedRef,
    NamedType,
    NonNull,
    ObjectType,
    Resolver,
    ScalarType,
    TypeKind,
    TypeRef,
    named_ref,
)

logger = get_logger(__name__)

_NAME_RE = re.compile(r"^[_a-zA-Z][_a-zA-Z0-9]*$")

ResolverMap = Mapping[tuple[str, str], Resolver]


class TypeRegistry:
    """
    Registry of every named type of a schema plus its root operation types.

    Use :meth:`register` to build one; instances are immutable and safe to
    share between concurrent requests.
    """

    def __init__(self, types: Mapping[str, NamedType], query: str, mutation: str | None = None):
        self._types: Mapping[str, NamedType] = MappingProxyType(dict(types))
        self._query = query
        self._mutation = mutation

    @classmethod
    def register(
        cls,
        descriptors: Iterable[NamedType],
        *,
        query: str = "Query",
        mutation: str | None = None,
        resolvers: ResolverMap | None = None,
    ) -> TypeRegistry:
        """
        Build a registry from named type descriptors.

        Args:
            descriptors: Scalars, enums, object and input object types. The
                built-in scalars are always included.
            query: Name of the query root type
            mutation: Name of the mutation root type, if mutations are supported
            resolvers: Resolver binding keyed by ``(type name, field name)``

        Raises:
            SchemaError: If the types do not form a consistent schema
            UnknownType: If a field or argument references an undeclared type
        """
        types: dict[str, NamedType] = {scalar.name: scalar for scalar in BUILTIN_SCALARS}
        for descriptor in descriptors:
            if not isinstance(descriptor, (ScalarType, EnumType, ObjectType, InputObjectType)):
                raise SchemaError(f"Expected a named type descriptor, got {descriptor!r}.")
            _check_name(descriptor.name, "Type")
            if descriptor.name in types:
                raise SchemaError(f"Type '{descriptor.name}' is declared more than once.")
            types[descriptor.name] = descriptor

        registry = cls(types, query, mutation)
        registry._check_types()
        registry._check_roots()
        registry._check_non_null_cycles()
        registry = cls(registry._bind_resolvers(resolvers or {}), query, mutation)

        logger.info(
            "Type registry built",
            types=len(registry),
            query=query,
            mutation=mutation,
        )
        return registry

    # Lookup

    def lookup(self, name: str) -> NamedType:
        """Get a named type, raising UnknownType if it is not registered."""
        try:
            return self._types[name]
        except KeyError:
            raise UnknownType(name) from None

    def get(self, name: str) -> NamedType | None:
        return self._types.get(name)

    def named_type(self, ref: TypeRef) -> NamedType:
        """Resolve a (possibly wrapped) type reference to its named type."""
        return self.lookup(named_ref(ref).name)

    @property
    def types(self) -> Mapping[str, NamedType]:
        return self._types

    @property
    def query_type(self) -> ObjectType:
        return self._types[self._query]  # type: ignore[return-value]

    @property
    def mutation_type(self) -> ObjectType | None:
        if self._mutation is None:
            return None
        return self._types[self._mutation]  # type: ignore[return-value]

    def root_type(self, operation: OperationType) -> ObjectType | None:
        if operation == OperationType.QUERY:
            return self.query_type
        if operation == OperationType.MUTATION:
            return self.mutation_type
        return None

    def is_input_type(self, ref: TypeRef) -> bool:
        named = self.get(named_ref(ref).name)
        return named is not None and named.kind in INPUT_KINDS

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[NamedType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    # Construction checks

    def _check_ref(self, ref: TypeRef, where: str, allowed: frozenset[TypeKind]) -> None:
        inner: TypeRef = ref
        while not isinstance(inner, NamedRef):
            if isinstance(inner, NonNull) and isinstance(inner.of_type, NonNull):
                raise SchemaError(f"{where} wraps a non-null type in another non-null wrapper.")
            inner = inner.of_type

        named = self._types.get(inner.name)
        if named is None:
            raise UnknownType(inner.name, f"{where} references undeclared type '{inner.name}'.")
        if named.kind not in allowed:
            role = "an input" if allowed is INPUT_KINDS else "an output"
            raise SchemaError(f"{where} must be {role} type, but '{inner.name}' is not.")

    def _check_types(self) -> None:
        for named in self._types.values():
            if isinstance(named, EnumType):
                if not named.values:
                    raise SchemaError(f"Enum '{named.name}' must define one or more values.")
                for value_name in named.values:
                    _check_name(value_name, f"Enum '{named.name}' value")
                    if value_name in ("true", "false", "null"):
                        raise SchemaError(f"Enum '{named.name}' cannot include value '{value_name}'.")

            elif isinstance(named, ObjectType):
                if not named.fields:
                    raise SchemaError(f"Type '{named.name}' must define one or more fields.")
                for field_name, field_def in named.fields.items():
                    _check_name(field_name, f"Field '{named.name}'")
                    where = f"Field '{named.name}.{field_name}'"
                    self._check_ref(field_def.type, where, OUTPUT_KINDS)
                    for arg in field_def.args.values():
                        _check_name(arg.name, f"{where} argument")
                        self._check_ref(arg.type, f"Argument '{named.name}.{field_name}({arg.name}:)'", INPUT_KINDS)

            elif isinstance(named, InputObjectType):
                if not named.fields:
                    raise SchemaError(f"Input type '{named.name}' must define one or more fields.")
                for arg in named.fields.values():
                    _check_name(arg.name, f"Input field '{named.name}'")
                    self._check_ref(arg.type, f"Input field '{named.name}.{arg.name}'", INPUT_KINDS)

    def _check_roots(self) -> None:
        for role, name in (("Query", self._query), ("Mutation", self._mutation)):
            if name is None:
                continue
            root = self._types.get(name)
            if root is None:
                raise UnknownType(name, f"{role} root type '{name}' is not declared.")
            if not isinstance(root, ObjectType):
                raise SchemaError(f"{role} root type must be an object type, '{name}' is not.")

    def _check_non_null_cycles(self) -> None:
        """Reject chains of non-null, non-list references that lead back to their start.

        Such a chain can never be satisfied by a finite value. Nullable and
        list-wrapped references break the chain.
        """
        edges: dict[str, list[tuple[str, str]]] = {}
        for named in self._types.values():
            if not isinstance(named, (ObjectType, InputObjectType)):
                continue
            edges[named.name] = []
            for field_name, field_def in named.fields.items():
                ref = field_def.type
                if isinstance(ref, NonNull) and isinstance(ref.of_type, NamedRef):
                    target = self._types[ref.of_type.name]
                    if isinstance(target, (ObjectType, InputObjectType)):
                        edges[named.name].append((field_name, target.name))

        visited: set[str] = set()

        def visit(name: str, trail: list[tuple[str, str]], on_trail: dict[str, int]) -> None:
            visited.add(name)
            on_trail[name] = len(trail)
            for field_name, target in edges.get(name, ()):
                trail.append((name, field_name))
                if target in on_trail:
                    chain = " -> ".join(f"{owner}.{fname}" for owner, fname in trail[on_trail[target] :])
                    raise SchemaError(
                        f"Type '{target}' references itself through a chain of non-null fields: {chain}."
                    )
                if target not in visited:
                    visit(target, trail, on_trail)
                trail.pop()
            del on_trail[name]

        for name in edges:
            if name not in visited:
                visit(name, [], {})

    def _bind_resolvers(self, resolvers: ResolverMap) -> dict[str, NamedType]:
        """Attach a resolver to every object field.

        Explicitly bound resolvers come from ``resolvers``; every other field
        gets a default resolver reading its source attribute.
        """
        for type_name, field_name in resolvers:
            owner = self.lookup(type_name)
            if not isinstance(owner, ObjectType):
                raise SchemaError(f"Cannot bind a resolver to '{type_name}', it is not an object type.")
            if field_name not in owner.fields:
                raise SchemaError(f"Cannot bind a resolver to unknown field '{type_name}.{field_name}'.")

        bound: dict[str, NamedType] = {}
        for name, named in self._types.items():
            if not isinstance(named, ObjectType):
                bound[name] = named
                continue
            fields: dict[str, FieldDescriptor] = {}
            for field_name, field_def in named.fields.items():
                explicit = resolvers.get((name, field_name))
                if explicit is not None and field_def.resolver is not None:
                    raise SchemaError(f"Field '{name}.{field_name}' has more than one resolver.")
                resolver = explicit or field_def.resolver or default_resolver(field_def.source or field_name)
                fields[field_name] = replace(field_def, resolver=resolver)
            bound[name] = replace(named, fields=fields)
        return bound

    # SDL

    def print_sdl(self) -> str:
        """Render the registry as GraphQL schema definition language."""
        builtin = {scalar.name for scalar in BUILTIN_SCALARS}
        blocks = []
        roots = [f"  query: {self._query}"]
        if self._mutation:
            roots.append(f"  mutation: {self._mutation}")
        blocks.append("schema {\n" + "\n".join(roots) + "\n}")

        for named in self._types.values():
            if named.name in builtin:
                continue
            blocks.append(self._print_type(named))
        return "\n\n".join(blocks) + "\n"

    def _print_type(self, named: NamedType) -> str:
        prefix = f'"""{named.description}"""\n' if named.description else ""
        if isinstance(named, ScalarType):
            return f"{prefix}scalar {named.name}"
        if isinstance(named, EnumType):
            lines = [f"  {value}" for value in named.values]
            return f"{prefix}enum {named.name} {{\n" + "\n".join(lines) + "\n}"
        if isinstance(named, InputObjectType):
            lines = [f"  {self._print_argument(arg)}" for arg in named.fields.values()]
            return f"{prefix}input {named.name} {{\n" + "\n".join(lines) + "\n}"

        lines = []
        for field_name, field_def in named.fields.items():
            args = ""
            if field_def.args:
                args = "(" + ", ".join(self._print_argument(arg) for arg in field_def.args.values()) + ")"
            lines.append(f"  {field_name}{args}: {field_def.type}")
        return f"{prefix}type {named.name} {{\n" + "\n".join(lines) + "\n}"

    def _print_argument(self, arg: Argument) -> str:
        text = f"{arg.name}: {arg.type}"
        if arg.has_default:
            text += f" = {self._print_value(arg.default, arg.type)}"
        return text

    def _print_value(self, value: Any, ref: TypeRef) -> str:
        if value is None:
            return "null"
        if isinstance(ref, NonNull):
            return self._print_value(value, ref.of_type)
        if isinstance(ref, ListOf):
            items = value if isinstance(value, (list, tuple)) else [value]
            return "[" + ", ".join(self._print_value(item, ref.of_type) for item in items) + "]"
        named = self.named_type(ref)
        if isinstance(named, EnumType):
            return named.serialize(value)
        if isinstance(named, InputObjectType):
            parts = [
                f"{name}: {self._print_value(item, named.fields[name].type)}"
                for name, item in value.items()
                if name in named.fields
            ]
            return "{" + ", ".join(parts) + "}"
        if isinstance(named, ScalarType) and not isinstance(value, (bool, int, float, str)):
            value = named.serialize(value)
        if isinstance(value, Enum):
            value = value.value
        return json.dumps(value)


def _check_name(name: str, what: str) -> None:
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise SchemaError(f"{what} name {name!r} is not a valid GraphQL name.")
    if name.startswith("__"):
        raise SchemaError(f"{what} name '{name}' must not begin with '__'.")
