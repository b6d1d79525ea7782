"""
Built-in scalar types and the UUID scalar.

The built-ins reuse graphql-core's coercion functions, which raise
``GraphQLError`` with a client-safe message. The UUID scalar raises
``TypeError``; callers convert either into a field or argument error.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID as PyUUID

from graphql.language import StringValueNode, ValueNode, print_ast
from graphql.type import (
    GraphQLBoolean,
    GraphQLFloat,
    GraphQLID,
    GraphQLInt,
    GraphQLScalarType,
    GraphQLString,
)

from .types import ScalarType


def from_graphql_core(scalar: GraphQLScalarType) -> ScalarType:
    return ScalarType(
        scalar.name,
        scalar.serialize,
        scalar.parse_value,
        scalar.parse_literal,
        scalar.description,
    )


Int = from_graphql_core(GraphQLInt)
Float = from_graphql_core(GraphQLFloat)
String = from_graphql_core(GraphQLString)
Boolean = from_graphql_core(GraphQLBoolean)
ID = from_graphql_core(GraphQLID)


def _to_uuid(value: Any) -> PyUUID:
    if isinstance(value, PyUUID):
        return value
    if isinstance(value, str):
        try:
            return PyUUID(value)
        except ValueError:
            pass
    raise TypeError(f"UUID cannot represent value: {value!r}")


def serialize_uuid(value: Any) -> str:
    return str(_to_uuid(value))


def parse_uuid_value(value: Any) -> PyUUID:
    if not isinstance(value, str):
        raise TypeError(f"UUID cannot represent value: {value!r}")
    return _to_uuid(value)


def parse_uuid_literal(node: ValueNode) -> PyUUID:
    if not isinstance(node, StringValueNode):
        raise TypeError(f"UUID cannot represent value: {print_ast(node)}")
    return _to_uuid(node.value)


UUID = ScalarType(
    "UUID",
    serialize_uuid,
    parse_uuid_value,
    parse_uuid_literal,
    "A universally unique identifier in its canonical string form.",
)

BUILTIN_SCALARS: tuple[ScalarType, ...] = (Int, Float, String, Boolean, ID)
