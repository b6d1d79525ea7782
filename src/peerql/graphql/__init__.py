"""
GraphQL engine: type registry, validation and execution.

The domain schema lives in ``peerql.graphql.schema`` and the HTTP endpoint in
``peerql.graphql.router``.
"""

from .engine import QueryEngine
from .errors import (
    ArgumentTypeMismatch,
    GraphQLEngineError,
    MissingArgument,
    ResolutionError,
    SchemaError,
    UnknownType,
    ValidationError,
)
from .execution import ExecutionResult, Executor
from .registry import TypeRegistry
from .types import Argument, EnumType, FieldDescriptor, InputObjectType, ListOf, NamedRef, NonNull, ObjectType, ScalarType

__all__ = [
    "Argument",
    "ArgumentTypeMismatch",
    "EnumType",
    "ExecutionResult",
    "Executor",
    "FieldDescriptor",
    "GraphQLEngineError",
    "InputObjectType",
    "ListOf",
    "MissingArgument",
    "NamedRef",
    "NonNull",
    "ObjectType",
    "QueryEngine",
    "ResolutionError",
    "ScalarType",
    "SchemaError",
    "TypeRegistry",
    "UnknownType",
    "ValidationError",
]
