"""
Error types raised while building the type registry, validating documents
and resolving fields.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from graphql.language import Node, get_location

INTERNAL_ERROR_MESSAGE = "Internal server error"


class GraphQLEngineError(Exception):
    """Base class for every error the engine knows how to report.

    ``expose`` marks the message as safe to show to API clients. Errors that
    are not exposed are replaced by a generic message at the response
    boundary.
    """

    code = "INTERNAL_SERVER_ERROR"
    expose = True

    def __init__(
        self,
        message: str,
        nodes: Sequence[Node] | Node | None = None,
        path: Sequence[str | int] | None = None,
        *,
        code: str | None = None,
        locations: Sequence[dict[str, int]] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if isinstance(nodes, Node):
            nodes = [nodes]
        self.nodes: list[Node] = list(nodes or [])
        self.path: list[str | int] | None = list(path) if path is not None else None
        if code is not None:
            self.code = code
        self._locations = list(locations) if locations is not None else None

    @property
    def locations(self) -> list[dict[str, int]]:
        if self._locations is not None:
            return self._locations
        locations = []
        for node in self.nodes:
            loc = node.loc
            if loc is None or loc.source is None:
                continue
            location = get_location(loc.source, loc.start)
            locations.append({"line": location.line, "column": location.column})
        return locations

    @property
    def formatted(self) -> dict[str, Any]:
        """Render the error in the GraphQL-over-HTTP response format."""
        error: dict[str, Any] = {"message": self.message}
        locations = self.locations
        if locations:
            error["locations"] = locations
        if self.path is not None:
            error["path"] = self.path
        error["extensions"] = {"code": self.code}
        return error

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, path={self.path!r})"


# Build-time errors


class SchemaError(GraphQLEngineError):
    """Raised when the declared types do not form a consistent schema."""

    code = "SCHEMA_ERROR"


class UnknownType(SchemaError):
    """Raised when a type name is not present in the registry."""

    code = "UNKNOWN_TYPE"

    def __init__(self, name: str, message: str | None = None):
        super().__init__(message or f"Unknown type '{name}'.")
        self.name = name


# Request-level errors


class ValidationError(GraphQLEngineError):
    """A document failed syntax, structural, type or depth validation."""

    code = "GRAPHQL_VALIDATION_FAILED"


# Field-level errors


class ResolutionError(GraphQLEngineError):
    """A single field could not be resolved."""

    code = "RESOLUTION_ERROR"


class MissingArgument(ResolutionError):
    code = "MISSING_ARGUMENT"


class ArgumentTypeMismatch(ResolutionError):
    code = "ARGUMENT_TYPE_MISMATCH"
