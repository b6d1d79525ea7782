"""
Errors raised by the repository layer.

They are GraphQLEngineErrors so a resolver can let them propagate: the
executor forwards the message of exposed kinds and masks the rest.
"""

from __future__ import annotations

from enum import Enum

from ..graphql.errors import GraphQLEngineError


class RepositoryErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    TRANSPORT = "TRANSPORT"


class RepositoryError(GraphQLEngineError):
    """Base class for storage failures."""

    kind = RepositoryErrorKind.TRANSPORT
    code = "REPOSITORY_ERROR"


class NotFoundError(RepositoryError):
    kind = RepositoryErrorKind.NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, entity: str, key: object):
        super().__init__(f"{entity} with id '{key}' not found.")
        self.entity = entity
        self.key = key


class ConstraintViolationError(RepositoryError):
    kind = RepositoryErrorKind.CONSTRAINT_VIOLATION
    code = "CONSTRAINT_VIOLATION"


class TransportError(RepositoryError):
    """The store could not be reached or failed unexpectedly; details are logged only."""

    kind = RepositoryErrorKind.TRANSPORT
    code = "INTERNAL_SERVER_ERROR"
    expose = False
