"""
Resolver binding: the information handed to resolvers and the default
resolver used for fields without an explicit one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .types import FieldDescriptor, NamedRef, NonNull, ObjectType, Resolver, TypeRef

if TYPE_CHECKING:
    from graphql.language import FieldNode, OperationType

    from .registry import TypeRegistry


@dataclass(frozen=True)
class ResolveInfo:
    """Read-only view of the execution state for one field invocation."""

    field_name: str
    field_nodes: tuple[FieldNode, ...]
    return_type: TypeRef
    parent_type: ObjectType
    path: tuple[str | int, ...]
    registry: TypeRegistry
    operation: OperationType
    variables: Mapping[str, Any]
    context: Any = None
    root_value: Any = field(default=None, repr=False)


def default_resolver(source: str) -> Resolver:
    """Build a resolver that reads ``source`` off the parent value.

    Mappings are read by key, anything else by attribute. A missing value
    resolves to None; the executor decides whether that is an error.
    """

    def resolve(parent: Any, args: dict[str, Any], info: ResolveInfo) -> Any:
        if parent is None:
            return None
        if isinstance(parent, Mapping):
            return parent.get(source)
        return getattr(parent, source, None)

    resolve.__name__ = f"default_resolver[{source}]"
    resolve.__qualname__ = resolve.__name__
    return resolve


# Meta field available on every object type; the executor answers it with
# the parent type's name.
TYPENAME_FIELD = FieldDescriptor(NonNull(NamedRef("String")), description="The name of the object type.")
