"""
Coercion of input values (literals, variables, arguments) and serialisation
of leaf output values.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from graphql.error import GraphQLError
from graphql.language import (
    ArgumentNode,
    EnumValueNode,
    FieldNode,
    ListValueNode,
    NullValueNode,
    ObjectValueNode,
    ValueNode,
    VariableDefinitionNode,
    VariableNode,
    print_ast,
)

from .errors import ArgumentTypeMismatch, MissingArgument, ResolutionError, ValidationError
from .types import (
    UNSET,
    EnumType,
    FieldDescriptor,
    InputObjectType,
    ListOf,
    NonNull,
    ScalarType,
    TypeRef,
    ast_to_type_ref,
    is_non_null,
)

if TYPE_CHECKING:
    from .registry import TypeRegistry


def _at(path: Sequence[str | int]) -> str:
    if not path:
        return ""
    text = "".join(f"[{key}]" if isinstance(key, int) else f".{key}" for key in path)
    return f" at '{text.lstrip('.')}'"


def _message(error: Exception) -> str:
    # str() of a GraphQLError appends the source location
    return error.message if isinstance(error, GraphQLError) else str(error)


def _json(value: Any) -> str:
    return json.dumps(value, default=str)


def coerce_input_value(
    value: Any, ref: TypeRef, registry: TypeRegistry, path: tuple[str | int, ...] = ()
) -> Any:
    """Coerce an external (JSON) value, such as a variable, to an input type."""
    if isinstance(ref, NonNull):
        if value is None:
            raise ArgumentTypeMismatch(f"Expected non-nullable type '{ref}' not to be null{_at(path)}.")
        return coerce_input_value(value, ref.of_type, registry, path)

    if value is None:
        return None

    if isinstance(ref, ListOf):
        if isinstance(value, (list, tuple)):
            return [
                coerce_input_value(item, ref.of_type, registry, (*path, index))
                for index, item in enumerate(value)
            ]
        return [coerce_input_value(value, ref.of_type, registry, path)]

    named = registry.named_type(ref)
    if isinstance(named, InputObjectType):
        if not isinstance(value, Mapping):
            raise ArgumentTypeMismatch(f"Expected type '{named.name}' to be an object{_at(path)}.")
        for key in value:
            if key not in named.fields:
                raise ArgumentTypeMismatch(
                    f"Field '{key}' is not defined by type '{named.name}'{_at(path)}."
                )
        coerced: dict[str, Any] = {}
        for name, field_def in named.fields.items():
            if name in value:
                coerced[name] = coerce_input_value(value[name], field_def.type, registry, (*path, name))
            elif field_def.has_default:
                coerced[name] = field_def.default
            elif is_non_null(field_def.type):
                raise ArgumentTypeMismatch(
                    f"Field '{named.name}.{name}' of required type '{field_def.type}' "
                    f"was not provided{_at(path)}."
                )
        return coerced

    if isinstance(named, (ScalarType, EnumType)):
        try:
            return named.parse_value(value)
        except (GraphQLError, TypeError, ValueError) as e:
            raise ArgumentTypeMismatch(f"{_message(e)}{_at(path)}") from e

    raise ArgumentTypeMismatch(f"Type '{named.name}' cannot be used as an input type.")


def value_from_ast(
    node: ValueNode,
    ref: TypeRef,
    registry: TypeRegistry,
    variables: Mapping[str, Any] | None = None,
) -> Any:
    """Coerce a literal to an input type.

    With ``variables=None`` variable references are accepted without being
    looked up; validation uses this mode. A variable without a runtime value
    yields ``UNSET``.
    """
    if isinstance(node, VariableNode):
        if variables is None:
            return UNSET
        value = variables.get(node.name.value, UNSET)
        if value is None and isinstance(ref, NonNull):
            raise ArgumentTypeMismatch(
                f"Variable '${node.name.value}' of non-null type '{ref}' must not be null."
            )
        return value

    if isinstance(ref, NonNull):
        if isinstance(node, NullValueNode):
            raise ArgumentTypeMismatch(f"Expected value of type '{ref}', found null.")
        return value_from_ast(node, ref.of_type, registry, variables)

    if isinstance(node, NullValueNode):
        return None

    if isinstance(ref, ListOf):
        if not isinstance(node, ListValueNode):
            return [value_from_ast(node, ref.of_type, registry, variables)]
        items = []
        for item_node in node.values:
            item = value_from_ast(item_node, ref.of_type, registry, variables)
            if item is UNSET and variables is not None:
                if isinstance(ref.of_type, NonNull):
                    raise ArgumentTypeMismatch(
                        f"Expected value of type '{ref.of_type}', found {print_ast(item_node)}."
                    )
                item = None
            items.append(item)
        return items

    named = registry.named_type(ref)
    if isinstance(named, InputObjectType):
        if not isinstance(node, ObjectValueNode):
            raise ArgumentTypeMismatch(f"Expected value of type '{ref}', found {print_ast(node)}.")
        supplied = {field_node.name.value: field_node for field_node in node.fields}
        for key in supplied:
            if key not in named.fields:
                raise ArgumentTypeMismatch(f"Field '{key}' is not defined by type '{named.name}'.")
        coerced: dict[str, Any] = {}
        for name, field_def in named.fields.items():
            field_node = supplied.get(name)
            value = UNSET
            if field_node is not None:
                value = value_from_ast(field_node.value, field_def.type, registry, variables)
            if value is UNSET:
                if field_node is not None and variables is None:
                    continue
                if field_def.has_default:
                    coerced[name] = field_def.default
                elif is_non_null(field_def.type):
                    raise ArgumentTypeMismatch(
                        f"Field '{named.name}.{name}' of required type '{field_def.type}' was not provided."
                    )
                continue
            coerced[name] = value
        return coerced

    if isinstance(named, EnumType):
        if not isinstance(node, EnumValueNode) or node.value not in named.values:
            raise ArgumentTypeMismatch(
                f"Value {print_ast(node)} does not exist in '{named.name}' enum."
            )
        return named.values[node.value]

    if isinstance(named, ScalarType):
        try:
            return named.parse_literal(node)
        except (GraphQLError, TypeError, ValueError) as e:
            raise ArgumentTypeMismatch(
                f"Expected value of type '{ref}', found {print_ast(node)}; {_message(e)}"
            ) from e

    raise ArgumentTypeMismatch(f"Type '{named.name}' cannot be used as an input type.")


def coerce_arguments(
    field_def: FieldDescriptor,
    argument_nodes: Sequence[ArgumentNode],
    variables: Mapping[str, Any],
    registry: TypeRegistry,
    field_node: FieldNode | None = None,
) -> dict[str, Any]:
    """Produce the argument dict passed to a resolver.

    Raises:
        MissingArgument: A required argument has no value
        ArgumentTypeMismatch: A supplied value does not fit the declared type
    """
    coerced: dict[str, Any] = {}
    supplied = {node.name.value: node for node in argument_nodes}

    for name, arg in field_def.args.items():
        arg_node = supplied.get(name)
        value_node = arg_node.value if arg_node is not None else None

        if isinstance(value_node, VariableNode) and value_node.name.value not in variables:
            variable_name = value_node.name.value
            value_node = None
            if not arg.has_default and is_non_null(arg.type):
                raise MissingArgument(
                    f"Argument '{name}' of required type '{arg.type}' was provided the variable "
                    f"'${variable_name}' which was not provided a runtime value.",
                    field_node,
                )

        if value_node is None:
            if arg.has_default:
                coerced[name] = arg.default
            elif is_non_null(arg.type):
                raise MissingArgument(
                    f"Argument '{name}' of required type '{arg.type}' was not provided.", field_node
                )
            continue

        try:
            coerced[name] = value_from_ast(value_node, arg.type, registry, variables)
        except ArgumentTypeMismatch as e:
            raise ArgumentTypeMismatch(
                f"Argument '{name}' has invalid value {print_ast(value_node)}. {e.message}", field_node
            ) from e

    return coerced


def coerce_variable_values(
    registry: TypeRegistry,
    definitions: Sequence[VariableDefinitionNode],
    inputs: Mapping[str, Any] | None,
) -> tuple[dict[str, Any], list[ValidationError]]:
    """Coerce the request's variables against the operation's definitions.

    Returns the coerced values and a list of request errors; variables that
    were neither supplied nor defaulted are absent from the result.
    """
    inputs = inputs or {}
    coerced: dict[str, Any] = {}
    errors: list[ValidationError] = []

    for definition in definitions:
        name = definition.variable.name.value
        ref = ast_to_type_ref(definition.type)

        if not registry.is_input_type(ref):
            errors.append(
                ValidationError(
                    f"Variable '${name}' expected value of type '{ref}' which cannot be used as an input type.",
                    definition.type,
                    code="BAD_USER_INPUT",
                )
            )
            continue

        if name not in inputs:
            if definition.default_value is not None:
                coerced[name] = value_from_ast(definition.default_value, ref, registry, {})
            elif isinstance(ref, NonNull):
                errors.append(
                    ValidationError(
                        f"Variable '${name}' of required type '{ref}' was not provided.",
                        definition,
                        code="BAD_USER_INPUT",
                    )
                )
            continue

        value = inputs[name]
        if value is None and isinstance(ref, NonNull):
            errors.append(
                ValidationError(
                    f"Variable '${name}' of non-null type '{ref}' must not be null.",
                    definition,
                    code="BAD_USER_INPUT",
                )
            )
            continue

        try:
            coerced[name] = coerce_input_value(value, ref, registry)
        except ArgumentTypeMismatch as e:
            errors.append(
                ValidationError(
                    f"Variable '${name}' got invalid value {_json(value)}; {e.message}",
                    definition,
                    code="BAD_USER_INPUT",
                )
            )

    return coerced, errors


def serialize_leaf(named: ScalarType | EnumType, value: Any) -> Any:
    """Serialise a resolved value of a scalar or enum type."""
    try:
        return named.serialize(value)
    except (GraphQLError, TypeError, ValueError) as e:
        raise ResolutionError(_message(e)) from e
