"""
Execution of validated operations.

Query fields and list items resolve concurrently; mutation root fields run one
after another in document order. A failing non-null field nulls its nearest
nullable ancestor, and every field error is recorded once, at the path where
it happened.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from graphql.language import OperationDefinitionNode, OperationType

from ..logging import get_logger
from .binding import ResolveInfo
from .errors import INTERNAL_ERROR_MESSAGE, GraphQLEngineError, ResolutionError
from .registry import TypeRegistry
from .selection import SelectionNode
from .types import EnumType, ListOf, NonNull, ObjectType, ScalarType, TypeRef, is_non_null
from .values import coerce_arguments, serialize_leaf

logger = get_logger(__name__)

Path = tuple[str | int, ...]


class _NullPropagation(Exception):
    """Raised when a non-null position completed to null; caught by the
    nearest nullable field or list item."""


@dataclass
class ExecutionResult:
    """Result tree and errors of one operation.

    ``has_data`` is False when the request failed before execution started,
    in which case the response carries no ``data`` entry at all.
    """

    data: dict[str, Any] | None = None
    errors: list[GraphQLEngineError] = field(default_factory=list)
    has_data: bool = True

    @property
    def formatted(self) -> dict[str, Any]:
        response: dict[str, Any] = {}
        if self.has_data:
            response["data"] = self.data
        if self.errors:
            response["errors"] = [error.formatted for error in self.errors]
        return response


def _offset(selection: SelectionNode) -> int:
    loc = selection.nodes[0].loc if selection.nodes else None
    return loc.start if loc is not None else 0


async def _gather(awaitables: Iterable[Any]) -> list[Any]:
    """Await everything, then re-raise the first propagation signal.

    Siblings are always allowed to settle so their errors are recorded and no
    task outlives the request.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class Executor:
    """Per-request execution state.

    One Executor is created for each operation run; it owns the error list
    and is never shared between requests.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        operation: OperationDefinitionNode,
        variables: Mapping[str, Any],
        *,
        context: Any = None,
        root_value: Any = None,
        expose_internal_errors: bool = False,
    ):
        self.registry = registry
        self.operation = operation
        self.variables = variables
        self.context = context
        self.root_value = root_value
        self.expose_internal_errors = expose_internal_errors
        self._errors: list[tuple[tuple[int, ...], GraphQLEngineError]] = []

    async def execute(self, selections: Sequence[SelectionNode]) -> ExecutionResult:
        root_type = self.registry.root_type(self.operation.operation)
        if root_type is None:
            raise ResolutionError(
                f"Schema is not configured to execute {self.operation.operation.value} operation.",
                self.operation,
            )

        try:
            if self.operation.operation == OperationType.MUTATION:
                data = await self._execute_serially(root_type, self.root_value, selections)
            else:
                data = await self._execute_fields(root_type, self.root_value, selections, (), ())
        except _NullPropagation:
            data = None

        self._errors.sort(key=lambda entry: entry[0])
        return ExecutionResult(data=data, errors=[error for _, error in self._errors])

    # Object fields

    async def _execute_serially(
        self, parent_type: ObjectType, source: Any, selections: Sequence[SelectionNode]
    ) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for selection in selections:
            logger.debug("Executing mutation field", field=selection.name)
            data[selection.response_key] = await self._execute_field(parent_type, source, selection, (), ())
        return data

    async def _execute_fields(
        self,
        parent_type: ObjectType,
        source: Any,
        selections: Sequence[SelectionNode],
        path: Path,
        position: tuple[int, ...],
    ) -> dict[str, Any]:
        values = await _gather(
            self._execute_field(parent_type, source, selection, path, position) for selection in selections
        )
        return {selection.response_key: value for selection, value in zip(selections, values)}

    async def _execute_field(
        self,
        parent_type: ObjectType,
        source: Any,
        selection: SelectionNode,
        path: Path,
        position: tuple[int, ...],
    ) -> Any:
        if selection.name == "__typename":
            return parent_type.name

        field_def = parent_type.fields[selection.name]
        field_path = (*path, selection.response_key)
        field_position = (*position, _offset(selection))
        info = ResolveInfo(
            field_name=selection.name,
            field_nodes=selection.nodes,
            return_type=field_def.type,
            parent_type=parent_type,
            path=field_path,
            registry=self.registry,
            operation=self.operation.operation,
            variables=self.variables,
            context=self.context,
            root_value=self.root_value,
        )

        try:
            args = coerce_arguments(
                field_def,
                selection.arguments,
                self.variables,
                self.registry,
                selection.nodes[0] if selection.nodes else None,
            )
            result = field_def.resolver(source, args, info)
            if inspect.isawaitable(result):
                result = await result
            return await self._complete_value(field_def.type, selection, info, result, field_path, field_position)
        except _NullPropagation:
            if is_non_null(field_def.type):
                raise
            return None
        except Exception as e:
            self._record(e, selection, field_path, field_position)
            if is_non_null(field_def.type):
                raise _NullPropagation from None
            return None

    # Value completion

    async def _complete_value(
        self,
        ref: TypeRef,
        selection: SelectionNode,
        info: ResolveInfo,
        result: Any,
        path: Path,
        position: tuple[int, ...],
    ) -> Any:
        if isinstance(ref, NonNull):
            completed = await self._complete_value(ref.of_type, selection, info, result, path, position)
            if completed is None:
                raise ResolutionError(
                    f"Cannot return null for non-nullable field {info.parent_type.name}.{info.field_name}."
                )
            return completed

        if result is None:
            return None

        if isinstance(ref, ListOf):
            if isinstance(result, (str, bytes, Mapping)) or not isinstance(result, Iterable):
                raise ResolutionError(
                    f"Expected Iterable, but did not find one for field "
                    f"'{info.parent_type.name}.{info.field_name}'."
                )
            return await _gather(
                self._complete_list_item(ref.of_type, selection, info, item, (*path, index), (*position, index))
                for index, item in enumerate(result)
            )

        named = self.registry.named_type(ref)
        if isinstance(named, (ScalarType, EnumType)):
            return serialize_leaf(named, result)
        if isinstance(named, ObjectType):
            return await self._execute_fields(named, result, selection.selections, path, position)
        raise ResolutionError(f"Type '{named.name}' cannot be used as an output type.")

    async def _complete_list_item(
        self,
        ref: TypeRef,
        selection: SelectionNode,
        info: ResolveInfo,
        item: Any,
        path: Path,
        position: tuple[int, ...],
    ) -> Any:
        try:
            if inspect.isawaitable(item):
                item = await item
            return await self._complete_value(ref, selection, info, item, path, position)
        except _NullPropagation:
            if is_non_null(ref):
                raise
            return None
        except Exception as e:
            self._record(e, selection, path, position)
            if is_non_null(ref):
                raise _NullPropagation from None
            return None

    # Errors

    def _record(self, error: Exception, selection: SelectionNode, path: Path, position: tuple[int, ...]) -> None:
        nodes = list(selection.nodes)
        if isinstance(error, GraphQLEngineError) and error.expose:
            located = ResolutionError(error.message, error.nodes or nodes, path, code=error.code)
        else:
            logger.error(
                "Resolver raised an unexpected error",
                path=".".join(str(key) for key in path),
                error=str(error),
                error_type=type(error).__name__,
                exc_info=error,
            )
            message = str(error) if self.expose_internal_errors else INTERNAL_ERROR_MESSAGE
            located = ResolutionError(message, nodes, path, code="INTERNAL_SERVER_ERROR")
        self._errors.append((position, located))
