"""
QueryEngine: parse, validate, pick the operation, coerce variables, build the
selection tree and execute.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from graphql.error import GraphQLSyntaxError
from graphql.language import DocumentNode, FragmentDefinitionNode, OperationDefinitionNode, parse

from ..logging import get_logger, set_graphql_operation
from .errors import ValidationError
from .execution import ExecutionResult, Executor
from .registry import TypeRegistry
from .selection import build_selections
from .validation import validate_document
from .values import coerce_variable_values

logger = get_logger(__name__)


def parse_document(source: str) -> DocumentNode:
    """Parse a query document, turning syntax errors into a ValidationError."""
    try:
        return parse(source)
    except GraphQLSyntaxError as e:
        locations = [{"line": loc.line, "column": loc.column} for loc in e.locations or ()]
        raise ValidationError(e.message, code="GRAPHQL_PARSE_FAILED", locations=locations) from e


def select_operation(document: DocumentNode, operation_name: str | None) -> OperationDefinitionNode:
    operations = [d for d in document.definitions if isinstance(d, OperationDefinitionNode)]
    if operation_name is not None:
        for operation in operations:
            if operation.name is not None and operation.name.value == operation_name:
                return operation
        raise ValidationError(f"Unknown operation named '{operation_name}'.", code="BAD_USER_INPUT")
    if len(operations) != 1:
        raise ValidationError(
            "Must provide operation name if query contains multiple operations.", code="BAD_USER_INPUT"
        )
    return operations[0]


class QueryEngine:
    """Runs GraphQL documents against a TypeRegistry.

    The engine holds only read-only state (registry and policy), so a single
    instance serves every request of the process.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        *,
        max_depth: int | None = 5,
        expose_internal_errors: bool = False,
    ):
        self.registry = registry
        self.max_depth = max_depth
        self.expose_internal_errors = expose_internal_errors

    def validate(self, source: str) -> list[ValidationError]:
        """Parse and validate without executing."""
        try:
            document = parse_document(source)
        except ValidationError as e:
            return [e]
        return validate_document(self.registry, document, max_depth=self.max_depth)

    async def execute(
        self,
        source: str,
        variables: Mapping[str, Any] | None = None,
        operation_name: str | None = None,
        context: Any = None,
        root_value: Any = None,
    ) -> ExecutionResult:
        try:
            document = parse_document(source)
        except ValidationError as e:
            logger.info("Query document failed to parse", error=e.message)
            return ExecutionResult(errors=[e], has_data=False)

        errors = validate_document(self.registry, document, max_depth=self.max_depth)
        if errors:
            logger.info("Query document failed validation", error_count=len(errors))
            return ExecutionResult(errors=errors, has_data=False)

        try:
            operation = select_operation(document, operation_name)
        except ValidationError as e:
            return ExecutionResult(errors=[e], has_data=False)

        coerced, errors = coerce_variable_values(self.registry, operation.variable_definitions or (), variables)
        if errors:
            logger.info("Variable coercion failed", error_count=len(errors))
            return ExecutionResult(errors=errors, has_data=False)

        name = operation.name.value if operation.name else None
        if name:
            set_graphql_operation(name)

        fragments = {
            d.name.value: d for d in document.definitions if isinstance(d, FragmentDefinitionNode)
        }
        selections = build_selections([operation.selection_set], fragments, coerced)

        executor = Executor(
            self.registry,
            operation,
            coerced,
            context=context,
            root_value=root_value,
            expose_internal_errors=self.expose_internal_errors,
        )
        started = time.perf_counter()
        logger.debug("Executing operation", operation=name, kind=operation.operation.value)
        result = await executor.execute(selections)
        logger.debug(
            "Operation executed",
            operation=name,
            error_count=len(result.errors),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result
