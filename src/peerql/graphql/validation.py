"""
Document validation.

Every rule runs over the whole document and reports into a shared
ValidationContext; any error prevents execution. Rules are callables taking
the context, so callers can pass their own list to ``validate_document``.
The depth limit is one more rule in the same pass.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from graphql.language import (
    ArgumentNode,
    DirectiveNode,
    DocumentNode,
    ExecutableDefinitionNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    ListValueNode,
    Node,
    ObjectValueNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    ValueNode,
    VariableNode,
    print_ast,
)

from ..logging import get_logger
from .binding import TYPENAME_FIELD
from .errors import ArgumentTypeMismatch, ValidationError
from .registry import TypeRegistry
from .types import (
    FieldDescriptor,
    InputObjectType,
    ListOf,
    NamedRef,
    NonNull,
    ObjectType,
    TypeKind,
    TypeRef,
    ast_to_type_ref,
    named_ref,
)
from .values import value_from_ast

logger = get_logger(__name__)

BOOLEAN_NON_NULL = NonNull(NamedRef("Boolean"))
DIRECTIVES = ("skip", "include")


class ValidationContext:
    """Shared state of one validation pass."""

    def __init__(self, registry: TypeRegistry, document: DocumentNode):
        self.registry = registry
        self.document = document
        self.errors: list[ValidationError] = []
        self.operations: list[OperationDefinitionNode] = [
            d for d in document.definitions if isinstance(d, OperationDefinitionNode)
        ]
        self.fragment_definitions: list[FragmentDefinitionNode] = [
            d for d in document.definitions if isinstance(d, FragmentDefinitionNode)
        ]
        self.fragments: dict[str, FragmentDefinitionNode] = {}
        for fragment in self.fragment_definitions:
            self.fragments.setdefault(fragment.name.value, fragment)
        self._spreads: dict[int, list[FragmentSpreadNode]] = {}

    def report(self, message: str, nodes: Sequence[Node] | Node | None = None) -> None:
        self.errors.append(ValidationError(message, nodes))

    def fragment_spreads(self, selection_set: SelectionSetNode) -> list[FragmentSpreadNode]:
        """Fragment spreads anywhere inside a selection set (not following them)."""
        key = id(selection_set)
        if key not in self._spreads:
            spreads: list[FragmentSpreadNode] = []
            pending = [selection_set]
            while pending:
                current = pending.pop()
                for selection in current.selections:
                    if isinstance(selection, FragmentSpreadNode):
                        spreads.append(selection)
                    elif selection.selection_set is not None:
                        pending.append(selection.selection_set)
            self._spreads[key] = spreads
        return self._spreads[key]

    def referenced_fragments(self, selection_set: SelectionSetNode) -> list[FragmentDefinitionNode]:
        """Known fragments reachable from a selection set, each once."""
        found: list[FragmentDefinitionNode] = []
        seen: set[str] = set()
        pending = [selection_set]
        while pending:
            for spread in self.fragment_spreads(pending.pop()):
                name = spread.name.value
                if name in seen or name not in self.fragments:
                    continue
                seen.add(name)
                found.append(self.fragments[name])
                pending.append(self.fragments[name].selection_set)
        return found


ValidationRule = Callable[[ValidationContext], None]


class TypedWalker:
    """Walks operations and fragment definitions alongside their types.

    Subclasses override the ``enter_*`` hooks. Fragment spreads are reported
    but not followed; fragment definitions are walked on their own.
    """

    def __init__(self, context: ValidationContext):
        self.context = context
        self.registry = context.registry
        self.definition: ExecutableDefinitionNode | None = None

    def walk_document(self) -> None:
        for operation in self.context.operations:
            root = self.registry.root_type(operation.operation)
            if root is None:
                continue
            self.definition = operation
            self.walk_selection_set(operation.selection_set, root)
        for fragment in self.context.fragment_definitions:
            parent = self.registry.get(fragment.type_condition.name.value)
            if isinstance(parent, ObjectType):
                self.definition = fragment
                self.walk_selection_set(fragment.selection_set, parent)

    def walk_selection_set(self, selection_set: SelectionSetNode, parent: ObjectType) -> None:
        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                name = selection.name.value
                field_def = TYPENAME_FIELD if name == "__typename" else parent.fields.get(name)
                self.enter_field(selection, parent, field_def)
                if field_def is not None and selection.selection_set is not None:
                    child = self.registry.get(named_ref(field_def.type).name)
                    if isinstance(child, ObjectType):
                        self.walk_selection_set(selection.selection_set, child)
            elif isinstance(selection, InlineFragmentNode):
                target: Any = parent
                if selection.type_condition is not None:
                    target = self.registry.get(selection.type_condition.name.value)
                self.enter_inline_fragment(selection, parent, target)
                if isinstance(target, ObjectType):
                    self.walk_selection_set(selection.selection_set, target)
            elif isinstance(selection, FragmentSpreadNode):
                self.enter_fragment_spread(selection, parent)

    def enter_field(self, node: FieldNode, parent: ObjectType, field_def: FieldDescriptor | None) -> None:
        pass

    def enter_inline_fragment(self, node: InlineFragmentNode, parent: ObjectType, target: Any) -> None:
        pass

    def enter_fragment_spread(self, node: FragmentSpreadNode, parent: ObjectType) -> None:
        pass


# Document and operation rules


def executable_definitions_rule(context: ValidationContext) -> None:
    for definition in context.document.definitions:
        if not isinstance(definition, ExecutableDefinitionNode):
            kind = type(definition).__name__.removesuffix("Node")
            context.report(f"The {kind} definition is not executable.", definition)


def operations_rule(context: ValidationContext) -> None:
    operations = context.operations
    if not operations:
        context.report("Document does not contain any operation.", context.document)
        return

    anonymous = [op for op in operations if op.name is None]
    if anonymous and len(operations) > 1:
        for op in anonymous:
            context.report("This anonymous operation must be the only defined operation.", op)

    seen: dict[str, OperationDefinitionNode] = {}
    for op in operations:
        if op.name is not None:
            name = op.name.value
            if name in seen:
                context.report(f"There can be only one operation named '{name}'.", [seen[name].name, op.name])
            else:
                seen[name] = op

        if op.operation == OperationType.SUBSCRIPTION:
            context.report("Subscriptions are not supported.", op)
        elif context.registry.root_type(op.operation) is None:
            context.report(f"Schema is not configured to execute {op.operation.value} operation.", op)

        for directive in op.directives or ():
            context.report(
                f"Directive '@{directive.name.value}' may not be used on {op.operation.value.upper()}.",
                directive,
            )


def fragments_rule(context: ValidationContext) -> None:
    registry = context.registry

    for fragment in context.fragment_definitions:
        name = fragment.name.value
        if context.fragments[name] is not fragment:
            context.report(
                f"There can be only one fragment named '{name}'.",
                [context.fragments[name].name, fragment.name],
            )
        type_name = fragment.type_condition.name.value
        target = registry.get(type_name)
        if target is None:
            context.report(f"Unknown type '{type_name}'.", fragment.type_condition)
        elif target.kind != TypeKind.OBJECT:
            context.report(
                f"Fragment '{name}' cannot condition on non composite type '{type_name}'.",
                fragment.type_condition,
            )
        for directive in fragment.directives or ():
            context.report(
                f"Directive '@{directive.name.value}' may not be used on FRAGMENT_DEFINITION.", directive
            )

    used: set[str] = set()
    for op in context.operations:
        used.update(fragment.name.value for fragment in context.referenced_fragments(op.selection_set))
    for fragment in context.fragment_definitions:
        if fragment.name.value not in used:
            context.report(f"Fragment '{fragment.name.value}' is never used.", fragment)

    # Spread cycles
    done: set[str] = set()

    def visit(fragment: FragmentDefinitionNode, trail: list[FragmentSpreadNode], on_trail: dict[str, int]) -> None:
        name = fragment.name.value
        done.add(name)
        on_trail[name] = len(trail)
        for spread in context.fragment_spreads(fragment.selection_set):
            target = spread.name.value
            if target not in context.fragments:
                continue
            if target in on_trail:
                cycle = trail[on_trail[target] :] + [spread]
                via = [s.name.value for s in cycle[:-1]]
                suffix = f" via {', '.join(via)}" if via else ""
                context.report(f"Cannot spread fragment '{target}' within itself{suffix}.", cycle)
                continue
            if target not in done:
                trail.append(spread)
                visit(context.fragments[target], trail, on_trail)
                trail.pop()
        del on_trail[name]

    for fragment in context.fragments.values():
        if fragment.name.value not in done:
            visit(fragment, [], {})


# Selection rules


class _SelectionsChecker(TypedWalker):
    def enter_field(self, node: FieldNode, parent: ObjectType, field_def: FieldDescriptor | None) -> None:
        name = node.name.value
        self.check_directives(node)

        if field_def is None:
            self.context.report(f"Cannot query field '{name}' on type '{parent.name}'.", node)
            return

        named = self.registry.named_type(field_def.type)
        if named.kind in (TypeKind.SCALAR, TypeKind.ENUM):
            if node.selection_set is not None:
                self.context.report(
                    f"Field '{name}' must not have a selection since type '{field_def.type}' has no subfields.",
                    node.selection_set,
                )
        elif node.selection_set is None:
            self.context.report(
                f"Field '{name}' of type '{field_def.type}' must have a selection of subfields."
                f" Did you mean '{name} {{ ... }}'?",
                node,
            )

        self.check_arguments(node, f"field '{parent.name}.{name}'", field_def)
        for arg in field_def.args.values():
            supplied = any(a.name.value == arg.name for a in node.arguments or ())
            if arg.required and not supplied:
                self.context.report(
                    f"Field '{name}' argument '{arg.name}' of type '{arg.type}' is required,"
                    " but it was not provided.",
                    node,
                )

    def check_arguments(self, node: FieldNode, where: str, field_def: FieldDescriptor) -> None:
        seen: set[str] = set()
        for arg_node in node.arguments or ():
            arg_name = arg_node.name.value
            if arg_name in seen:
                self.context.report(f"There can be only one argument named '{arg_name}'.", arg_node)
                continue
            seen.add(arg_name)
            arg = field_def.args.get(arg_name)
            if arg is None:
                self.context.report(f"Unknown argument '{arg_name}' on {where}.", arg_node)
                continue
            self.check_value(arg_node, arg.type)

    def check_value(self, arg_node: ArgumentNode, ref: TypeRef) -> None:
        try:
            value_from_ast(arg_node.value, ref, self.registry, None)
        except ArgumentTypeMismatch as e:
            self.context.report(e.message, arg_node.value)

    def check_directives(self, node: FieldNode | InlineFragmentNode | FragmentSpreadNode) -> None:
        seen: set[str] = set()
        for directive in node.directives or ():
            name = directive.name.value
            if name not in DIRECTIVES:
                self.context.report(f"Unknown directive '@{name}'.", directive)
                continue
            if name in seen:
                self.context.report(f"The directive '@{name}' can only be used once at this location.", directive)
            seen.add(name)
            self._check_directive_arguments(directive)

    def _check_directive_arguments(self, directive: DirectiveNode) -> None:
        name = directive.name.value
        supplied = False
        for arg_node in directive.arguments or ():
            if arg_node.name.value != "if":
                self.context.report(f"Unknown argument '{arg_node.name.value}' on directive '@{name}'.", arg_node)
                continue
            supplied = True
            self.check_value(arg_node, BOOLEAN_NON_NULL)
        if not supplied:
            self.context.report(
                f"Directive '@{name}' argument 'if' of type 'Boolean!' is required, but it was not provided.",
                directive,
            )

    def enter_inline_fragment(self, node: InlineFragmentNode, parent: ObjectType, target: Any) -> None:
        self.check_directives(node)
        if node.type_condition is None:
            return
        type_name = node.type_condition.name.value
        if target is None:
            self.context.report(f"Unknown type '{type_name}'.", node.type_condition)
        elif target.kind != TypeKind.OBJECT:
            self.context.report(
                f"Fragment cannot condition on non composite type '{type_name}'.", node.type_condition
            )
        elif target.name != parent.name:
            self.context.report(
                f"Fragment cannot be spread here as objects of type '{parent.name}'"
                f" can never be of type '{type_name}'.",
                node,
            )

    def enter_fragment_spread(self, node: FragmentSpreadNode, parent: ObjectType) -> None:
        self.check_directives(node)
        name = node.name.value
        fragment = self.context.fragments.get(name)
        if fragment is None:
            self.context.report(f"Unknown fragment '{name}'.", node)
            return
        type_name = fragment.type_condition.name.value
        if isinstance(self.registry.get(type_name), ObjectType) and type_name != parent.name:
            self.context.report(
                f"Fragment '{name}' cannot be spread here as objects of type '{parent.name}'"
                f" can never be of type '{type_name}'.",
                node,
            )


def selections_rule(context: ValidationContext) -> None:
    """Fields exist, leaf/composite selections, arguments, directives and spreads."""
    _SelectionsChecker(context).walk_document()


def overlapping_fields_rule(context: ValidationContext) -> None:
    """Fields sharing a response key must be the same field with the same arguments."""
    reported: set[tuple[int, ...]] = set()
    checked: set[frozenset[int]] = set()

    def collect(selection_sets: Iterable[SelectionSetNode]) -> dict[str, list[FieldNode]]:
        grouped: dict[str, list[FieldNode]] = {}
        visited: set[str] = set()
        pending = list(selection_sets)
        while pending:
            for selection in pending.pop(0).selections:
                if isinstance(selection, FieldNode):
                    key = selection.alias.value if selection.alias else selection.name.value
                    grouped.setdefault(key, []).append(selection)
                elif isinstance(selection, InlineFragmentNode):
                    pending.append(selection.selection_set)
                elif isinstance(selection, FragmentSpreadNode):
                    name = selection.name.value
                    if name not in visited and name in context.fragments:
                        visited.add(name)
                        pending.append(context.fragments[name].selection_set)
        return grouped

    def arguments_key(node: FieldNode) -> list[tuple[str, str]]:
        return sorted((arg.name.value, print_ast(arg.value)) for arg in node.arguments or ())

    def check(selection_sets: list[SelectionSetNode]) -> None:
        # Fragment spreads are expanded afresh at every level; a recurring
        # group of selection sets marks a fragment cycle.
        group = frozenset(id(selection_set) for selection_set in selection_sets)
        if group in checked:
            return
        checked.add(group)
        for key, nodes in collect(selection_sets).items():
            first = nodes[0]
            conflict = None
            for other in nodes[1:]:
                if other.name.value != first.name.value:
                    conflict = f"'{first.name.value}' and '{other.name.value}' are different fields"
                elif arguments_key(other) != arguments_key(first):
                    conflict = "they have differing arguments"
                if conflict:
                    marker = tuple(sorted(id(node) for node in (first, other)))
                    if marker not in reported:
                        reported.add(marker)
                        context.report(
                            f"Fields '{key}' conflict because {conflict}."
                            " Use different aliases on the fields to fetch both if this was intentional.",
                            [first, other],
                        )
                    break
            if conflict is None:
                children = [node.selection_set for node in nodes if node.selection_set is not None]
                if children:
                    check(children)

    for op in context.operations:
        check([op.selection_set])


class _VariableUsageCollector(TypedWalker):
    """Records variable usages with the type expected at each position."""

    def __init__(self, context: ValidationContext):
        super().__init__(context)
        self.usages: dict[int, list[tuple[VariableNode, TypeRef, bool]]] = {}

    def _record(self, value: ValueNode, ref: TypeRef, has_default: bool) -> None:
        usages = self.usages.setdefault(id(self.definition), [])
        if isinstance(value, VariableNode):
            usages.append((value, ref, has_default))
            return
        inner = ref.of_type if isinstance(ref, NonNull) else ref
        if isinstance(value, ListValueNode):
            item_ref = inner.of_type if isinstance(inner, ListOf) else inner
            for item in value.values:
                self._record(item, item_ref, False)
        elif isinstance(value, ObjectValueNode):
            named = self.registry.get(named_ref(inner).name) if not isinstance(inner, ListOf) else None
            if isinstance(named, InputObjectType):
                for field_node in value.fields:
                    field_def = named.fields.get(field_node.name.value)
                    if field_def is not None:
                        self._record(field_node.value, field_def.type, field_def.has_default)

    def _record_directives(self, node: FieldNode | InlineFragmentNode | FragmentSpreadNode) -> None:
        for directive in node.directives or ():
            for arg_node in directive.arguments or ():
                if arg_node.name.value == "if":
                    self._record(arg_node.value, BOOLEAN_NON_NULL, False)

    def enter_field(self, node: FieldNode, parent: ObjectType, field_def: FieldDescriptor | None) -> None:
        self._record_directives(node)
        if field_def is None:
            return
        for arg_node in node.arguments or ():
            arg = field_def.args.get(arg_node.name.value)
            if arg is not None:
                self._record(arg_node.value, arg.type, arg.has_default)

    def enter_inline_fragment(self, node: InlineFragmentNode, parent: ObjectType, target: Any) -> None:
        self._record_directives(node)

    def enter_fragment_spread(self, node: FragmentSpreadNode, parent: ObjectType) -> None:
        self._record_directives(node)


def _is_sub_type(var_ref: TypeRef, expected: TypeRef) -> bool:
    if isinstance(expected, NonNull):
        return isinstance(var_ref, NonNull) and _is_sub_type(var_ref.of_type, expected.of_type)
    if isinstance(var_ref, NonNull):
        return _is_sub_type(var_ref.of_type, expected)
    if isinstance(expected, ListOf):
        return isinstance(var_ref, ListOf) and _is_sub_type(var_ref.of_type, expected.of_type)
    if isinstance(var_ref, ListOf):
        return False
    return var_ref == expected


def variables_rule(context: ValidationContext) -> None:
    """Variables are unique, typed as inputs, defined, used, and used in compatible positions."""
    registry = context.registry
    collector = _VariableUsageCollector(context)
    collector.walk_document()

    for op in context.operations:
        op_name = f" by operation '{op.name.value}'" if op.name else ""
        op_name_in = f" in operation '{op.name.value}'" if op.name else ""

        definitions: dict[str, tuple[TypeRef | None, bool]] = {}
        for definition in op.variable_definitions or ():
            name = definition.variable.name.value
            if name in definitions:
                context.report(f"There can be only one variable named '${name}'.", definition.variable)
                continue
            ref = ast_to_type_ref(definition.type)
            named = registry.get(named_ref(ref).name)
            if named is None:
                context.report(f"Unknown type '{named_ref(ref).name}'.", definition.type)
                definitions[name] = (None, False)
                continue
            if not registry.is_input_type(ref):
                context.report(
                    f"Variable '${name}' cannot be non-input type '{ref}'.", definition.type
                )
                definitions[name] = (None, False)
                continue
            has_default = definition.default_value is not None
            if has_default:
                try:
                    value_from_ast(definition.default_value, ref, registry, {})
                except ArgumentTypeMismatch as e:
                    context.report(e.message, definition.default_value)
            definitions[name] = (ref, has_default)

        usages = list(collector.usages.get(id(op), []))
        for fragment in context.referenced_fragments(op.selection_set):
            usages.extend(collector.usages.get(id(fragment), []))

        used: set[str] = set()
        for variable, expected, location_default in usages:
            name = variable.name.value
            used.add(name)
            if name not in definitions:
                context.report(f"Variable '${name}' is not defined{op_name}.", [variable, op])
                continue
            var_ref, has_default = definitions[name]
            if var_ref is None:
                continue
            if isinstance(expected, NonNull) and not isinstance(var_ref, NonNull) and (has_default or location_default):
                compatible = _is_sub_type(var_ref, expected.of_type)
            else:
                compatible = _is_sub_type(var_ref, expected)
            if not compatible:
                context.report(
                    f"Variable '${name}' of type '{var_ref}' used in position expecting type '{expected}'.",
                    variable,
                )

        for definition in op.variable_definitions or ():
            name = definition.variable.name.value
            if name not in used:
                context.report(f"Variable '${name}' is never used{op_name_in}.", definition)


class DepthLimitRule:
    """Reject operations nested deeper than ``max_depth``.

    Fields directly under the operation are at depth 0 and each nested
    selection set adds one. Fragments are followed; meta fields (``__*``)
    are not counted. One error is reported per offending operation.
    """

    def __init__(self, max_depth: int):
        self.max_depth = max_depth

    def __call__(self, context: ValidationContext) -> None:
        for op in context.operations:
            depth = self.measure(op.selection_set, context)
            if depth > self.max_depth:
                name = op.name.value if op.name else "anonymous"
                logger.info("Operation exceeds depth limit", operation=name, depth=depth, max_depth=self.max_depth)
                context.report(f"'{name}' exceeds maximum operation depth of {self.max_depth}", op)

    def measure(
        self,
        selection_set: SelectionSetNode,
        context: ValidationContext,
        depth: int = 0,
        visiting: frozenset[str] = frozenset(),
    ) -> int:
        deepest = 0
        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                if selection.name.value.startswith("__"):
                    continue
                found = depth
                if selection.selection_set is not None:
                    found = max(depth, self.measure(selection.selection_set, context, depth + 1, visiting))
            elif isinstance(selection, InlineFragmentNode):
                found = self.measure(selection.selection_set, context, depth, visiting)
            else:
                name = selection.name.value
                fragment = context.fragments.get(name)
                if fragment is None or name in visiting:
                    continue
                found = self.measure(fragment.selection_set, context, depth, visiting | {name})
            deepest = max(deepest, found)
        return deepest


SPECIFIED_RULES: tuple[ValidationRule, ...] = (
    executable_definitions_rule,
    operations_rule,
    fragments_rule,
    selections_rule,
    overlapping_fields_rule,
    variables_rule,
)


def validate_document(
    registry: TypeRegistry,
    document: DocumentNode,
    *,
    max_depth: int | None = None,
    rules: Sequence[ValidationRule] | None = None,
) -> list[ValidationError]:
    """Validate a parsed document against the registry.

    Args:
        registry: Types to validate against
        document: Parsed query document
        max_depth: Depth bound; adds a DepthLimitRule when given
        rules: Rules to run instead of SPECIFIED_RULES

    Returns:
        Every validation error found, empty if the document is valid
    """
    context = ValidationContext(registry, document)
    active = list(SPECIFIED_RULES if rules is None else rules)
    if max_depth is not None:
        active.append(DepthLimitRule(max_depth))
    for rule in active:
        rule(context)
    return context.errors
