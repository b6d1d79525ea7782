"""
Selection trees: the per-request, immutable form of an operation's selection
set that the executor walks.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from graphql.language import (
    ArgumentNode,
    BooleanValueNode,
    DirectiveNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    SelectionSetNode,
    VariableNode,
)


@dataclass(frozen=True)
class SelectionNode:
    """A requested field with its alias, supplied arguments and children.

    ``nodes`` holds every document field merged into this selection, used
    for error locations.
    """

    name: str
    alias: str | None
    arguments: tuple[ArgumentNode, ...]
    selections: tuple[SelectionNode, ...]
    nodes: tuple[FieldNode, ...]

    @property
    def response_key(self) -> str:
        return self.alias or self.name


def _directive_flag(directive: DirectiveNode, variables: Mapping[str, Any]) -> bool:
    for arg in directive.arguments or ():
        if arg.name.value != "if":
            continue
        value = arg.value
        if isinstance(value, VariableNode):
            return bool(variables.get(value.name.value))
        if isinstance(value, BooleanValueNode):
            return value.value
    return False


def should_include(node: FieldNode | FragmentSpreadNode | InlineFragmentNode, variables: Mapping[str, Any]) -> bool:
    """Apply ``@skip(if:)`` and ``@include(if:)``."""
    for directive in node.directives or ():
        name = directive.name.value
        if name == "skip" and _directive_flag(directive, variables):
            return False
        if name == "include" and not _directive_flag(directive, variables):
            return False
    return True


def collect_fields(
    selection_sets: Iterable[SelectionSetNode],
    fragments: Mapping[str, FragmentDefinitionNode],
    variables: Mapping[str, Any],
) -> dict[str, list[FieldNode]]:
    """Group the fields of one or more selection sets by response key.

    Fragment spreads and inline fragments are expanded in place; each named
    fragment is expanded at most once per call.
    """
    grouped: dict[str, list[FieldNode]] = {}
    visited: set[str] = set()

    def walk(selection_set: SelectionSetNode) -> None:
        for selection in selection_set.selections:
            if not should_include(selection, variables):
                continue
            if isinstance(selection, FieldNode):
                key = selection.alias.value if selection.alias else selection.name.value
                grouped.setdefault(key, []).append(selection)
            elif isinstance(selection, InlineFragmentNode):
                walk(selection.selection_set)
            elif isinstance(selection, FragmentSpreadNode):
                name = selection.name.value
                if name in visited or name not in fragments:
                    continue
                visited.add(name)
                walk(fragments[name].selection_set)

    for selection_set in selection_sets:
        walk(selection_set)
    return grouped


def build_selections(
    selection_sets: Iterable[SelectionSetNode],
    fragments: Mapping[str, FragmentDefinitionNode],
    variables: Mapping[str, Any],
) -> tuple[SelectionNode, ...]:
    """Flatten selection sets into a tree of SelectionNodes.

    Fields sharing a response key are merged; their child selection sets are
    combined.
    """
    selections = []
    for field_nodes in collect_fields(selection_sets, fragments, variables).values():
        first = field_nodes[0]
        children = [node.selection_set for node in field_nodes if node.selection_set is not None]
        selections.append(
            SelectionNode(
                name=first.name.value,
                alias=first.alias.value if first.alias else None,
                arguments=tuple(first.arguments or ()),
                selections=build_selections(children, fragments, variables) if children else (),
                nodes=tuple(field_nodes),
            )
        )
    return tuple(selections)
