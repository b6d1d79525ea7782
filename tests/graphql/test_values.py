"""
Tests for scalar coercion and input value handling
"""

import uuid

import pytest
from graphql.error import GraphQLError
from graphql.language import parse, parse_value

from peerql.graphql.errors import ArgumentTypeMismatch, MissingArgument
from peerql.graphql.scalars import UUID, Float, Int, String
from peerql.graphql.types import NonNull, type_ref
from peerql.graphql.values import (
    coerce_arguments,
    coerce_input_value,
    coerce_variable_values,
    value_from_ast,
)


class TestScalars:
    def test_int_range(self):
        assert Int.serialize(2_147_483_647) == 2_147_483_647
        with pytest.raises(GraphQLError, match="non 32-bit signed integer"):
            Int.serialize(2_147_483_648)
        with pytest.raises(GraphQLError):
            Int.parse_value(1.5)
        assert Int.serialize(3.0) == 3

    def test_float(self):
        assert Float.parse_value(2) == 2.0
        with pytest.raises(GraphQLError):
            Float.parse_value(True)
        with pytest.raises(GraphQLError):
            Float.serialize(float("inf"))

    def test_string(self):
        assert String.serialize(True) == "true"
        with pytest.raises(GraphQLError):
            String.parse_value(5)

    def test_uuid(self):
        value = uuid.uuid4()
        assert UUID.serialize(value) == str(value)
        assert UUID.parse_value(str(value)) == value
        assert UUID.parse_literal(parse_value(f'"{value}"')) == value
        with pytest.raises(TypeError, match="UUID cannot represent value"):
            UUID.parse_value("abc")
        with pytest.raises(TypeError):
            UUID.parse_literal(parse_value("12"))


class TestInputValues:
    def test_list_wrapping_of_single_value(self, registry):
        assert coerce_input_value(1, type_ref("[Int]"), registry) == [1]
        assert value_from_ast(parse_value("1"), type_ref("[Int]"), registry, {}) == [1]

    def test_null_in_non_null_position(self, registry):
        with pytest.raises(ArgumentTypeMismatch, match="not to be null"):
            coerce_input_value(None, type_ref("Int!"), registry)

    def test_nested_error_path(self, registry):
        with pytest.raises(ArgumentTypeMismatch) as exc_info:
            coerce_input_value({"name": "A", "balance": "lots"}, type_ref("CreateUserInput"), registry)
        assert exc_info.value.message.endswith(" at 'balance'")

    def test_enum_value(self, registry):
        assert coerce_input_value("BASIC", type_ref("MemberTypeId"), registry) == "BASIC"
        with pytest.raises(ArgumentTypeMismatch):
            coerce_input_value("GOLD", type_ref("MemberTypeId"), registry)

    def test_omitted_and_null_fields_differ(self, registry):
        coerced = coerce_input_value({"name": None}, type_ref("ChangeUserInput"), registry)
        assert coerced == {"name": None}

    def test_literal_with_variables(self, registry):
        node = parse_value('{ name: $name, balance: 1 }')
        assert value_from_ast(node, type_ref("CreateUserInput"), registry, {"name": "Ada"}) == {
            "name": "Ada",
            "balance": 1.0,
        }

    def test_literal_missing_variable_for_required_field(self, registry):
        node = parse_value("{ name: $name, balance: 1 }")
        with pytest.raises(ArgumentTypeMismatch, match="CreateUserInput.name"):
            value_from_ast(node, type_ref("CreateUserInput"), registry, {})

    def test_builtin_scalar_literal_message(self, registry):
        with pytest.raises(ArgumentTypeMismatch) as exc_info:
            value_from_ast(parse_value('"x"'), type_ref("Int"), registry, {})
        assert exc_info.value.message == (
            "Expected value of type 'Int', found \"x\"; Int cannot represent non-integer value: \"x\""
        )

    def test_builtin_scalar_value_message(self, registry):
        with pytest.raises(ArgumentTypeMismatch) as exc_info:
            coerce_input_value({"name": "A", "balance": "lots"}, type_ref("CreateUserInput"), registry)
        assert exc_info.value.message == "Float cannot represent non numeric value: 'lots' at 'balance'"

    def test_null_literal_for_non_null(self, registry):
        with pytest.raises(ArgumentTypeMismatch, match="found null"):
            value_from_ast(parse_value("null"), NonNull(type_ref("Int")), registry, {})


class TestArguments:
    def field(self, registry, name):
        return registry.query_type.fields[name]

    @staticmethod
    def arguments(source):
        return parse(source).definitions[0].selection_set.selections[0].arguments

    def test_missing_required(self, registry):
        with pytest.raises(MissingArgument, match="Argument 'id' of required type 'UUID!' was not provided"):
            coerce_arguments(self.field(registry, "user"), (), {}, registry)

    def test_variable_without_runtime_value(self, registry):
        args = self.arguments("query Q($id: UUID!) { user(id: $id) { id } }")
        with pytest.raises(MissingArgument, match="variable '\\$id' which was not provided a runtime value"):
            coerce_arguments(self.field(registry, "user"), args, {}, registry)

    def test_invalid_literal_message(self, registry):
        args = self.arguments("{ memberType(id: GOLD) { id } }")
        with pytest.raises(ArgumentTypeMismatch) as exc_info:
            coerce_arguments(self.field(registry, "memberType"), args, {}, registry)
        assert exc_info.value.message == (
            "Argument 'id' has invalid value GOLD. Value GOLD does not exist in 'MemberTypeId' enum."
        )

    def test_variable_value_is_passed_through(self, registry):
        key = uuid.uuid4()
        args = self.arguments("query Q($id: UUID!) { user(id: $id) { id } }")
        assert coerce_arguments(self.field(registry, "user"), args, {"id": key}, registry) == {"id": key}


class TestVariables:
    @staticmethod
    def definitions(source):
        return parse(source).definitions[0].variable_definitions

    def test_defaults_applied(self, registry):
        defs = self.definitions("query Q($skip: Boolean = false, $n: Int) { users { id } }")
        coerced, errors = coerce_variable_values(registry, defs, {})
        assert errors == []
        assert coerced == {"skip": False}

    def test_required_missing(self, registry):
        defs = self.definitions("query Q($id: UUID!) { users { id } }")
        _, errors = coerce_variable_values(registry, defs, None)
        assert [e.message for e in errors] == ["Variable '$id' of required type 'UUID!' was not provided."]
        assert errors[0].code == "BAD_USER_INPUT"

    def test_explicit_null_for_non_null(self, registry):
        defs = self.definitions("query Q($id: UUID!) { users { id } }")
        _, errors = coerce_variable_values(registry, defs, {"id": None})
        assert errors[0].message == "Variable '$id' of non-null type 'UUID!' must not be null."

    def test_all_errors_reported(self, registry):
        defs = self.definitions("query Q($a: Int, $b: UUID) { users { id } }")
        _, errors = coerce_variable_values(registry, defs, {"a": "x", "b": "y"})
        assert len(errors) == 2
