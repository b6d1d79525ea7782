"""
Tests for the executor: concurrency, null propagation, error handling and ordering
"""

import asyncio

import pytest

from peerql.graphql.engine import QueryEngine
from peerql.graphql.errors import ResolutionError
from peerql.graphql.registry import TypeRegistry
from peerql.graphql.types import Argument, FieldDescriptor, ObjectType


class Boom(Exception):
    pass


def build_engine(query_fields, extra_types=(), mutation_fields=None, **engine_kwargs):
    types = [ObjectType("Query", query_fields), *extra_types]
    mutation = None
    if mutation_fields is not None:
        types.append(ObjectType("Mutation", mutation_fields))
        mutation = "Mutation"
    registry = TypeRegistry.register(types, mutation=mutation)
    return QueryEngine(registry, **engine_kwargs)


async def run(engine, source, **kwargs):
    result = await engine.execute(source, **kwargs)
    return result.formatted


ITEM = ObjectType(
    "Item",
    {
        "id": FieldDescriptor("Int!"),
        "label": FieldDescriptor("String"),
        "required": FieldDescriptor("String!", source="label"),
    },
)


class TestBasics:
    @pytest.mark.asyncio
    async def test_default_and_async_resolvers(self):
        async def resolve_items(root, args, info):
            return [{"id": 1, "label": "a"}, {"id": 2, "label": "b"}]

        engine = build_engine(
            {
                "hello": FieldDescriptor("String", resolver=lambda root, args, info: "world"),
                "items": FieldDescriptor("[Item!]!", resolver=resolve_items),
            },
            [ITEM],
        )
        body = await run(engine, "{ hello items { id label } }")
        assert body == {"data": {"hello": "world", "items": [{"id": 1, "label": "a"}, {"id": 2, "label": "b"}]}}

    @pytest.mark.asyncio
    async def test_aliases_and_arguments(self):
        engine = build_engine(
            {
                "echo": FieldDescriptor(
                    "String",
                    args=[Argument("text", "String!"), Argument("times", "Int", default=1)],
                    resolver=lambda root, args, info: args["text"] * args["times"],
                )
            }
        )
        body = await run(engine, '{ one: echo(text: "ab") two: echo(text: "ab", times: 2) }')
        assert body == {"data": {"one": "ab", "two": "abab"}}

    @pytest.mark.asyncio
    async def test_response_keys_follow_document_order(self):
        engine = build_engine({"a": FieldDescriptor("Int"), "b": FieldDescriptor("Int")})
        body = await run(engine, "{ b a }", root_value={"a": 1, "b": 2})
        assert list(body["data"]) == ["b", "a"]

    @pytest.mark.asyncio
    async def test_typename(self):
        engine = build_engine({"item": FieldDescriptor("Item")}, [ITEM])
        body = await run(engine, "{ __typename item { __typename id } }", root_value={"item": {"id": 3}})
        assert body == {"data": {"__typename": "Query", "item": {"__typename": "Item", "id": 3}}}

    @pytest.mark.asyncio
    async def test_variables_and_directives(self):
        engine = build_engine({"a": FieldDescriptor("Int"), "b": FieldDescriptor("Int")})
        body = await run(
            engine,
            "query Q($skipB: Boolean!) { a b @skip(if: $skipB) }",
            variables={"skipB": True},
            root_value={"a": 1, "b": 2},
        )
        assert body == {"data": {"a": 1}}

    @pytest.mark.asyncio
    async def test_fragments_merge_selections(self):
        engine = build_engine({"item": FieldDescriptor("Item")}, [ITEM])
        body = await run(
            engine,
            "{ item { id ...L } item { label } } fragment L on Item { label }",
            root_value={"item": {"id": 1, "label": "x"}},
        )
        assert body == {"data": {"item": {"id": 1, "label": "x"}}}


class TestNullPropagation:
    @pytest.mark.asyncio
    async def test_nullable_field_error(self):
        def fail(root, args, info):
            raise ResolutionError("no label")

        item = ObjectType("Item", {"id": FieldDescriptor("Int!"), "label": FieldDescriptor("String", resolver=fail)})
        engine = build_engine({"item": FieldDescriptor("Item")}, [item])
        body = await run(engine, "{ item { id label } }", root_value={"item": {"id": 1}})
        assert body["data"] == {"item": {"id": 1, "label": None}}
        assert body["errors"] == [
            {
                "message": "no label",
                "locations": [{"line": 1, "column": 13}],
                "path": ["item", "label"],
                "extensions": {"code": "RESOLUTION_ERROR"},
            }
        ]

    @pytest.mark.asyncio
    async def test_non_null_field_nulls_parent(self):
        engine = build_engine({"item": FieldDescriptor("Item"), "other": FieldDescriptor("Int")}, [ITEM])
        body = await run(engine, "{ item { id required } other }", root_value={"item": {"id": 1}, "other": 7})
        assert body["data"] == {"item": None, "other": 7}
        assert len(body["errors"]) == 1
        assert body["errors"][0]["message"] == "Cannot return null for non-nullable field Item.required."
        assert body["errors"][0]["path"] == ["item", "required"]

    @pytest.mark.asyncio
    async def test_propagation_reaches_root(self):
        engine = build_engine({"item": FieldDescriptor("Item!")}, [ITEM])
        body = await run(engine, "{ item { required } }", root_value={"item": {"id": 1}})
        assert body["data"] is None
        assert [e["path"] for e in body["errors"]] == [["item", "required"]]

    @pytest.mark.asyncio
    async def test_non_null_list_item_nulls_list(self):
        engine = build_engine({"items": FieldDescriptor("[Item!]")}, [ITEM])
        body = await run(
            engine,
            "{ items { required } }",
            root_value={"items": [{"label": "a"}, {"label": None}]},
        )
        assert body["data"] == {"items": None}
        assert body["errors"][0]["path"] == ["items", 1, "required"]

    @pytest.mark.asyncio
    async def test_nullable_list_item(self):
        engine = build_engine({"items": FieldDescriptor("[Item]")}, [ITEM])
        body = await run(
            engine,
            "{ items { required } }",
            root_value={"items": [{"label": "a"}, {"label": None}]},
        )
        assert body["data"] == {"items": [{"required": "a"}, None]}

    @pytest.mark.asyncio
    async def test_non_iterable_for_list(self):
        engine = build_engine({"items": FieldDescriptor("[Int]")})
        body = await run(engine, "{ items }", root_value={"items": "abc"})
        assert body["data"] == {"items": None}
        assert body["errors"][0]["message"] == "Expected Iterable, but did not find one for field 'Query.items'."

    @pytest.mark.asyncio
    async def test_leaf_serialisation_error(self):
        engine = build_engine({"count": FieldDescriptor("Int")})
        body = await run(engine, "{ count }", root_value={"count": "many"})
        assert body["data"] == {"count": None}
        assert body["errors"][0]["message"] == "Int cannot represent non-integer value: 'many'"


class TestErrorExposure:
    @pytest.mark.asyncio
    async def test_unexpected_error_is_masked(self):
        def fail(root, args, info):
            raise Boom("db password is hunter2")

        engine = build_engine({"secret": FieldDescriptor("String", resolver=fail)})
        body = await run(engine, "{ secret }")
        assert body["data"] == {"secret": None}
        assert body["errors"][0]["message"] == "Internal server error"
        assert body["errors"][0]["extensions"] == {"code": "INTERNAL_SERVER_ERROR"}

    @pytest.mark.asyncio
    async def test_unexpected_error_exposed_when_configured(self):
        def fail(root, args, info):
            raise Boom("details")

        engine = build_engine({"secret": FieldDescriptor("String", resolver=fail)}, expose_internal_errors=True)
        body = await run(engine, "{ secret }")
        assert body["errors"][0]["message"] == "details"

    @pytest.mark.asyncio
    async def test_error_code_is_preserved(self):
        def fail(root, args, info):
            raise ResolutionError("nope", code="FORBIDDEN")

        engine = build_engine({"x": FieldDescriptor("Int", resolver=fail)})
        body = await run(engine, "{ x }")
        assert body["errors"][0]["extensions"] == {"code": "FORBIDDEN"}

    @pytest.mark.asyncio
    async def test_invalid_variable_reports_without_data(self):
        engine = build_engine({"echo": FieldDescriptor("Int", args=[Argument("n", "Int")])})
        body = await run(engine, "query Q($n: Int) { echo(n: $n) }", variables={"n": "x"})
        assert "data" not in body
        assert body["errors"][0]["message"].startswith('Variable \'$n\' got invalid value "x"')
        assert body["errors"][0]["extensions"] == {"code": "BAD_USER_INPUT"}


class TestOrdering:
    @pytest.mark.asyncio
    async def test_errors_follow_document_order(self):
        async def slow_fail(root, args, info):
            await asyncio.sleep(0.02)
            raise ResolutionError("first")

        async def fast_fail(root, args, info):
            raise ResolutionError("second")

        engine = build_engine(
            {
                "a": FieldDescriptor("Int", resolver=slow_fail),
                "b": FieldDescriptor("Int", resolver=fast_fail),
            }
        )
        body = await run(engine, "{ a b }")
        assert [e["message"] for e in body["errors"]] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_list_errors_follow_index(self):
        async def resolve_label(root, args, info):
            await asyncio.sleep(0.01 * (3 - root["id"]))
            raise ResolutionError(f"bad {root['id']}")

        item = ObjectType("Item", {"id": FieldDescriptor("Int!"), "label": FieldDescriptor("String", resolver=resolve_label)})
        engine = build_engine({"items": FieldDescriptor("[Item!]!")}, [item])
        body = await run(engine, "{ items { label } }", root_value={"items": [{"id": 0}, {"id": 1}, {"id": 2}]})
        assert [e["path"] for e in body["errors"]] == [["items", 0, "label"], ["items", 1, "label"], ["items", 2, "label"]]

    @pytest.mark.asyncio
    async def test_query_fields_run_concurrently(self):
        started = []
        release = asyncio.Event()

        async def wait(root, args, info):
            started.append(info.field_name)
            if len(started) == 2:
                release.set()
            await asyncio.wait_for(release.wait(), timeout=1)
            return 1

        engine = build_engine({"a": FieldDescriptor("Int", resolver=wait), "b": FieldDescriptor("Int", resolver=wait)})
        body = await run(engine, "{ a b }")
        assert body == {"data": {"a": 1, "b": 1}}

    @pytest.mark.asyncio
    async def test_mutation_fields_run_serially(self):
        log = []

        def recorder(name, delay):
            async def resolve(root, args, info):
                log.append(f"start {name}")
                await asyncio.sleep(delay)
                log.append(f"end {name}")
                return name

            return resolve

        engine = build_engine(
            {"ok": FieldDescriptor("Boolean")},
            mutation_fields={
                "first": FieldDescriptor("String", resolver=recorder("first", 0.03)),
                "second": FieldDescriptor("String", resolver=recorder("second", 0)),
            },
        )
        body = await run(engine, "mutation { second first }")
        assert body == {"data": {"second": "second", "first": "first"}}
        assert log == ["start second", "end second", "start first", "end first"]

    @pytest.mark.asyncio
    async def test_failed_mutation_does_not_stop_the_next(self):
        def fail(root, args, info):
            raise ResolutionError("failed")

        engine = build_engine(
            {"ok": FieldDescriptor("Boolean")},
            mutation_fields={
                "a": FieldDescriptor("Int", resolver=fail),
                "b": FieldDescriptor("Int", resolver=lambda root, args, info: 2),
            },
        )
        body = await run(engine, "mutation { a b }")
        assert body["data"] == {"a": None, "b": 2}
        assert [e["path"] for e in body["errors"]] == [["a"]]

    @pytest.mark.asyncio
    async def test_failed_non_null_mutation_stops_the_rest(self):
        calls = []

        def fail(root, args, info):
            calls.append("a")
            raise ResolutionError("failed")

        def succeed(root, args, info):
            calls.append("b")
            return "b"

        engine = build_engine(
            {"ok": FieldDescriptor("Boolean")},
            mutation_fields={
                "a": FieldDescriptor("Int!", resolver=fail),
                "b": FieldDescriptor("String!", resolver=succeed),
            },
        )
        body = await run(engine, "mutation { a b }")
        assert body["data"] is None
        assert [(e["message"], e["path"]) for e in body["errors"]] == [("failed", ["a"])]
        assert calls == ["a"]


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelling_execution_cancels_resolvers(self):
        cancelled = asyncio.Event()
        entered = asyncio.Event()

        async def hang(root, args, info):
            entered.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return 1

        engine = build_engine({"slow": FieldDescriptor("Int", resolver=hang)})
        task = asyncio.ensure_future(engine.execute("{ slow }"))
        await asyncio.wait_for(entered.wait(), timeout=1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert cancelled.is_set()


class TestDepthLimit:
    @pytest.fixture
    def nested(self):
        node = ObjectType("Node", {"id": FieldDescriptor("Int"), "child": FieldDescriptor("Node")})
        return lambda depth: build_engine({"node": FieldDescriptor("Node")}, [node], max_depth=depth)

    @staticmethod
    def document(depth: int) -> str:
        # ``depth`` nested selection sets below the top-level field
        return "query Deep { node " + "{ child " * (depth - 1) + "{ id }" + " }" * (depth - 1) + " }"

    @pytest.mark.asyncio
    async def test_at_limit(self, nested):
        engine = nested(3)
        body = await run(engine, self.document(3), root_value={"node": None})
        assert body == {"data": {"node": None}}

    @pytest.mark.asyncio
    async def test_over_limit(self, nested):
        engine = nested(3)
        body = await run(engine, self.document(4), root_value={"node": None})
        assert "data" not in body
        assert [e["message"] for e in body["errors"]] == ["'Deep' exceeds maximum operation depth of 3"]

    @pytest.mark.asyncio
    async def test_anonymous_operation(self, nested):
        engine = nested(0)
        body = await run(engine, "{ node { id } }")
        assert body["errors"][0]["message"] == "'anonymous' exceeds maximum operation depth of 0"

    @pytest.mark.asyncio
    async def test_typename_not_counted(self, nested):
        engine = nested(1)
        body = await run(engine, "{ node { child { __typename } } }", root_value={"node": None})
        assert "errors" not in body

    def test_fragments_are_followed(self, nested):
        engine = nested(1)
        errors = engine.validate("{ node { ...C } } fragment C on Node { child { id } }")
        assert [e.message for e in errors] == ["'anonymous' exceeds maximum operation depth of 1"]
