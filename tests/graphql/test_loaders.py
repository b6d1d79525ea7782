"""
Tests for the per-request data loaders
"""

import asyncio

import pytest

from peerql.graphql.context import RequestContext
from peerql.graphql.loaders import by_id, grouped_by, paired


@pytest.mark.asyncio
async def test_by_id_keeps_key_order_and_fills_gaps(store):
    ada = store.users.add(name="Ada", balance=0.0)
    bob = store.users.add(name="Bob", balance=0.0)
    missing = object()

    load = by_id(store.users.find_many_by_any)
    assert await load([bob.id, missing, ada.id]) == [bob, None, ada]


@pytest.mark.asyncio
async def test_grouped_by_returns_empty_lists(store):
    ada = store.users.add(name="Ada", balance=0.0)
    post = store.posts.add(title="t", content="c", author_id=ada.id)

    load = grouped_by(store.posts.find_many_by_any, "author_id")
    assert await load([ada.id, "nobody"]) == [[post], []]


@pytest.mark.asyncio
async def test_paired_groups_by_first_element():
    async def find_pairs(keys):
        return [(1, "a"), (2, "b"), (1, "c")]

    assert await paired(find_pairs)([2, 1, 3]) == [["b"], ["a", "c"], []]


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_batch(store):
    users = [store.users.add(name=str(i), balance=0.0) for i in range(3)]
    context = RequestContext(store)

    loaded = await asyncio.gather(*(context.loaders.user_by_id.load(user.id) for user in users))

    assert loaded == users
    assert [call[0] for call in store.users.calls] == ["find_many_by_any"]


@pytest.mark.asyncio
async def test_invalidate_drops_cached_values(store):
    ada = store.users.add(name="Ada", balance=0.0)
    context = RequestContext(store)

    await context.loaders.user_by_id.load(ada.id)
    await context.loaders.user_by_id.load(ada.id)
    assert len(store.users.calls) == 1

    context.invalidate()
    await context.loaders.user_by_id.load(ada.id)
    assert len(store.users.calls) == 2
