"""
Per-request DataLoaders for relation fields.

Every loader collects the keys requested by sibling resolvers in one tick of
the event loop and answers them with a single repository call.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Awaitable, Callable, Hashable, Iterable, Sequence
from typing import Any, TypeVar

from strawberry.dataloader import DataLoader

from ..repositories import Repositories

K = TypeVar("K", bound=Hashable)

BatchFn = Callable[[list[Any]], Awaitable[Sequence[Any]]]


def _one_per_key(keys: Sequence[K], rows: Iterable[Any], attr: str) -> list[Any]:
    by_key = {getattr(row, attr): row for row in rows}
    return [by_key.get(key) for key in keys]


def _many_per_key(keys: Sequence[K], pairs: Iterable[tuple[K, Any]]) -> list[list[Any]]:
    grouped: dict[K, list[Any]] = defaultdict(list)
    for key, row in pairs:
        grouped[key].append(row)
    return [grouped.get(key, []) for key in keys]


def by_id(find_many_by_any: Callable[[str, Iterable[Any]], Awaitable[list[Any]]], field: str = "id") -> BatchFn:
    """Batch function returning the single row whose ``field`` equals each key."""

    async def load(keys: list[Any]) -> list[Any]:
        rows = await find_many_by_any(field, keys)
        return _one_per_key(keys, rows, field)

    return load


def grouped_by(find_many_by_any: Callable[[str, Iterable[Any]], Awaitable[list[Any]]], field: str) -> BatchFn:
    """Batch function returning every row whose ``field`` equals each key."""

    async def load(keys: list[Any]) -> list[list[Any]]:
        rows = await find_many_by_any(field, keys)
        return _many_per_key(keys, ((getattr(row, field), row) for row in rows))

    return load


def paired(find_pairs: Callable[[list[Any]], Awaitable[list[tuple[Any, Any]]]]) -> BatchFn:
    async def load(keys: list[Any]) -> list[list[Any]]:
        return _many_per_key(keys, await find_pairs(keys))

    return load


class Loaders:
    def __init__(self, repositories: Repositories):
        self.repositories = repositories
        self.reset()

    def reset(self) -> None:
        """Drop every cached value; mutations call this after writing."""
        repos = self.repositories
        self.user_by_id = DataLoader(load_fn=by_id(repos.users.find_many_by_any))
        self.member_type_by_id = DataLoader(load_fn=by_id(repos.member_types.find_many_by_any))
        self.profile_by_user_id = DataLoader(load_fn=by_id(repos.profiles.find_many_by_any, "user_id"))
        self.posts_by_author_id = DataLoader(load_fn=grouped_by(repos.posts.find_many_by_any, "author_id"))
        self.profiles_by_member_type_id = DataLoader(
            load_fn=grouped_by(repos.profiles.find_many_by_any, "member_type_id")
        )
        self.subscribed_to_by_user_id = DataLoader(load_fn=paired(repos.subscriptions.authors_of))
        self.subscribers_by_user_id = DataLoader(load_fn=paired(repos.subscriptions.subscribers_of))
