"""
Shared pytest fixtures and configuration for all tests.
"""

import os
import sys
import uuid
from collections.abc import Generator, Iterable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

# Add src directory to path so imports work without an installed package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from peerql.graphql.context import RequestContext  # noqa: E402
from peerql.graphql.engine import QueryEngine  # noqa: E402
from peerql.graphql.schema import create_registry  # noqa: E402
from peerql.repositories.errors import ConstraintViolationError, NotFoundError  # noqa: E402


# In-memory repositories mirroring the SQL repository contract


class FakeRepository:
    """Dict-backed repository; records every call for batching assertions."""

    def __init__(self, store: "FakeStore", entity: str):
        self.store = store
        self.entity = entity
        self.rows: dict[Any, SimpleNamespace] = {}
        self.calls: list[tuple[str, Any]] = []

    def add(self, **fields: Any) -> SimpleNamespace:
        fields.setdefault("id", uuid.uuid4())
        row = SimpleNamespace(**fields)
        self.rows[row.id] = row
        return row

    def check(self, row: SimpleNamespace, action: str) -> None:
        pass

    def _violation(self, action: str) -> ConstraintViolationError:
        return ConstraintViolationError(
            f"Cannot {action} {self.entity}: it references a record that does not exist."
        )

    async def find_all(self) -> list[SimpleNamespace]:
        self.calls.append(("find_all", None))
        return list(self.rows.values())

    async def find_by_id(self, key: Any) -> SimpleNamespace | None:
        self.calls.append(("find_by_id", key))
        return self.rows.get(key)

    async def find_many_by(self, field: str, value: Any) -> list[SimpleNamespace]:
        self.calls.append(("find_many_by", (field, value)))
        return [row for row in self.rows.values() if getattr(row, field) == value]

    async def find_many_by_any(self, field: str, values: Iterable[Any]) -> list[SimpleNamespace]:
        values = list(values)
        self.calls.append(("find_many_by_any", (field, tuple(values))))
        return [row for row in self.rows.values() if getattr(row, field) in values]

    async def create(self, fields: dict[str, Any]) -> SimpleNamespace:
        self.calls.append(("create", dict(fields)))
        row = SimpleNamespace(id=uuid.uuid4(), **fields)
        self.check(row, "create")
        self.rows[row.id] = row
        return row

    async def update(self, key: Any, fields: dict[str, Any]) -> SimpleNamespace:
        self.calls.append(("update", (key, dict(fields))))
        row = self.rows.get(key)
        if row is None:
            raise NotFoundError(self.entity, key)
        self.check(SimpleNamespace(**{**vars(row), **fields}), "update")
        for name, value in fields.items():
            setattr(row, name, value)
        return row

    async def delete(self, key: Any) -> None:
        self.calls.append(("delete", key))
        if self.rows.pop(key, None) is None:
            raise NotFoundError(self.entity, key)
        self.store.cascade(self.entity, key)


class FakePosts(FakeRepository):
    def check(self, row: SimpleNamespace, action: str) -> None:
        if row.author_id not in self.store.users.rows:
            raise self._violation(action)


class FakeProfiles(FakeRepository):
    def check(self, row: SimpleNamespace, action: str) -> None:
        if row.user_id not in self.store.users.rows or row.member_type_id not in self.store.member_types.rows:
            raise self._violation(action)
        for other in self.rows.values():
            if other.user_id == row.user_id and other.id != row.id:
                raise ConstraintViolationError(
                    f"Cannot {action} {self.entity}: a conflicting record already exists."
                )


class FakeSubscriptions:
    def __init__(self, store: "FakeStore"):
        self.store = store
        self.links: list[tuple[Any, Any]] = []
        self.calls: list[tuple[str, Any]] = []

    async def subscribe(self, subscriber_id: Any, author_id: Any) -> None:
        self.calls.append(("subscribe", (subscriber_id, author_id)))
        users = self.store.users.rows
        if subscriber_id not in users or author_id not in users:
            raise ConstraintViolationError(
                "Cannot create Subscription: it references a record that does not exist."
            )
        if (subscriber_id, author_id) not in self.links:
            self.links.append((subscriber_id, author_id))

    async def unsubscribe(self, subscriber_id: Any, author_id: Any) -> None:
        self.calls.append(("unsubscribe", (subscriber_id, author_id)))
        try:
            self.links.remove((subscriber_id, author_id))
        except ValueError:
            raise NotFoundError("Subscription", f"{subscriber_id}->{author_id}") from None

    async def authors_of(self, subscriber_ids: list[Any]) -> list[tuple[Any, SimpleNamespace]]:
        self.calls.append(("authors_of", tuple(subscriber_ids)))
        users = self.store.users.rows
        return [(s, users[a]) for s, a in self.links if s in subscriber_ids]

    async def subscribers_of(self, author_ids: list[Any]) -> list[tuple[Any, SimpleNamespace]]:
        self.calls.append(("subscribers_of", tuple(author_ids)))
        users = self.store.users.rows
        return [(a, users[s]) for s, a in self.links if a in author_ids]


class FakeStore:
    """Stands in for the Repositories bundle."""

    def __init__(self) -> None:
        self.users = FakeRepository(self, "User")
        self.posts = FakePosts(self, "Post")
        self.profiles = FakeProfiles(self, "Profile")
        self.member_types = FakeRepository(self, "MemberType")
        self.subscriptions = FakeSubscriptions(self)
        self.member_types.add(id="BASIC", discount=2.3, posts_limit_per_month=20)
        self.member_types.add(id="BUSINESS", discount=7.7, posts_limit_per_month=100)

    def cascade(self, entity: str, key: Any) -> None:
        if entity != "User":
            return
        self.posts.rows = {k: p for k, p in self.posts.rows.items() if p.author_id != key}
        self.profiles.rows = {k: p for k, p in self.profiles.rows.items() if p.user_id != key}
        self.subscriptions.links = [link for link in self.subscriptions.links if key not in link]

    def reset_calls(self) -> None:
        for repo in (self.users, self.posts, self.profiles, self.member_types, self.subscriptions):
            repo.calls.clear()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture(scope="session")
def registry():
    return create_registry()


@pytest.fixture
def engine(registry) -> QueryEngine:
    return QueryEngine(registry, max_depth=5)


@pytest.fixture
def execute(engine, store):
    """Run a document as one request (fresh context) and return the response body."""

    async def run(query: str, variables: dict[str, Any] | None = None, operation_name: str | None = None):
        result = await engine.execute(
            query, variables=variables, operation_name=operation_name, context=RequestContext(store)
        )
        return result.formatted

    return run


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")
