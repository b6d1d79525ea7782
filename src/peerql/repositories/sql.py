"""
SQLAlchemy-backed repositories.

Each call opens its own session from the shared pool and commits before
returning, so concurrently resolving fields never share a session.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.connection import get_async_session
from ..dbmodels import Base, MemberTypes, Posts, Profiles, SubscribersOnAuthors, Users
from ..logging import get_logger
from .errors import ConstraintViolationError, NotFoundError, RepositoryError, TransportError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _constraint_message(entity: str, action: str, error: IntegrityError) -> str:
    detail = str(error.orig).lower()
    if "foreign key" in detail:
        return f"Cannot {action} {entity}: it references a record that does not exist."
    if "unique" in detail or "duplicate" in detail:
        return f"Cannot {action} {entity}: a conflicting record already exists."
    return f"Cannot {action} {entity}: the data violates a constraint."


class SqlRepository(Generic[ModelT]):
    """find/create/update/delete for one mapped model."""

    model: type[ModelT]
    entity: str

    def __init__(self, session_factory: SessionFactory = get_async_session):
        self._session_factory = session_factory

    @asynccontextmanager
    async def session(self, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session, translating database errors into RepositoryErrors."""
        try:
            async with self._session_factory() as session:
                yield session
        except RepositoryError:
            raise
        except IntegrityError as e:
            logger.info("Constraint violation", entity=self.entity, action=action, error=str(e.orig))
            raise ConstraintViolationError(_constraint_message(self.entity, action, e)) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Repository call failed",
                entity=self.entity,
                action=action,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError(f"Failed to {action} {self.entity}.") from e

    async def find_all(self) -> list[ModelT]:
        async with self.session("load") as session:
            result = await session.execute(select(self.model))
            return list(result.scalars().all())

    async def find_by_id(self, key: Any) -> ModelT | None:
        async with self.session("load") as session:
            return await session.get(self.model, key)

    async def find_many_by(self, field: str, value: Any) -> list[ModelT]:
        async with self.session("load") as session:
            stmt = select(self.model).where(getattr(self.model, field) == value)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def find_many_by_any(self, field: str, values: Iterable[Any]) -> list[ModelT]:
        """Batch form of find_many_by, used by the data loaders."""
        values = list(values)
        if not values:
            return []
        async with self.session("load") as session:
            stmt = select(self.model).where(getattr(self.model, field).in_(values))
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def create(self, fields: Mapping[str, Any]) -> ModelT:
        async with self.session("create") as session:
            entity = self.model(**fields)
            session.add(entity)
            await session.flush()
            logger.info(f"Created {self.entity.lower()}", id=str(self._key(entity)))
            return entity

    async def update(self, key: Any, fields: Mapping[str, Any]) -> ModelT:
        async with self.session("update") as session:
            entity = await session.get(self.model, key)
            if entity is None:
                raise NotFoundError(self.entity, key)
            for name, value in fields.items():
                setattr(entity, name, value)
            await session.flush()
            logger.info(f"Updated {self.entity.lower()}", id=str(key), fields=sorted(fields))
            return entity

    async def delete(self, key: Any) -> None:
        async with self.session("delete") as session:
            entity = await session.get(self.model, key)
            if entity is None:
                raise NotFoundError(self.entity, key)
            await session.delete(entity)
            logger.info(f"Deleted {self.entity.lower()}", id=str(key))

    @staticmethod
    def _key(entity: Any) -> Any:
        return getattr(entity, "id", None)


class MemberTypeRepository(SqlRepository[MemberTypes]):
    model = MemberTypes
    entity = "MemberType"


class UserRepository(SqlRepository[Users]):
    model = Users
    entity = "User"


class PostRepository(SqlRepository[Posts]):
    model = Posts
    entity = "Post"


class ProfileRepository(SqlRepository[Profiles]):
    model = Profiles
    entity = "Profile"


class SubscriptionRepository(SqlRepository[SubscribersOnAuthors]):
    """The directed subscriber -> author link between users."""

    model = SubscribersOnAuthors
    entity = "Subscription"

    async def subscribe(self, subscriber_id: UUID, author_id: UUID) -> None:
        """Link subscriber to author; subscribing twice is a no-op."""
        async with self.session("create") as session:
            existing = await session.get(self.model, (subscriber_id, author_id))
            if existing is not None:
                return
            session.add(self.model(subscriber_id=subscriber_id, author_id=author_id))
            await session.flush()
            logger.info("Subscribed", subscriber_id=str(subscriber_id), author_id=str(author_id))

    async def unsubscribe(self, subscriber_id: UUID, author_id: UUID) -> None:
        async with self.session("delete") as session:
            stmt = delete(self.model).where(
                self.model.subscriber_id == subscriber_id,
                self.model.author_id == author_id,
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(self.entity, f"{subscriber_id}->{author_id}")
            logger.info("Unsubscribed", subscriber_id=str(subscriber_id), author_id=str(author_id))

    async def authors_of(self, subscriber_ids: Sequence[UUID]) -> list[tuple[UUID, Users]]:
        """(subscriber id, author) pairs for every subscription of the given users."""
        if not subscriber_ids:
            return []
        async with self.session("load") as session:
            stmt = (
                select(self.model.subscriber_id, Users)
                .join(Users, Users.id == self.model.author_id)
                .where(self.model.subscriber_id.in_(subscriber_ids))
            )
            result = await session.execute(stmt)
            return [(row[0], row[1]) for row in result.all()]

    async def subscribers_of(self, author_ids: Sequence[UUID]) -> list[tuple[UUID, Users]]:
        """(author id, subscriber) pairs for every subscriber of the given users."""
        if not author_ids:
            return []
        async with self.session("load") as session:
            stmt = (
                select(self.model.author_id, Users)
                .join(Users, Users.id == self.model.subscriber_id)
                .where(self.model.author_id.in_(author_ids))
            )
            result = await session.execute(stmt)
            return [(row[0], row[1]) for row in result.all()]
