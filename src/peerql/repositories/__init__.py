"""
Repository layer: entity storage behind find/create/update/delete calls.
"""

from dataclasses import dataclass

from .errors import (
    ConstraintViolationError,
    NotFoundError,
    RepositoryError,
    RepositoryErrorKind,
    TransportError,
)
from .sql import (
    MemberTypeRepository,
    PostRepository,
    ProfileRepository,
    SessionFactory,
    SqlRepository,
    SubscriptionRepository,
    UserRepository,
)


@dataclass
class Repositories:
    """The repositories a request works with."""

    users: UserRepository
    posts: PostRepository
    profiles: ProfileRepository
    member_types: MemberTypeRepository
    subscriptions: SubscriptionRepository

    @classmethod
    def from_session_factory(cls, session_factory: SessionFactory | None = None) -> "Repositories":
        kwargs = {} if session_factory is None else {"session_factory": session_factory}
        return cls(
            users=UserRepository(**kwargs),
            posts=PostRepository(**kwargs),
            profiles=ProfileRepository(**kwargs),
            member_types=MemberTypeRepository(**kwargs),
            subscriptions=SubscriptionRepository(**kwargs),
        )


__all__ = [
    "ConstraintViolationError",
    "MemberTypeRepository",
    "NotFoundError",
    "PostRepository",
    "ProfileRepository",
    "Repositories",
    "RepositoryError",
    "RepositoryErrorKind",
    "SqlRepository",
    "SubscriptionRepository",
    "TransportError",
    "UserRepository",
]
