from __future__ import annotations

from typing import Any

from ...dbmodels import Posts, Profiles, Users
from ...logging import get_logger
from ..binding import ResolveInfo
from .common import get_context, model_fields

logger = get_logger(__name__)


# Query resolvers


async def resolve_users(root: Any, args: dict[str, Any], info: ResolveInfo) -> list[Users]:
    return await get_context(info).repositories.users.find_all()


async def resolve_user(root: Any, args: dict[str, Any], info: ResolveInfo) -> Users | None:
    """Resolve a user by id; an unknown id resolves to null."""
    return await get_context(info).repositories.users.find_by_id(args["id"])


# Field resolvers


async def resolve_user_profile(user: Users, args: dict[str, Any], info: ResolveInfo) -> Profiles | None:
    return await get_context(info).loaders.profile_by_user_id.load(user.id)


async def resolve_user_posts(user: Users, args: dict[str, Any], info: ResolveInfo) -> list[Posts]:
    return await get_context(info).loaders.posts_by_author_id.load(user.id)


async def resolve_user_subscribed_to(user: Users, args: dict[str, Any], info: ResolveInfo) -> list[Users]:
    """Users this user subscribes to."""
    return await get_context(info).loaders.subscribed_to_by_user_id.load(user.id)


async def resolve_subscribed_to_user(user: Users, args: dict[str, Any], info: ResolveInfo) -> list[Users]:
    """Users subscribed to this user."""
    return await get_context(info).loaders.subscribers_by_user_id.load(user.id)


# Mutation resolvers


async def resolve_create_user(root: Any, args: dict[str, Any], info: ResolveInfo) -> Users:
    context = get_context(info)
    user = await context.repositories.users.create(model_fields(args["dto"]))
    context.invalidate()
    return user


async def resolve_change_user(root: Any, args: dict[str, Any], info: ResolveInfo) -> Users:
    context = get_context(info)
    user = await context.repositories.users.update(args["id"], model_fields(args["dto"]))
    context.invalidate()
    return user


async def resolve_delete_user(root: Any, args: dict[str, Any], info: ResolveInfo) -> str:
    context = get_context(info)
    await context.repositories.users.delete(args["id"])
    context.invalidate()
    return str(args["id"])


async def resolve_subscribe_to(root: Any, args: dict[str, Any], info: ResolveInfo) -> str:
    """Make ``userId`` a subscriber of ``authorId``; returns the author id."""
    context = get_context(info)
    user_id, author_id = args["userId"], args["authorId"]
    await context.repositories.subscriptions.subscribe(user_id, author_id)
    context.invalidate()
    logger.info("User subscribed to author", user_id=str(user_id), author_id=str(author_id))
    return str(author_id)


async def resolve_unsubscribe_from(root: Any, args: dict[str, Any], info: ResolveInfo) -> str:
    context = get_context(info)
    user_id, author_id = args["userId"], args["authorId"]
    await context.repositories.subscriptions.unsubscribe(user_id, author_id)
    context.invalidate()
    return str(author_id)
