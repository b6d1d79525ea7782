from __future__ import annotations

from typing import Any

from ...dbmodels import Posts, Users
from ..binding import ResolveInfo
from .common import get_context, model_fields


async def resolve_posts(root: Any, args: dict[str, Any], info: ResolveInfo) -> list[Posts]:
    return await get_context(info).repositories.posts.find_all()


async def resolve_post(root: Any, args: dict[str, Any], info: ResolveInfo) -> Posts | None:
    return await get_context(info).repositories.posts.find_by_id(args["id"])


async def resolve_post_author(post: Posts, args: dict[str, Any], info: ResolveInfo) -> Users | None:
    return await get_context(info).loaders.user_by_id.load(post.author_id)


async def resolve_create_post(root: Any, args: dict[str, Any], info: ResolveInfo) -> Posts:
    context = get_context(info)
    post = await context.repositories.posts.create(model_fields(args["dto"]))
    context.invalidate()
    return post


async def resolve_change_post(root: Any, args: dict[str, Any], info: ResolveInfo) -> Posts:
    context = get_context(info)
    post = await context.repositories.posts.update(args["id"], model_fields(args["dto"]))
    context.invalidate()
    return post


async def resolve_delete_post(root: Any, args: dict[str, Any], info: ResolveInfo) -> str:
    context = get_context(info)
    await context.repositories.posts.delete(args["id"])
    context.invalidate()
    return str(args["id"])
