from __future__ import annotations

from typing import Any

from ...dbmodels import MemberTypes, Profiles, Users
from ..binding import ResolveInfo
from .common import get_context, model_fields


async def resolve_profiles(root: Any, args: dict[str, Any], info: ResolveInfo) -> list[Profiles]:
    return await get_context(info).repositories.profiles.find_all()


async def resolve_profile(root: Any, args: dict[str, Any], info: ResolveInfo) -> Profiles | None:
    return await get_context(info).repositories.profiles.find_by_id(args["id"])


async def resolve_profile_member_type(
    profile: Profiles, args: dict[str, Any], info: ResolveInfo
) -> MemberTypes | None:
    # Null here becomes a non-null violation on Profile.memberType
    return await get_context(info).loaders.member_type_by_id.load(profile.member_type_id)


async def resolve_profile_user(profile: Profiles, args: dict[str, Any], info: ResolveInfo) -> Users | None:
    return await get_context(info).loaders.user_by_id.load(profile.user_id)


async def resolve_create_profile(root: Any, args: dict[str, Any], info: ResolveInfo) -> Profiles:
    context = get_context(info)
    profile = await context.repositories.profiles.create(model_fields(args["dto"]))
    context.invalidate()
    return profile


async def resolve_change_profile(root: Any, args: dict[str, Any], info: ResolveInfo) -> Profiles:
    context = get_context(info)
    profile = await context.repositories.profiles.update(args["id"], model_fields(args["dto"]))
    context.invalidate()
    return profile


async def resolve_delete_profile(root: Any, args: dict[str, Any], info: ResolveInfo) -> str:
    context = get_context(info)
    await context.repositories.profiles.delete(args["id"])
    context.invalidate()
    return str(args["id"])
