from __future__ import annotations

from typing import Any

from ...dbmodels import MemberTypes, Profiles
from ..binding import ResolveInfo
from .common import get_context


async def resolve_member_types(root: Any, args: dict[str, Any], info: ResolveInfo) -> list[MemberTypes]:
    return await get_context(info).repositories.member_types.find_all()


async def resolve_member_type(root: Any, args: dict[str, Any], info: ResolveInfo) -> MemberTypes | None:
    return await get_context(info).repositories.member_types.find_by_id(args["id"])


async def resolve_member_type_profiles(
    member_type: MemberTypes, args: dict[str, Any], info: ResolveInfo
) -> list[Profiles]:
    return await get_context(info).loaders.profiles_by_member_type_id.load(member_type.id)
