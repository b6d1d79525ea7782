from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ..binding import ResolveInfo
from ..context import RequestContext

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def get_context(info: ResolveInfo) -> RequestContext:
    context = info.context
    if not isinstance(context, RequestContext):
        raise RuntimeError("Resolver called without a RequestContext")
    return context


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def model_fields(dto: Mapping[str, Any]) -> dict[str, Any]:
    """Map an input object to model attribute names.

    Null and omitted fields are both left out, so change inputs only touch
    what the client sent.
    """
    return {snake_case(key): value for key, value in dto.items() if value is not None}
