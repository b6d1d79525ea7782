"""
Request context handed to every resolver through ``info.context``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..repositories import Repositories
from .loaders import Loaders

if TYPE_CHECKING:
    from starlette.requests import Request


@dataclass
class RequestContext:
    repositories: Repositories
    request: Request | None = None
    loaders: Loaders = field(init=False)

    def __post_init__(self) -> None:
        self.loaders = Loaders(self.repositories)

    def invalidate(self) -> None:
        """Forget values loaded earlier in this request."""
        self.loaders.reset()
