"""
FastAPI router serving the GraphQL-over-HTTP endpoint.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..logging import get_logger
from .engine import QueryEngine

logger = get_logger(__name__)

T = TypeVar("T")

ContextGetter = Callable[[Request], Any]

# nginx's "client closed request"
CLIENT_CLOSED_REQUEST = 499


class GraphQLRequest(BaseModel):
    """Body of a GraphQL POST request."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    query: str
    variables: dict[str, Any] | None = None
    operation_name: str | None = Field(default=None, alias="operationName")


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"errors": [{"message": message}]}, status_code=400)


async def run_until_disconnected(
    coro: Coroutine[Any, Any, T],
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_interval: float,
) -> tuple[bool, T | None]:
    """Run ``coro`` as a task, cancelling it if the client goes away.

    Returns:
        ``(True, result)`` when the coroutine finished, ``(False, None)`` when
        it was cancelled because the client disconnected
    """
    task = asyncio.ensure_future(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return True, task.result()
            if await is_disconnected():
                logger.warning("Client disconnected, cancelling GraphQL execution")
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
                return False, None
    finally:
        if not task.done():
            task.cancel()


def create_graphql_router(
    engine: QueryEngine,
    context_getter: ContextGetter,
    *,
    path: str = "/graphql",
    disconnect_poll_interval: float = 0.5,
) -> APIRouter:
    """Create the router exposing ``POST <path>``.

    Args:
        engine: Engine executing the documents
        context_getter: Builds the per-request resolver context; may be async
        path: Endpoint path
        disconnect_poll_interval: Seconds between client-disconnect checks
    """
    router = APIRouter(tags=["GraphQL"])

    @router.post(path)
    async def graphql_endpoint(request: Request) -> Response:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _bad_request("Request body must be a JSON object.")

        try:
            payload = GraphQLRequest.model_validate(body)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
                for error in e.errors()
            )
            return _bad_request(f"Invalid GraphQL request: {problems}")

        context = context_getter(request)
        if inspect.isawaitable(context):
            context = await context

        finished, result = await run_until_disconnected(
            engine.execute(
                payload.query,
                variables=payload.variables,
                operation_name=payload.operation_name,
                context=context,
            ),
            request.is_disconnected,
            disconnect_poll_interval,
        )
        if not finished or result is None:
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        return JSONResponse(result.formatted)

    return router
