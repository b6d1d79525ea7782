"""
Middleware for request context and logging
"""

import json
import re
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .logging import clear_request_context, get_logger, set_graphql_operation, set_request_context

logger = get_logger(__name__)

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "token",
        "api_key",
        "secret",
        "auth",
        "authorization",
        "key",
        "session",
        "cookie",
        "credentials",
    }
)

_OPERATION_RE = re.compile(r"\b(query|mutation)\s+(\w+)")


def sanitize_query_params(params: dict[str, Any]) -> dict[str, Any]:
    """Redact query parameters whose name contains a sensitive keyword."""
    return {
        key: "[REDACTED]" if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS) else value
        for key, value in params.items()
    }


def operation_name_from_payload(data: Any) -> str | None:
    """Best-effort operation name of a GraphQL request body, for logging only."""
    if not isinstance(data, dict):
        return None
    op = data.get("operationName")
    if isinstance(op, str) and op:
        return op
    query = data.get("query")
    if not isinstance(query, str) or not query:
        return None
    match = _OPERATION_RE.search(query)
    if match:
        kind, name = match.groups()
        return f"mutation:{name}" if kind == "mutation" else name
    return "unnamed_operation"


async def extract_graphql_operation_name(request: Request) -> str | None:
    if request.url.path != settings.graphql_path or request.method != "POST":
        return None
    try:
        body = await request.body()
        if not body:
            return None
        return operation_name_from_payload(json.loads(body))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Middleware to set logging context for each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        set_request_context(request_id=request.headers.get("x-request-id"))

        try:
            sanitized_params = None
            if request.query_params:
                sanitized_params = sanitize_query_params(dict(request.query_params))

            graphql_operation = await extract_graphql_operation_name(request)
            if graphql_operation:
                set_graphql_operation(graphql_operation)

            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
                query_params=sanitized_params,
                user_agent=request.headers.get("user-agent"),
                remote_addr=request.client.host if request.client else None,
            )

            response = await call_next(request)

            logger.info(
                "Request completed",
                status_code=response.status_code,
                method=request.method,
                path=request.url.path,
            )
            return response

        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise

        finally:
            clear_request_context()
