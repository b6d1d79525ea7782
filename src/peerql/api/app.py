"""
Main FastAPI application for peerql
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import settings
from ..database import get_async_session, init_database
from ..database.connection import dispose_database, test_database_connection
from ..database.seed_data import ensure_member_types
from ..graphql.context import RequestContext
from ..graphql.engine import QueryEngine
from ..graphql.router import create_graphql_router
from ..graphql.schema import create_registry
from ..logging import configure_logging, get_logger
from ..middleware import LoggingContextMiddleware
from ..repositories import Repositories

# Configure logging before creating logger
configure_logging(debug=settings.debug, level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting peerql API...", environment=settings.environment)
    init_database()

    ok, error = await test_database_connection()
    if not ok:
        logger.error("Database connection check failed", error=error)
    elif settings.seed_member_types:
        async with get_async_session() as session:
            await ensure_member_types(session)

    yield

    logger.info("Shutting down peerql API...")
    await dispose_database()


def build_context(request: Request) -> RequestContext:
    """Fresh repositories and data loaders for every request."""
    return RequestContext(Repositories.from_session_factory(), request=request)


def create_app(engine: QueryEngine | None = None, *, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: Engine to serve; defaults to one over the domain schema
        use_lifespan: Connect to the database on startup
    """
    if engine is None:
        # Schema errors surface here so a broken schema fails startup
        engine = QueryEngine(
            create_registry(),
            max_depth=settings.max_query_depth,
            expose_internal_errors=settings.expose_internal_errors,
        )

    app = FastAPI(
        title="peerql API",
        description="GraphQL API over users, profiles, posts and subscriptions",
        version=__version__,
        lifespan=lifespan if use_lifespan else None,
        debug=settings.debug,
    )

    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    app.include_router(
        create_graphql_router(
            engine,
            build_context,
            path=settings.graphql_path,
            disconnect_poll_interval=settings.disconnect_poll_interval,
        )
    )
    logger.info("GraphQL endpoint initialized", endpoint=settings.graphql_path)

    return app
