#!/usr/bin/env python3
"""
Main CLI entry point for peerql.
"""

import asyncio
import sys
from pathlib import Path

import click
import uvicorn

from peerql import __version__
from peerql.config import settings
from peerql.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="peerql")
def cli() -> None:
    """peerql CLI - run the server, seed the database, inspect the schema."""
    pass


@cli.command()
@click.option("--host", default=settings.api_host, help="Host to bind to")
@click.option("--port", default=settings.api_port, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, default=settings.api_reload, help="Enable auto-reload for development")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
def serve(host: str, port: int, reload: bool, log_level: str) -> None:
    """Start the peerql API server."""
    configure_logging(debug=(log_level == "debug"), level=log_level)
    logger.info("Starting peerql API server", host=host, port=port, reload=reload)

    try:
        uvicorn.run(
            "peerql.api.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=reload,
            log_level=log_level,
            access_log=True,
        )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.command()
def seed() -> None:
    """Create the BASIC and BUSINESS member types if they are missing."""
    from peerql.database import get_async_session, init_database
    from peerql.database.seed_data import ensure_member_types

    configure_logging(debug=settings.debug, level=settings.log_level)

    async def run() -> list[str]:
        init_database()
        async with get_async_session() as session:
            return await ensure_member_types(session)

    try:
        created = asyncio.run(run())
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        sys.exit(1)
    click.echo(f"Created member types: {', '.join(created)}" if created else "Member types already present")


@cli.command("print-schema")
def print_schema() -> None:
    """Print the GraphQL schema as SDL."""
    from peerql.graphql.schema import create_registry

    click.echo(create_registry().print_sdl(), nl=False)


@cli.command("check-query")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--max-depth", default=settings.max_query_depth, type=int, show_default=True)
def check_query(path: Path, max_depth: int) -> None:
    """Validate a query document against the schema without executing it."""
    from peerql.graphql.engine import QueryEngine
    from peerql.graphql.schema import create_registry

    engine = QueryEngine(create_registry(), max_depth=max_depth)
    errors = engine.validate(path.read_text())
    if not errors:
        click.echo(f"{path}: OK")
        return
    for error in errors:
        where = ", ".join(f"{loc['line']}:{loc['column']}" for loc in error.locations)
        click.echo(f"{path}:{where or '-'}: {error.message}", err=True)
    sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
