"""
peerql-migrate: database migrations through alembic.
"""

import sys
from collections.abc import Callable
from pathlib import Path

import click

from alembic import command
from alembic.config import Config
from peerql import __version__
from peerql.config import settings
from peerql.logging import configure_logging, get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def get_alembic_config(database_url: str | None = None) -> Config:
    """Load alembic.ini from the project root, pointing it at the configured database."""
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", database_url or settings.database_url)
    return config


def _run(action: str, operation: Callable[[Config], None], **log_fields) -> None:
    try:
        config = get_alembic_config()
        logger.info(f"{action} started", **log_fields)
        operation(config)
        logger.info(f"{action} completed", **log_fields)
    except Exception as e:
        logger.error(f"{action} failed", error=str(e), **log_fields)
        sys.exit(1)


@click.group()
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
@click.version_option(version=__version__, prog_name="peerql-migrate")
def main(log_level: str) -> None:
    """peerql database migration management."""
    configure_logging(debug=(log_level == "debug"), level=log_level)


@main.command()
@click.argument("revision", default="head")
def upgrade(revision: str) -> None:
    """Upgrade database to a revision (default: head)."""
    _run("Database upgrade", lambda config: command.upgrade(config, revision), revision=revision)


@main.command()
@click.argument("revision", default="-1")
def downgrade(revision: str) -> None:
    """Downgrade database to a revision (default: -1)."""
    _run("Database downgrade", lambda config: command.downgrade(config, revision), revision=revision)


@main.command()
@click.option("-m", "--message", required=True, help="Revision message")
@click.option("--autogenerate/--no-autogenerate", default=True, help="Compare models against the database")
def revision(message: str, autogenerate: bool) -> None:
    """Create a new migration revision."""
    _run(
        "Migration creation",
        lambda config: command.revision(config, message=message, autogenerate=autogenerate),
        message=message,
    )


@main.command()
def current() -> None:
    """Show current database revision."""
    _run("Current revision lookup", command.current)


if __name__ == "__main__":
    main()
