"""Main CLI entry point."""

import click

from fareledger.config import Settings
from fareledger.database.factories import create_database, create_sqlite_database
from fareledger.utils.logger import setup_logging

# Import and register all commands at module level
from fareledger.cli.commands import (
    tenant,
    driver,
    ride,
    payment,
    export,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to SQLite database file (overrides FARELEDGER_DATABASE_URL and FARELEDGER_DB_PATH)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Log level (overrides FARELEDGER_LOG_LEVEL environment variable)",
    envvar="FARELEDGER_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Fareledger - payment exports for taxi fleets.

    Numbers paid fares with gap-free receipt numbers, computes VAT and
    produces hashed monthly export snapshots.
    """
    ctx.ensure_object(dict)
    settings = Settings.from_env()
    ctx.obj["settings"] = settings

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        setup_logging(log_level=log_level or settings.log_level, use_json=settings.log_json)
        if db_path is not None:
            db = create_sqlite_database(database_path=db_path)
        else:
            db = create_database(settings.resolve_database_url())
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
tenant.register_commands(cli)
driver.register_commands(cli)
ride.register_commands(cli)
payment.register_commands(cli)
export.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
