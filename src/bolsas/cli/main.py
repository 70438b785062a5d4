"""Main CLI entry point."""

import logging
import os

import click
from bolsas.database.factories import create_sqlite_database

# Import and register all commands at module level
from bolsas.cli.commands import (
    account,
    category,
    add,
    transaction,
    budget,
    recurring,
    summary,
)

DEFAULT_USER = "local"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: int) -> None:
    """Set the root log level from -v flags, falling back to BOLSAS_LOG_LEVEL."""
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level_name = os.getenv("BOLSAS_LOG_LEVEL", "WARNING").upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise click.BadParameter(f"Unknown log level '{level_name}'", param_hint="BOLSAS_LOG_LEVEL")
    logging.basicConfig(level=level, format=LOG_FORMAT)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BOLSAS_DB_PATH environment variable)",
    envvar="BOLSAS_DB_PATH",
)
@click.option(
    "--user",
    default=DEFAULT_USER,
    show_default=True,
    envvar="BOLSAS_USER",
    help="User id stamped on new transactions",
)
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug)")
@click.pass_context
def cli(ctx, db_path: str | None, user: str, verbose: int):
    """Bolsas - personal finance ledger with automatic Maaser.

    Record income, expenses and transfers across accounts ("bolsas"). Income
    marked as Maaser-eligible sets aside 10% into the Maaser account, and
    deductible expenses paid for charity are refunded from it.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["user"] = user
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
add.register_commands(cli)
transaction.register_commands(cli)
budget.register_commands(cli)
recurring.register_commands(cli)
summary.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
