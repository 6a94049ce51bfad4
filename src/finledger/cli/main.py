"""Main CLI entry point."""

import click

from finledger.config import LedgerConfig
from finledger.database.factories import create_database
from finledger.logging import setup_logging

# Import and register all commands at module level
from finledger.cli.commands import (
    account,
    card,
    category,
    invoice,
    series,
    transaction,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides FINLEDGER_DB_PATH environment variable)",
    envvar="FINLEDGER_DB_PATH",
)
@click.option(
    "--user",
    "user_id",
    type=int,
    help="ID of the user to act as (overrides FINLEDGER_USER_ID, default 1)",
    envvar="FINLEDGER_USER_ID",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Log level (overrides FINLEDGER_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, db_path: str | None, user_id: int | None, log_level: str | None):
    """Finledger - Personal finance ledger.

    Track accounts, credit cards and their monthly invoices. Balances,
    invoice totals and card limits are recomputed after every change.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            config = LedgerConfig.from_env()
        except ValueError as e:
            click.echo(f"Error: Invalid configuration: {e}", err=True)
            ctx.exit(1)
        if db_path is not None:
            config.database_path = db_path
            config.database_url = None
        if user_id is not None:
            config.user_id = user_id
        if log_level is not None:
            config.log_level = log_level
        setup_logging(config.log_level)

        db = create_database(config)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["config"] = config
        ctx.obj["user_id"] = config.user_id if config.user_id is not None else 1
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
card.register_commands(cli)
invoice.register_commands(cli)
series.register_commands(cli)
transaction.register_commands(cli)
category.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
