"""Recurring series commands."""

import click

from finledger.cli.error_handling import handle_domain_error
from finledger.domain.errors import DomainError
from finledger.domain.series import SeriesService


@click.group()
def series_group():
    """Manage recurring series."""
    pass


@series_group.command("list")
@click.pass_context
def list_series(ctx):
    """List recurring series."""
    service = SeriesService(ctx.obj["db"])
    series = service.list_series(ctx.obj["user_id"])
    if not series:
        click.echo("No series found.")
        return

    click.echo("\nSeries:")
    click.echo("-" * 80)
    for s in series:
        end = s.end_date.isoformat() if s.end_date else "-"
        status = "" if s.active else " (inactive)"
        click.echo(
            f"ID: {s.id:3d} | {s.description[:30]:30s} | {s.kind.value:8s} | "
            f"{s.start_date.isoformat()} to {end} | {s.occurrences}x{status}"
        )


@series_group.command("deactivate")
@click.argument("series_id", type=int)
@click.pass_context
def deactivate_series(ctx, series_id: int):
    """Mark a series inactive. Its transactions are unchanged."""
    service = SeriesService(ctx.obj["db"])
    try:
        service.deactivate_series(ctx.obj["user_id"], series_id)
        click.echo(f"Deactivated series {series_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@series_group.command("delete")
@click.argument("series_id", type=int)
@click.pass_context
def delete_series(ctx, series_id: int):
    """Delete a series definition, keeping its transactions."""
    service = SeriesService(ctx.obj["db"])
    try:
        service.delete_series(ctx.obj["user_id"], series_id)
        click.echo(f"Deleted series {series_id}; its transactions were kept")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register series commands with main CLI."""
    cli.add_command(series_group, name="series")
