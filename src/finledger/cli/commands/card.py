"""Credit card management commands."""

import click

from finledger.cli.error_handling import handle_domain_error
from finledger.domain.account import AccountService
from finledger.domain.card import CreditCardService
from finledger.domain.errors import DomainError
from finledger.utils.resolver import resolve_account, resolve_card


@click.group()
def card_group():
    """Manage credit cards."""
    pass


@card_group.command("create")
@click.argument("name", metavar="CARD_NAME")
@click.option("--limit", "credit_limit", required=True, help="Credit limit")
@click.option("--closing-day", type=int, required=True, help="Day of month the statement closes")
@click.option("--due-day", type=int, required=True, help="Day of month the statement is due")
@click.option("--account", help="Default account invoices are paid from (name or ID)")
@click.option("--brand", help="Card brand")
@click.option("--last-digits", help="Last four digits of the card number")
@click.option("--color", help="Display color as #RRGGBB")
@click.pass_context
def create_card(
    ctx,
    name: str,
    credit_limit: str,
    closing_day: int,
    due_day: int,
    account: str | None,
    brand: str | None,
    last_digits: str | None,
    color: str | None,
):
    """Register a credit card.

    Examples:
        finledger card create "Visa" --limit 5000 --closing-day 10 --due-day 20
        finledger card create "Black" --limit 20000 --closing-day 25 --due-day 5 --account "Checking"
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = CreditCardService(db, ctx.obj["config"])

    try:
        account_id = resolve_account(AccountService(db), user_id, account) if account else None
        card_id = service.create_card(
            user_id,
            name=name,
            credit_limit=credit_limit,
            closing_day=closing_day,
            due_day=due_day,
            default_account_id=account_id,
            brand=brand,
            last_digits=last_digits,
            color=color,
        )
        click.echo(f"Created card '{name}' (ID: {card_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@card_group.command("list")
@click.pass_context
def list_cards(ctx):
    """List credit cards with their limits."""
    service = CreditCardService(ctx.obj["db"], ctx.obj["config"])

    cards = service.list_cards(ctx.obj["user_id"])
    if not cards:
        click.echo("No credit cards found.")
        return

    click.echo("\nCredit cards:")
    click.echo("-" * 90)
    for card in cards:
        digits = f" *{card.last_digits}" if card.last_digits else ""
        click.echo(
            f"ID: {card.id:3d} | {card.name + digits:20s} | "
            f"Limit: {card.credit_limit:>10} | Used: {card.utilized_limit:>10} | "
            f"Available: {card.available_limit:>10} | Closes {card.closing_day:2d}, due {card.due_day:2d}"
        )


@card_group.command("update")
@click.argument("card", metavar="CARD")
@click.option("--name", help="New card name")
@click.option("--limit", "credit_limit", help="New credit limit")
@click.option("--closing-day", type=int, help="New closing day (applies to new invoices)")
@click.option("--due-day", type=int, help="New due day (applies to new invoices)")
@click.option("--account", help="New default account (name or ID), or empty string to clear")
@click.option("--brand", help="Card brand")
@click.option("--last-digits", help="Last four digits of the card number")
@click.option("--color", help="Display color as #RRGGBB")
@click.option("--active/--inactive", default=None, help="Mark the card active or inactive")
@click.pass_context
def update_card(
    ctx,
    card: str,
    name: str | None,
    credit_limit: str | None,
    closing_day: int | None,
    due_day: int | None,
    account: str | None,
    brand: str | None,
    last_digits: str | None,
    color: str | None,
    active: bool | None,
):
    """Update a credit card.

    CARD can be a card name or ID.
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = CreditCardService(db, ctx.obj["config"])

    try:
        card_id = resolve_card(service, user_id, card)
        account_id = resolve_account(AccountService(db), user_id, account) if account else None
        updated = service.update_card(
            user_id,
            card_id,
            name=name,
            credit_limit=credit_limit,
            closing_day=closing_day,
            due_day=due_day,
            default_account_id=account_id,
            clear_default_account=account == "",
            brand=brand,
            last_digits=last_digits,
            color=color,
            active=active,
        )
        click.echo(f"Updated card '{updated.name}' (available: {updated.available_limit})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@card_group.command("delete")
@click.argument("card", metavar="CARD")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_card(ctx, card: str, yes: bool):
    """Delete a credit card with all its invoices and purchases.

    CARD can be a card name or ID.
    """
    user_id = ctx.obj["user_id"]
    service = CreditCardService(ctx.obj["db"], ctx.obj["config"])
    try:
        card_id = resolve_card(service, user_id, card)
        card_obj = service.get_card(user_id, card_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(
        f"Delete card '{card_obj.name}' (ID: {card_id}) with all its invoices and purchases?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_card(user_id, card_id)
        click.echo(f"Deleted card '{card_obj.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register credit card commands with main CLI."""
    cli.add_command(card_group, name="card")
