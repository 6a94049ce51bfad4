"""Account management commands."""

import click

from finledger.cli.error_handling import handle_domain_error
from finledger.domain.account import AccountService
from finledger.domain.entities import AccountKind
from finledger.domain.errors import DomainError
from finledger.utils.resolver import resolve_account

ACCOUNT_KINDS = [kind.value for kind in AccountKind]


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--kind",
    type=click.Choice(ACCOUNT_KINDS, case_sensitive=False),
    default=AccountKind.CHECKING.value,
    help="Account kind (default: checking)",
)
@click.option("--opening-balance", default="0", help="Balance before any recorded transaction")
@click.pass_context
def create_account(ctx, name: str, kind: str, opening_balance: str):
    """Create a new account.

    Examples:
        finledger account create "Checking"
        finledger account create "Wallet" --kind cash --opening-balance 150.00
    """
    service = AccountService(ctx.obj["db"])
    try:
        account_id = service.create_account(
            ctx.obj["user_id"], name=name, kind=kind.lower(), opening_balance=opening_balance
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts with their current balances."""
    service = AccountService(ctx.obj["db"])

    accounts = service.list_accounts(ctx.obj["user_id"])
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        status = "" if acc.active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.kind.value:10s} | "
            f"Balance: {acc.current_balance:>12}{status}"
        )


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New account name")
@click.option("--kind", type=click.Choice(ACCOUNT_KINDS, case_sensitive=False), help="New account kind")
@click.option("--opening-balance", help="New opening balance")
@click.option("--active/--inactive", default=None, help="Mark the account active or inactive")
@click.pass_context
def update_account(
    ctx,
    account: str,
    name: str | None,
    kind: str | None,
    opening_balance: str | None,
    active: bool | None,
) -> None:
    """Update an account.

    ACCOUNT can be an account name or ID. Changing the opening balance
    shifts the current balance by the same amount.

    Examples:
        finledger account update "Checking" --name "Main checking"
        finledger account update 1 --opening-balance 2500.00
    """
    service = AccountService(ctx.obj["db"])
    user_id = ctx.obj["user_id"]
    try:
        account_id = resolve_account(service, user_id, account)
        updated = service.update_account(
            user_id,
            account_id,
            name=name,
            kind=kind.lower() if kind else None,
            opening_balance=opening_balance,
            active=active,
        )
        click.echo(f"Updated account '{updated.name}' (balance: {updated.current_balance})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID. Transactions recorded against the
    account are kept without an account.

    Examples:
        finledger account delete "Wallet"
        finledger account delete 1 --yes
    """
    service = AccountService(ctx.obj["db"])
    user_id = ctx.obj["user_id"]
    try:
        account_id = resolve_account(service, user_id, account)
        account_obj = service.get_account(user_id, account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(user_id, account_id)
        click.echo(f"Deleted account '{account_obj.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
