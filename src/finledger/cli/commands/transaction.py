"""Transaction management commands."""

import click

from finledger.cli.error_handling import (
    handle_domain_error,
    parse_amount_or_exit,
    parse_date_or_exit,
)
from finledger.domain.account import AccountService
from finledger.domain.card import CreditCardService
from finledger.domain.category import CategoryService
from finledger.domain.entities import SeriesScope, TransactionKind, TransactionOrigin
from finledger.domain.errors import DomainError
from finledger.domain.transaction import TransactionService
from finledger.utils.resolver import resolve_account, resolve_card, resolve_category

KINDS = [kind.value for kind in TransactionKind]
ORIGINS = [origin.value for origin in TransactionOrigin]
SCOPES = [scope.value for scope in SeriesScope]


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.argument("description")
@click.argument("amount")
@click.option("--kind", type=click.Choice(KINDS, case_sensitive=False), default="expense", help="Transaction kind (default: expense)")
@click.option("--date", "accrual", default="today", help="Accrual date (YYYY-MM-DD or relative like 'today', 'yesterday')")
@click.option("--settlement-date", help="Settlement date")
@click.option("--paid", is_flag=True, help="Mark the transaction as paid")
@click.option("--account", help="Account name or ID")
@click.option("--category", help="Category name or ID")
@click.option("--card", help="Credit card name or ID (records a card purchase)")
@click.option("--invoice", "invoice_id", type=int, help="Invoice ID (records a card purchase on it)")
@click.option("--installments", type=click.IntRange(1), help="Split into this many monthly installments")
@click.option("--recurring", is_flag=True, help="Repeat monthly")
@click.option("--occurrences", type=click.IntRange(1), help="Number of recurring occurrences")
@click.option("--notes", help="Notes")
@click.pass_context
def add_transaction(
    ctx,
    description: str,
    amount: str,
    kind: str,
    accrual: str,
    settlement_date: str | None,
    paid: bool,
    account: str | None,
    category: str | None,
    card: str | None,
    invoice_id: int | None,
    installments: int | None,
    recurring: bool,
    occurrences: int | None,
    notes: str | None,
) -> None:
    """Add a transaction.

    Examples:
        finledger transaction add "Salary" 5000 --kind income --account "Checking" --paid
        finledger transaction add "Groceries" 84.90 --card "Visa" --category "Food"
        finledger transaction add "Laptop" 300 --card "Visa" --installments 10
        finledger transaction add "Rent" 1500 --account "Checking" --recurring --occurrences 12
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = TransactionService(db, ctx.obj["config"])

    txn_amount = parse_amount_or_exit(ctx, amount)
    accrual_date = parse_date_or_exit(ctx, accrual)
    settlement = parse_date_or_exit(ctx, settlement_date, "settlement date") if settlement_date else None

    try:
        account_id = resolve_account(AccountService(db), user_id, account) if account else None
        category_id = resolve_category(CategoryService(db), user_id, category) if category else None
        card_id = resolve_card(CreditCardService(db), user_id, card) if card else None
        ids = service.create_transaction(
            user_id,
            description=description,
            amount=txn_amount,
            kind=kind.lower(),
            accrual_date=accrual_date,
            settlement_date=settlement,
            paid=paid,
            account_id=account_id,
            category_id=category_id,
            card_id=card_id,
            invoice_id=invoice_id,
            notes=notes,
            installments=installments,
            recurring=recurring,
            occurrences=occurrences,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if len(ids) == 1:
        click.echo(f"Created transaction {ids[0]}")
    else:
        click.echo(f"Created {len(ids)} transactions (IDs {ids[0]}-{ids[-1]})")


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--kind", type=click.Choice(KINDS, case_sensitive=False), help="Only this kind")
@click.option("--origin", type=click.Choice(ORIGINS, case_sensitive=False), help="Only this origin")
@click.option("--account", help="Account name or ID")
@click.option("--category", help="Category name or ID")
@click.option("--card", help="Credit card name or ID")
@click.option("--invoice", "invoice_id", type=int, help="Invoice ID")
@click.option("--paid/--unpaid", default=None, help="Only paid or unpaid transactions")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    kind: str | None,
    origin: str | None,
    account: str | None,
    category: str | None,
    card: str | None,
    invoice_id: int | None,
    paid: bool | None,
):
    """View transactions with optional filters."""
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = TransactionService(db, ctx.obj["config"])
    account_service = AccountService(db)

    start = parse_date_or_exit(ctx, start_date, "start date") if start_date else None
    end = parse_date_or_exit(ctx, end_date, "end date") if end_date else None

    try:
        account_id = resolve_account(account_service, user_id, account) if account else None
        category_id = resolve_category(CategoryService(db), user_id, category) if category else None
        card_id = resolve_card(CreditCardService(db), user_id, card) if card else None
        transactions = service.list_transactions(
            user_id,
            kind=kind.lower() if kind else None,
            paid=paid,
            start_date=start,
            end_date=end,
            account_id=account_id,
            category_id=category_id,
            card_id=card_id,
            invoice_id=invoice_id,
            origin=origin.lower() if origin else None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not transactions:
        click.echo("No transactions found.")
        return

    accounts = {acc.id: acc.name for acc in account_service.list_accounts(user_id)}

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 110)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Amount':>12} {'Kind':<9} {'Paid':<5} {'Account':<18} {'Description':<40}"
    )
    click.echo("-" * 110)
    for txn in transactions:
        account_name = accounts.get(txn.account_id, "-") if txn.account_id else "-"
        click.echo(
            f"{txn.id:<6} {str(txn.accrual_date):<12} {txn.amount:>12,.2f} {txn.kind.value:<9} "
            f"{'yes' if txn.paid else 'no':<5} {account_name[:18]:<18} {txn.description[:40]:<40}"
        )

    total_income = sum(txn.amount for txn in transactions if txn.kind == TransactionKind.INCOME)
    total_expenses = sum(txn.amount for txn in transactions if txn.kind == TransactionKind.EXPENSE)
    click.echo("-" * 110)
    click.echo(
        f"{'TOTAL':<6} Income: {total_income:,.2f} | Expenses: {total_expenses:,.2f} | "
        f"Count: {len(transactions)}"
    )


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--scope", type=click.Choice(SCOPES, case_sensitive=False), default="one", help="Which members of a series to update (default: one)")
@click.option("--description", help="Transaction description")
@click.option("--amount", help="Transaction amount")
@click.option("--kind", type=click.Choice(KINDS, case_sensitive=False), help="Transaction kind")
@click.option("--date", "accrual", help="Accrual date")
@click.option("--settlement-date", help="Settlement date, or empty string to clear")
@click.option("--paid/--unpaid", default=None, help="Mark paid or unpaid")
@click.option("--account", help="Account name or ID, or empty string to clear")
@click.option("--category", help="Category name or ID, or empty string to clear")
@click.option("--card", help="Move onto this credit card (name or ID)")
@click.option("--notes", help="Notes, or empty string to clear")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    scope: str,
    description: str | None,
    amount: str | None,
    kind: str | None,
    accrual: str | None,
    settlement_date: str | None,
    paid: bool | None,
    account: str | None,
    category: str | None,
    card: str | None,
    notes: str | None,
) -> None:
    """Update a transaction, or a slice of its series.

    Updates only the fields that are provided. --scope selects this
    transaction only (one), the whole series (all), this and later ones
    (future) or this and earlier ones (past).

    Examples:
        finledger transaction update 12 --amount 75.00
        finledger transaction update 12 --scope future --amount 1600
        finledger transaction update 12 --category ""
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = TransactionService(db, ctx.obj["config"])

    txn_amount = parse_amount_or_exit(ctx, amount) if amount is not None else None
    accrual_date = parse_date_or_exit(ctx, accrual) if accrual is not None else None
    settlement = (
        parse_date_or_exit(ctx, settlement_date, "settlement date") if settlement_date else None
    )

    try:
        account_id = resolve_account(AccountService(db), user_id, account) if account else None
        category_id = resolve_category(CategoryService(db), user_id, category) if category else None
        card_id = resolve_card(CreditCardService(db), user_id, card) if card else None
        updated = service.update_transaction(
            user_id,
            transaction_id,
            scope=scope.lower(),
            description=description,
            amount=txn_amount,
            kind=kind.lower() if kind else None,
            accrual_date=accrual_date,
            settlement_date=settlement,
            paid=paid,
            account_id=account_id,
            category_id=category_id,
            card_id=card_id,
            notes=notes or None,
            clear_account=account == "",
            clear_category=category == "",
            clear_settlement_date=settlement_date == "",
            clear_notes=notes == "",
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Updated {len(updated)} transaction(s)")


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--scope", type=click.Choice(SCOPES, case_sensitive=False), default="one", help="Which members of a series to delete (default: one)")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, scope: str, yes: bool) -> None:
    """Delete a transaction, or a slice of its series.

    Deleting an invoice payment reverses it.

    Examples:
        finledger transaction delete 1
        finledger transaction delete 12 --scope future --yes
    """
    user_id = ctx.obj["user_id"]
    service = TransactionService(ctx.obj["db"], ctx.obj["config"])

    try:
        service.get_transaction(user_id, transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(f"Are you sure you want to delete transaction {transaction_id} (scope: {scope})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        deleted = service.delete_transaction(user_id, transaction_id, scope=scope.lower())
        click.echo(f"Deleted {len(deleted)} transaction(s)")
    except DomainError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("toggle-paid")
@click.argument("transaction_id", type=int)
@click.pass_context
def toggle_paid(ctx, transaction_id: int) -> None:
    """Flip a transaction between paid and unpaid."""
    service = TransactionService(ctx.obj["db"], ctx.obj["config"])
    try:
        txn = service.toggle_paid(ctx.obj["user_id"], transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Transaction {txn.id} is now {'paid' if txn.paid else 'unpaid'}")


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
